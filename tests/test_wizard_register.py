"""
Registration wizard: band name -> date -> time -> pending booking.
"""

from __future__ import annotations

from conftest import FakeClock, at, build_harness

from bandroom.domain.entities.booking import BookingStatus
from bandroom.domain.entities.reply import ChoiceMessage, TextMessage
from bandroom.domain.entities.session import SessionStatus
from bandroom.infrastructure.line.line_platform import render_message


def test_register_end_to_end_creates_pending_booking():
    h = build_harness(FakeClock(at(19, 10)))

    assert h.text("register") == [h.composer.ask_band_name()]
    assert h.session().status is SessionStatus.AWAITING_NAME

    [dates] = h.text("The Rolling Pebbles")
    assert isinstance(dates, ChoiceMessage)
    assert [c.label for c in dates.choices] == ["10/21 (Wed)", "10/22 (Thu)", "10/24 (Sat)"]

    h.clock.advance(seconds=40)
    [times] = h.press(dates.choices[0])
    assert isinstance(times, ChoiceMessage)
    assert [c.label for c in times.choices] == ["10:00-12:00", "13:00-15:00", "15:00-17:00", "17:00-19:00"]

    h.clock.advance(seconds=40)
    [done] = h.press(times.choices[1])
    assert isinstance(done, TextMessage)
    assert "Registered The Rolling Pebbles" in done.text

    [booking] = h.bookings.find_by_user("U1")
    assert booking.label == "The Rolling Pebbles"
    assert booking.slot_key == "2026-10-21T13:00-15:00"
    assert booking.status is BookingStatus.PENDING

    session = h.session()
    assert session.status is None
    assert session.session_started_at is None
    assert session.offered_choices == ()
    assert session.last_button_action_at is not None


def test_monday_evening_first_date_is_wednesday():
    h = build_harness(FakeClock(at(19, 20)))
    h.text("register")
    [dates] = h.text("Night Owls")
    assert dates.choices[0].label == "10/21 (Wed)"


def test_band_name_after_idle_timeout_creates_nothing():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")
    h.clock.advance(minutes=6)

    assert h.text("Late Band") == [h.composer.session_timed_out()]
    assert h.session().status is None
    assert h.bookings.find_by_user("U1") == []


def test_reserved_phrase_is_not_accepted_as_band_name():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")

    assert h.text("View All") == [h.composer.label_rejected("reserved")]
    assert h.session().status is SessionStatus.AWAITING_NAME


def test_overlong_band_name_is_rejected():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")

    assert h.text("x" * 41) == [h.composer.label_rejected("too_long")]
    assert h.session().status is SessionStatus.AWAITING_NAME


def test_japanese_band_name_fits_every_time_button():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")
    name = "ロックバンド" * 4

    [dates] = h.text(name)
    assert isinstance(dates, ChoiceMessage)
    [times] = h.press(dates.choices[0])

    rendered = render_message(times)
    lengths = [len(item["action"]["data"]) for item in rendered["quickReply"]["items"]]
    assert lengths and max(lengths) <= 300

    h.press(times.choices[0])
    [booking] = h.bookings.find_by_user("U1")
    assert booking.label == name


def test_japanese_band_name_too_wide_for_buttons_is_rejected():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")

    assert h.text("ロックバンド" * 4 + "団") == [h.composer.label_rejected("too_long")]
    assert h.session().status is SessionStatus.AWAITING_NAME


def test_register_refused_in_blackout_before_lottery_day():
    # Tuesday 21:30, tomorrow is Wednesday
    h = build_harness(FakeClock(at(20, 21, 30)))
    assert h.text("register") == [h.composer.blackout("21:00-22:00")]
    assert h.session().status is None


def test_blackout_does_not_apply_when_tomorrow_is_closed():
    # Monday 21:30, tomorrow is Tuesday
    h = build_harness(FakeClock(at(19, 21, 30)))
    assert h.text("register") == [h.composer.ask_band_name()]


def test_cancel_clears_wizard_and_keeps_watermark():
    h = build_harness(FakeClock(at(19, 10)))
    h.add_booking("Old Band", "2026-10-22T10:00-12:00")
    h.text("view my bookings")
    watermark = h.session().last_button_action_at
    h.text("register")

    assert h.text("cancel") == [h.composer.cancelled()]
    session = h.session()
    assert session.status is None
    assert session.last_button_action_at == watermark


def test_cancel_with_nothing_in_progress():
    h = build_harness(FakeClock(at(19, 10)))
    assert h.text("cancel") == [h.composer.nothing_to_cancel()]


def test_redelivered_time_button_books_once():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")
    [dates] = h.text("Echo Echo")
    [times] = h.press(dates.choices[0])

    h.press(times.choices[0])
    assert h.press(times.choices[0]) == [h.composer.button_superseded()]
    assert len(h.bookings.find_by_user("U1")) == 1


def test_date_button_expires_after_five_minutes():
    h = build_harness(FakeClock(at(19, 10)))
    h.text("register")
    [dates] = h.text("Slowpokes")
    h.clock.advance(minutes=5)

    assert h.press(dates.choices[0]) == [h.composer.button_expired()]


def test_unknown_text_outside_wizard_gets_menu_hint():
    h = build_harness(FakeClock(at(19, 10)))
    assert h.text("hello") == [h.composer.menu_hint("hello")]


def test_malformed_payload_is_answered_not_raised():
    h = build_harness(FakeClock(at(19, 10)))
    assert h.press("action=select_time&band=X") == [h.composer.button_unknown()]
    assert h.press("garbage") == [h.composer.button_unknown()]
