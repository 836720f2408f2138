from __future__ import annotations

from conftest import FakeClock, at, build_harness

from bandroom.domain.entities.booking import BookingStatus
from bandroom.domain.entities.reply import ChoiceMessage
from bandroom.domain.entities.session import SessionStatus


def test_view_all_lists_pending_bookings_for_date():
    h = build_harness(FakeClock(at(19, 10)))
    h.add_booking("Zeta", "2026-10-21T10:00-12:00", user_id="U2")
    h.add_booking("Alpha", "2026-10-21T10:00-12:00", user_id="U3")
    h.add_booking("Other Day", "2026-10-22T10:00-12:00", user_id="U3")

    [dates] = h.text("view all")
    assert isinstance(dates, ChoiceMessage)
    assert dates.choices[0].label == "10/21 (Wed)"
    assert h.session().status is SessionStatus.AWAITING_DATE_FOR_VIEW_ALL

    [summary] = h.press(dates.choices[0])
    assert "[10:00-12:00] 2 applied, lottery pending" in summary.text
    assert summary.text.index("- Alpha") < summary.text.index("- Zeta")
    assert "Other Day" not in summary.text
    assert h.session().status is None


def test_view_all_shows_lottery_order_once_ranked():
    h = build_harness(FakeClock(at(19, 10)))
    h.add_booking("First", "2026-10-21T13:00-15:00", status=BookingStatus.RANKED, rank=2, rank_total=2)
    h.add_booking("Second", "2026-10-21T13:00-15:00", status=BookingStatus.CONFIRMED, rank=1, rank_total=2)

    [dates] = h.text("view all")
    [summary] = h.press(dates.choices[0])
    assert "[13:00-15:00] lottery order" in summary.text
    assert "1. Second\n2. First" in summary.text


def test_view_all_includes_today_before_cutoff():
    # Wednesday morning
    h = build_harness(FakeClock(at(21, 9)))
    [dates] = h.text("view all")
    assert dates.choices[0].label == "10/21 (Wed)"


def test_view_all_works_during_blackout():
    h = build_harness(FakeClock(at(20, 21, 30)))
    [dates] = h.text("view all")
    assert isinstance(dates, ChoiceMessage)


def test_view_all_button_after_switching_flow_is_superseded():
    h = build_harness(FakeClock(at(19, 10)))
    [dates] = h.text("view all")
    h.text("register")

    assert h.press(dates.choices[0]) == [h.composer.button_superseded()]
    assert h.session().status is SessionStatus.AWAITING_NAME


def test_text_during_button_step_reoffers_choices():
    h = build_harness(FakeClock(at(19, 10)))
    [dates] = h.text("view all")

    [reply] = h.text("wednesday please")
    assert isinstance(reply, ChoiceMessage)
    assert reply.choices == dates.choices
