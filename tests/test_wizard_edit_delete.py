from __future__ import annotations

from conftest import FakeClock, at, build_harness

from bandroom.domain.entities.booking import BookingStatus
from bandroom.domain.entities.postback import Delete, EditName, Noop, encode_postback, parse_postback
from bandroom.domain.entities.reply import CarouselMessage, ChoiceMessage
from bandroom.domain.entities.session import SessionStatus


def _listing(h):
    [message] = h.text("view my bookings")
    assert isinstance(message, CarouselMessage)
    return message


def test_listing_offers_three_actions_per_booking():
    h = build_harness(FakeClock(at(19, 10)))
    booking_id = h.add_booking("Alpha", "2026-10-22T10:00-12:00")

    listing = _listing(h)
    [card] = listing.cards
    assert card.title == "Alpha"
    assert [a.label for a in card.actions] == ["Edit band name", "Edit date/time", "Delete"]
    assert parse_postback(card.actions[0].data).booking_id == booking_id


def test_no_bookings_message():
    h = build_harness(FakeClock(at(19, 10)))
    assert h.text("view my bookings") == [h.composer.no_bookings()]


def test_edit_name_from_older_listing_is_superseded():
    h = build_harness(FakeClock(at(19, 10)))
    h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    old_listing = _listing(h)
    h.clock.advance(seconds=5)
    _listing(h)
    before = h.sessions.get("U1")

    assert h.press(old_listing.cards[0].actions[0]) == [h.composer.button_superseded()]
    assert h.sessions.get("U1") == before


def test_edit_name_flow_updates_label():
    h = build_harness(FakeClock(at(19, 10)))
    booking_id = h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)

    [prompt] = h.press(listing.cards[0].actions[0])
    assert prompt == h.composer.ask_new_name(h.bookings.get(booking_id))
    assert h.session().status is SessionStatus.EDITING_NAME

    assert h.text("Beta") == [h.composer.name_updated("Alpha", "Beta")]
    assert h.bookings.get(booking_id).label == "Beta"
    assert h.session().status is None


def test_redelivered_edit_name_press_is_superseded():
    h = build_harness(FakeClock(at(19, 10)))
    h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)

    h.press(listing.cards[0].actions[0])
    assert h.press(listing.cards[0].actions[0]) == [h.composer.button_superseded()]
    assert h.session().status is SessionStatus.EDITING_NAME


def test_edit_datetime_moves_booking_back_to_pending():
    h = build_harness(FakeClock(at(19, 10)))
    booking_id = h.add_booking(
        "Alpha",
        "2026-10-22T10:00-12:00",
        status=BookingStatus.RANKED,
        rank=1,
        rank_total=2,
        lottery_date="2026-10-22",
    )
    listing = _listing(h)

    [dates] = h.press(listing.cards[0].actions[1])
    assert isinstance(dates, ChoiceMessage)
    assert h.session().status is SessionStatus.AWAITING_DATETIME_EDIT_DATE

    h.clock.advance(seconds=10)
    saturday = next(c for c in dates.choices if c.label == "10/24 (Sat)")
    [times] = h.press(saturday)
    assert h.session().status is SessionStatus.AWAITING_DATETIME_EDIT_TIME

    h.clock.advance(seconds=10)
    [done] = h.press(times.choices[3])
    assert "moved to 10/24 (Sat) 17:00-19:00" in done.text

    moved = h.bookings.get(booking_id)
    assert moved.slot_key == "2026-10-24T17:00-19:00"
    assert moved.status is BookingStatus.PENDING
    assert moved.rank is None and moved.rank_total is None and moved.lottery_date is None
    assert h.session().status is None


def test_edit_date_button_outside_its_step_is_rejected():
    h = build_harness(FakeClock(at(19, 10)))
    h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)
    [dates] = h.press(listing.cards[0].actions[1])
    h.text("cancel")

    assert h.press(dates.choices[0]) == [h.composer.button_superseded()]
    assert h.session().status is None


def test_delete_confirm_then_redelivery_is_harmless():
    h = build_harness(FakeClock(at(19, 10)))
    booking_id = h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)

    [confirm] = h.press(listing.cards[0].actions[2])
    assert [c.label for c in confirm.choices] == ["Delete", "Keep"]
    assert h.session().status is SessionStatus.AWAITING_DELETE_CONFIRM

    assert h.press(confirm.choices[0]) == [h.composer.deleted("Alpha")]
    assert h.bookings.get(booking_id) is None
    assert h.session().status is None

    assert h.press(confirm.choices[0]) == [h.composer.button_superseded()]


def test_keep_cancels_delete():
    h = build_harness(FakeClock(at(19, 10)))
    booking_id = h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)
    [confirm] = h.press(listing.cards[0].actions[2])

    assert h.press(confirm.choices[1]) == [h.composer.delete_cancelled()]
    assert h.bookings.get(booking_id) is not None
    assert h.session().status is None


def test_cannot_touch_another_users_booking():
    h = build_harness(FakeClock(at(19, 10)))
    other_id = h.add_booking("Theirs", "2026-10-22T10:00-12:00", user_id="U2")
    ts = int(h.clock.now.timestamp() * 1000)

    assert h.press(encode_postback(EditName(booking_id=other_id, ts=ts))) == [h.composer.booking_missing()]
    assert h.press(encode_postback(Delete(booking_id=other_id, ts=ts))) == [h.composer.booking_missing()]
    assert h.bookings.get(other_id).label == "Theirs"


def test_listing_is_locked_during_blackout():
    # Tuesday 21:10, tomorrow is Wednesday
    h = build_harness(FakeClock(at(20, 21, 10)))
    h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)

    actions = listing.cards[0].actions
    assert [a.label for a in actions] == ["Locked", "Locked", "Locked"]
    assert all(isinstance(parse_postback(a.data), Noop) for a in actions)
    assert h.press(actions[0]) == [h.composer.placeholder_pressed("21:00-22:00")]


def test_edit_refused_in_blackout():
    h = build_harness(FakeClock(at(20, 20, 58)))
    booking_id = h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)
    h.clock.advance(minutes=3)

    assert h.press(listing.cards[0].actions[2]) == [h.composer.blackout("21:00-22:00")]
    assert h.bookings.get(booking_id) is not None


def test_show_more_pages_forward_only():
    h = build_harness(FakeClock(at(19, 10)))
    for day in range(1, 12):
        h.add_booking(f"Band {day:02d}", f"2026-11-{day:02d}T10:00-12:00")

    first = _listing(h)
    assert len(first.cards) == 10
    assert first.cards[-1].title == "More bookings"
    more = first.cards[-1].actions[0]

    h.clock.advance(seconds=5)
    [second] = h.press(more)
    assert [c.title for c in second.cards] == ["Band 10", "Band 11"]
    assert h.session().last_listing_page_viewed == 1

    assert h.press(more) == [h.composer.listing_replayed()]


def test_show_more_from_older_listing_is_rejected():
    h = build_harness(FakeClock(at(19, 10)))
    for day in range(1, 12):
        h.add_booking(f"Band {day:02d}", f"2026-11-{day:02d}T10:00-12:00")
    old = _listing(h)
    h.clock.advance(seconds=5)
    _listing(h)

    assert h.press(old.cards[-1].actions[0]) == [h.composer.listing_replayed()]


def test_timeout_in_edit_step_keeps_guard_fields():
    h = build_harness(FakeClock(at(19, 10)))
    booking_id = h.add_booking("Alpha", "2026-10-22T10:00-12:00")
    listing = _listing(h)
    h.press(listing.cards[0].actions[0])
    watermark = h.session().last_button_action_at
    h.clock.advance(minutes=6)

    assert h.text("Beta") == [h.composer.session_timed_out()]
    session = h.session()
    assert session.status is None
    assert session.last_button_action_at == watermark
    assert h.bookings.get(booking_id).label == "Alpha"
