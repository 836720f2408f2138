"""
Tests for durable JSON document stores.
"""

from __future__ import annotations

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from bandroom.application.exceptions import StoreError
from bandroom.application.ports.session_store import DELETE_FIELD
from bandroom.application.utils.session_codec import deserialize_session, serialize_session
from bandroom.domain.entities.availability import DEFAULT_AVAILABILITY
from bandroom.domain.entities.booking import Booking, BookingStatus
from bandroom.domain.entities.lottery import LotteryResult
from bandroom.domain.entities.session import EditingName, Session
from bandroom.infrastructure.store.json_store import (
    JsonAvailabilityStore,
    JsonBookingStore,
    JsonLotteryResultStore,
    JsonSessionStore,
)


def test_session_survives_restart():
    """A session written by one store instance is read back by a fresh one."""
    with tempfile.TemporaryDirectory() as tmpdir:
        session = Session(
            user_id="U123",
            step=EditingName(booking_id="b1"),
            session_started_at=1000,
            last_button_action_at=900,
        )
        JsonSessionStore(data_dir=tmpdir).set("U123", serialize_session(session))

        restored = deserialize_session("U123", JsonSessionStore(data_dir=tmpdir).get("U123"))
        assert restored == session


def test_session_merge_writes_only_given_fields():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonSessionStore(data_dir=tmpdir)
        store.set("U1", {"status": "AWAITING_NAME", "session_started_at": 5})

        store.merge("U1", {"last_button_action_at": 10, "session_started_at": DELETE_FIELD})
        assert store.get("U1") == {"status": "AWAITING_NAME", "last_button_action_at": 10}

        store.merge("U2", {"last_button_action_at": 3})
        assert store.get("U2") == {"last_button_action_at": 3}


def test_session_delete_and_unreadable_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonSessionStore(data_dir=tmpdir)
        store.set("U1", {"status": "AWAITING_NAME"})
        store.delete("U1")
        assert store.get("U1") is None

        (Path(tmpdir) / "sessions" / "U2.json").write_text("{not json", encoding="utf-8")
        assert store.get("U2") is None


def test_booking_store_round_trip_and_queries():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingStore(data_dir=tmpdir)
        created = datetime(2026, 10, 19, 1, 0, tzinfo=timezone.utc)
        first = store.insert(
            Booking(id="", user_id="U1", label="Alpha", slot_key="2026-10-21T10:00-12:00", created_at=created)
        )
        store.insert(Booking(id="", user_id="U2", label="Bravo", slot_key="2026-10-21T13:00-15:00"))
        store.insert(Booking(id="", user_id="U1", label="Charlie", slot_key="2026-10-22T10:00-12:00"))

        reopened = JsonBookingStore(data_dir=tmpdir)
        booking = reopened.get(first)
        assert booking.label == "Alpha"
        assert booking.status is BookingStatus.PENDING
        assert booking.created_at == created

        assert [b.label for b in reopened.find_by_user("U1")] == ["Alpha", "Charlie"]
        assert [b.label for b in reopened.find_by_slot("2026-10-21T13:00-15:00")] == ["Bravo"]
        assert [b.label for b in reopened.find_by_slot_prefix("2026-10-21T")] == ["Alpha", "Bravo"]


def test_booking_updates_and_deletes():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingStore(data_dir=tmpdir)
        booking_id = store.insert(Booking(id="", user_id="U1", label="Alpha", slot_key="2026-10-21T10:00-12:00"))

        assert store.update_many(
            {
                booking_id: {"status": BookingStatus.RANKED, "rank": 2, "rank_total": 3, "lottery_date": "2026-10-21"},
                "missing": {"rank": 1},
            }
        ) == 1
        ranked = store.get(booking_id)
        assert ranked.status is BookingStatus.RANKED and ranked.rank == 2

        assert store.clear_fields(booking_id, ["rank", "rank_total", "lottery_date"])
        assert store.get(booking_id).rank is None
        assert store.get(booking_id).status is BookingStatus.RANKED

        with pytest.raises(ValueError):
            store.update(booking_id, {"user_id": "someone"})
        with pytest.raises(ValueError):
            store.clear_fields(booking_id, ["label"])

        assert store.delete(booking_id)
        assert not store.delete(booking_id)
        assert not store.update(booking_id, {"label": "Ghost"})


def test_corrupted_booking_file_raises_store_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "bookings.json").write_text("[]", encoding="utf-8")
        with pytest.raises(StoreError):
            JsonBookingStore(data_dir=tmpdir).find_by_user("U1")


def test_availability_and_lottery_documents():
    with tempfile.TemporaryDirectory() as tmpdir:
        availability = JsonAvailabilityStore(data_dir=tmpdir)
        assert availability.get_config() is None
        availability.set_config(DEFAULT_AVAILABILITY)
        assert JsonAvailabilityStore(data_dir=tmpdir).get_config() == DEFAULT_AVAILABILITY

        results = JsonLotteryResultStore(data_dir=tmpdir)
        updated_at = datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)
        result = LotteryResult(target_date="2026-10-21", results={"10:00-12:00": ["B", "A"]}, updated_at=updated_at)
        results.set_result(result)

        assert JsonLotteryResultStore(data_dir=tmpdir).get_result("2026-10-21") == result
        saved = json.loads((Path(tmpdir) / "lottery_results.json").read_text(encoding="utf-8"))
        assert saved["2026-10-21"]["results"] == {"10:00-12:00": ["B", "A"]}

        assert results.delete_result("2026-10-21")
        assert not results.delete_result("2026-10-21")
        assert results.get_result("2026-10-21") is None
