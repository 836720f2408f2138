from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import replace
from typing import Any

from bandroom.application.ports.availability_store import AvailabilityStorePort
from bandroom.application.ports.booking_store import (
    CLEARABLE_FIELDS,
    UPDATABLE_FIELDS,
    BookingStorePort,
    check_fields,
)
from bandroom.application.ports.lottery_store import LotteryResultStorePort
from bandroom.application.ports.session_store import DELETE_FIELD, SessionStorePort
from bandroom.domain.entities.availability import AvailabilityConfig
from bandroom.domain.entities.booking import Booking
from bandroom.domain.entities.lottery import LotteryResult


class MemorySessionStore(SessionStorePort):
    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._docs.get(user_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, user_id: str, document: dict[str, Any]) -> None:
        with self._lock:
            self._docs[user_id] = copy.deepcopy(document)

    def merge(self, user_id: str, fields: dict[str, Any]) -> None:
        with self._lock:
            doc = self._docs.setdefault(user_id, {})
            for key, value in fields.items():
                if value is DELETE_FIELD:
                    doc.pop(key, None)
                else:
                    doc[key] = copy.deepcopy(value)

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._docs.pop(user_id, None)


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.Lock()

    def insert(self, booking: Booking) -> str:
        booking_id = booking.id or uuid.uuid4().hex
        with self._lock:
            self._bookings[booking_id] = replace(booking, id=booking_id)
        return booking_id

    def update(self, booking_id: str, fields: dict[str, Any]) -> bool:
        check_fields(fields, UPDATABLE_FIELDS)
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return False
            self._bookings[booking_id] = replace(booking, **fields)
            return True

    def update_many(self, updates: dict[str, dict[str, Any]]) -> int:
        for fields in updates.values():
            check_fields(fields, UPDATABLE_FIELDS)
        count = 0
        with self._lock:
            for booking_id, fields in updates.items():
                booking = self._bookings.get(booking_id)
                if booking is None:
                    continue
                self._bookings[booking_id] = replace(booking, **fields)
                count += 1
        return count

    def clear_fields(self, booking_id: str, names: list[str]) -> bool:
        check_fields(names, CLEARABLE_FIELDS)
        return self.update(booking_id, dict.fromkeys(names))

    def delete(self, booking_id: str) -> bool:
        with self._lock:
            return self._bookings.pop(booking_id, None) is not None

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)

    def find_by_user(self, user_id: str) -> list[Booking]:
        with self._lock:
            return [b for b in self._bookings.values() if b.user_id == user_id]

    def find_by_slot(self, slot_key: str) -> list[Booking]:
        with self._lock:
            return [b for b in self._bookings.values() if b.slot_key == slot_key]

    def find_by_slot_prefix(self, prefix: str) -> list[Booking]:
        with self._lock:
            return sorted(
                (b for b in self._bookings.values() if b.slot_key.startswith(prefix)),
                key=lambda b: b.slot_key,
            )


class MemoryAvailabilityStore(AvailabilityStorePort):
    def __init__(self, config: AvailabilityConfig | None = None) -> None:
        self._config = config

    def get_config(self) -> AvailabilityConfig | None:
        return self._config

    def set_config(self, config: AvailabilityConfig) -> None:
        self._config = config


class MemoryLotteryResultStore(LotteryResultStorePort):
    def __init__(self) -> None:
        self._results: dict[str, LotteryResult] = {}

    def get_result(self, target_date: str) -> LotteryResult | None:
        return self._results.get(target_date)

    def set_result(self, result: LotteryResult) -> None:
        self._results[result.target_date] = result

    def delete_result(self, target_date: str) -> bool:
        return self._results.pop(target_date, None) is not None

