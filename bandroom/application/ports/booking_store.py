from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from bandroom.domain.entities.booking import Booking


class BookingStorePort(ABC):
    @abstractmethod
    def insert(self, booking: Booking) -> str:
        """Store a new booking. Returns the assigned id (booking.id is ignored if empty)."""
        raise NotImplementedError

    @abstractmethod
    def update(self, booking_id: str, fields: dict[str, Any]) -> bool:
        """Update attributes of an existing booking. Returns False if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def update_many(self, updates: dict[str, dict[str, Any]]) -> int:
        """
        Apply several updates as one batched write.
        Missing bookings are skipped. Returns the number updated.
        """
        raise NotImplementedError

    @abstractmethod
    def clear_fields(self, booking_id: str, names: list[str]) -> bool:
        """Reset optional attributes to None. Returns False if the booking does not exist."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, booking_id: str) -> bool:
        """Delete a booking. Deleting an absent booking is a no-op returning False."""
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def find_by_slot(self, slot_key: str) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def find_by_slot_prefix(self, prefix: str) -> list[Booking]:
        """Range query: every booking whose slot key starts with prefix (e.g. a date)."""
        raise NotImplementedError


UPDATABLE_FIELDS = frozenset({"label", "slot_key", "status", "rank", "rank_total", "lottery_date"})
CLEARABLE_FIELDS = frozenset({"rank", "rank_total", "lottery_date"})


def check_fields(names, allowed: frozenset[str]) -> None:
    unknown = set(names) - allowed
    if unknown:
        raise ValueError(f"Unknown booking fields: {sorted(unknown)}")
