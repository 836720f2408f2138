from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    RANKED = "ranked"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class Booking:
    id: str
    user_id: str
    label: str  # band name
    slot_key: str  # "YYYY-MM-DDTHH:MM-HH:MM"
    status: BookingStatus = BookingStatus.PENDING
    rank: int | None = None
    rank_total: int | None = None
    lottery_date: str | None = None  # YYYY-MM-DD of the lottery run that ranked it
    created_at: datetime | None = None

    @property
    def date_key(self) -> str:
        return split_slot_key(self.slot_key)[0]

    @property
    def time_range(self) -> str:
        return split_slot_key(self.slot_key)[1]

    @property
    def is_ordered(self) -> bool:
        return self.status in (BookingStatus.RANKED, BookingStatus.CONFIRMED)


def build_slot_key(date_key: str, time_range: str) -> str:
    return f"{date_key}T{time_range}"


def split_slot_key(slot_key: str) -> tuple[str, str]:
    date_key, _, time_range = slot_key.partition("T")
    return date_key, time_range
