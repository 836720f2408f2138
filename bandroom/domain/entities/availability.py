from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TimeSlot:
    label: str
    value: str  # "HH:MM-HH:MM", the time half of a slot key


@dataclass(frozen=True)
class AvailabilityConfig:
    weekdays: tuple[int, ...]  # Monday=0 ... Sunday=6
    time_slots: tuple[TimeSlot, ...]


@dataclass(frozen=True)
class DateOption:
    label: str  # "12/20 (Wed)"
    key: str  # "2024-12-20"


DEFAULT_AVAILABILITY = AvailabilityConfig(
    weekdays=(2, 3, 5),
    time_slots=(
        TimeSlot(label="10:00-12:00", value="10:00-12:00"),
        TimeSlot(label="13:00-15:00", value="13:00-15:00"),
        TimeSlot(label="15:00-17:00", value="15:00-17:00"),
        TimeSlot(label="17:00-19:00", value="17:00-19:00"),
    ),
)
