from __future__ import annotations

import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from bandroom.application.ports.availability_store import AvailabilityStorePort
from bandroom.application.utils.date_helpers import date_key, format_date_label
from bandroom.domain.entities.availability import (
    DEFAULT_AVAILABILITY,
    AvailabilityConfig,
    DateOption,
    TimeSlot,
)


class AvailabilityConfigCache:
    """
    In-process cache of the availability config record.

    The cached entry is replaced as a single tuple, so concurrent handlers
    either see the old entry or the new one. Freshness depends only on the
    ``now`` passed in.
    """

    def __init__(
        self,
        store: AvailabilityStorePort,
        ttl_seconds: int = 300,
        default: AvailabilityConfig = DEFAULT_AVAILABILITY,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._default = default
        self._entry: tuple[AvailabilityConfig, datetime] | None = None
        self._logger = logging.getLogger(__name__)

    def get(self, now: datetime) -> AvailabilityConfig:
        entry = self._entry
        if entry is not None and now - entry[1] < self._ttl:
            return entry[0]

        config = self._store.get_config()
        if config is None:
            # Persist the default so every later read sees the same record.
            self._store.set_config(self._default)
            config = self._default
            self._logger.info("Availability config missing; stored defaults")

        self._entry = (config, now)
        return config

    def invalidate(self) -> None:
        self._entry = None


class AvailabilityPolicy:
    def __init__(
        self,
        cache: AvailabilityConfigCache,
        timezone: ZoneInfo,
        cutoff_hour: int = 21,
        blackout_start_hour: int = 21,
        blackout_end_hour: int = 22,
        lookahead_days: int = 7,
    ) -> None:
        self._cache = cache
        self._timezone = timezone
        self._cutoff_hour = cutoff_hour
        self._blackout_start_hour = blackout_start_hour
        self._blackout_end_hour = blackout_end_hour
        self._lookahead_days = lookahead_days

    @property
    def blackout_window_label(self) -> str:
        return f"{self._blackout_start_hour:02d}:00-{self._blackout_end_hour:02d}:00"

    def is_blackout(self, now: datetime) -> bool:
        """
        True while booking mutations are refused. The window only applies when
        tomorrow is a bookable weekday, i.e. when a lottery is about to run.
        """
        local = now.astimezone(self._timezone)
        if not (self._blackout_start_hour <= local.hour < self._blackout_end_hour):
            return False
        tomorrow = local.date() + timedelta(days=1)
        return tomorrow.weekday() in self._cache.get(now).weekdays

    def eligible_dates(self, now: datetime, include_today: bool = False) -> list[DateOption]:
        local = now.astimezone(self._timezone)
        weekdays = self._cache.get(now).weekdays
        before_cutoff = local.hour < self._cutoff_hour
        offset = 1 if before_cutoff else 2
        start = offset
        if include_today and before_cutoff and local.weekday() in weekdays:
            start = 0

        options: list[DateOption] = []
        for days_ahead in range(start, offset + self._lookahead_days):
            day = local.date() + timedelta(days=days_ahead)
            if day.weekday() in weekdays:
                options.append(DateOption(label=format_date_label(day), key=date_key(day)))
        return options

    def is_eligible_date(self, value: str, now: datetime) -> bool:
        return any(option.key == value for option in self.eligible_dates(now))

    def time_slots(self, now: datetime) -> tuple[TimeSlot, ...]:
        return self._cache.get(now).time_slots

    def find_time_slot(self, value: str, now: datetime) -> TimeSlot | None:
        for slot in self.time_slots(now):
            if slot.value == value:
                return slot
        return None
