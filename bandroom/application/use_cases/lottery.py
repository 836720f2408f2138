"""
Scheduled lottery passes.

Two independent, idempotent passes move bookings through
pending -> ranked -> confirmed:

1. ``RunLotteryUseCase`` shuffles the pending bookings of each time slot,
   writes ranks in one batch and stores the ordered labels as a
   ``LotteryResult``.
2. ``ReconcileLotteryUseCase`` later matches that stored order back onto
   live bookings. Bookings deleted or renamed in between are skipped.
"""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from bandroom.application.ports.booking_store import BookingStorePort
from bandroom.application.ports.lottery_store import LotteryResultStorePort
from bandroom.domain.entities.booking import Booking, BookingStatus, build_slot_key
from bandroom.domain.entities.lottery import LotteryResult

RANK_FIELDS = ["rank", "rank_total", "lottery_date"]


@dataclass(frozen=True)
class LotteryRunResult:
    target_date: str
    processed: int
    slots: dict[str, list[str]]


class RunLotteryUseCase:
    def __init__(
        self,
        bookings: BookingStorePort,
        results: LotteryResultStorePort,
        rng: random.Random | None = None,
    ) -> None:
        self._bookings = bookings
        self._results = results
        self._rng = rng or random.Random()
        self._logger = logging.getLogger(__name__)

    def execute(self, target_date: str, now: datetime) -> LotteryRunResult:
        pending = [
            b for b in self._bookings.find_by_slot_prefix(f"{target_date}T") if b.status is BookingStatus.PENDING
        ]
        if not pending:
            self._logger.info("No pending bookings", extra={"target_date": target_date})
            return LotteryRunResult(target_date=target_date, processed=0, slots={})

        by_slot: dict[str, list[Booking]] = defaultdict(list)
        for booking in pending:
            by_slot[booking.time_range].append(booking)

        updates: dict[str, dict[str, object]] = {}
        slots: dict[str, list[str]] = {}
        for time_range in sorted(by_slot):
            group = sorted(by_slot[time_range], key=lambda b: b.id)
            self._rng.shuffle(group)
            for index, booking in enumerate(group):
                updates[booking.id] = {
                    "status": BookingStatus.RANKED,
                    "rank": index + 1,
                    "rank_total": len(group),
                    "lottery_date": target_date,
                }
            slots[time_range] = [b.label for b in group]

        processed = self._bookings.update_many(updates)
        existing = self._results.get_result(target_date)
        merged = dict(existing.results) if existing else {}
        merged.update(slots)
        self._results.set_result(LotteryResult(target_date=target_date, results=merged, updated_at=now))
        self._logger.info("Lottery completed", extra={"target_date": target_date, "count": processed})
        return LotteryRunResult(target_date=target_date, processed=processed, slots=slots)


class ReconcileLotteryUseCase:
    def __init__(self, bookings: BookingStorePort, results: LotteryResultStorePort) -> None:
        self._bookings = bookings
        self._results = results
        self._logger = logging.getLogger(__name__)

    def execute(self, target_date: str) -> int:
        """Confirm ranked bookings that still match the stored order. Returns the number updated."""
        result = self._results.get_result(target_date)
        if result is None or not result.results:
            self._logger.info("No lottery result to reconcile", extra={"target_date": target_date})
            return 0

        updates: dict[str, dict[str, object]] = {}
        for time_range, order in result.results.items():
            if not order:
                continue
            for booking in self._bookings.find_by_slot(build_slot_key(target_date, time_range)):
                # Only bookings this lottery ranked; anything moved or re-registered since is left alone.
                if booking.status is not BookingStatus.RANKED or booking.lottery_date != target_date:
                    continue
                if booking.label not in order:
                    continue
                updates[booking.id] = {
                    "status": BookingStatus.CONFIRMED,
                    "rank": order.index(booking.label) + 1,
                    "rank_total": len(order),
                }

        updated = self._bookings.update_many(updates) if updates else 0
        self._logger.info("Lottery reconciled", extra={"target_date": target_date, "count": updated})
        return updated


@dataclass(frozen=True)
class ClearLotteryResult:
    target_date: str
    bookings_cleared: int
    result_deleted: bool


class ClearLotteryUseCase:
    def __init__(self, bookings: BookingStorePort, results: LotteryResultStorePort) -> None:
        self._bookings = bookings
        self._results = results
        self._logger = logging.getLogger(__name__)

    def execute(self, target_date: str) -> ClearLotteryResult:
        cleared = 0
        for booking in self._bookings.find_by_slot_prefix(f"{target_date}T"):
            if booking.lottery_date != target_date:
                continue
            self._bookings.update(booking.id, {"status": BookingStatus.PENDING})
            if self._bookings.clear_fields(booking.id, RANK_FIELDS):
                cleared += 1
        deleted = self._results.delete_result(target_date)
        self._logger.info("Lottery cleared", extra={"target_date": target_date, "count": cleared})
        return ClearLotteryResult(target_date=target_date, bookings_cleared=cleared, result_deleted=deleted)
