from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

from bandroom.application.exceptions import StoreError
from bandroom.application.ports.availability_store import AvailabilityStorePort
from bandroom.application.ports.booking_store import (
    CLEARABLE_FIELDS,
    UPDATABLE_FIELDS,
    BookingStorePort,
    check_fields,
)
from bandroom.application.ports.lottery_store import LotteryResultStorePort
from bandroom.application.ports.session_store import DELETE_FIELD, SessionStorePort
from bandroom.domain.entities.availability import AvailabilityConfig, TimeSlot
from bandroom.domain.entities.booking import Booking, BookingStatus
from bandroom.domain.entities.lottery import LotteryResult

logger = logging.getLogger(__name__)


class _JsonFile:
    """One JSON document on disk, written atomically through a temp file."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self.lock = threading.RLock()

    def load(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupted store file {self._path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Unexpected content in {self._path}")
        return data

    def save(self, data: dict[str, Any]) -> None:
        temp_path = self._path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StoreError(f"Cannot write {self._path}: {e}") from e

    def remove(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot delete {self._path}: {e}") from e


class JsonSessionStore(SessionStorePort):
    def __init__(self, data_dir: str = "./data") -> None:
        self._dir = Path(data_dir) / "sessions"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._files: dict[str, _JsonFile] = {}
        self._files_lock = threading.Lock()

    def _file(self, user_id: str) -> _JsonFile:
        safe_id = re.sub(r"[^A-Za-z0-9_-]", "_", user_id)
        with self._files_lock:
            if safe_id not in self._files:
                self._files[safe_id] = _JsonFile(self._dir / f"{safe_id}.json")
            return self._files[safe_id]

    def get(self, user_id: str) -> dict[str, Any] | None:
        file = self._file(user_id)
        with file.lock:
            try:
                return file.load()
            except StoreError:
                # A broken session only costs the user their in-progress step.
                logger.warning("Discarding unreadable session", extra={"user_id": user_id})
                return None

    def set(self, user_id: str, document: dict[str, Any]) -> None:
        file = self._file(user_id)
        with file.lock:
            file.save(document)

    def merge(self, user_id: str, fields: dict[str, Any]) -> None:
        file = self._file(user_id)
        with file.lock:
            try:
                doc = file.load() or {}
            except StoreError:
                doc = {}
            for key, value in fields.items():
                if value is DELETE_FIELD:
                    doc.pop(key, None)
                else:
                    doc[key] = value
            file.save(doc)

    def delete(self, user_id: str) -> None:
        file = self._file(user_id)
        with file.lock:
            file.remove()


class JsonBookingStore(BookingStorePort):
    def __init__(self, data_dir: str = "./data") -> None:
        self._file = _JsonFile(Path(data_dir) / "bookings.json")

    def _load_all(self) -> dict[str, dict[str, Any]]:
        data = self._file.load() or {}
        return data.get("bookings", {})

    def _save_all(self, bookings: dict[str, dict[str, Any]]) -> None:
        self._file.save({"bookings": bookings, "version": 1})

    def insert(self, booking: Booking) -> str:
        booking_id = booking.id or uuid.uuid4().hex
        with self._file.lock:
            bookings = self._load_all()
            bookings[booking_id] = _serialize_booking(replace(booking, id=booking_id))
            self._save_all(bookings)
        return booking_id

    def update(self, booking_id: str, fields: dict[str, Any]) -> bool:
        return self.update_many({booking_id: fields}) == 1

    def update_many(self, updates: dict[str, dict[str, Any]]) -> int:
        for fields in updates.values():
            check_fields(fields, UPDATABLE_FIELDS)
        count = 0
        with self._file.lock:
            bookings = self._load_all()
            for booking_id, fields in updates.items():
                if booking_id not in bookings:
                    continue
                current = _deserialize_booking(booking_id, bookings[booking_id])
                bookings[booking_id] = _serialize_booking(replace(current, **fields))
                count += 1
            if count:
                self._save_all(bookings)
        return count

    def clear_fields(self, booking_id: str, names: list[str]) -> bool:
        check_fields(names, CLEARABLE_FIELDS)
        return self.update(booking_id, dict.fromkeys(names))

    def delete(self, booking_id: str) -> bool:
        with self._file.lock:
            bookings = self._load_all()
            if bookings.pop(booking_id, None) is None:
                return False
            self._save_all(bookings)
            return True

    def get(self, booking_id: str) -> Booking | None:
        with self._file.lock:
            doc = self._load_all().get(booking_id)
        return _deserialize_booking(booking_id, doc) if doc else None

    def _query(self, predicate) -> list[Booking]:
        with self._file.lock:
            bookings = self._load_all()
        return sorted(
            (_deserialize_booking(bid, doc) for bid, doc in bookings.items() if predicate(doc)),
            key=lambda b: b.slot_key,
        )

    def find_by_user(self, user_id: str) -> list[Booking]:
        return self._query(lambda doc: doc.get("user_id") == user_id)

    def find_by_slot(self, slot_key: str) -> list[Booking]:
        return self._query(lambda doc: doc.get("slot_key") == slot_key)

    def find_by_slot_prefix(self, prefix: str) -> list[Booking]:
        return self._query(lambda doc: str(doc.get("slot_key", "")).startswith(prefix))


class JsonAvailabilityStore(AvailabilityStorePort):
    def __init__(self, data_dir: str = "./data") -> None:
        self._file = _JsonFile(Path(data_dir) / "availability.json")

    def get_config(self) -> AvailabilityConfig | None:
        with self._file.lock:
            data = self._file.load()
        if not data:
            return None
        return AvailabilityConfig(
            weekdays=tuple(int(day) for day in data.get("weekdays", [])),
            time_slots=tuple(
                TimeSlot(label=str(slot["label"]), value=str(slot["value"]))
                for slot in data.get("time_slots", [])
                if isinstance(slot, dict) and "label" in slot and "value" in slot
            ),
        )

    def set_config(self, config: AvailabilityConfig) -> None:
        with self._file.lock:
            self._file.save(
                {
                    "weekdays": list(config.weekdays),
                    "time_slots": [{"label": s.label, "value": s.value} for s in config.time_slots],
                }
            )


class JsonLotteryResultStore(LotteryResultStorePort):
    def __init__(self, data_dir: str = "./data") -> None:
        self._file = _JsonFile(Path(data_dir) / "lottery_results.json")

    def get_result(self, target_date: str) -> LotteryResult | None:
        with self._file.lock:
            doc = (self._file.load() or {}).get(target_date)
        if not doc:
            return None
        return LotteryResult(
            target_date=target_date,
            results={str(k): [str(b) for b in v] for k, v in (doc.get("results") or {}).items()},
            updated_at=_parse_datetime(doc.get("updated_at")),
        )

    def set_result(self, result: LotteryResult) -> None:
        with self._file.lock:
            data = self._file.load() or {}
            data[result.target_date] = {
                "results": result.results,
                "updated_at": result.updated_at.isoformat() if result.updated_at else None,
            }
            self._file.save(data)

    def delete_result(self, target_date: str) -> bool:
        with self._file.lock:
            data = self._file.load() or {}
            if data.pop(target_date, None) is None:
                return False
            self._file.save(data)
            return True


def _serialize_booking(booking: Booking) -> dict[str, Any]:
    return {
        "user_id": booking.user_id,
        "label": booking.label,
        "slot_key": booking.slot_key,
        "status": booking.status.value,
        "rank": booking.rank,
        "rank_total": booking.rank_total,
        "lottery_date": booking.lottery_date,
        "created_at": booking.created_at.isoformat() if booking.created_at else None,
    }


def _deserialize_booking(booking_id: str, data: dict[str, Any]) -> Booking:
    try:
        status = BookingStatus(data.get("status", "pending"))
    except ValueError:
        status = BookingStatus.PENDING
    return Booking(
        id=booking_id,
        user_id=str(data.get("user_id", "")),
        label=str(data.get("label", "")),
        slot_key=str(data.get("slot_key", "")),
        status=status,
        rank=data.get("rank"),
        rank_total=data.get("rank_total"),
        lottery_date=data.get("lottery_date"),
        created_at=_parse_datetime(data.get("created_at")),
    )


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None

