from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from bandroom.application.ports.message_platform import MessagePlatformPort
from bandroom.application.use_cases.availability import AvailabilityConfigCache, AvailabilityPolicy
from bandroom.application.use_cases.freshness_guard import FreshnessGuard
from bandroom.application.use_cases.pagination import BookingPaginator
from bandroom.application.use_cases.reply_composer import ReplyComposer
from bandroom.application.use_cases.wizard import WizardStateMachine
from bandroom.application.utils.session_codec import deserialize_session
from bandroom.domain.entities.booking import Booking
from bandroom.domain.entities.event import ButtonEvent, TextEvent
from bandroom.domain.entities.reply import Choice, OutboundMessage
from bandroom.domain.entities.session import Session
from bandroom.infrastructure.store.memory_store import (
    MemoryAvailabilityStore,
    MemoryBookingStore,
    MemorySessionStore,
)

TOKYO = ZoneInfo("Asia/Tokyo")

# 2026-10-19 is a Monday; the default allow-list is Wed, Thu, Sat.
MONDAY_MORNING = datetime(2026, 10, 19, 10, 0, tzinfo=TOKYO)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 10, day, hour, minute, tzinfo=TOKYO)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingPlatform(MessagePlatformPort):
    def __init__(self) -> None:
        self.replies: list[tuple[str, list[OutboundMessage]]] = []

    def reply(self, reply_token: str, messages: list[OutboundMessage]) -> None:
        self.replies.append((reply_token, list(messages)))


@dataclass
class Harness:
    wizard: WizardStateMachine
    sessions: MemorySessionStore
    bookings: MemoryBookingStore
    availability: MemoryAvailabilityStore
    composer: ReplyComposer
    clock: FakeClock

    def text(self, text: str, user_id: str = "U1") -> list[OutboundMessage]:
        return self.wizard.handle(TextEvent(user_id=user_id, reply_token="token", text=text))

    def press(self, button: Choice | str, user_id: str = "U1") -> list[OutboundMessage]:
        payload = button.data if isinstance(button, Choice) else button
        return self.wizard.handle(ButtonEvent(user_id=user_id, reply_token="token", payload=payload))

    def session(self, user_id: str = "U1") -> Session:
        return deserialize_session(user_id, self.sessions.get(user_id))

    def add_booking(self, label: str, slot_key: str, user_id: str = "U1", **fields) -> str:
        return self.bookings.insert(
            Booking(id="", user_id=user_id, label=label, slot_key=slot_key, created_at=self.clock.now, **fields)
        )


def build_harness(clock: FakeClock, bookings: MemoryBookingStore | None = None) -> Harness:
    sessions = MemorySessionStore()
    bookings = bookings if bookings is not None else MemoryBookingStore()
    availability = MemoryAvailabilityStore()
    composer = ReplyComposer()
    policy = AvailabilityPolicy(cache=AvailabilityConfigCache(availability), timezone=TOKYO)
    wizard = WizardStateMachine(
        sessions=sessions,
        bookings=bookings,
        policy=policy,
        guard=FreshnessGuard(sessions=sessions, composer=composer),
        paginator=BookingPaginator(bookings=bookings),
        composer=composer,
        clock=clock,
    )
    return Harness(
        wizard=wizard,
        sessions=sessions,
        bookings=bookings,
        availability=availability,
        composer=composer,
        clock=clock,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(MONDAY_MORNING)


@pytest.fixture
def harness(clock: FakeClock) -> Harness:
    return build_harness(clock)
