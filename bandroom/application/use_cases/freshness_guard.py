"""
Freshness Guard: decides whether a pressed button is still the authoritative control.

The chat transport cannot disable a control once sent and may redeliver the
same event, so every timestamp-bearing button is checked against:

- its own age (expired after the TTL), and
- the per-user watermark ``last_button_action_at`` (superseded if issued at
  or before it).

Accepting a committing button moves the watermark to the acceptance time
before anything else is written, which makes redelivery of that same event
superseded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from bandroom.application.ports.session_store import SessionStorePort
from bandroom.application.use_cases.reply_composer import ReplyComposer
from bandroom.application.utils.state_helpers import has_live_offered_choices
from bandroom.domain.entities.reply import OutboundMessage
from bandroom.domain.entities.session import Session


class StaleReason(str, Enum):
    EXPIRED = "expired"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class GuardDecision:
    valid: bool
    reason: StaleReason | None = None


VALID = GuardDecision(valid=True)


def issue_timestamp(session: Session, now_ms: int) -> int:
    """Timestamp for newly issued controls, strictly later than the watermark."""
    watermark = session.last_button_action_at
    if watermark is None:
        return now_ms
    return max(now_ms, watermark + 1)


class FreshnessGuard:
    def __init__(self, sessions: SessionStorePort, composer: ReplyComposer, ttl_ms: int = 300_000) -> None:
        self._sessions = sessions
        self._composer = composer
        self._ttl_ms = ttl_ms
        self._logger = logging.getLogger(__name__)

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def check(self, session: Session, button_ts: int, now_ms: int) -> GuardDecision:
        if now_ms - button_ts >= self._ttl_ms:
            return GuardDecision(valid=False, reason=StaleReason.EXPIRED)
        watermark = session.last_button_action_at
        if watermark is not None and button_ts <= watermark:
            return GuardDecision(valid=False, reason=StaleReason.SUPERSEDED)
        return VALID

    def accept(self, session: Session, now_ms: int) -> Session:
        """Advance the watermark for a committing button and persist it immediately."""
        updated = session.with_watermark(now_ms)
        self._sessions.merge(session.user_id, {"last_button_action_at": updated.last_button_action_at})
        self._logger.info(
            "Button accepted",
            extra={"user_id": session.user_id, "watermark": updated.last_button_action_at},
        )
        return updated

    def recover(self, session: Session, decision: GuardDecision, now_ms: int) -> list[OutboundMessage]:
        """Reply for a rejected button; re-offers the current choices when they are still live."""
        self._logger.info(
            "Stale button rejected",
            extra={"user_id": session.user_id, "reason": decision.reason.value if decision.reason else None},
        )
        if has_live_offered_choices(session, now_ms, self._ttl_ms):
            return [self._composer.choose_again(session.offered_choices)]
        if decision.reason is StaleReason.EXPIRED:
            return [self._composer.button_expired()]
        return [self._composer.button_superseded()]
