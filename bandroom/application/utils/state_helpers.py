from __future__ import annotations

from dataclasses import replace

from bandroom.domain.entities.session import NoStep, Session


def clear_wizard(session: Session) -> Session:
    """Drop the step, its payload and offered choices. Replay-guard fields are kept."""
    return replace(
        session,
        step=NoStep(),
        session_started_at=None,
        offered_choices=(),
        offered_choices_issued_at=None,
    )


def is_session_timed_out(session: Session, now_ms: int, timeout_ms: int) -> bool:
    if not session.in_wizard or session.session_started_at is None:
        return False
    return now_ms - session.session_started_at >= timeout_ms


def has_live_offered_choices(session: Session, now_ms: int, ttl_ms: int) -> bool:
    if not session.offered_choices or session.offered_choices_issued_at is None:
        return False
    return now_ms - session.offered_choices_issued_at < ttl_ms
