from __future__ import annotations

from bandroom.application.use_cases.freshness_guard import (
    VALID,
    FreshnessGuard,
    GuardDecision,
    StaleReason,
    issue_timestamp,
)
from bandroom.application.use_cases.reply_composer import ReplyComposer
from bandroom.domain.entities.reply import Choice
from bandroom.domain.entities.session import Session
from bandroom.infrastructure.store.memory_store import MemorySessionStore

NOW = 1_800_000_000_000


def _guard(store=None) -> FreshnessGuard:
    return FreshnessGuard(sessions=store or MemorySessionStore(), composer=ReplyComposer(), ttl_ms=300_000)


def test_fresh_button_is_valid():
    assert _guard().check(Session(user_id="U1"), NOW - 1_000, NOW) == VALID


def test_button_expires_exactly_at_ttl():
    guard = _guard()
    session = Session(user_id="U1")
    assert guard.check(session, NOW - 299_999, NOW).valid
    assert guard.check(session, NOW - 300_000, NOW).reason is StaleReason.EXPIRED


def test_expiry_is_checked_before_supersession():
    session = Session(user_id="U1", last_button_action_at=NOW)
    assert _guard().check(session, NOW - 400_000, NOW).reason is StaleReason.EXPIRED


def test_button_at_or_before_watermark_is_superseded():
    guard = _guard()
    session = Session(user_id="U1", last_button_action_at=NOW - 10)
    assert guard.check(session, NOW - 10, NOW).reason is StaleReason.SUPERSEDED
    assert guard.check(session, NOW - 11, NOW).reason is StaleReason.SUPERSEDED
    assert guard.check(session, NOW - 9, NOW).valid


def test_accept_persists_watermark_immediately():
    store = MemorySessionStore()
    store.set("U1", {"status": "AWAITING_NAME", "session_started_at": NOW - 5})
    updated = _guard(store).accept(Session(user_id="U1"), NOW)

    assert updated.last_button_action_at == NOW
    assert store.get("U1") == {"status": "AWAITING_NAME", "session_started_at": NOW - 5, "last_button_action_at": NOW}


def test_accept_never_moves_watermark_backwards():
    session = Session(user_id="U1", last_button_action_at=NOW)
    assert _guard().accept(session, NOW - 50).last_button_action_at == NOW


def test_issue_timestamp_is_after_watermark():
    assert issue_timestamp(Session(user_id="U1"), NOW) == NOW
    assert issue_timestamp(Session(user_id="U1", last_button_action_at=NOW), NOW) == NOW + 1
    assert issue_timestamp(Session(user_id="U1", last_button_action_at=NOW - 5), NOW) == NOW


def test_recover_reoffers_live_choices():
    composer = ReplyComposer()
    choices = (Choice(label="10/21 (Wed)", data="action=noop"),)
    session = Session(user_id="U1", offered_choices=choices, offered_choices_issued_at=NOW - 1_000)
    decision = GuardDecision(valid=False, reason=StaleReason.SUPERSEDED)

    assert _guard().recover(session, decision, NOW) == [composer.choose_again(choices)]


def test_recover_without_live_choices_explains_reason():
    composer = ReplyComposer()
    choices = (Choice(label="old", data="action=noop"),)
    session = Session(user_id="U1", offered_choices=choices, offered_choices_issued_at=NOW - 300_000)
    guard = _guard()

    expired = GuardDecision(valid=False, reason=StaleReason.EXPIRED)
    superseded = GuardDecision(valid=False, reason=StaleReason.SUPERSEDED)
    assert guard.recover(session, expired, NOW) == [composer.button_expired()]
    assert guard.recover(session, superseded, NOW) == [composer.button_superseded()]
