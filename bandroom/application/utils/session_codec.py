from __future__ import annotations

from typing import Any

from bandroom.domain.entities.reply import Choice
from bandroom.domain.entities.session import (
    AwaitingDeleteConfirm,
    AwaitingEditDate,
    AwaitingEditTime,
    AwaitingName,
    AwaitingViewAllDate,
    EditingName,
    NoStep,
    Session,
    SessionStatus,
    WizardStep,
)

GUARD_FIELDS = (
    "last_button_action_at",
    "last_listing_generated_at",
    "last_listing_page_viewed",
)


def serialize_session(session: Session) -> dict[str, Any]:
    """Serialize Session to a flat document. Absent values are omitted, never stored as null."""
    doc: dict[str, Any] = {}
    step = session.step
    if step.status is not None:
        doc["status"] = step.status.value
    if isinstance(step, (EditingName, AwaitingEditDate)):
        doc["editing_booking_id"] = step.booking_id
    elif isinstance(step, AwaitingEditTime):
        doc["editing_booking_id"] = step.booking_id
        doc["editing_selected_date"] = step.selected_date
    elif isinstance(step, AwaitingDeleteConfirm):
        doc["deleting_booking_id"] = step.booking_id
        doc["deleting_label"] = step.label

    if session.session_started_at is not None:
        doc["session_started_at"] = session.session_started_at
    if session.offered_choices:
        doc["offered_choices"] = [{"label": c.label, "data": c.data} for c in session.offered_choices]
        doc["offered_choices_issued_at"] = session.offered_choices_issued_at
    for key in GUARD_FIELDS:
        value = getattr(session, key)
        if value is not None:
            doc[key] = value
    return doc


def deserialize_session(user_id: str, doc: dict[str, Any] | None) -> Session:
    """Deserialize a stored document. A step whose payload is incomplete decodes as NoStep."""
    if not doc:
        return Session(user_id=user_id)

    choices = tuple(
        Choice(label=str(item.get("label", "")), data=str(item.get("data", "")))
        for item in doc.get("offered_choices") or []
        if isinstance(item, dict)
    )
    return Session(
        user_id=user_id,
        step=_deserialize_step(doc),
        session_started_at=_as_int(doc.get("session_started_at")),
        offered_choices=choices,
        offered_choices_issued_at=_as_int(doc.get("offered_choices_issued_at")) if choices else None,
        last_button_action_at=_as_int(doc.get("last_button_action_at")),
        last_listing_generated_at=_as_int(doc.get("last_listing_generated_at")),
        last_listing_page_viewed=_as_int(doc.get("last_listing_page_viewed")),
    )


def _deserialize_step(doc: dict[str, Any]) -> WizardStep:
    try:
        status = SessionStatus(doc.get("status"))
    except ValueError:
        return NoStep()

    editing_id = doc.get("editing_booking_id")
    if status is SessionStatus.AWAITING_NAME:
        return AwaitingName()
    if status is SessionStatus.AWAITING_DATE_FOR_VIEW_ALL:
        return AwaitingViewAllDate()
    if status is SessionStatus.EDITING_NAME and editing_id:
        return EditingName(booking_id=str(editing_id))
    if status is SessionStatus.AWAITING_DATETIME_EDIT_DATE and editing_id:
        return AwaitingEditDate(booking_id=str(editing_id))
    if status is SessionStatus.AWAITING_DATETIME_EDIT_TIME and editing_id and doc.get("editing_selected_date"):
        return AwaitingEditTime(booking_id=str(editing_id), selected_date=str(doc["editing_selected_date"]))
    if status is SessionStatus.AWAITING_DELETE_CONFIRM and doc.get("deleting_booking_id"):
        return AwaitingDeleteConfirm(
            booking_id=str(doc["deleting_booking_id"]),
            label=str(doc.get("deleting_label") or ""),
        )
    return NoStep()


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
