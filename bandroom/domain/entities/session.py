"""
Per-user wizard session.

The wizard step is a tagged union: each step type carries exactly the payload
that step needs, so an edit flow can never see a delete payload and vice versa.
Replay-guard fields live next to the step on ``Session`` and survive when the
step is cleared.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar

from bandroom.domain.entities.reply import Choice


class SessionStatus(str, Enum):
    AWAITING_NAME = "AWAITING_NAME"
    EDITING_NAME = "EDITING_NAME"
    AWAITING_DATETIME_EDIT_DATE = "AWAITING_DATETIME_EDIT_DATE"
    AWAITING_DATETIME_EDIT_TIME = "AWAITING_DATETIME_EDIT_TIME"
    AWAITING_DELETE_CONFIRM = "AWAITING_DELETE_CONFIRM"
    AWAITING_DATE_FOR_VIEW_ALL = "AWAITING_DATE_FOR_VIEW_ALL"


@dataclass(frozen=True)
class NoStep:
    status: ClassVar[SessionStatus | None] = None


@dataclass(frozen=True)
class AwaitingName:
    status: ClassVar[SessionStatus | None] = SessionStatus.AWAITING_NAME


@dataclass(frozen=True)
class EditingName:
    booking_id: str
    status: ClassVar[SessionStatus | None] = SessionStatus.EDITING_NAME


@dataclass(frozen=True)
class AwaitingEditDate:
    booking_id: str
    status: ClassVar[SessionStatus | None] = SessionStatus.AWAITING_DATETIME_EDIT_DATE


@dataclass(frozen=True)
class AwaitingEditTime:
    booking_id: str
    selected_date: str
    status: ClassVar[SessionStatus | None] = SessionStatus.AWAITING_DATETIME_EDIT_TIME


@dataclass(frozen=True)
class AwaitingDeleteConfirm:
    booking_id: str
    label: str
    status: ClassVar[SessionStatus | None] = SessionStatus.AWAITING_DELETE_CONFIRM


@dataclass(frozen=True)
class AwaitingViewAllDate:
    status: ClassVar[SessionStatus | None] = SessionStatus.AWAITING_DATE_FOR_VIEW_ALL


WizardStep = (
    NoStep
    | AwaitingName
    | EditingName
    | AwaitingEditDate
    | AwaitingEditTime
    | AwaitingDeleteConfirm
    | AwaitingViewAllDate
)


@dataclass(frozen=True)
class Session:
    user_id: str
    step: WizardStep = field(default_factory=NoStep)
    session_started_at: int | None = None  # ms since epoch, anchors the wizard timeout
    offered_choices: tuple[Choice, ...] = ()
    offered_choices_issued_at: int | None = None
    # Replay guard: any control issued at or before this instant is void.
    last_button_action_at: int | None = None
    last_listing_generated_at: int | None = None
    last_listing_page_viewed: int | None = None

    @property
    def status(self) -> SessionStatus | None:
        return self.step.status

    @property
    def in_wizard(self) -> bool:
        return not isinstance(self.step, NoStep)

    def with_step(self, step: WizardStep, started_at: int | None) -> "Session":
        """Replace the step and its payload as one unit; offered choices belong to the old step."""
        return replace(
            self,
            step=step,
            session_started_at=started_at,
            offered_choices=(),
            offered_choices_issued_at=None,
        )

    def with_offered_choices(self, choices: tuple[Choice, ...], issued_at: int) -> "Session":
        return replace(self, offered_choices=choices, offered_choices_issued_at=issued_at)

    def with_watermark(self, ts: int) -> "Session":
        current = self.last_button_action_at or 0
        return replace(self, last_button_action_at=max(current, ts))

    def with_listing(self, generated_at: int, page: int) -> "Session":
        return replace(self, last_listing_generated_at=generated_at, last_listing_page_viewed=page)

    def is_blank(self) -> bool:
        return (
            not self.in_wizard
            and self.session_started_at is None
            and not self.offered_choices
            and self.last_button_action_at is None
            and self.last_listing_generated_at is None
        )
