"""
Wizard state machine for the booking dialogue.

Each inbound event is interpreted against the stored session, produces the
next session and exactly one batch of reply messages. Writes happen only
after every read and validation for the transition has passed.

Registration after the band name is driven by self-describing button
payloads (band, date, start time), so it needs no session step of its own.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable

from bandroom.application.ports.booking_store import BookingStorePort
from bandroom.application.ports.session_store import SessionStorePort
from bandroom.application.use_cases.availability import AvailabilityPolicy
from bandroom.application.use_cases.freshness_guard import (
    FreshnessGuard,
    GuardDecision,
    StaleReason,
    issue_timestamp,
)
from bandroom.application.use_cases.pagination import BookingPaginator
from bandroom.application.use_cases.reply_composer import ReplyComposer
from bandroom.application.utils.date_helpers import to_millis
from bandroom.application.utils.message_rules import (
    TRIGGER_CANCEL,
    TRIGGER_REGISTER,
    TRIGGER_VIEW_ALL,
    TRIGGER_VIEW_MINE,
    clean_label,
    label_problem,
    match_trigger,
)
from bandroom.application.utils.session_codec import deserialize_session, serialize_session
from bandroom.application.utils.state_helpers import (
    clear_wizard,
    has_live_offered_choices,
    is_session_timed_out,
)
from bandroom.domain.entities.booking import Booking, BookingStatus, build_slot_key
from bandroom.domain.entities.event import ButtonEvent, InboundEvent, TextEvent
from bandroom.domain.entities.postback import (
    CancelDelete,
    ConfirmDelete,
    Delete,
    EditDate,
    EditDatetime,
    EditName,
    EditTime,
    InvalidPostbackError,
    Noop,
    Postback,
    SelectDate,
    SelectTime,
    ShowMore,
    ViewAllDate,
    parse_postback,
)
from bandroom.domain.entities.reply import OutboundMessage
from bandroom.domain.entities.session import (
    AwaitingDeleteConfirm,
    AwaitingEditDate,
    AwaitingEditTime,
    AwaitingName,
    AwaitingViewAllDate,
    EditingName,
    Session,
)

SUPERSEDED = GuardDecision(valid=False, reason=StaleReason.SUPERSEDED)
EXPIRED = GuardDecision(valid=False, reason=StaleReason.EXPIRED)


class WizardStateMachine:
    def __init__(
        self,
        sessions: SessionStorePort,
        bookings: BookingStorePort,
        policy: AvailabilityPolicy,
        guard: FreshnessGuard,
        paginator: BookingPaginator,
        composer: ReplyComposer,
        clock: Callable[[], datetime],
        session_timeout_ms: int = 300_000,
    ) -> None:
        self._sessions = sessions
        self._bookings = bookings
        self._policy = policy
        self._guard = guard
        self._paginator = paginator
        self._composer = composer
        self._clock = clock
        self._session_timeout_ms = session_timeout_ms
        self._logger = logging.getLogger(__name__)

    def handle(self, event: InboundEvent) -> list[OutboundMessage]:
        now = self._clock()
        if isinstance(event, TextEvent):
            return self._handle_text(event, now)
        if isinstance(event, ButtonEvent):
            return self._handle_button(event, now)
        return []

    # --- session persistence --------------------------------------------

    def _load(self, user_id: str) -> Session:
        return deserialize_session(user_id, self._sessions.get(user_id))

    def _save(self, session: Session) -> None:
        if session.is_blank():
            self._sessions.delete(session.user_id)
        else:
            self._sessions.set(session.user_id, serialize_session(session))

    def _expire_session(self, session: Session) -> list[OutboundMessage]:
        self._logger.info(
            "Session timed out",
            extra={"user_id": session.user_id, "status": session.status.value if session.status else None},
        )
        self._save(clear_wizard(session))
        return [self._composer.session_timed_out()]

    def _blackout_reply(self, session: Session) -> list[OutboundMessage]:
        self._logger.info("Refused during blackout", extra={"user_id": session.user_id})
        return [self._composer.blackout(self._policy.blackout_window_label)]

    # --- text events ------------------------------------------------------

    def _handle_text(self, event: TextEvent, now: datetime) -> list[OutboundMessage]:
        now_ms = to_millis(now)
        trigger = match_trigger(event.text)

        # Cancel outranks every other rule, including the timeout and blackout.
        if trigger == TRIGGER_CANCEL:
            session = self._load(event.user_id)
            if not session.in_wizard and not session.offered_choices:
                return [self._composer.nothing_to_cancel()]
            self._save(clear_wizard(session))
            self._logger.info("Wizard cancelled", extra={"user_id": event.user_id})
            return [self._composer.cancelled()]

        session = self._load(event.user_id)
        if is_session_timed_out(session, now_ms, self._session_timeout_ms):
            return self._expire_session(session)

        if isinstance(session.step, AwaitingName):
            return self._receive_band_name(session, event.text, now, now_ms)
        if isinstance(session.step, EditingName):
            return self._receive_new_name(session, session.step, event.text, now, now_ms)

        if trigger == TRIGGER_REGISTER:
            return self._start_registration(session, now, now_ms)
        if trigger == TRIGGER_VIEW_MINE:
            return self._show_listing(session, now, now_ms)
        if trigger == TRIGGER_VIEW_ALL:
            return self._start_view_all(session, now, now_ms)

        if session.in_wizard:
            live = has_live_offered_choices(session, now_ms, self._guard.ttl_ms)
            return [self._composer.use_buttons(session.offered_choices if live else ())]
        return [self._composer.menu_hint(event.text)]

    def _start_registration(self, session: Session, now: datetime, now_ms: int) -> list[OutboundMessage]:
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        self._save(session.with_step(AwaitingName(), started_at=now_ms))
        self._logger.info("Registration started", extra={"user_id": session.user_id})
        return [self._composer.ask_band_name()]

    def _receive_band_name(self, session: Session, text: str, now: datetime, now_ms: int) -> list[OutboundMessage]:
        problem = label_problem(text)
        if problem:
            return [self._composer.label_rejected(problem)]
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)

        dates = self._policy.eligible_dates(now)
        if not dates:
            self._save(clear_wizard(session))
            return [self._composer.no_dates_available()]

        band = clean_label(text)
        # The date step starts now; its buttons carry this start time from here on.
        start = issue_timestamp(session, now_ms)
        message = self._composer.registration_dates(band, dates, start)
        self._save(clear_wizard(session).with_offered_choices(message.choices, now_ms))
        return [message]

    def _receive_new_name(
        self, session: Session, step: EditingName, text: str, now: datetime, now_ms: int
    ) -> list[OutboundMessage]:
        problem = label_problem(text)
        if problem:
            return [self._composer.label_rejected(problem)]
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)

        booking = self._owned_booking(session, step.booking_id)
        if booking is None:
            self._save(clear_wizard(session))
            return [self._composer.booking_missing()]

        label = clean_label(text)
        self._bookings.update(booking.id, {"label": label})
        self._save(clear_wizard(session).with_watermark(now_ms))
        self._logger.info("Band name updated", extra={"user_id": session.user_id, "booking_id": booking.id})
        return [self._composer.name_updated(booking.label, label)]

    def _start_view_all(self, session: Session, now: datetime, now_ms: int) -> list[OutboundMessage]:
        dates = self._policy.eligible_dates(now, include_today=True)
        if not dates:
            self._save(clear_wizard(session))
            return [self._composer.no_dates_available()]
        message = self._composer.view_all_dates(dates, issue_timestamp(session, now_ms))
        self._save(
            session.with_step(AwaitingViewAllDate(), started_at=now_ms).with_offered_choices(message.choices, now_ms)
        )
        return [message]

    def _show_listing(self, session: Session, now: datetime, now_ms: int) -> list[OutboundMessage]:
        page = self._paginator.page(session.user_id, 0)
        if page.total == 0:
            self._save(clear_wizard(session))
            return [self._composer.no_bookings()]

        # A fresh listing is a new generation: every control issued before it is void.
        generated_at = issue_timestamp(session, now_ms)
        updated = clear_wizard(session).with_watermark(generated_at - 1).with_listing(generated_at, 0)
        message = self._composer.listing(
            page.entries,
            page=0,
            has_more=page.has_more,
            generated_at=generated_at,
            action_ts=generated_at,
            locked=self._policy.is_blackout(now),
        )
        self._save(updated)
        return [message]

    # --- button events ----------------------------------------------------

    def _handle_button(self, event: ButtonEvent, now: datetime) -> list[OutboundMessage]:
        now_ms = to_millis(now)
        try:
            postback = parse_postback(event.payload)
        except InvalidPostbackError as e:
            self._logger.warning("Unparsable button payload", extra={"user_id": event.user_id, "reason": str(e)})
            return [self._composer.button_unknown()]

        if isinstance(postback, Noop):
            return [self._composer.placeholder_pressed(self._policy.blackout_window_label)]

        session = self._load(event.user_id)
        if is_session_timed_out(session, now_ms, self._session_timeout_ms):
            return self._expire_session(session)

        self._logger.info("Button pressed", extra={"user_id": event.user_id, "action": postback.action})
        return self._dispatch(session, postback, now, now_ms)

    def _dispatch(self, session: Session, postback: Postback, now: datetime, now_ms: int) -> list[OutboundMessage]:
        if isinstance(postback, SelectDate):
            return self._select_date(session, postback, now, now_ms)
        if isinstance(postback, SelectTime):
            return self._select_time(session, postback, now, now_ms)
        if isinstance(postback, EditName):
            return self._start_edit_name(session, postback, now, now_ms)
        if isinstance(postback, EditDatetime):
            return self._start_edit_datetime(session, postback, now, now_ms)
        if isinstance(postback, EditDate):
            return self._select_edit_date(session, postback, now, now_ms)
        if isinstance(postback, EditTime):
            return self._select_edit_time(session, postback, now, now_ms)
        if isinstance(postback, Delete):
            return self._start_delete(session, postback, now, now_ms)
        if isinstance(postback, ConfirmDelete):
            return self._confirm_delete(session, postback, now, now_ms)
        if isinstance(postback, CancelDelete):
            return self._cancel_delete(session, postback, now_ms)
        if isinstance(postback, ShowMore):
            return self._show_more(session, postback, now, now_ms)
        if isinstance(postback, ViewAllDate):
            return self._view_all_date(session, postback, now_ms)
        return [self._composer.button_unknown()]

    def _select_date(self, session: Session, p: SelectDate, now: datetime, now_ms: int) -> list[OutboundMessage]:
        decision = self._guard.check(session, p.start, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        if not self._policy.is_eligible_date(p.date, now):
            return [self._composer.date_unavailable()]
        slots = self._policy.time_slots(now)
        if not slots:
            return [self._composer.no_time_slots()]

        message = self._composer.registration_times(p.band, p.date, slots, p.start)
        self._save(clear_wizard(session).with_offered_choices(message.choices, now_ms))
        return [message]

    def _select_time(self, session: Session, p: SelectTime, now: datetime, now_ms: int) -> list[OutboundMessage]:
        decision = self._guard.check(session, p.start, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        if label_problem(p.band):
            return [self._composer.button_unknown()]
        if not self._policy.is_eligible_date(p.date, now):
            return [self._composer.date_unavailable()]
        if self._policy.find_time_slot(p.time, now) is None:
            return [self._composer.slot_unavailable()]

        session = self._guard.accept(session, now_ms)
        booking = Booking(
            id="",
            user_id=session.user_id,
            label=p.band,
            slot_key=build_slot_key(p.date, p.time),
            status=BookingStatus.PENDING,
            created_at=now,
        )
        booking = replace(booking, id=self._bookings.insert(booking))
        self._save(clear_wizard(session))
        self._logger.info("Booking created", extra={"user_id": session.user_id, "booking_id": booking.id})
        return [self._composer.booking_created(booking)]

    def _start_edit_name(self, session: Session, p: EditName, now: datetime, now_ms: int) -> list[OutboundMessage]:
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        booking = self._owned_booking(session, p.booking_id)
        if booking is None:
            self._save(clear_wizard(session))
            return [self._composer.booking_missing()]

        session = self._guard.accept(session, now_ms)
        self._save(session.with_step(EditingName(booking_id=booking.id), started_at=now_ms))
        return [self._composer.ask_new_name(booking)]

    def _start_edit_datetime(
        self, session: Session, p: EditDatetime, now: datetime, now_ms: int
    ) -> list[OutboundMessage]:
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        booking = self._owned_booking(session, p.booking_id)
        if booking is None:
            self._save(clear_wizard(session))
            return [self._composer.booking_missing()]
        dates = self._policy.eligible_dates(now)
        if not dates:
            return [self._composer.no_dates_available()]

        session = self._guard.accept(session, now_ms)
        message = self._composer.edit_dates(booking, dates, issue_timestamp(session, now_ms))
        self._save(
            session.with_step(AwaitingEditDate(booking_id=booking.id), started_at=now_ms).with_offered_choices(
                message.choices, now_ms
            )
        )
        return [message]

    def _select_edit_date(self, session: Session, p: EditDate, now: datetime, now_ms: int) -> list[OutboundMessage]:
        step = session.step
        if not isinstance(step, AwaitingEditDate):
            return self._guard.recover(session, SUPERSEDED, now_ms)
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        if not self._policy.is_eligible_date(p.date, now):
            return [self._composer.date_unavailable()]
        slots = self._policy.time_slots(now)
        if not slots:
            return [self._composer.no_time_slots()]

        message = self._composer.edit_times(p.date, slots, ts=issue_timestamp(session, now_ms), start=now_ms)
        next_step = AwaitingEditTime(booking_id=step.booking_id, selected_date=p.date)
        self._save(session.with_step(next_step, started_at=now_ms).with_offered_choices(message.choices, now_ms))
        return [message]

    def _select_edit_time(self, session: Session, p: EditTime, now: datetime, now_ms: int) -> list[OutboundMessage]:
        step = session.step
        if not isinstance(step, AwaitingEditTime):
            return self._guard.recover(session, SUPERSEDED, now_ms)
        if now_ms - p.start >= self._guard.ttl_ms:
            return self._guard.recover(session, EXPIRED, now_ms)
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        if not self._policy.is_eligible_date(step.selected_date, now):
            return [self._composer.date_unavailable()]
        if self._policy.find_time_slot(p.time, now) is None:
            return [self._composer.slot_unavailable()]
        booking = self._owned_booking(session, step.booking_id)
        if booking is None:
            self._save(clear_wizard(session))
            return [self._composer.booking_missing()]

        session = self._guard.accept(session, now_ms)
        slot_key = build_slot_key(step.selected_date, p.time)
        # A moved booking re-enters the lottery, so its ranking is dropped in the same write.
        self._bookings.update(
            booking.id,
            {
                "slot_key": slot_key,
                "status": BookingStatus.PENDING,
                "rank": None,
                "rank_total": None,
                "lottery_date": None,
            },
        )
        self._save(clear_wizard(session))
        self._logger.info("Booking moved", extra={"user_id": session.user_id, "booking_id": booking.id})
        moved = replace(booking, slot_key=slot_key, status=BookingStatus.PENDING, rank=None, rank_total=None)
        return [self._composer.datetime_updated(moved)]

    def _start_delete(self, session: Session, p: Delete, now: datetime, now_ms: int) -> list[OutboundMessage]:
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)
        booking = self._owned_booking(session, p.booking_id)
        if booking is None:
            self._save(clear_wizard(session))
            return [self._composer.booking_missing()]

        session = self._guard.accept(session, now_ms)
        # Stamped after the watermark just set, so the dialogue is not born superseded.
        message = self._composer.delete_confirm(booking, issue_timestamp(session, now_ms))
        step = AwaitingDeleteConfirm(booking_id=booking.id, label=booking.label)
        self._save(session.with_step(step, started_at=now_ms).with_offered_choices(message.choices, now_ms))
        return [message]

    def _confirm_delete(self, session: Session, p: ConfirmDelete, now: datetime, now_ms: int) -> list[OutboundMessage]:
        step = session.step
        if not isinstance(step, AwaitingDeleteConfirm):
            return self._guard.recover(session, SUPERSEDED, now_ms)
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)
        if self._policy.is_blackout(now):
            return self._blackout_reply(session)

        session = self._guard.accept(session, now_ms)
        existed = self._bookings.delete(step.booking_id)
        self._save(clear_wizard(session))
        self._logger.info(
            "Booking deleted",
            extra={"user_id": session.user_id, "booking_id": step.booking_id, "status": "deleted" if existed else "absent"},
        )
        return [self._composer.deleted(step.label)]

    def _cancel_delete(self, session: Session, p: CancelDelete, now_ms: int) -> list[OutboundMessage]:
        if not isinstance(session.step, AwaitingDeleteConfirm):
            return self._guard.recover(session, SUPERSEDED, now_ms)
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)

        session = self._guard.accept(session, now_ms)
        self._save(clear_wizard(session))
        return [self._composer.delete_cancelled()]

    def _show_more(self, session: Session, p: ShowMore, now: datetime, now_ms: int) -> list[OutboundMessage]:
        if now_ms - p.generated_at >= self._guard.ttl_ms:
            return [self._composer.button_expired()]
        if not self._paginator.accepts_show_more(session, p.page, p.generated_at):
            self._logger.info("Listing page replay rejected", extra={"user_id": session.user_id})
            return [self._composer.listing_replayed()]

        page = self._paginator.page(session.user_id, p.page)
        updated = session.with_listing(p.generated_at, p.page)
        if not page.entries:
            self._save(updated)
            return [self._composer.no_more_bookings()]

        message = self._composer.listing(
            page.entries,
            page=p.page,
            has_more=page.has_more,
            generated_at=p.generated_at,
            action_ts=issue_timestamp(session, now_ms),
            locked=self._policy.is_blackout(now),
        )
        self._save(updated)
        return [message]

    def _view_all_date(self, session: Session, p: ViewAllDate, now_ms: int) -> list[OutboundMessage]:
        if not isinstance(session.step, AwaitingViewAllDate):
            return self._guard.recover(session, SUPERSEDED, now_ms)
        decision = self._guard.check(session, p.ts, now_ms)
        if not decision.valid:
            return self._guard.recover(session, decision, now_ms)

        bookings = self._bookings.find_by_slot_prefix(f"{p.date}T")
        self._save(clear_wizard(session))
        return [self._composer.view_all_summary(p.date, bookings)]

    # --- helpers ------------------------------------------------------------

    def _owned_booking(self, session: Session, booking_id: str) -> Booking | None:
        booking = self._bookings.get(booking_id)
        if booking is None or booking.user_id != session.user_id:
            return None
        return booking
