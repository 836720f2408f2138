from __future__ import annotations

from collections import defaultdict

from bandroom.application.utils.date_helpers import format_date_key_label
from bandroom.domain.entities.availability import DateOption, TimeSlot
from bandroom.domain.entities.booking import Booking, BookingStatus
from bandroom.domain.entities.postback import (
    CancelDelete,
    ConfirmDelete,
    Delete,
    EditDate,
    EditDatetime,
    EditName,
    EditTime,
    Noop,
    SelectDate,
    SelectTime,
    ShowMore,
    ViewAllDate,
    encode_postback,
)
from bandroom.domain.entities.reply import Card, CarouselMessage, Choice, ChoiceMessage, TextMessage

MENU_HINT = 'Use the menu: "register", "view my bookings", "view all" or "cancel".'

_LABEL_PROBLEMS = {
    "reserved": "That name is reserved for menu commands. Please send a different band name.",
    "empty": "Please send your band name as text.",
    "too_long": "That band name is too long. Please send a shorter name.",
}


class ReplyComposer:
    """Builds every outbound message. Holds no state."""

    # --- generic ---------------------------------------------------------

    def menu_hint(self, text: str | None = None) -> TextMessage:
        if text:
            return TextMessage(text=f"Sorry, I didn't understand \"{text}\".\n{MENU_HINT}")
        return TextMessage(text=MENU_HINT)

    def generic_error(self) -> TextMessage:
        return TextMessage(text="Sorry, something went wrong on our side. Please try again in a moment.")

    def blackout(self, window_label: str) -> TextMessage:
        return TextMessage(
            text=(
                f"Registrations and changes are closed between {window_label} while the lottery runs.\n"
                "You can still view bookings."
            )
        )

    def session_timed_out(self) -> TextMessage:
        return TextMessage(text="Your session timed out after 5 minutes of inactivity. Please start again from the menu.")

    def cancelled(self) -> TextMessage:
        return TextMessage(text="Cancelled. Nothing was changed.")

    def nothing_to_cancel(self) -> TextMessage:
        return TextMessage(text="There is nothing to cancel.")

    def use_buttons(self, choices: tuple[Choice, ...] = ()) -> TextMessage | ChoiceMessage:
        text = 'Please choose one of the buttons, or send "cancel" to stop.'
        if choices:
            return ChoiceMessage(text=text, choices=choices)
        return TextMessage(text=text)

    # --- staleness -------------------------------------------------------

    def choose_again(self, choices: tuple[Choice, ...]) -> ChoiceMessage:
        return ChoiceMessage(text="This button is no longer valid. Please choose again.", choices=choices)

    def button_expired(self) -> TextMessage:
        return TextMessage(text="This button has expired. Please start again from the menu.")

    def button_superseded(self) -> TextMessage:
        return TextMessage(text="This button is no longer valid. Please use the latest message.")

    def button_unknown(self) -> TextMessage:
        return TextMessage(text=f"This button can no longer be used.\n{MENU_HINT}")

    def placeholder_pressed(self, window_label: str) -> TextMessage:
        return TextMessage(text=f"Editing is unavailable between {window_label}.")

    def listing_replayed(self) -> TextMessage:
        return TextMessage(text='That page was already shown. Send "view my bookings" for an up-to-date list.')

    def booking_missing(self) -> TextMessage:
        return TextMessage(text="That booking no longer exists.")

    # --- registration ----------------------------------------------------

    def ask_band_name(self) -> TextMessage:
        return TextMessage(text="Room booking. Please send your band name.")

    def label_rejected(self, reason: str) -> TextMessage:
        return TextMessage(text=_LABEL_PROBLEMS.get(reason, _LABEL_PROBLEMS["empty"]))

    def no_dates_available(self) -> TextMessage:
        return TextMessage(text="There are no bookable dates in the next week.")

    def no_time_slots(self) -> TextMessage:
        return TextMessage(text="No time slots are configured. Please contact an organizer.")

    def date_unavailable(self) -> TextMessage:
        return TextMessage(text="That date can no longer be booked. Please start again from the menu.")

    def slot_unavailable(self) -> TextMessage:
        return TextMessage(text="That time slot is no longer offered. Please start again from the menu.")

    def registration_dates(self, band: str, dates: list[DateOption], start: int) -> ChoiceMessage:
        choices = tuple(
            Choice(label=option.label, data=encode_postback(SelectDate(band=band, date=option.key, start=start)))
            for option in dates
        )
        return ChoiceMessage(text=f"Band: {band}\nWhich date?", choices=choices)

    def registration_times(self, band: str, date_key: str, slots: tuple[TimeSlot, ...], start: int) -> ChoiceMessage:
        choices = tuple(
            Choice(
                label=slot.label,
                data=encode_postback(SelectTime(band=band, date=date_key, time=slot.value, start=start)),
            )
            for slot in slots
        )
        return ChoiceMessage(text=f"Band: {band}\n{format_date_key_label(date_key)}\nWhich time?", choices=choices)

    def booking_created(self, booking: Booking) -> TextMessage:
        return TextMessage(
            text=(
                f"Registered {booking.label} for {_slot_text(booking)}.\n"
                "The lottery runs the evening before. Please wait for the result."
            )
        )

    # --- listing ---------------------------------------------------------

    def no_bookings(self) -> TextMessage:
        return TextMessage(text="You have no bookings.")

    def no_more_bookings(self) -> TextMessage:
        return TextMessage(text="There are no more bookings to show.")

    def listing(
        self,
        entries: tuple[Booking, ...],
        page: int,
        has_more: bool,
        generated_at: int,
        action_ts: int,
        locked: bool,
    ) -> CarouselMessage:
        cards = [
            Card(
                title=booking.label,
                text=f"{_slot_text(booking)}\n{_status_text(booking)}",
                actions=self._locked_actions() if locked else self._booking_actions(booking.id, action_ts),
            )
            for booking in entries
        ]
        if has_more:
            cards.append(
                Card(
                    title="More bookings",
                    text="Show the next page.",
                    actions=(
                        Choice(
                            label="Show more",
                            data=encode_postback(ShowMore(page=page + 1, generated_at=generated_at)),
                        ),
                    ),
                )
            )
        return CarouselMessage(alt_text="Your bookings", cards=tuple(cards))

    def _booking_actions(self, booking_id: str, ts: int) -> tuple[Choice, ...]:
        return (
            Choice(label="Edit band name", data=encode_postback(EditName(booking_id=booking_id, ts=ts))),
            Choice(label="Edit date/time", data=encode_postback(EditDatetime(booking_id=booking_id, ts=ts))),
            Choice(label="Delete", data=encode_postback(Delete(booking_id=booking_id, ts=ts))),
        )

    def _locked_actions(self) -> tuple[Choice, ...]:
        data = encode_postback(Noop())
        return tuple(Choice(label="Locked", data=data) for _ in range(3))

    # --- edit / delete ---------------------------------------------------

    def ask_new_name(self, booking: Booking) -> TextMessage:
        return TextMessage(text=f"Current band name: {booking.label}\nPlease send the new band name.")

    def name_updated(self, old_label: str, new_label: str) -> TextMessage:
        return TextMessage(text=f"Band name changed: {old_label} -> {new_label}")

    def edit_dates(self, booking: Booking, dates: list[DateOption], ts: int) -> ChoiceMessage:
        choices = tuple(
            Choice(label=option.label, data=encode_postback(EditDate(date=option.key, ts=ts))) for option in dates
        )
        return ChoiceMessage(
            text=f"{booking.label}: currently {_slot_text(booking)}.\nChoose the new date.",
            choices=choices,
        )

    def edit_times(self, date_key: str, slots: tuple[TimeSlot, ...], ts: int, start: int) -> ChoiceMessage:
        choices = tuple(
            Choice(label=slot.label, data=encode_postback(EditTime(time=slot.value, ts=ts, start=start)))
            for slot in slots
        )
        return ChoiceMessage(text=f"{format_date_key_label(date_key)}\nChoose the new time.", choices=choices)

    def datetime_updated(self, booking: Booking) -> TextMessage:
        return TextMessage(text=f"{booking.label} moved to {_slot_text(booking)}. It will enter the next lottery.")

    def delete_confirm(self, booking: Booking, ts: int) -> ChoiceMessage:
        return ChoiceMessage(
            text=f"Delete {booking.label} on {_slot_text(booking)}?",
            choices=(
                Choice(label="Delete", data=encode_postback(ConfirmDelete(ts=ts))),
                Choice(label="Keep", data=encode_postback(CancelDelete(ts=ts))),
            ),
        )

    def deleted(self, label: str) -> TextMessage:
        return TextMessage(text=f"Deleted the booking for {label}.")

    def delete_cancelled(self) -> TextMessage:
        return TextMessage(text="Deletion cancelled.")

    # --- view all --------------------------------------------------------

    def view_all_dates(self, dates: list[DateOption], ts: int) -> ChoiceMessage:
        choices = tuple(
            Choice(label=option.label, data=encode_postback(ViewAllDate(date=option.key, ts=ts))) for option in dates
        )
        return ChoiceMessage(text="Which date do you want to see?", choices=choices)

    def view_all_summary(self, date_key: str, bookings: list[Booking]) -> TextMessage:
        heading = f"All bookings for {format_date_key_label(date_key)}"
        if not bookings:
            return TextMessage(text=f"{heading}\n\nNo bookings yet.")

        by_slot: dict[str, list[Booking]] = defaultdict(list)
        for booking in bookings:
            by_slot[booking.time_range].append(booking)

        lines = [heading]
        for time_range in sorted(by_slot):
            group = by_slot[time_range]
            lines.append("")
            if all(b.is_ordered and b.rank is not None for b in group):
                lines.append(f"[{time_range}] lottery order")
                for b in sorted(group, key=lambda b: b.rank or 0):
                    lines.append(f"{b.rank}. {b.label}")
            else:
                lines.append(f"[{time_range}] {len(group)} applied, lottery pending")
                for b in sorted(group, key=lambda b: b.label):
                    lines.append(f"- {b.label}")
        return TextMessage(text="\n".join(lines))


def _slot_text(booking: Booking) -> str:
    return f"{format_date_key_label(booking.date_key)} {booking.time_range}"


def _status_text(booking: Booking) -> str:
    if booking.status is BookingStatus.CONFIRMED and booking.rank is not None:
        return f"Confirmed: #{booking.rank} of {booking.rank_total}"
    if booking.status is BookingStatus.RANKED and booking.rank is not None:
        return f"Drawn: #{booking.rank} of {booking.rank_total}"
    return "Lottery pending"
