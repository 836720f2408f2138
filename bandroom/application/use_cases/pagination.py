from __future__ import annotations

from dataclasses import dataclass

from bandroom.application.ports.booking_store import BookingStorePort
from bandroom.domain.entities.booking import Booking
from bandroom.domain.entities.session import Session


@dataclass(frozen=True)
class ListingPage:
    entries: tuple[Booking, ...]
    page: int
    has_more: bool
    total: int


class BookingPaginator:
    """Bounded, slot-ordered pages of one user's bookings."""

    def __init__(self, bookings: BookingStorePort, page_size: int = 9) -> None:
        self._bookings = bookings
        self._page_size = page_size

    def page(self, user_id: str, page: int) -> ListingPage:
        bookings = sorted(
            self._bookings.find_by_user(user_id),
            key=lambda b: (b.slot_key, b.created_at.timestamp() if b.created_at else 0.0, b.id),
        )
        start = max(page, 0) * self._page_size
        entries = tuple(bookings[start : start + self._page_size])
        return ListingPage(
            entries=entries,
            page=page,
            has_more=start + self._page_size < len(bookings),
            total=len(bookings),
        )

    @staticmethod
    def accepts_show_more(session: Session, page: int, generated_at: int) -> bool:
        """
        Forward-only: a "show more" press must target a later page of the
        current listing generation, or belong to a newer generation.
        """
        last_generation = session.last_listing_generated_at
        if last_generation is None or generated_at > last_generation:
            return True
        if generated_at < last_generation:
            return False
        last_page = session.last_listing_page_viewed
        return last_page is None or page > last_page
