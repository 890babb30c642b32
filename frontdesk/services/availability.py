from datetime import date, timedelta
from typing import Optional

from ..models import BookingStatus
from ..repositories import BookingStore

# Statuses that hold a room; pending, cancelled and checked-out stays never block.
BLOCKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


def intervals_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Half-open overlap: a stay ending on the day another begins does not clash."""
    return start_a < end_b and end_a > start_b


def find_conflicts(
    store: BookingStore,
    room_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
):
    candidates = store.bookings_in_window(
        room_id, BLOCKING_STATUSES, check_in, check_out, exclude_booking_id=exclude_booking_id
    )
    return [
        b for b in candidates
        if b.id != exclude_booking_id
        and b.status in BLOCKING_STATUSES
        and intervals_overlap(b.check_in_date, b.check_out_date, check_in, check_out)
    ]


def is_available(
    store: BookingStore,
    room_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    return not find_conflicts(store, room_id, check_in, check_out, exclude_booking_id)


def room_calendar(store: BookingStore, room_id: int, date_from: date, date_to: date) -> list[dict]:
    """Per-night availability for every date in [date_from, date_to]."""
    bookings = store.bookings_in_window(
        room_id, BLOCKING_STATUSES, date_from, date_to + timedelta(days=1)
    )

    booked_dates = set()
    for booking in bookings:
        current = booking.check_in_date
        while current < booking.check_out_date:
            booked_dates.add(current)
            current += timedelta(days=1)

    calendar = []
    current_date = date_from
    while current_date <= date_to:
        calendar.append({
            "date": current_date,
            "available": current_date not in booked_dates,
        })
        current_date += timedelta(days=1)
    return calendar
