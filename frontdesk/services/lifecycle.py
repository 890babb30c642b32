"""Booking lifecycle: creation, modification and status transitions.

Every write that touches a booking's status, dates or its room goes through
:class:`BookingLifecycleManager`. Each operation validates first and then runs
inside one store transaction scoped to the booking's room, so the
availability check and the write it guards cannot interleave with another
request for that room, and a failure leaves nothing behind.

Status machine::

    pending -> confirmed -> checked_in -> checked_out
    pending | confirmed -> cancelled
"""
import logging
import secrets
import string
from datetime import date, datetime
from typing import Any, Callable, Optional

from .. import errors
from ..config import settings
from ..models import Booking, BookingStatus, Room, RoomStatus
from ..repositories import BookingFilters, BookingStore, WriteConflict
from .availability import find_conflicts
from .pricing import compute_total
from .room_state import RoomStateSynchronizer

logger = logging.getLogger(__name__)

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}
TERMINAL_STATUSES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})
DELETABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CANCELLED})
UPDATABLE_FIELDS = frozenset(
    {"check_in_date", "check_out_date", "adults", "children", "status", "special_requests"}
)

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_number(now: Optional[datetime] = None) -> str:
    """BK + yymmdd + 6 random characters, e.g. ``BK240601X7Q2MA``.

    Unique with high probability only; callers check the store before use and
    the ``booking_number`` unique constraint is the final guard.
    """
    now = now or datetime.utcnow()
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(6))
    return f"BK{now:%y%m%d}{suffix}"


class BookingLifecycleManager:
    def __init__(
        self,
        store: BookingStore,
        today: Callable[[], date] = date.today,
        rooms: Optional[RoomStateSynchronizer] = None,
    ):
        self.store = store
        self.today = today
        self.rooms = rooms or RoomStateSynchronizer()

    # ---- reads ----

    def get(self, booking_id: int) -> Booking:
        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise errors.NotFound(f"Booking {booking_id} not found.")
        return booking

    def list_bookings(self, filters: Optional[BookingFilters] = None) -> list[Booking]:
        return self.store.list_bookings(filters or BookingFilters())

    # ---- writes ----

    def create(
        self,
        guest_id: int,
        room_id: int,
        check_in: date,
        check_out: date,
        adults: int,
        children: int = 0,
        special_requests: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Booking:
        """Creates a pending booking. The room's status is not touched."""
        self._validate_dates(check_in, check_out)
        self._validate_counts(adults, children)

        if self.store.get_guest(guest_id) is None:
            raise errors.NotFound(f"Guest {guest_id} not found.")
        room = self._get_room(room_id)
        self._check_capacity(room, adults, children)

        try:
            with self.store.transaction(room_id=room.id):
                self._ensure_available(room, check_in, check_out)
                booking = Booking(
                    booking_number=self._new_booking_number(),
                    guest_id=guest_id,
                    room_id=room.id,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    adults=adults,
                    children=children,
                    total_amount=compute_total(room.room_type.base_price, check_in, check_out),
                    status=BookingStatus.PENDING,
                    special_requests=special_requests,
                    created_by=actor_id,
                )
                self.store.add_booking(booking)
        except WriteConflict as exc:
            raise self._unavailable(room, check_in, check_out) from exc

        logger.info(
            "Booking %s created for room %s (%s to %s) by user %s",
            booking.booking_number, room.room_number, check_in, check_out, actor_id,
        )
        return booking

    def update(self, booking_id: int, changes: dict[str, Any], actor_id: Optional[int] = None) -> Booking:
        """Applies a partial update; ``None`` values mean "leave as is".

        Dates and guest counts are re-validated and the total is recomputed
        from the room's current rate. A status change follows the same rules
        as the dedicated transition operations.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise errors.ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")
        changes = {k: v for k, v in changes.items() if v is not None}

        booking = self.get(booking_id)
        room = None
        try:
            with self.store.transaction(room_id=booking.room_id):
                booking = self._lock(booking_id)
                room = self._get_room(booking.room_id)
                self._apply_update(booking, room, changes)
        except WriteConflict as exc:
            raise self._unavailable(room, booking.check_in_date, booking.check_out_date) from exc

        logger.info("Booking %s updated by user %s: %s", booking.booking_number, actor_id, sorted(changes))
        return booking

    def confirm(self, booking_id: int, actor_id: Optional[int] = None) -> Booking:
        return self._change_status(booking_id, BookingStatus.CONFIRMED, actor_id)

    def check_in(self, booking_id: int, actor_id: Optional[int] = None) -> Booking:
        return self._change_status(booking_id, BookingStatus.CHECKED_IN, actor_id)

    def check_out(self, booking_id: int, actor_id: Optional[int] = None) -> Booking:
        return self._change_status(booking_id, BookingStatus.CHECKED_OUT, actor_id)

    def cancel(self, booking_id: int, actor_id: Optional[int] = None) -> Booking:
        return self._change_status(booking_id, BookingStatus.CANCELLED, actor_id)

    def delete(self, booking_id: int, actor_id: Optional[int] = None) -> None:
        """Removes a booking for good. Active bookings must be cancelled first."""
        booking = self.get(booking_id)
        with self.store.transaction(room_id=booking.room_id):
            booking = self._lock(booking_id)
            if booking.status not in DELETABLE_STATUSES:
                raise errors.IllegalOperation(
                    f"Booking {booking.booking_number} is {booking.status.value}; "
                    "only pending or cancelled bookings can be deleted."
                )
            number = booking.booking_number
            self.store.delete_booking(booking)
        logger.info("Booking %s deleted by user %s", number, actor_id)

    # ---- internals ----

    def _change_status(self, booking_id: int, target: BookingStatus, actor_id: Optional[int]) -> Booking:
        booking = self.get(booking_id)
        room = None
        try:
            with self.store.transaction(room_id=booking.room_id):
                booking = self._lock(booking_id)
                room = self._get_room(booking.room_id)
                previous = booking.status
                self._transition(booking, room, target)
        except WriteConflict as exc:
            raise self._unavailable(room, booking.check_in_date, booking.check_out_date) from exc

        logger.info(
            "Booking %s: %s -> %s by user %s",
            booking.booking_number, previous.value, target.value, actor_id,
        )
        return booking

    def _apply_update(self, booking: Booking, room: Room, changes: dict[str, Any]) -> None:
        check_in = changes.get("check_in_date", booking.check_in_date)
        check_out = changes.get("check_out_date", booking.check_out_date)
        adults = changes.get("adults", booking.adults)
        children = changes.get("children", booking.children)

        check_in_changed = check_in != booking.check_in_date
        dates_changed = check_in_changed or check_out != booking.check_out_date
        counts_changed = adults != booking.adults or children != booking.children

        if (dates_changed or counts_changed) and booking.status in TERMINAL_STATUSES:
            raise errors.IllegalOperation(
                f"Booking {booking.booking_number} is {booking.status.value} and can no longer be changed."
            )
        if dates_changed:
            if check_in_changed and booking.status == BookingStatus.CHECKED_IN:
                raise errors.IllegalOperation("The check-in date of a stay in progress cannot be moved.")
            self._validate_dates(check_in, check_out, check_in_changed=check_in_changed)
        if counts_changed:
            self._validate_counts(adults, children)
        if dates_changed or counts_changed:
            self._check_capacity(room, adults, children)
        if dates_changed:
            self._ensure_available(room, check_in, check_out, exclude_booking_id=booking.id)

        booking.check_in_date = check_in
        booking.check_out_date = check_out
        booking.adults = adults
        booking.children = children
        if "special_requests" in changes:
            booking.special_requests = changes["special_requests"]
        if dates_changed or counts_changed:
            booking.total_amount = compute_total(room.room_type.base_price, check_in, check_out)

        target = changes.get("status")
        if target is not None and BookingStatus(target) != booking.status:
            self._transition(booking, room, BookingStatus(target))

    def _transition(self, booking: Booking, room: Room, target: BookingStatus) -> None:
        current = booking.status
        if target not in TRANSITIONS[current]:
            raise errors.IllegalTransition(
                f"Booking {booking.booking_number} cannot go from {current.value} to {target.value}."
            )

        if target == BookingStatus.CONFIRMED:
            # Pending bookings do not hold the room, so confirmation re-checks it.
            self._ensure_available(
                room, booking.check_in_date, booking.check_out_date, exclude_booking_id=booking.id
            )
        elif target == BookingStatus.CHECKED_IN:
            if self.today() < booking.check_in_date:
                raise errors.TooEarly(
                    f"Check-in for booking {booking.booking_number} opens on {booking.check_in_date.isoformat()}."
                )
            if room.status == RoomStatus.MAINTENANCE:
                raise errors.IllegalOperation(f"Room {room.room_number} is under maintenance.")
            self.rooms.checked_in(room)
        elif target == BookingStatus.CHECKED_OUT:
            self.rooms.checked_out(
                room, others_in_house=self.store.has_checked_in(room.id, exclude_booking_id=booking.id)
            )

        booking.status = target

    def _lock(self, booking_id: int) -> Booking:
        booking = self.store.get_booking(booking_id, for_update=True)
        if booking is None:
            raise errors.NotFound(f"Booking {booking_id} not found.")
        return booking

    def _get_room(self, room_id: int) -> Room:
        room = self.store.get_room(room_id)
        if room is None:
            raise errors.NotFound(f"Room {room_id} not found.")
        return room

    def _validate_dates(self, check_in: date, check_out: date, check_in_changed: bool = True) -> None:
        if check_out <= check_in:
            raise errors.ValidationError("Check-out date must be after check-in date.")
        if check_in_changed and check_in < self.today():
            raise errors.ValidationError("Check-in date cannot be in the past.")

    def _validate_counts(self, adults: int, children: int) -> None:
        if adults is None or adults < 1:
            raise errors.ValidationError("At least 1 adult is required.")
        if children is None or children < 0:
            raise errors.ValidationError("Children must be a non-negative number.")

    def _check_capacity(self, room: Room, adults: int, children: int) -> None:
        capacity = room.room_type.max_occupancy
        guests = adults + children
        if guests > capacity:
            raise errors.CapacityExceeded(
                f"Room capacity is {capacity} guests, but {guests} guests were specified."
            )

    def _ensure_available(
        self, room: Room, check_in: date, check_out: date, exclude_booking_id: Optional[int] = None
    ) -> None:
        conflicts = find_conflicts(self.store, room.id, check_in, check_out, exclude_booking_id)
        if conflicts:
            logger.warning(
                "Room %s unavailable %s to %s: overlaps %s",
                room.room_number, check_in, check_out, [b.booking_number for b in conflicts],
            )
            raise self._unavailable(room, check_in, check_out)

    def _unavailable(self, room: Optional[Room], check_in: date, check_out: date) -> errors.RoomUnavailable:
        label = room.room_number if room is not None else "the room"
        return errors.RoomUnavailable(
            f"Room {label} is not available from {check_in.isoformat()} to {check_out.isoformat()}."
        )

    def _new_booking_number(self) -> str:
        attempts = max(settings.BOOKING_NUMBER_ATTEMPTS, 1)
        for _ in range(attempts):
            number = generate_booking_number()
            if not self.store.booking_number_exists(number):
                return number
        logger.warning("No free booking number after %d attempts; relying on the unique constraint", attempts)
        return number
