"""Persistence boundary for the reservation logic.

The lifecycle services only talk to :class:`BookingStore`. The SQLAlchemy
implementation below is the one the API uses; a document-store backend would
implement the same methods.
"""
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import BOOKING_OVERLAP_CONSTRAINT
from .models import Booking, BookingStatus, Guest, Room

logger = logging.getLogger(__name__)


class WriteConflict(Exception):
    """The store refused a write that would overlap a blocking booking."""


@dataclass
class BookingFilters:
    status: Optional[BookingStatus] = None
    room_id: Optional[int] = None
    guest_id: Optional[int] = None
    check_in_from: Optional[date] = None
    check_out_to: Optional[date] = None
    page: int = 1
    limit: int = 50


class BookingStore(ABC):
    """Transactional access to bookings, rooms and guests."""

    @abstractmethod
    def get_booking(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        raise NotImplementedError

    @abstractmethod
    def get_room(self, room_id: int) -> Optional[Room]:
        raise NotImplementedError

    @abstractmethod
    def get_guest(self, guest_id: int) -> Optional[Guest]:
        raise NotImplementedError

    @abstractmethod
    def bookings_in_window(
        self,
        room_id: int,
        statuses: Iterable[BookingStatus],
        window_start: date,
        window_end: date,
        exclude_booking_id: Optional[int] = None,
    ) -> list[Booking]:
        """Bookings of the room in one of ``statuses`` that touch the window.

        May return more than the exact overlap; callers filter.
        """
        raise NotImplementedError

    @abstractmethod
    def has_checked_in(self, room_id: int, exclude_booking_id: Optional[int] = None) -> bool:
        """Whether a guest of another booking is currently in the room."""
        raise NotImplementedError

    @abstractmethod
    def booking_number_exists(self, booking_number: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add_booking(self, booking: Booking) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def delete_booking(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_bookings(self, filters: BookingFilters) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def transaction(self, room_id: Optional[int] = None):
        """Context manager: everything inside commits together or not at all.

        With ``room_id`` the room is locked for the duration, so an
        availability check and the write that depends on it cannot interleave
        with another request for the same room. Raises :class:`WriteConflict`
        when the store itself rejects an overlapping blocking booking.
        """
        raise NotImplementedError


_room_locks: dict[int, threading.RLock] = {}
_room_locks_guard = threading.Lock()


def _room_lock(room_id: int) -> threading.RLock:
    with _room_locks_guard:
        return _room_locks.setdefault(room_id, threading.RLock())


class SqlAlchemyBookingStore(BookingStore):
    def __init__(self, db: Session):
        self.db = db

    def get_booking(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_room(self, room_id: int) -> Optional[Room]:
        return self.db.get(Room, room_id)

    def get_guest(self, guest_id: int) -> Optional[Guest]:
        return self.db.get(Guest, guest_id)

    def bookings_in_window(self, room_id, statuses, window_start, window_end, exclude_booking_id=None):
        stmt = select(Booking).where(
            Booking.room_id == room_id,
            Booking.status.in_(list(statuses)),
            Booking.check_in_date < window_end,
            Booking.check_out_date > window_start,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        return list(self.db.execute(stmt).scalars())

    def has_checked_in(self, room_id: int, exclude_booking_id: Optional[int] = None) -> bool:
        stmt = select(Booking.id).where(
            Booking.room_id == room_id,
            Booking.status == BookingStatus.CHECKED_IN,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        return self.db.execute(stmt).first() is not None

    def booking_number_exists(self, booking_number: str) -> bool:
        stmt = select(Booking.id).where(Booking.booking_number == booking_number)
        return self.db.execute(stmt).first() is not None

    def add_booking(self, booking: Booking) -> Booking:
        self.db.add(booking)
        self.db.flush()
        return booking

    def delete_booking(self, booking: Booking) -> None:
        self.db.delete(booking)
        self.db.flush()

    def list_bookings(self, filters: BookingFilters) -> list[Booking]:
        stmt = select(Booking)
        if filters.status is not None:
            stmt = stmt.where(Booking.status == filters.status)
        if filters.room_id is not None:
            stmt = stmt.where(Booking.room_id == filters.room_id)
        if filters.guest_id is not None:
            stmt = stmt.where(Booking.guest_id == filters.guest_id)
        if filters.check_in_from is not None:
            stmt = stmt.where(Booking.check_in_date >= filters.check_in_from)
        if filters.check_out_to is not None:
            stmt = stmt.where(Booking.check_out_date <= filters.check_out_to)
        page = max(filters.page, 1)
        stmt = (
            stmt.order_by(Booking.created_at.desc(), Booking.id.desc())
            .limit(filters.limit)
            .offset((page - 1) * filters.limit)
        )
        return list(self.db.execute(stmt).scalars())

    @contextmanager
    def transaction(self, room_id: Optional[int] = None) -> Iterator["SqlAlchemyBookingStore"]:
        lock = _room_lock(room_id) if room_id is not None else nullcontext()
        with lock:
            try:
                if room_id is not None:
                    # Row lock on PostgreSQL/MySQL; SQLite ignores FOR UPDATE and
                    # relies on the process lock above.
                    self.db.execute(select(Room.id).where(Room.id == room_id).with_for_update())
                yield self
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if BOOKING_OVERLAP_CONSTRAINT in str(exc.orig):
                    logger.warning("Overlap constraint rejected write for room %s", room_id)
                    raise WriteConflict(str(exc.orig)) from exc
                raise
            except BaseException:
                self.db.rollback()
                raise
