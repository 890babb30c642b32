from datetime import date

import pytest

from frontdesk import errors
from frontdesk.models import BookingStatus, Room, RoomStatus
from frontdesk.repositories import SqlAlchemyBookingStore
from frontdesk.services.lifecycle import BookingLifecycleManager
from frontdesk.services.room_state import RoomStateSynchronizer


class ExplodingSynchronizer(RoomStateSynchronizer):
    """Updates the room and then fails, like a crash halfway through check-in."""

    def checked_in(self, room):
        super().checked_in(room)
        raise RuntimeError("room sync failed")


def test_checked_in_marks_room_occupied():
    room = Room(room_number="101", status=RoomStatus.CLEANING)
    RoomStateSynchronizer().checked_in(room)
    assert room.status == RoomStatus.OCCUPIED


def test_checked_out_frees_occupied_room():
    room = Room(room_number="101", status=RoomStatus.OCCUPIED)
    RoomStateSynchronizer().checked_out(room)
    assert room.status == RoomStatus.AVAILABLE


def test_checked_out_keeps_room_occupied_while_others_in_house():
    room = Room(room_number="101", status=RoomStatus.OCCUPIED)
    RoomStateSynchronizer().checked_out(room, others_in_house=True)
    assert room.status == RoomStatus.OCCUPIED


@pytest.mark.parametrize("status", [RoomStatus.MAINTENANCE, RoomStatus.CLEANING, RoomStatus.AVAILABLE])
def test_checked_out_leaves_staff_states_alone(status):
    room = Room(room_number="101", status=status)
    RoomStateSynchronizer().checked_out(room)
    assert room.status == status


def test_failed_room_update_rolls_back_check_in(db, clock, room, guest):
    manager = BookingLifecycleManager(SqlAlchemyBookingStore(db), today=clock)
    booking = manager.create(guest.id, room.id, date(2024, 6, 1), date(2024, 6, 4), adults=1)
    manager.confirm(booking.id)

    failing = BookingLifecycleManager(SqlAlchemyBookingStore(db), today=clock, rooms=ExplodingSynchronizer())
    clock.today = date(2024, 6, 1)
    with pytest.raises(RuntimeError):
        failing.check_in(booking.id)

    db.expire_all()
    assert db.get(Room, room.id).status == RoomStatus.AVAILABLE
    assert manager.get(booking.id).status == BookingStatus.CONFIRMED

    # the normal path still works afterwards
    assert manager.check_in(booking.id).status == BookingStatus.CHECKED_IN
    db.expire_all()
    assert db.get(Room, room.id).status == RoomStatus.OCCUPIED


def test_too_early_check_in_leaves_room_unchanged(db, manager, clock, room, guest):
    booking = manager.create(guest.id, room.id, date(2024, 6, 1), date(2024, 6, 4), adults=1)
    manager.confirm(booking.id)
    with pytest.raises(errors.TooEarly):
        manager.check_in(booking.id)
    db.expire_all()
    assert db.get(Room, room.id).status == RoomStatus.AVAILABLE
