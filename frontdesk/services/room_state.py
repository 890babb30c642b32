import logging

from ..models import Room, RoomStatus

logger = logging.getLogger(__name__)


class RoomStateSynchronizer:
    """Mirrors check-in/check-out into the room's occupancy status.

    Called by the lifecycle manager inside its transaction; maintenance and
    cleaning are staff-managed and left alone on checkout.
    """

    def checked_in(self, room: Room) -> None:
        previous = room.status
        room.status = RoomStatus.OCCUPIED
        logger.info("Room %s: %s -> occupied", room.room_number, previous.value)

    def checked_out(self, room: Room, others_in_house: bool = False) -> None:
        if room.status != RoomStatus.OCCUPIED:
            logger.info("Room %s left as %s on checkout", room.room_number, room.status.value)
            return
        if others_in_house:
            # overstay: the next guest already checked in
            logger.info("Room %s stays occupied; another booking is checked in", room.room_number)
            return
        room.status = RoomStatus.AVAILABLE
        logger.info("Room %s: occupied -> available", room.room_number)
