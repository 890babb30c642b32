from .user import User, UserRole
from .room_type import RoomType
from .room import Room, RoomStatus
from .guest import Guest, IdType
from .booking import Booking, BookingStatus
from .payment import Payment, PaymentMethod, PaymentStatus
