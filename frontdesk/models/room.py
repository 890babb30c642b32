from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Integer, String, ForeignKey, Text, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base

class RoomStatus(str, PyEnum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    CLEANING = "cleaning"

class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    room_number: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    room_type_id: Mapped[int] = mapped_column(ForeignKey("room_types.id"), nullable=False, index=True)
    floor: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[RoomStatus] = mapped_column(
        Enum(RoomStatus, name="roomstatus", values_callable=lambda e: [m.value for m in e]),
        default=RoomStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    is_clean: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room_type: Mapped["RoomType"] = relationship(back_populates="rooms", lazy="joined")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="room")
