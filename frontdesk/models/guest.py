from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Integer, String, Text, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base

class IdType(str, PyEnum):
    PASSPORT = "passport"
    NATIONAL_ID = "national_id"
    DRIVING_LICENSE = "driving_license"

class Guest(Base):
    __tablename__ = "guests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str | None] = mapped_column(String(100), index=True)
    phone: Mapped[str | None] = mapped_column(String(20))
    address: Mapped[str | None] = mapped_column(Text)
    id_type: Mapped[IdType] = mapped_column(
        Enum(IdType, name="idtype", values_callable=lambda e: [m.value for m in e]),
        default=IdType.NATIONAL_ID,
        nullable=False,
    )
    id_number: Mapped[str | None] = mapped_column(String(50))
    nationality: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="guest")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
