from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Numeric, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base

class RoomType(Base):
    __tablename__ = "room_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_occupancy: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    # Comma-separated; use the `amenities` property
    amenities_text: Mapped[str | None] = mapped_column("amenities", Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    rooms: Mapped[list["Room"]] = relationship(back_populates="room_type")

    @property
    def amenities(self) -> list[str]:
        if not self.amenities_text:
            return []
        return [a.strip() for a in self.amenities_text.split(",") if a.strip()]

    @amenities.setter
    def amenities(self, values: list[str] | None):
        cleaned = [v.strip() for v in (values or []) if v and v.strip()]
        self.amenities_text = ", ".join(cleaned) or None
