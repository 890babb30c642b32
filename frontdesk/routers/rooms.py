from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import errors
from ..db import get_db
from ..models import Booking, BookingStatus, Room, RoomStatus, RoomType, User
from ..repositories import SqlAlchemyBookingStore
from ..security import require_staff
from ..services.availability import is_available, room_calendar
from ..services.pricing import compute_total

router = APIRouter(prefix="/api", tags=["rooms"])

# ==== Schemas ====

class RoomTypeOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    base_price: Decimal
    max_occupancy: int
    amenities: List[str] = []

    class Config:
        from_attributes = True

class RoomTypeIn(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None
    base_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    max_occupancy: int = Field(default=2, ge=1)
    amenities: List[str] = []

class RoomOut(BaseModel):
    id: int
    room_number: str
    room_type_id: int
    room_type: RoomTypeOut
    floor: Optional[int] = None
    status: RoomStatus
    is_clean: bool
    notes: Optional[str] = None

    class Config:
        use_enum_values = True
        from_attributes = True

class RoomCreateIn(BaseModel):
    room_number: str = Field(min_length=1, max_length=10)
    room_type_id: int
    floor: Optional[int] = None
    notes: Optional[str] = None

class RoomUpdateIn(BaseModel):
    room_number: Optional[str] = Field(default=None, min_length=1, max_length=10)
    room_type_id: Optional[int] = None
    floor: Optional[int] = None
    notes: Optional[str] = None

class RoomStatusIn(BaseModel):
    status: RoomStatus
    is_clean: Optional[bool] = None
    notes: Optional[str] = None

class CalendarDayOut(BaseModel):
    date: date
    available: bool

class RoomOfferOut(BaseModel):
    room: RoomOut
    nights: int
    total_amount: Decimal

# ==== Helpers ====

def get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room

def get_room_type_or_404(db: Session, room_type_id: int) -> RoomType:
    room_type = db.get(RoomType, room_type_id)
    if not room_type:
        raise HTTPException(status_code=404, detail="Room type not found")
    return room_type

def ensure_unique_number(db: Session, room_number: str, room_id: int | None = None):
    q = db.query(Room).filter(Room.room_number == room_number)
    if room_id is not None:
        q = q.filter(Room.id != room_id)
    if q.first():
        raise HTTPException(status_code=409, detail=f"Room number {room_number} already exists")

# ==== Room types ====

@router.get("/room-types", response_model=List[RoomTypeOut])
def list_room_types(user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return db.query(RoomType).order_by(RoomType.base_price.asc()).all()

@router.post("/room-types", response_model=RoomTypeOut, status_code=201)
def create_room_type(payload: RoomTypeIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    name = payload.name.strip()
    if db.query(RoomType).filter(RoomType.name == name).first():
        raise HTTPException(status_code=409, detail=f"Room type {name} already exists")
    room_type = RoomType(
        name=name,
        description=payload.description,
        base_price=payload.base_price,
        max_occupancy=payload.max_occupancy,
    )
    room_type.amenities = payload.amenities
    db.add(room_type)
    db.commit()
    db.refresh(room_type)
    return room_type

# ==== Rooms ====

@router.get("/rooms", response_model=List[RoomOut])
def list_rooms(status: Optional[RoomStatus] = None, room_type_id: Optional[int] = None, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    q = db.query(Room)
    if status:
        q = q.filter(Room.status == status)
    if room_type_id:
        q = q.filter(Room.room_type_id == room_type_id)
    return q.order_by(Room.room_number.asc()).all()

@router.post("/rooms", response_model=RoomOut, status_code=201)
def create_room(payload: RoomCreateIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    get_room_type_or_404(db, payload.room_type_id)
    room_number = payload.room_number.strip()
    ensure_unique_number(db, room_number)
    room = Room(
        room_number=room_number,
        room_type_id=payload.room_type_id,
        floor=payload.floor,
        status=RoomStatus.AVAILABLE,
        is_clean=True,
        notes=payload.notes,
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room

@router.get("/rooms/available", response_model=List[RoomOfferOut])
def available_rooms(
    check_in: date,
    check_out: date,
    guests: int = Query(1, ge=1),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Rooms that can take `guests` people for [check_in, check_out), with the quoted total."""
    if check_out <= check_in:
        raise errors.ValidationError("Check-out date must be after check-in date.")
    store = SqlAlchemyBookingStore(db)
    rooms = (
        db.query(Room)
        .join(RoomType)
        .filter(Room.status != RoomStatus.MAINTENANCE, RoomType.max_occupancy >= guests)
        .order_by(Room.room_number.asc())
        .all()
    )
    offers = []
    for room in rooms:
        if not is_available(store, room.id, check_in, check_out):
            continue
        offers.append({
            "room": room,
            "nights": (check_out - check_in).days,
            "total_amount": compute_total(room.room_type.base_price, check_in, check_out),
        })
    return offers

@router.get("/rooms/{room_id}", response_model=RoomOut)
def get_room(room_id: int, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return get_room_or_404(db, room_id)

@router.patch("/rooms/{room_id}", response_model=RoomOut)
def update_room(room_id: int, payload: RoomUpdateIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    room = get_room_or_404(db, room_id)
    if payload.room_number is not None:
        room_number = payload.room_number.strip()
        ensure_unique_number(db, room_number, room_id=room.id)
        room.room_number = room_number
    if payload.room_type_id is not None:
        room.room_type_id = get_room_type_or_404(db, payload.room_type_id).id
    if payload.floor is not None:
        room.floor = payload.floor
    if payload.notes is not None:
        room.notes = payload.notes.strip() or None
    db.commit()
    db.refresh(room)
    return room

@router.patch("/rooms/{room_id}/status", response_model=RoomOut)
def set_room_status(room_id: int, payload: RoomStatusIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    """Staff-managed housekeeping states. Occupancy itself follows check-in/check-out."""
    room = get_room_or_404(db, room_id)
    if payload.status == RoomStatus.OCCUPIED:
        raise errors.IllegalOperation("Rooms become occupied through booking check-in only.")
    if room.status == RoomStatus.OCCUPIED:
        in_house = (
            db.query(Booking)
            .filter(Booking.room_id == room.id, Booking.status == BookingStatus.CHECKED_IN)
            .first()
        )
        if in_house:
            raise errors.IllegalOperation(
                f"Room {room.room_number} is occupied by booking {in_house.booking_number}; check it out first."
            )
    room.status = payload.status
    if payload.is_clean is not None:
        room.is_clean = payload.is_clean
    if payload.notes is not None:
        room.notes = payload.notes.strip() or None
    db.commit()
    db.refresh(room)
    return room

@router.delete("/rooms/{room_id}", status_code=204)
def delete_room(room_id: int, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    room = get_room_or_404(db, room_id)
    if db.query(Booking).filter(Booking.room_id == room.id).first():
        raise errors.IllegalOperation(f"Room {room.room_number} has bookings and cannot be deleted.")
    db.delete(room)
    db.commit()
    return Response(status_code=204)

@router.get("/rooms/{room_id}/calendar", response_model=List[CalendarDayOut])
def get_calendar(room_id: int, date_from: date, date_to: date, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    """Per-day availability; only confirmed and checked-in bookings occupy dates."""
    room = get_room_or_404(db, room_id)
    if date_from > date_to:
        raise errors.ValidationError("date_from must be before date_to")
    return room_calendar(SqlAlchemyBookingStore(db), room.id, date_from, date_to)
