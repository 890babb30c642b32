from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .. import errors
from ..db import get_db
from ..models import Booking, Guest, IdType, User
from ..security import require_staff

router = APIRouter(prefix="/api/guests", tags=["guests"])

# ==== Schemas ====

class GuestOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    id_type: IdType
    id_number: Optional[str] = None
    nationality: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        from_attributes = True

class GuestIn(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    id_type: IdType = IdType.NATIONAL_ID
    id_number: Optional[str] = Field(default=None, max_length=50)
    nationality: Optional[str] = Field(default=None, max_length=50)

class GuestUpdateIn(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    id_type: Optional[IdType] = None
    id_number: Optional[str] = Field(default=None, max_length=50)
    nationality: Optional[str] = Field(default=None, max_length=50)

# ==== Helpers ====

def get_guest_or_404(db: Session, guest_id: int) -> Guest:
    guest = db.get(Guest, guest_id)
    if not guest:
        raise HTTPException(status_code=404, detail="Guest not found")
    return guest

def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None

# ==== Endpoints ====

@router.get("", response_model=List[GuestOut])
def list_guests(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    q = db.query(Guest)
    if search:
        pattern = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Guest.first_name).like(pattern),
            func.lower(Guest.last_name).like(pattern),
            func.lower(Guest.email).like(pattern),
            func.lower(Guest.phone).like(pattern),
        ))
    return q.order_by(Guest.created_at.desc(), Guest.id.desc()).limit(limit).offset((page - 1) * limit).all()

@router.post("", response_model=GuestOut, status_code=201)
def create_guest(payload: GuestIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    guest = Guest(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=_clean(payload.email),
        phone=_clean(payload.phone),
        address=_clean(payload.address),
        id_type=payload.id_type,
        id_number=_clean(payload.id_number),
        nationality=_clean(payload.nationality),
    )
    db.add(guest)
    db.commit()
    db.refresh(guest)
    return guest

@router.get("/{guest_id}", response_model=GuestOut)
def get_guest(guest_id: int, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return get_guest_or_404(db, guest_id)

@router.patch("/{guest_id}", response_model=GuestOut)
def update_guest(guest_id: int, payload: GuestUpdateIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    guest = get_guest_or_404(db, guest_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        setattr(guest, field, value)
    db.commit()
    db.refresh(guest)
    return guest

@router.delete("/{guest_id}", status_code=204)
def delete_guest(guest_id: int, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    guest = get_guest_or_404(db, guest_id)
    if db.query(Booking).filter(Booking.guest_id == guest.id).first():
        raise errors.IllegalOperation(f"Guest {guest.full_name} has bookings and cannot be deleted.")
    db.delete(guest)
    db.commit()
    return Response(status_code=204)
