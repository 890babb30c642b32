from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..limiter import limiter
from ..models import BookingStatus, User
from ..repositories import BookingFilters, SqlAlchemyBookingStore
from ..security import require_staff
from ..services.lifecycle import BookingLifecycleManager

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

# ==== Schemas ====

class BookingOut(BaseModel):
    id: int
    booking_number: str
    guest_id: int
    room_id: int
    check_in_date: date
    check_out_date: date
    adults: int
    children: int
    nights: int
    total_amount: Decimal
    status: BookingStatus
    special_requests: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        from_attributes = True

class BookingCreateIn(BaseModel):
    guest_id: int
    room_id: int
    check_in_date: date
    check_out_date: date
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    special_requests: Optional[str] = None

class BookingUpdateIn(BaseModel):
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    adults: Optional[int] = Field(default=None, ge=1)
    children: Optional[int] = Field(default=None, ge=0)
    status: Optional[BookingStatus] = None
    special_requests: Optional[str] = None

# ==== Dependencies ====

def get_today() -> Callable[[], date]:
    return date.today

def get_booking_manager(db: Session = Depends(get_db), today: Callable[[], date] = Depends(get_today)) -> BookingLifecycleManager:
    return BookingLifecycleManager(SqlAlchemyBookingStore(db), today=today)

# ==== Endpoints ====

@router.get("", response_model=List[BookingOut])
def list_bookings(
    status: Optional[BookingStatus] = None,
    room_id: Optional[int] = None,
    guest_id: Optional[int] = None,
    check_in_from: Optional[date] = None,
    check_out_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_staff),
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    filters = BookingFilters(
        status=status,
        room_id=room_id,
        guest_id=guest_id,
        check_in_from=check_in_from,
        check_out_to=check_out_to,
        page=page,
        limit=limit,
    )
    return manager.list_bookings(filters)

@router.post("", response_model=BookingOut, status_code=201)
@limiter.limit(settings.RATE_LIMIT_WRITE)
def create_booking(request: Request, payload: BookingCreateIn, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.create(
        guest_id=payload.guest_id,
        room_id=payload.room_id,
        check_in=payload.check_in_date,
        check_out=payload.check_out_date,
        adults=payload.adults,
        children=payload.children,
        special_requests=(payload.special_requests or "").strip() or None,
        actor_id=user.id,
    )

@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.get(booking_id)

@router.patch("/{booking_id}", response_model=BookingOut)
def update_booking(booking_id: int, payload: BookingUpdateIn, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.update(booking_id, payload.model_dump(exclude_unset=True), actor_id=user.id)

@router.post("/{booking_id}/confirm", response_model=BookingOut)
def confirm_booking(booking_id: int, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.confirm(booking_id, actor_id=user.id)

@router.post("/{booking_id}/check-in", response_model=BookingOut)
def check_in(booking_id: int, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.check_in(booking_id, actor_id=user.id)

@router.post("/{booking_id}/check-out", response_model=BookingOut)
def check_out(booking_id: int, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.check_out(booking_id, actor_id=user.id)

@router.post("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: int, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    return manager.cancel(booking_id, actor_id=user.id)

@router.delete("/{booking_id}", status_code=204)
def delete_booking(booking_id: int, user: User = Depends(require_staff), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    manager.delete(booking_id, actor_id=user.id)
    return Response(status_code=204)
