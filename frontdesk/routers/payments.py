import hmac
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..limiter import limiter
from ..models import BookingStatus, Payment, PaymentMethod, PaymentStatus, User
from ..security import require_staff
from ..services.lifecycle import BookingLifecycleManager
from ..services.payments import PaymentEvent, PaymentOutcome, PaymentReconciliationListener, record_payment
from .bookings import get_booking_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

# ==== Schemas ====

class PaymentOut(BaseModel):
    id: int
    booking_id: int
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        from_attributes = True

class PaymentIn(BaseModel):
    booking_id: int
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.COMPLETED
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None

class PaymentEventIn(BaseModel):
    booking_id: int
    outcome: PaymentOutcome
    amount: Optional[Decimal] = Field(default=None, gt=0)
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    method: PaymentMethod = PaymentMethod.CARD

class PaymentEventOut(BaseModel):
    booking_id: int
    booking_status: BookingStatus

    class Config:
        use_enum_values = True

# ==== Dependencies ====

def get_payment_listener(db: Session = Depends(get_db), manager: BookingLifecycleManager = Depends(get_booking_manager)) -> PaymentReconciliationListener:
    return PaymentReconciliationListener(db, manager)

def verify_webhook_token(x_webhook_token: Optional[str] = Header(default=None)):
    secret = settings.PAYMENT_WEBHOOK_SECRET
    if not secret:
        # Development mode: unsigned events are accepted
        return
    if not x_webhook_token or not hmac.compare_digest(x_webhook_token, secret):
        logger.warning("Rejected payment webhook with invalid token")
        raise HTTPException(status_code=401, detail="Invalid webhook token")

# ==== Endpoints ====

@router.get("", response_model=List[PaymentOut])
def list_payments(booking_id: Optional[int] = None, status: Optional[PaymentStatus] = None, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    q = db.query(Payment)
    if booking_id:
        q = q.filter(Payment.booking_id == booking_id)
    if status:
        q = q.filter(Payment.status == status)
    return q.order_by(Payment.created_at.desc(), Payment.id.desc()).all()

@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(payload: PaymentIn, user: User = Depends(require_staff), db: Session = Depends(get_db), manager: BookingLifecycleManager = Depends(get_booking_manager)):
    booking = manager.get(payload.booking_id)
    return record_payment(
        db,
        booking,
        payload.amount,
        payload.method,
        status=payload.status,
        transaction_id=payload.transaction_id,
        notes=payload.notes,
    )

@router.post("/webhook", response_model=PaymentEventOut, dependencies=[Depends(verify_webhook_token)])
@limiter.limit(settings.RATE_LIMIT_WRITE)
def payment_webhook(request: Request, payload: PaymentEventIn, listener: PaymentReconciliationListener = Depends(get_payment_listener)):
    booking = listener.handle(PaymentEvent(
        booking_id=payload.booking_id,
        outcome=payload.outcome,
        amount=payload.amount,
        transaction_id=payload.transaction_id,
        method=payload.method,
    ))
    return {"booking_id": booking.id, "booking_status": booking.status}
