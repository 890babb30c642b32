import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from .. import errors
from ..config import settings
from ..models import Booking, BookingStatus, Payment, PaymentMethod, PaymentStatus
from .lifecycle import BookingLifecycleManager
from .pricing import CENT, to_decimal

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("keep", "cancel")


class PaymentOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PaymentEvent:
    booking_id: int
    outcome: PaymentOutcome
    amount: Optional[Decimal] = None
    transaction_id: Optional[str] = None
    method: PaymentMethod = PaymentMethod.CARD


def record_payment(
    db: Session,
    booking: Booking,
    amount,
    method: PaymentMethod,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    transaction_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    """Stores a payment row, updating the existing one for a known transaction id."""
    amount = to_decimal(amount).quantize(CENT)
    if amount <= 0:
        raise errors.ValidationError("Payment amount must be greater than zero.")

    payment = None
    if transaction_id:
        payment = db.query(Payment).filter(Payment.transaction_id == transaction_id).first()
        if payment and payment.booking_id != booking.id:
            raise errors.ValidationError(f"Transaction {transaction_id} belongs to another booking.")
        if payment and payment.status == PaymentStatus.COMPLETED and status != PaymentStatus.COMPLETED:
            logger.warning(
                "Ignoring %s for transaction %s; payment %s is already completed",
                status.value, transaction_id, payment.id,
            )
            return payment
    if payment is None:
        payment = Payment(booking_id=booking.id, transaction_id=transaction_id)
        db.add(payment)
    payment.amount = amount
    payment.method = method
    payment.status = status
    if notes is not None:
        payment.notes = notes
    db.commit()
    db.refresh(payment)
    logger.info(
        "Payment %s for booking %s recorded as %s (%s %s)",
        payment.id, booking.booking_number, status.value, amount, settings.CURRENCY,
    )
    return payment


class PaymentReconciliationListener:
    """Turns payment-provider outcomes into booking transitions.

    ``succeeded`` confirms a pending booking; redelivered events for a booking
    that already moved on are ignored. ``failed`` keeps the booking pending or
    cancels it, depending on ``failure_policy``.
    """

    def __init__(self, db: Session, bookings: BookingLifecycleManager, failure_policy: Optional[str] = None):
        policy = (failure_policy or settings.PAYMENT_FAILURE_POLICY).lower()
        if policy not in FAILURE_POLICIES:
            raise ValueError(f"Unknown payment failure policy: {policy!r}")
        self.db = db
        self.bookings = bookings
        self.failure_policy = policy

    def handle(self, event: PaymentEvent) -> Booking:
        booking = self.bookings.get(event.booking_id)
        outcome = PaymentOutcome(event.outcome)
        logger.info("Payment %s for booking %s (tx=%s)", outcome.value, booking.booking_number, event.transaction_id)

        record_payment(
            self.db,
            booking,
            event.amount if event.amount is not None else booking.total_amount,
            event.method,
            status=PaymentStatus.COMPLETED if outcome == PaymentOutcome.SUCCEEDED else PaymentStatus.FAILED,
            transaction_id=event.transaction_id,
        )

        if outcome == PaymentOutcome.SUCCEEDED:
            return self._on_success(booking)
        return self._on_failure(booking)

    def _on_success(self, booking: Booking) -> Booking:
        if booking.status != BookingStatus.PENDING:
            logger.info("Booking %s already %s; nothing to confirm", booking.booking_number, booking.status.value)
            return booking
        try:
            return self.bookings.confirm(booking.id)
        except errors.RoomUnavailable:
            logger.warning(
                "Payment received for booking %s but its room was taken; booking stays pending",
                booking.booking_number,
            )
            raise

    def _on_failure(self, booking: Booking) -> Booking:
        if self.failure_policy == "cancel" and booking.status == BookingStatus.PENDING:
            return self.bookings.cancel(booking.id)
        logger.info("Booking %s left %s after failed payment", booking.booking_number, booking.status.value)
        return booking
