"""
Payment service - append-only payment ledger
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from roomledger.engine.identifiers import IdentifierAllocator
from roomledger.errors import (
    BookingCancelled, BookingNotFound, InvalidAmount, InvalidPaymentMethod,
)
from roomledger.models.ledger import Booking, BookingStatus, Payment, PaymentMethod

logger = logging.getLogger(__name__)


class PaymentService:
    """Payment service"""

    def __init__(self, db: Session, allocator: IdentifierAllocator):
        self.db = db
        self.allocator = allocator

    def add_payment(self, booking_id: int, amount: Union[Decimal, int, str],
                    method: Optional[PaymentMethod] = PaymentMethod.CARD,
                    note: Optional[str] = None,
                    paid_date: Optional[date] = None) -> int:
        """
        Record a payment against a booking.

        Raises:
            InvalidAmount: amount is negative
            InvalidPaymentMethod: method is not a PaymentMethod
            BookingNotFound: booking does not exist
            BookingCancelled: booking is CANCELLED

        Returns:
            The new payment id
        """
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise InvalidAmount(amount=amount)
        if not amount.is_finite() or amount < 0:
            raise InvalidAmount(amount=amount)
        try:
            method = PaymentMethod(method) if method else PaymentMethod.CARD
        except ValueError:
            raise InvalidPaymentMethod(method=method)

        booking = self.db.query(Booking).populate_existing().filter(
            Booking.id == booking_id
        ).first()
        if booking is None or booking.status == BookingStatus.CANCELLED:
            # release the write lock SQLite took at BEGIN
            self.db.rollback()
            if booking is None:
                raise BookingNotFound(booking_id=booking_id)
            raise BookingCancelled(booking_id=booking_id)

        payment_id = self.allocator.next()
        self.db.add(Payment(
            id=payment_id,
            booking_id=booking_id,
            amount=amount,
            paid_date=paid_date or date.today(),
            method=method,
            note=note,
        ))
        try:
            self.db.commit()
        except IntegrityError as e:
            # Booking deleted between the lookup and the insert
            self.db.rollback()
            raise BookingNotFound(booking_id=booking_id) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Payment {payment_id} of {amount} via {method.value} on booking {booking_id}")
        return payment_id

    def get_payments(self, booking_id: int) -> List[Payment]:
        """Payments of a booking, oldest first"""
        return self.db.query(Payment).filter(
            Payment.booking_id == booking_id
        ).order_by(Payment.paid_date, Payment.id).all()
