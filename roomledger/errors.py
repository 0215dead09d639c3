"""
Reservation error taxonomy.

Every business-rule failure is raised as a subclass of ReservationError with a
stable ``code``. The category (the direct base class) tells the caller whether
the request can be corrected, retried, or not at all:

- ValidationError: caller-correctable input, never retried as-is
- ConflictError: rejected against current committed state
- NotFoundError: referenced member/room/booking missing (or member ineligible)
- ConcurrencyError: transient, retry the whole operation from scratch
- ExhaustedError: identifier space used up, fatal for the process
"""
from typing import Any, Dict


class ReservationError(Exception):
    """Base class for reservation engine errors."""

    code = "reservation_error"

    def __init__(self, message: str = "", **context: Any):
        self.message = message or self.__class__.__doc__ or self.code
        self.context: Dict[str, Any] = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category,
            "message": self.message,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    @property
    def category(self) -> str:
        for klass in type(self).__mro__:
            if klass in _CATEGORIES:
                return klass.code
        return ReservationError.code


# ============== Categories ==============

class ValidationError(ReservationError):
    """Request failed validation."""
    code = "validation_error"


class ConflictError(ReservationError):
    """Request conflicts with committed state."""
    code = "conflict"


class NotFoundError(ReservationError):
    """Referenced entity not found."""
    code = "not_found"


class ConcurrencyError(ReservationError):
    """Transient concurrency failure; retry the operation."""
    code = "concurrency_error"


class ExhaustedError(ReservationError):
    """Identifier space exhausted."""
    code = "exhausted"


_CATEGORIES = (ValidationError, ConflictError, NotFoundError, ConcurrencyError, ExhaustedError)


# ============== Validation ==============

class InvalidDateRange(ValidationError):
    """End date must be after start date."""
    code = "invalid_date_range"


class CapacityExceeded(ValidationError):
    """Guest count exceeds room capacity."""
    code = "capacity_exceeded"


class InvalidGuestCount(ValidationError):
    """Guest count must be at least 1."""
    code = "invalid_guest_count"


class InvalidAmount(ValidationError):
    """Amount cannot be negative."""
    code = "invalid_amount"


class InvalidPeriod(ValidationError):
    """Report period end must be after its start."""
    code = "invalid_period"


class InvalidPaymentMethod(ValidationError):
    """Unknown payment method."""
    code = "invalid_payment_method"


# ============== Conflict ==============

class RoomUnavailable(ConflictError):
    """Room is not available for the requested period."""
    code = "room_unavailable"


class BookingCancelled(ConflictError):
    """Cannot add payment to a cancelled booking."""
    code = "booking_cancelled"


class InvalidStatusTransition(ConflictError):
    """Booking status does not allow this operation."""
    code = "invalid_status_transition"


class BookingHasPayments(ConflictError):
    """Booking with recorded payments cannot be deleted."""
    code = "booking_has_payments"


# ============== Not found ==============

class MemberNotEligible(NotFoundError):
    """Member does not exist or is not active."""
    code = "member_not_eligible"


class RoomNotFound(NotFoundError):
    """Room does not exist."""
    code = "room_not_found"


class BookingNotFound(NotFoundError):
    """Booking does not exist."""
    code = "booking_not_found"


# ============== Concurrency ==============

class LockTimeout(ConcurrencyError):
    """Timed out waiting for the room lock."""
    code = "lock_timeout"


class TransactionConflict(ConcurrencyError):
    """Transaction could not be serialized; retry."""
    code = "transaction_conflict"
