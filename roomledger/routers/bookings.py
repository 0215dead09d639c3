"""
Booking routes
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status

from roomledger.dependencies import (
    get_actor, get_audit_service, get_booking_service, get_payment_service,
)
from roomledger.errors import BookingNotFound
from roomledger.models.ledger import BookingStatus
from roomledger.models.schemas import (
    AuditRecordResponse, BookingCancel, BookingCreate, BookingReschedule,
    BookingResponse, CreatedResponse, PaymentResponse,
)
from roomledger.services import AuditService, BookingService, PaymentService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    member_id: Optional[int] = None,
    room_id: Optional[int] = None,
    status: Optional[BookingStatus] = None,
    service: BookingService = Depends(get_booking_service),
):
    """List bookings"""
    return service.list_bookings(member_id, room_id, status)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    actor: str = Depends(get_actor),
):
    """Create a booking"""
    booking_id = service.create_booking(
        data.member_id, data.room_id, data.start_date, data.end_date, data.num_guests, actor
    )
    return CreatedResponse(id=booking_id)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    """Get booking detail"""
    booking = service.get_booking(booking_id)
    if booking is None:
        raise BookingNotFound(booking_id=booking_id)
    return booking


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
def check_in(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    actor: str = Depends(get_actor),
):
    return service.check_in(booking_id, actor)


@router.post("/{booking_id}/check-out", response_model=BookingResponse)
def check_out(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    actor: str = Depends(get_actor),
):
    return service.check_out(booking_id, actor)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    data: BookingCancel,
    service: BookingService = Depends(get_booking_service),
    actor: str = Depends(get_actor),
):
    """Cancel a confirmed booking"""
    return service.cancel_booking(booking_id, data.cancel_reason, actor)


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
def reschedule_booking(
    booking_id: int,
    data: BookingReschedule,
    service: BookingService = Depends(get_booking_service),
    actor: str = Depends(get_actor),
):
    """Move a confirmed booking to new dates"""
    return service.reschedule_booking(
        booking_id, data.start_date, data.end_date, data.num_guests, actor
    )


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    actor: str = Depends(get_actor),
):
    service.delete_booking(booking_id, actor)


@router.get("/{booking_id}/payments", response_model=List[PaymentResponse])
def list_payments(booking_id: int, service: PaymentService = Depends(get_payment_service)):
    """Payments of a booking"""
    return service.get_payments(booking_id)


@router.get("/{booking_id}/audit", response_model=List[AuditRecordResponse])
def get_audit_trail(booking_id: int, service: AuditService = Depends(get_audit_service)):
    """Audit records of a booking, oldest first"""
    return service.history(booking_id)
