"""
Payment routes
"""
from fastapi import APIRouter, Depends, status

from roomledger.dependencies import get_payment_service
from roomledger.models.schemas import CreatedResponse, PaymentCreate
from roomledger.services import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
def add_payment(data: PaymentCreate, service: PaymentService = Depends(get_payment_service)):
    """Record a payment against a booking"""
    payment_id = service.add_payment(
        data.booking_id, data.amount, data.method, data.note, data.paid_date
    )
    return CreatedResponse(id=payment_id)
