"""
Pydantic schemas
Request/response validation for the HTTP surface.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, ConfigDict
from roomledger.models.ledger import (
    BookingStatus, PaymentMethod, AuditAction, RoomType
)


# ============== Booking Schemas ==============

class BookingCreate(BaseModel):
    member_id: int
    room_id: int
    start_date: date
    end_date: date
    num_guests: int = 1


class BookingReschedule(BaseModel):
    start_date: date
    end_date: date
    num_guests: Optional[int] = None


class BookingCancel(BaseModel):
    cancel_reason: Optional[str] = Field(None, max_length=200)


class BookingResponse(BaseModel):
    id: int
    member_id: int
    room_id: int
    start_date: date
    end_date: date
    num_guests: int
    status: BookingStatus
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CreatedResponse(BaseModel):
    id: int


# ============== Payment Schemas ==============

class PaymentCreate(BaseModel):
    booking_id: int
    amount: Decimal = Field(..., max_digits=10, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CARD
    note: Optional[str] = Field(None, max_length=200)
    paid_date: Optional[date] = None

    @field_validator("method", mode="before")
    @classmethod
    def default_method(cls, v):
        # An explicit null falls back to CARD
        return PaymentMethod.CARD if v is None else v


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    amount: Decimal
    paid_date: date
    method: PaymentMethod
    note: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# ============== Audit Schemas ==============

class AuditRecordResponse(BaseModel):
    id: int
    booking_id: int
    action: AuditAction
    action_ts: datetime
    action_user: str
    old_status: Optional[BookingStatus] = None
    new_status: Optional[BookingStatus] = None
    old_start_date: Optional[date] = None
    old_end_date: Optional[date] = None
    new_start_date: Optional[date] = None
    new_end_date: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


# ============== Report Schemas ==============

class ActivityPayment(BaseModel):
    payment_id: int
    amount: Decimal
    paid_date: date
    method: PaymentMethod


class ActivityBooking(BaseModel):
    booking_id: int
    room_id: int
    room_number: str
    start_date: date
    end_date: date
    status: BookingStatus
    paid: Decimal
    payments: List[ActivityPayment] = []


class MemberActivityReport(BaseModel):
    member_id: int
    member_name: str
    bookings: List[ActivityBooking] = []
    total_bookings: int
    total_paid: Decimal


class RoomNights(BaseModel):
    room_id: int
    room_number: str
    booked_nights: int


class RoomTypeOccupancy(BaseModel):
    room_type: RoomType
    num_rooms: int
    booked_nights: int
    occupancy_pct: Decimal
    booked_revenue: Decimal
    rooms: List[RoomNights] = []


class OccupancySummary(BaseModel):
    period_start: date
    period_end: date
    period_days: int
    room_types: List[RoomTypeOccupancy]


class MemberLifetimeValue(BaseModel):
    member_id: int
    member_name: str
    membership_level: str
    member_status: str
    total_bookings: int
    total_revenue: Decimal
    last_booking_date: Optional[date] = None


class ForwardOccupancy(BaseModel):
    room_type: RoomType
    num_rooms: int
    booked_room_nights: int
    occupancy_pct: Decimal
    booked_revenue: Decimal
