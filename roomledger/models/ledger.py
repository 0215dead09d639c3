"""
Ledger tables
Members, rooms, bookings, payments and the booking audit trail.
Field-level rules (unique, enum, ranges) are declared here as constraints.
"""
from datetime import date, datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Date, DateTime,
    ForeignKey, Numeric, Enum as SQLEnum, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from roomledger.database import Base


# ============== Enums ==============

class MembershipLevel(str, Enum):
    """Membership tier"""
    STANDARD = "STANDARD"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class MemberStatus(str, Enum):
    """Member standing"""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class RoomType(str, Enum):
    """Room category"""
    STANDARD = "STANDARD"
    DELUXE = "DELUXE"
    SUITE = "SUITE"


class RoomStatus(str, Enum):
    """Room status"""
    AVAILABLE = "AVAILABLE"
    MAINTENANCE = "MAINTENANCE"
    UNAVAILABLE = "UNAVAILABLE"


class BookingStatus(str, Enum):
    """Booking status"""
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"


# Statuses that hold the room and block overlapping bookings
BLOCKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


class PaymentMethod(str, Enum):
    """Payment method"""
    CARD = "CARD"
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    VOUCHER = "VOUCHER"


class AuditAction(str, Enum):
    """Booking audit action"""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# ============== Tables ==============

class Member(Base):
    """Member master data. Created outside the engine; bookings only read it."""
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    membership_level = Column(SQLEnum(MembershipLevel), default=MembershipLevel.STANDARD, nullable=False)
    status = Column(SQLEnum(MemberStatus), default=MemberStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    bookings = relationship("Booking", back_populates="member")

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE


class Room(Base):
    """Bookable room inventory"""
    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("capacity BETWEEN 1 AND 10", name="ck_rooms_capacity"),
    )

    id = Column(Integer, primary_key=True)
    room_number = Column(String(10), unique=True, nullable=False)
    room_type = Column(SQLEnum(RoomType), nullable=False, index=True)
    capacity = Column(Integer, nullable=False)
    base_rate = Column(Numeric(10, 2), default=0, nullable=False)
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.AVAILABLE, nullable=False)

    bookings = relationship("Booking", back_populates="room")


class Booking(Base):
    """
    Booking - a member holding a room over [start_date, end_date).
    end_date is exclusive: a stay ending on the 12th frees the room for a
    stay starting on the 12th.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_bookings_dates"),
        CheckConstraint("num_guests BETWEEN 1 AND 10", name="ck_bookings_guests"),
        Index("idx_bookings_room_dates", "room_id", "start_date", "end_date"),
    )

    # Issued by the IdentifierAllocator, never by the database
    id = Column(Integer, primary_key=True, autoincrement=False)
    member_id = Column(ForeignKey("members.id"), nullable=False, index=True)
    room_id = Column(ForeignKey("rooms.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    num_guests = Column(Integer, default=1, nullable=False)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.CONFIRMED, nullable=False)
    cancel_reason = Column(String(200))
    created_at = Column(DateTime, default=datetime.utcnow)

    member = relationship("Member", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking", order_by="Payment.id")

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    def overlaps(self, start: date, end: date) -> bool:
        """Half-open interval test: [self.start, self.end) vs [start, end)."""
        return self.end_date > start and self.start_date < end


class Payment(Base):
    """Payment ledger row. Append-only."""
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payments_amount"),
        Index("idx_payments_booking", "booking_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=False)
    booking_id = Column(ForeignKey("bookings.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    paid_date = Column(Date, default=date.today, nullable=False)
    method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.CARD, nullable=False)
    note = Column(String(200))

    booking = relationship("Booking", back_populates="payments")


class BookingAudit(Base):
    """
    Booking change record. Append-only, one row per booking mutation.
    No foreign key to bookings: DELETE records outlive the row they describe.
    """
    __tablename__ = "bookings_audit"

    id = Column(Integer, primary_key=True, autoincrement=False)
    booking_id = Column(Integer, nullable=False, index=True)
    action = Column(SQLEnum(AuditAction), nullable=False)
    action_ts = Column(DateTime, default=datetime.utcnow, nullable=False)
    action_user = Column(String(128), nullable=False)
    old_status = Column(SQLEnum(BookingStatus))
    new_status = Column(SQLEnum(BookingStatus))
    old_start_date = Column(Date)
    old_end_date = Column(Date)
    new_start_date = Column(Date)
    new_end_date = Column(Date)
