"""
Ledger models
"""
from roomledger.models.ledger import (
    MembershipLevel, MemberStatus, RoomType, RoomStatus, BookingStatus,
    PaymentMethod, AuditAction, BLOCKING_STATUSES,
    Member, Room, Booking, Payment, BookingAudit,
)

__all__ = [
    "MembershipLevel", "MemberStatus", "RoomType", "RoomStatus", "BookingStatus",
    "PaymentMethod", "AuditAction", "BLOCKING_STATUSES",
    "Member", "Room", "Booking", "Payment", "BookingAudit",
]
