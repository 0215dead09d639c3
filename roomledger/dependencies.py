"""
FastAPI dependencies - shared collaborators held on app.state
"""
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from roomledger.config import settings
from roomledger.database import get_db
from roomledger.engine import IdentifierAllocator, RoomLockRegistry
from roomledger.services import BookingService, PaymentService, ReportService, AuditService


def get_allocator(request: Request) -> IdentifierAllocator:
    return request.app.state.allocator


def get_locks(request: Request) -> RoomLockRegistry:
    return request.app.state.room_locks


def get_actor(x_actor: Optional[str] = Header(default=None)) -> str:
    """Acting principal recorded in the audit trail"""
    return x_actor or settings.DEFAULT_ACTOR


def get_booking_service(
    db: Session = Depends(get_db),
    allocator: IdentifierAllocator = Depends(get_allocator),
    locks: RoomLockRegistry = Depends(get_locks),
) -> BookingService:
    return BookingService(db, allocator, locks)


def get_payment_service(
    db: Session = Depends(get_db),
    allocator: IdentifierAllocator = Depends(get_allocator),
) -> PaymentService:
    return PaymentService(db, allocator)


def get_audit_service(
    db: Session = Depends(get_db),
    allocator: IdentifierAllocator = Depends(get_allocator),
) -> AuditService:
    return AuditService(db, allocator)


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)
