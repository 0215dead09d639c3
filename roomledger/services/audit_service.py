"""
Audit trail service - booking change records
Every booking insert/update/delete appends exactly one BookingAudit row in the
caller's transaction.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from roomledger.engine.identifiers import IdentifierAllocator
from roomledger.models.ledger import AuditAction, Booking, BookingAudit, BookingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingSnapshot:
    """
    Booking state captured before or after a mutation.

    Attributes:
        booking_id: Booking identifier
        status: Booking status
        start_date: Start date (inclusive)
        end_date: End date (exclusive)
    """

    booking_id: int
    status: BookingStatus
    start_date: date
    end_date: date

    @classmethod
    def of(cls, booking: Booking) -> "BookingSnapshot":
        return cls(
            booking_id=booking.id,
            status=booking.status,
            start_date=booking.start_date,
            end_date=booking.end_date,
        )


class AuditService:
    """Audit trail service"""

    def __init__(self, db: Session, allocator: IdentifierAllocator):
        self.db = db
        self.allocator = allocator

    def record(
        self,
        action: AuditAction,
        before: Optional[BookingSnapshot],
        after: Optional[BookingSnapshot],
        actor: str,
    ) -> BookingAudit:
        """
        Append one audit record to the current transaction.

        Does not commit: the booking mutation and its record become visible
        together when the caller commits, and vanish together on rollback.

        Args:
            action: INSERT, UPDATE or DELETE
            before: State before the mutation (None for INSERT)
            after: State after the mutation (None for DELETE)
            actor: Acting principal

        Returns:
            The pending audit record
        """
        if action == AuditAction.INSERT and before is not None:
            raise ValueError("INSERT audit cannot carry a prior state")
        if action == AuditAction.DELETE and after is not None:
            raise ValueError("DELETE audit cannot carry a new state")
        if before is None and after is None:
            raise ValueError("audit record needs a before or after state")

        subject = after if after is not None else before
        entry = BookingAudit(
            id=self.allocator.next(),
            booking_id=subject.booking_id,
            action=action,
            action_ts=datetime.utcnow(),
            action_user=actor,
            old_status=before.status if before else None,
            new_status=after.status if after else None,
            old_start_date=before.start_date if before else None,
            old_end_date=before.end_date if before else None,
            new_start_date=after.start_date if after else None,
            new_end_date=after.end_date if after else None,
        )
        self.db.add(entry)
        self.db.flush()
        logger.debug(f"Audit {action.value} booking {subject.booking_id} by {actor}")
        return entry

    def history(self, booking_id: int) -> List[BookingAudit]:
        """Audit records of a booking in the order they were written"""
        return self.db.query(BookingAudit).filter(
            BookingAudit.booking_id == booking_id
        ).order_by(BookingAudit.id).all()

    def replay_status(self, booking_id: int) -> List[Optional[BookingStatus]]:
        """
        Rebuild a booking's status history from its audit records.

        The first element is the status the booking was created with; each
        following element is the status after the next change. A deleted
        booking ends with None. Raises ValueError if the chain is broken,
        i.e. a record's old status differs from the previous new status.
        """
        statuses: List[Optional[BookingStatus]] = []
        for entry in self.history(booking_id):
            if entry.action == AuditAction.INSERT:
                if statuses:
                    raise ValueError(f"booking {booking_id} inserted twice")
            elif not statuses or statuses[-1] != entry.old_status:
                raise ValueError(f"audit chain broken at record {entry.id}")
            statuses.append(entry.new_status)
        return statuses
