"""
Booking service - admission check and booking lifecycle

Every mutation runs as one unit under the room's lock:
lock room -> validate -> write booking -> write audit record -> commit.
Failures roll back everything written in the unit.
"""
from datetime import date
from typing import Callable, Iterable, List, Optional, TypeVar
import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from roomledger.config import settings
from roomledger.engine.identifiers import IdentifierAllocator
from roomledger.engine.locks import RoomLockRegistry
from roomledger.errors import (
    BookingHasPayments, BookingNotFound, CapacityExceeded, InvalidDateRange,
    InvalidGuestCount, InvalidStatusTransition, MemberNotEligible,
    ReservationError, RoomNotFound, RoomUnavailable, TransactionConflict,
)
from roomledger.models.ledger import (
    AuditAction, BLOCKING_STATUSES, Booking, BookingStatus, Member,
    MemberStatus, Payment, Room,
)
from roomledger.services.audit_service import AuditService, BookingSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE serialization_failure / deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_transient(exc: OperationalError) -> bool:
    """Whether a driver error is a write conflict worth retrying from scratch."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _RETRYABLE_SQLSTATES:
        return True
    message = str(orig or exc).lower()
    return "database is locked" in message or "could not serialize" in message or "deadlock" in message


class BookingService:
    """Booking service"""

    def __init__(
        self,
        db: Session,
        allocator: IdentifierAllocator,
        locks: RoomLockRegistry,
        max_retries: Optional[int] = None,
    ):
        self.db = db
        self.allocator = allocator
        self.locks = locks
        self.audit = AuditService(db, allocator)
        self.max_retries = settings.MAX_TRANSACTION_RETRIES if max_retries is None else max_retries

    # ============== Queries ==============

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        """Get a single booking"""
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def list_bookings(self, member_id: Optional[int] = None,
                      room_id: Optional[int] = None,
                      status: Optional[BookingStatus] = None) -> List[Booking]:
        """List bookings, earliest start first"""
        query = self.db.query(Booking)
        if member_id is not None:
            query = query.filter(Booking.member_id == member_id)
        if room_id is not None:
            query = query.filter(Booking.room_id == room_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.start_date, Booking.id).all()

    def find_conflicts(self, room_id: int, start_date: date, end_date: date,
                       exclude_id: Optional[int] = None) -> List[Booking]:
        """
        Bookings of the room that block [start_date, end_date).

        Half-open overlap: existing.end > start AND existing.start < end, so a
        stay ending on the day another starts is not a conflict.
        """
        query = self.db.query(Booking).populate_existing().filter(
            Booking.room_id == room_id,
            Booking.status.in_(BLOCKING_STATUSES),
            Booking.end_date > start_date,
            Booking.start_date < end_date,
        )
        if exclude_id is not None:
            query = query.filter(Booking.id != exclude_id)
        return query.order_by(Booking.start_date).all()

    # ============== Admission ==============

    def _check_member(self, member_id: int) -> Member:
        member = self.db.query(Member).filter(Member.id == member_id).first()
        if member is None or member.status != MemberStatus.ACTIVE:
            raise MemberNotEligible(member_id=member_id)
        return member

    def _lock_room_row(self, room_id: int) -> Room:
        # FOR UPDATE pins the room row on backends that support it
        room = self.db.query(Room).filter(Room.id == room_id).with_for_update().first()
        if room is None:
            raise RoomNotFound(room_id=room_id)
        return room

    @staticmethod
    def _check_guests(room: Room, num_guests: int) -> None:
        if num_guests < 1:
            raise InvalidGuestCount(num_guests=num_guests)
        if num_guests > room.capacity:
            raise CapacityExceeded(num_guests=num_guests, capacity=room.capacity)

    @staticmethod
    def _check_dates(start_date: date, end_date: date) -> None:
        if end_date <= start_date:
            raise InvalidDateRange(start_date=start_date, end_date=end_date)

    def _check_free(self, room_id: int, start_date: date, end_date: date,
                    exclude_id: Optional[int] = None) -> None:
        conflicts = self.find_conflicts(room_id, start_date, end_date, exclude_id)
        if conflicts:
            raise RoomUnavailable(
                room_id=room_id,
                start_date=start_date,
                end_date=end_date,
                conflicting=",".join(str(b.id) for b in conflicts),
            )

    # ============== Transactions ==============

    def _end_read(self) -> None:
        # On SQLite the database write lock is taken at BEGIN; never hold it
        # while waiting for a room lock
        if self.db.in_transaction():
            self.db.commit()

    def _run(self, operation: str, unit: Callable[[], T]) -> T:
        """
        Run ``unit`` and commit. Business errors roll back and propagate as-is;
        transient write conflicts roll back and re-run the unit from scratch.
        """
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                result = unit()
                self.db.commit()
                return result
            except ReservationError:
                self.db.rollback()
                raise
            except OperationalError as e:
                self.db.rollback()
                if not is_transient(e):
                    raise
                if attempt == attempts:
                    logger.warning(f"{operation} gave up after {attempts} attempts: {e.orig}")
                    raise TransactionConflict(operation=operation, attempts=attempts) from e
                logger.warning(f"{operation} conflicted (attempt {attempt}/{attempts}), retrying")
            except Exception:
                self.db.rollback()
                raise
        raise TransactionConflict(operation=operation, attempts=attempts)

    # ============== Create ==============

    def create_booking(self, member_id: int, room_id: int, start_date: date,
                       end_date: date, num_guests: int = 1,
                       actor: Optional[str] = None) -> int:
        """
        Create a CONFIRMED booking.

        Checks, first failure wins: member ACTIVE, room exists, guests fit,
        end after start, room free. The checks, the insert and its INSERT
        audit record commit together while the room lock is held.

        Returns:
            The new booking id
        """
        actor = actor or settings.DEFAULT_ACTOR

        def unit() -> int:
            self._check_member(member_id)
            room = self._lock_room_row(room_id)
            self._check_guests(room, num_guests)
            self._check_dates(start_date, end_date)
            self._check_free(room_id, start_date, end_date)

            booking = Booking(
                id=self.allocator.next(),
                member_id=member_id,
                room_id=room_id,
                start_date=start_date,
                end_date=end_date,
                num_guests=num_guests,
                status=BookingStatus.CONFIRMED,
            )
            self.db.add(booking)
            self.db.flush()
            self.audit.record(AuditAction.INSERT, None, BookingSnapshot.of(booking), actor)
            return booking.id

        self._end_read()
        try:
            with self.locks.hold(room_id):
                booking_id = self._run("create_booking", unit)
        except ReservationError as e:
            logger.warning(f"Booking rejected for member {member_id} room {room_id} "
                           f"[{start_date} to {end_date}]: {e.code}")
            raise

        logger.info(f"Booking {booking_id} created: member {member_id} room {room_id} "
                    f"[{start_date} to {end_date}] by {actor}")
        return booking_id

    # ============== Lifecycle ==============

    def _room_of(self, booking_id: int) -> int:
        booking = self.get_booking(booking_id)
        room_id = booking.room_id if booking is not None else None
        self._end_read()
        if room_id is None:
            raise BookingNotFound(booking_id=booking_id)
        return room_id

    def _reload(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).populate_existing().filter(
            Booking.id == booking_id
        ).first()
        if booking is None:
            raise BookingNotFound(booking_id=booking_id)
        return booking

    @staticmethod
    def _require_status(booking: Booking, allowed: Iterable[BookingStatus], operation: str) -> None:
        if booking.status not in allowed:
            raise InvalidStatusTransition(
                booking_id=booking.id, status=booking.status.value, operation=operation
            )

    def _mutate(self, booking_id: int, operation: str,
                change: Callable[[Booking], None], actor: Optional[str]) -> Booking:
        """Apply ``change`` to a booking under its room lock and audit it as UPDATE."""
        actor = actor or settings.DEFAULT_ACTOR

        def unit() -> Booking:
            booking = self._reload(booking_id)
            before = BookingSnapshot.of(booking)
            change(booking)
            self.db.flush()
            self.audit.record(AuditAction.UPDATE, before, BookingSnapshot.of(booking), actor)
            return booking

        with self.locks.hold(self._room_of(booking_id)):
            booking = self._run(operation, unit)
        self.db.refresh(booking)
        logger.info(f"Booking {booking_id} {operation} -> {booking.status.value} by {actor}")
        return booking

    def check_in(self, booking_id: int, actor: Optional[str] = None) -> Booking:
        """CONFIRMED -> CHECKED_IN"""
        def change(booking: Booking) -> None:
            self._require_status(booking, (BookingStatus.CONFIRMED,), "check_in")
            booking.status = BookingStatus.CHECKED_IN

        return self._mutate(booking_id, "check_in", change, actor)

    def check_out(self, booking_id: int, actor: Optional[str] = None) -> Booking:
        """CHECKED_IN -> CHECKED_OUT"""
        def change(booking: Booking) -> None:
            self._require_status(booking, (BookingStatus.CHECKED_IN,), "check_out")
            booking.status = BookingStatus.CHECKED_OUT

        return self._mutate(booking_id, "check_out", change, actor)

    def cancel_booking(self, booking_id: int, reason: Optional[str] = None,
                       actor: Optional[str] = None) -> Booking:
        """CONFIRMED -> CANCELLED. The room is free for the period afterwards."""
        def change(booking: Booking) -> None:
            self._require_status(booking, (BookingStatus.CONFIRMED,), "cancel")
            booking.status = BookingStatus.CANCELLED
            booking.cancel_reason = reason

        return self._mutate(booking_id, "cancel", change, actor)

    def reschedule_booking(self, booking_id: int, start_date: date, end_date: date,
                           num_guests: Optional[int] = None,
                           actor: Optional[str] = None) -> Booking:
        """
        Move a CONFIRMED booking to new dates (and optionally a new guest
        count) in the same room. The booking does not conflict with itself.
        """
        def change(booking: Booking) -> None:
            self._require_status(booking, (BookingStatus.CONFIRMED,), "reschedule")
            room = self._lock_room_row(booking.room_id)
            guests = booking.num_guests if num_guests is None else num_guests
            self._check_guests(room, guests)
            self._check_dates(start_date, end_date)
            self._check_free(booking.room_id, start_date, end_date, exclude_id=booking.id)
            booking.start_date = start_date
            booking.end_date = end_date
            booking.num_guests = guests

        return self._mutate(booking_id, "reschedule", change, actor)

    def delete_booking(self, booking_id: int, actor: Optional[str] = None) -> None:
        """Remove a booking that has no payments; leaves a DELETE audit record."""
        actor = actor or settings.DEFAULT_ACTOR

        def unit() -> None:
            booking = self._reload(booking_id)
            has_payments = self.db.query(Payment.id).filter(
                Payment.booking_id == booking_id
            ).first() is not None
            if has_payments:
                raise BookingHasPayments(booking_id=booking_id)
            before = BookingSnapshot.of(booking)
            self.db.delete(booking)
            self.db.flush()
            self.audit.record(AuditAction.DELETE, before, None, actor)

        with self.locks.hold(self._room_of(booking_id)):
            self._run("delete_booking", unit)
        logger.info(f"Booking {booking_id} deleted by {actor}")
