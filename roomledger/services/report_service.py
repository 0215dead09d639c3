"""
Report service - read-only aggregates over the booking ledger
Computed on every call from committed rows; nothing is cached or materialized.
"""
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from roomledger.config import settings
from roomledger.errors import InvalidPeriod
from roomledger.models.ledger import (
    BLOCKING_STATUSES, Booking, BookingStatus, Member, Payment, Room, RoomType,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def booked_nights(start: date, end: date, window_start: date, window_end: date) -> int:
    """Nights of [start, end) that fall inside [window_start, window_end)."""
    return max(0, (min(end, window_end) - max(start, window_start)).days)


def occupancy_pct(nights: int, period_days: int, num_rooms: int) -> Decimal:
    """nights / (period_days * num_rooms) * 100, rounded half-up to cents; 0 with no capacity."""
    capacity = period_days * num_rooms
    if capacity <= 0:
        return ZERO.quantize(CENT)
    return (Decimal(nights) * 100 / Decimal(capacity)).quantize(CENT, rounding=ROUND_HALF_UP)


class ReportService:
    """Report service"""

    def __init__(self, db: Session):
        self.db = db

    # ============== Helpers ==============

    def _payments_of(self, booking_id: int) -> List[Payment]:
        return self.db.query(Payment).filter(
            Payment.booking_id == booking_id
        ).order_by(Payment.paid_date, Payment.id).all()

    def _paid_total(self, booking_id: int) -> Decimal:
        amounts = self.db.query(Payment.amount).filter(Payment.booking_id == booking_id).all()
        return sum((a for (a,) in amounts), ZERO)

    def _room_bookings(self, room_id: int, start: date, end: date) -> List[Booking]:
        """Bookings of a room overlapping [start, end), any status"""
        return self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.end_date > start,
            Booking.start_date < end,
        ).order_by(Booking.start_date, Booking.id).all()

    def _rollup_by_room_type(self, start: date, end: date,
                             night_statuses: Iterable[BookingStatus],
                             revenue_statuses: Iterable[BookingStatus]) -> List[dict]:
        """
        room type -> room -> booking fold over [start, end).

        Rooms are counted per type before looking at bookings, so rooms that
        were never booked still count toward capacity. Every room type is
        reported, including types with no rooms.
        """
        night_statuses = set(night_statuses)
        revenue_statuses = set(revenue_statuses)
        result = []

        for room_type in sorted(RoomType, key=lambda t: t.value):
            rooms = self.db.query(Room).filter(
                Room.room_type == room_type
            ).order_by(Room.room_number).all()

            type_nights = 0
            type_revenue = ZERO
            room_rows = []
            for room in rooms:
                room_nights = 0
                for booking in self._room_bookings(room.id, start, end):
                    if booking.status in night_statuses:
                        room_nights += booked_nights(booking.start_date, booking.end_date, start, end)
                    if booking.status in revenue_statuses:
                        type_revenue += self._paid_total(booking.id)
                type_nights += room_nights
                room_rows.append({
                    'room_id': room.id,
                    'room_number': room.room_number,
                    'booked_nights': room_nights,
                })

            result.append({
                'room_type': room_type,
                'num_rooms': len(rooms),
                'booked_nights': type_nights,
                'booked_revenue': type_revenue,
                'rooms': room_rows,
            })
        return result

    # ============== Member reports ==============

    def get_member_activity(self, member_id: int) -> Optional[dict]:
        """
        Bookings of a member (latest start first), each with its payments
        (oldest first), plus booking count and total paid.

        Returns None when the member does not exist.
        """
        member = self.db.query(Member).filter(Member.id == member_id).first()
        if member is None:
            logger.info(f"No such member: {member_id}")
            return None

        bookings = self.db.query(Booking).filter(
            Booking.member_id == member_id
        ).order_by(Booking.start_date.desc(), Booking.id.desc()).all()

        total_paid = ZERO
        entries = []
        for booking in bookings:
            payments = self._payments_of(booking.id)
            paid = sum((p.amount for p in payments), ZERO)
            total_paid += paid
            entries.append({
                'booking_id': booking.id,
                'room_id': booking.room_id,
                'room_number': booking.room.room_number,
                'start_date': booking.start_date,
                'end_date': booking.end_date,
                'status': booking.status,
                'paid': paid,
                'payments': [
                    {
                        'payment_id': p.id,
                        'amount': p.amount,
                        'paid_date': p.paid_date,
                        'method': p.method,
                    }
                    for p in payments
                ],
            })

        return {
            'member_id': member.id,
            'member_name': member.full_name,
            'bookings': entries,
            'total_bookings': len(entries),
            'total_paid': total_paid,
        }

    def get_member_lifetime_value(self, limit: Optional[int] = None) -> List[dict]:
        """
        Lifetime value per member, highest revenue first (ties: more bookings
        first, then lower member id).

        total_bookings counts every booking; total_revenue sums payments of
        bookings that are not CANCELLED; last_booking_date is the latest start.
        Members without bookings are included with zeros.
        """
        limit = settings.LTV_TOP_N if limit is None else limit

        stats: Dict[int, dict] = {}
        for member in self.db.query(Member).all():
            stats[member.id] = {
                'member_id': member.id,
                'member_name': member.full_name,
                'membership_level': member.membership_level.value,
                'member_status': member.status.value,
                'total_bookings': 0,
                'total_revenue': ZERO,
                'last_booking_date': None,
            }

        for booking in self.db.query(Booking).all():
            row = stats.get(booking.member_id)
            if row is None:
                continue
            row['total_bookings'] += 1
            if row['last_booking_date'] is None or booking.start_date > row['last_booking_date']:
                row['last_booking_date'] = booking.start_date
            if booking.status != BookingStatus.CANCELLED:
                row['total_revenue'] += self._paid_total(booking.id)

        ranked = sorted(
            stats.values(),
            key=lambda r: (-r['total_revenue'], -r['total_bookings'], r['member_id']),
        )
        return ranked[:limit] if limit >= 0 else ranked

    # ============== Occupancy reports ==============

    def get_occupancy_summary(self, period_start: date, period_end: date) -> dict:
        """
        Booked nights and occupancy per room type and room for
        [period_start, period_end). Every booking overlapping the period counts,
        whatever its status.
        """
        if period_end <= period_start:
            raise InvalidPeriod(period_start=period_start, period_end=period_end)

        period_days = (period_end - period_start).days
        every_status = list(BookingStatus)
        room_types = self._rollup_by_room_type(period_start, period_end, every_status, every_status)
        for row in room_types:
            row['occupancy_pct'] = occupancy_pct(row['booked_nights'], period_days, row['num_rooms'])

        return {
            'period_start': period_start,
            'period_end': period_end,
            'period_days': period_days,
            'room_types': room_types,
        }

    def get_forward_occupancy(self, window_days: Optional[int] = None,
                              today: Optional[date] = None) -> List[dict]:
        """
        Forward-looking occupancy per room type over [today, today + window_days).

        Room-nights count CONFIRMED/CHECKED_IN bookings only; booked revenue is
        every payment on a booking overlapping the window.
        """
        window_days = settings.FORWARD_WINDOW_DAYS if window_days is None else window_days
        today = today or date.today()
        if window_days <= 0:
            raise InvalidPeriod(period_start=today, window_days=window_days)
        window_end = today + timedelta(days=window_days)

        rows = self._rollup_by_room_type(today, window_end, BLOCKING_STATUSES, list(BookingStatus))
        return [
            {
                'room_type': row['room_type'],
                'num_rooms': row['num_rooms'],
                'booked_room_nights': row['booked_nights'],
                'occupancy_pct': occupancy_pct(row['booked_nights'], window_days, row['num_rooms']),
                'booked_revenue': row['booked_revenue'],
            }
            for row in rows
        ]
