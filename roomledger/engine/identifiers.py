"""
roomledger/engine/identifiers.py

Identifier allocator - one integer sequence shared by bookings, payments and
audit records.
"""
from typing import Optional
import logging
import threading

from sqlalchemy import func
from sqlalchemy.orm import Session

from roomledger.errors import ExhaustedError

logger = logging.getLogger(__name__)


class IdentifierAllocator:
    """
    Monotonic identifier allocator.

    Every call to ``next()`` returns a value strictly greater than any value
    returned before, including to other threads. Values consumed by a rolled
    back transaction are not reused, so gaps are expected.

    Example:
        >>> allocator = IdentifierAllocator()
        >>> allocator.next()
        1
        >>> allocator.next()
        2

    Thread Safety:
        ``next()`` holds a private lock only for the increment.
    """

    def __init__(self, start: int = 0, ceiling: int = 2 ** 63 - 1):
        """
        Args:
            start: Last value considered issued; the first ``next()`` returns start + 1.
            ceiling: Highest value that may be issued.
        """
        if start < 0:
            raise ValueError("start must be >= 0")
        self._last = start
        self._ceiling = ceiling
        self._lock = threading.Lock()

    @classmethod
    def from_session(cls, db: Session, ceiling: int = 2 ** 63 - 1) -> "IdentifierAllocator":
        """Seed the counter above the highest id already stored in the ledger tables."""
        from roomledger.models.ledger import Booking, BookingAudit, Payment

        high = 0
        for model in (Booking, Payment, BookingAudit):
            value = db.query(func.max(model.id)).scalar()
            if value is not None and value > high:
                high = value
        logger.info(f"IdentifierAllocator seeded at {high}")
        return cls(start=high, ceiling=ceiling)

    def next(self) -> int:
        with self._lock:
            if self._last >= self._ceiling:
                logger.critical(f"Identifier space exhausted at {self._last}")
                raise ExhaustedError(ceiling=self._ceiling)
            self._last += 1
            return self._last

    def peek(self) -> Optional[int]:
        """Highest value considered issued, or None on a fresh sequence."""
        with self._lock:
            return self._last or None
