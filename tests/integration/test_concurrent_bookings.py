"""
Concurrent admission against a file-backed database

Each worker has its own session; the identifier allocator and the room lock
registry are shared, as they are across request handlers in the app.
"""
import threading
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from roomledger.database import Base, make_engine
from roomledger.engine import IdentifierAllocator, RoomLockRegistry
from roomledger.errors import RoomUnavailable
from roomledger.models.ledger import Booking, BookingAudit, Member, Room, RoomType
from roomledger.services import BookingService, PaymentService

WORKERS = 8


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def session_factory(db_url):
    engine = make_engine(db_url)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with factory() as db:
        for i in range(1, WORKERS + 1):
            db.add(Member(id=i, full_name=f"Member {i}", email=f"m{i}@example.com"))
        for i in range(WORKERS):
            db.add(Room(id=101 + i, room_number=str(101 + i), room_type=RoomType.STANDARD,
                        capacity=2, base_rate=Decimal("100.00")))
        db.commit()

    yield factory
    engine.dispose()


def _run_workers(target):
    barrier = threading.Barrier(WORKERS)
    results = []
    results_lock = threading.Lock()

    def worker(index):
        barrier.wait()
        outcome = target(index)
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(WORKERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


class TestConcurrentAdmission:

    def test_only_one_overlapping_booking_wins(self, session_factory):
        allocator = IdentifierAllocator()
        locks = RoomLockRegistry(timeout=10.0)

        def attempt(index):
            with session_factory() as db:
                service = BookingService(db, allocator, locks)
                try:
                    # staggered ranges that all share the night of 2025-09-12
                    return service.create_booking(
                        index + 1, 101, date(2025, 9, 10 + index % 3), date(2025, 9, 13 + index % 2)
                    )
                except RoomUnavailable as e:
                    return e

        results = _run_workers(attempt)
        created = [r for r in results if isinstance(r, int)]
        rejected = [r for r in results if isinstance(r, RoomUnavailable)]
        assert len(created) == 1
        assert len(rejected) == WORKERS - 1

        with session_factory() as db:
            assert db.query(Booking).filter(Booking.room_id == 101).count() == 1
            assert db.query(BookingAudit).count() == 1

    def test_different_rooms_all_admitted(self, session_factory):
        allocator = IdentifierAllocator()
        locks = RoomLockRegistry(timeout=10.0)

        def attempt(index):
            with session_factory() as db:
                return BookingService(db, allocator, locks).create_booking(
                    index + 1, 101 + index, date(2025, 9, 10), date(2025, 9, 12)
                )

        ids = _run_workers(attempt)
        assert len(set(ids)) == WORKERS

        with session_factory() as db:
            assert db.query(Booking).count() == WORKERS

    def test_payment_ids_never_collide_with_bookings(self, session_factory):
        allocator = IdentifierAllocator()
        locks = RoomLockRegistry(timeout=10.0)

        def attempt(index):
            with session_factory() as db:
                booking_id = BookingService(db, allocator, locks).create_booking(
                    index + 1, 101 + index, date(2025, 9, 10), date(2025, 9, 12)
                )
                payment_id = PaymentService(db, allocator).add_payment(booking_id, Decimal("10.00"))
                return booking_id, payment_id

        pairs = _run_workers(attempt)
        issued = [i for pair in pairs for i in pair]
        assert len(set(issued)) == len(issued)

        with session_factory() as db:
            seeded = IdentifierAllocator.from_session(db)
            assert seeded.next() > max(issued)


class TestSeparateProcesses:
    """Two lock registries on one database file, as with two worker processes"""

    def test_write_lock_spans_check_and_insert(self, db_url, session_factory):
        other_engine = make_engine(db_url)
        other_factory = sessionmaker(autocommit=False, autoflush=False, bind=other_engine)
        outcome = {}

        def worker_a():
            with other_factory() as db:
                service = BookingService(db, IdentifierAllocator(start=0), RoomLockRegistry(timeout=10.0))
                try:
                    outcome['a'] = service.create_booking(1, 101, date(2025, 9, 10), date(2025, 9, 12))
                except RoomUnavailable as e:
                    outcome['a'] = e

        thread_a = threading.Thread(target=worker_a)

        with session_factory() as db:
            service_b = BookingService(db, IdentifierAllocator(start=1000), RoomLockRegistry(timeout=10.0))
            real_check = service_b._check_free

            def check_then_race(*args, **kwargs):
                real_check(*args, **kwargs)
                # A starts its own admission between B's check and B's insert
                thread_a.start()
                thread_a.join(0.5)
                outcome['a_waited'] = thread_a.is_alive()

            with patch.object(service_b, "_check_free", side_effect=check_then_race):
                b_id = service_b.create_booking(2, 101, date(2025, 9, 11), date(2025, 9, 13))

        thread_a.join()
        other_engine.dispose()

        assert outcome['a_waited'] is True
        assert isinstance(outcome['a'], RoomUnavailable)
        assert outcome['a'].context["conflicting"] == str(b_id)
        with session_factory() as db:
            assert db.query(Booking).filter(Booking.room_id == 101).count() == 1
