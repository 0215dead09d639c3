"""
Pytest configuration and shared fixtures
"""
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roomledger.database import Base, get_db, make_engine
from roomledger.engine import IdentifierAllocator, RoomLockRegistry
from roomledger.main import app
from roomledger.models import ledger  # noqa: F401
from roomledger.models.ledger import (
    Member, MemberStatus, MembershipLevel, Room, RoomType,
)
from roomledger.services import BookingService, PaymentService, ReportService, AuditService


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = make_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Database session"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def allocator():
    return IdentifierAllocator()


@pytest.fixture
def room_locks():
    return RoomLockRegistry(timeout=2.0)


@pytest.fixture
def booking_service(db_session, allocator, room_locks):
    return BookingService(db_session, allocator, room_locks)


@pytest.fixture
def payment_service(db_session, allocator):
    return PaymentService(db_session, allocator)


@pytest.fixture
def audit_service(db_session, allocator):
    return AuditService(db_session, allocator)


@pytest.fixture
def report_service(db_session):
    return ReportService(db_session)


@pytest.fixture(scope="function")
def client(db_session, allocator, room_locks):
    """Test client bound to the in-memory session; lifespan is not run"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.allocator = allocator
    app.state.room_locks = room_locks
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


# ============== Entity fixtures ==============

@pytest.fixture
def member_1(db_session):
    """Active member 1"""
    member = Member(id=1, full_name="Ada Lovelace", email="ada@example.com",
                    membership_level=MembershipLevel.GOLD)
    db_session.add(member)
    db_session.commit()
    db_session.refresh(member)
    return member


@pytest.fixture
def member_2(db_session):
    """Active member 2"""
    member = Member(id=2, full_name="Grace Hopper", email="grace@example.com")
    db_session.add(member)
    db_session.commit()
    db_session.refresh(member)
    return member


@pytest.fixture
def inactive_member(db_session):
    member = Member(id=3, full_name="Alan Turing", email="alan@example.com",
                    status=MemberStatus.INACTIVE)
    db_session.add(member)
    db_session.commit()
    db_session.refresh(member)
    return member


@pytest.fixture
def room_101(db_session):
    """Standard room 101, capacity 2"""
    room = Room(id=101, room_number="101", room_type=RoomType.STANDARD,
                capacity=2, base_rate=Decimal("120.00"))
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def room_102(db_session):
    """Standard room 102, capacity 2"""
    room = Room(id=102, room_number="102", room_type=RoomType.STANDARD,
                capacity=2, base_rate=Decimal("120.00"))
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def suite_301(db_session):
    """Suite 301, capacity 4"""
    room = Room(id=301, room_number="301", room_type=RoomType.SUITE,
                capacity=4, base_rate=Decimal("450.00"))
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room
