"""
roomledger application entry point
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from roomledger import __version__
from roomledger.config import settings
from roomledger.database import SessionLocal, init_db
from roomledger.engine import IdentifierAllocator, RoomLockRegistry
from roomledger.exception_handler import setup_exception_handlers
from roomledger.routers import bookings, payments, reports

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, seed the identifier allocator and the room lock registry"""
    init_db()

    db = SessionLocal()
    try:
        app.state.allocator = IdentifierAllocator.from_session(db, ceiling=settings.ID_CEILING)
    finally:
        db.close()
    app.state.room_locks = RoomLockRegistry(timeout=settings.LOCK_TIMEOUT_SECONDS)
    logger.info(f"{settings.APP_NAME} started")

    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Member room reservation engine with payment ledger and audit trail",
        version=__version__,
        lifespan=lifespan,
    )
    setup_exception_handlers(app)

    app.include_router(bookings.router)
    app.include_router(payments.router)
    app.include_router(reports.router)

    @app.get("/health")
    def health_check():
        """Health check"""
        return {"status": "healthy"}

    return app


app = create_app()
