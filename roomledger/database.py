"""
Database configuration - SQLAlchemy persistence layer.
The store only persists rows; admission rules live in the services.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from roomledger.config import settings


def make_engine(url: str, **kwargs):
    """
    Create an engine.

    SQLite connections get a busy timeout, FK enforcement and (for file
    databases) WAL. pysqlite's own transaction handling is switched off and
    every transaction opens with BEGIN IMMEDIATE, so a booking's checks and
    its insert run under the database write lock even across processes.
    """
    if url.startswith("sqlite"):
        on_disk = make_url(url).database not in (None, "", ":memory:")
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.LOCK_TIMEOUT_SECONDS},
            **kwargs,
        )

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if on_disk:
                # WAL lets report readers run while a booking transaction holds the write lock
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency: yield a database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables"""
    from roomledger.models import ledger  # noqa
    Base.metadata.create_all(bind=bind or engine)
