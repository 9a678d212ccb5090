import threading
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

# Get DB connection string from the settings (environment variables).
DATABASE_URL = settings.database_url


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # Each in-memory connection is a separate database; share one.
        options["poolclass"] = StaticPool
    return options


# Create the SQLAlchemy engine.
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create a configured "Session" class for database interactions.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative ORM models.
Base = declarative_base()

# Serializes store access across the request thread pool.
store_lock = threading.Lock()


@contextmanager
def session_scope():
    """Open a DB session for one unit of work, holding the store lock.

    Every session shares the single in-memory connection, so nothing may
    touch it outside the lock. Call this from code that already runs on a
    worker thread (endpoint bodies), never from a dependency: a thread
    parked on the lock there would starve the holder of a worker.
    """
    with store_lock:
        db = SessionLocal()
        try:
            yield db
        finally:
            # Ensure the session is always closed, still under the lock.
            db.rollback()
            db.close()


def create_tables():
    Base.metadata.create_all(bind=engine)


def drop_tables():
    Base.metadata.drop_all(bind=engine)
