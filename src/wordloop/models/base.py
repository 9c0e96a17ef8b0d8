"""Base model configuration."""
import time
from typing import Generator

from sqlalchemy import BigInteger, Column, create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from wordloop.config import settings

# Create SQLAlchemy engine
engine = create_engine(settings.database.url, echo=settings.database.echo)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign keys so scheduling state and logs follow their word."""
    if engine.dialect.name != "sqlite":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class TimestampMixin:
    """Mixin to add epoch-millisecond timestamp columns to models."""
    created_at = Column(BigInteger, default=now_ms, nullable=False)
    updated_at = Column(BigInteger, default=now_ms, onupdate=now_ms, nullable=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database."""
    Base.metadata.create_all(bind=engine)  # Create tables if they don't exist
