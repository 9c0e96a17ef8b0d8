"""Test configuration."""
import os
from typing import Generator

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy.orm import Session

# Import after environment setup
from wordloop.models.base import Base, SessionLocal, engine
from wordloop.models import models  # noqa: F401  registers the tables


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database and session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
