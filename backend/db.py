# db.py
import os
from typing import Iterator

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import config  # noqa: F401  (loads .env before DATABASE_URL is read)


# Load DATABASE_URL from environment
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set in the environment (.env)")

if DATABASE_URL.startswith("sqlite"):
    # one shared connection so in-memory databases survive across sessions
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True)


def init_db() -> None:
    """
    Called on app startup to create tables if they don't exist.
    """
    # Import models here so SQLModel knows about them
    import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    with Session(engine) as db_session:
        yield db_session
