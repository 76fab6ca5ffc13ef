# database.py
# This file configures the in-memory SQLite database behind the record store.

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# In-memory database: nothing survives a process restart
DATABASE_URL = "sqlite://"

# Base class for the ORM models
Base = declarative_base()


def create_memory_engine():
    """
    Create a fresh in-memory engine.
    StaticPool keeps a single connection, otherwise every new
    connection would open its own empty database.
    """
    return create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def create_session_factory(engine):
    """Create all tables on `engine` and return a session factory bound to it."""
    Base.metadata.create_all(bind=engine)
    # Objects stay readable after the session closes
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
