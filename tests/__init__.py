#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests can be run with standard Python tools:

    # Run all tests
    python -m pytest tests/ -v

    # Run only tests that need no database
    python -m pytest tests/ -v -m "not db"

    # Using unittest
    python -m unittest discover tests -v

Database Setup:
    Repository, tracker, resolver and notifier tests run against an
    in-memory SQLite database built from Base.metadata, so no external
    service is required. SQLite supports the same ON CONFLICT upserts and
    conditional UPDATEs the production PostgreSQL schema relies on.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

TEST_DB_URL = "sqlite://"


def make_test_engine():
    """In-memory SQLite engine with all tables created.

    StaticPool keeps one connection alive so every session sees the same
    in-memory database.
    """
    from database.models import Base

    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    return engine


def make_test_session():
    """Session factory bound to a fresh in-memory database."""
    engine = make_test_engine()
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
