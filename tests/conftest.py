"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration.
For standard test utilities, see tests/__init__.py
"""

import os

# database.database builds its engine at import time; keep tests off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring database (deselect with '-m \"not db\"')"
    )
