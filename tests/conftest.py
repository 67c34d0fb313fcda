"""Root-level pytest fixtures for all tests.

Provides:
- Process-wide env so importing the app never touches the user's data dir
- An in-memory SQLite session fixture
- Common courier response payloads
"""

import base64
import os
from collections.abc import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Fixed test key: 32 bytes, base64-encoded
TEST_CREDENTIAL_KEY = base64.b64encode(b"k" * 32).decode("ascii")


# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers and set required env vars.

    Runs before test modules are imported, so the engine in
    courier_bridge.db.connection is built against an in-memory database.
    """
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )
    os.environ["DATABASE_URL"] = "sqlite://"
    os.environ.setdefault("COURIER_BRIDGE_CREDENTIAL_KEY", TEST_CREDENTIAL_KEY)
    os.environ.pop("COURIER_BRIDGE_API_KEY", None)
    os.environ.pop("COURIER_BRIDGE_ALLOW_PRIVATE_HOSTS", None)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session with all tables created."""
    from courier_bridge.db.models import Base

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def tracking_response() -> dict:
    """A typical successful tracking payload."""
    return {
        "shipment": {
            "result": "success",
            "awb": "ABC123",
            "tracking": [
                {"status": "IN-TRANSIT", "location": "Mumbai", "date": "2024-03-01"},
                {"status": "PICKED-UP", "location": "Pune", "date": "2024-02-28"},
            ],
        }
    }
