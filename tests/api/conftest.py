"""Pytest fixtures for API tests.

Provides test client, database session, and an injectable courier
transport for testing FastAPI endpoints without network I/O.
"""

from collections.abc import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from courier_bridge.api.main import app
from courier_bridge.api.routes.courier_proxy import get_transport
from courier_bridge.db.connection import get_db
from courier_bridge.db.models import Base, Client, Courier


@pytest.fixture
def test_db() -> Generator[Session, None, None]:
    """Create an in-memory SQLite database for testing.

    Creates all tables, yields a session, and cleans up after test.
    """
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


@pytest.fixture
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """Create a TestClient with overridden database dependency.

    Args:
        test_db: Test database session fixture.

    Yields:
        TestClient configured for testing.
    """

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def courier_api(client: TestClient) -> Callable[[Callable[[httpx.Request], httpx.Response]], list[httpx.Request]]:
    """Install a MockTransport for outbound courier calls.

    Usage:
        sent = courier_api(lambda request: httpx.Response(200, json={}))

    Returns:
        Installer returning the list that collects every outbound request.
    """

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> list[httpx.Request]:
        sent: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording)
        app.dependency_overrides[get_transport] = lambda: transport
        return sent

    return install


@pytest.fixture
def sample_courier(test_db: Session) -> Courier:
    """A registered bearer-auth courier."""
    courier = Courier(name="Blue Dart", auth_type="bearer", api_base_url="https://api.bluedart.example/track")
    test_db.add(courier)
    test_db.commit()
    test_db.refresh(courier)
    return courier


@pytest.fixture
def sample_client(test_db: Session) -> Client:
    client = Client(name="Acme Logistics", api_url="https://tms.acme.example")
    test_db.add(client)
    test_db.commit()
    test_db.refresh(client)
    return client
