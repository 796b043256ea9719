"""
Pytest configuration and fixtures for flixstatus tests.
"""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from flixstatus.db import Base, get_db
from flixstatus.deps import get_http_client


@pytest.fixture
def session():
    """In-memory SQLite session shared across the threadpool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db = Session()

    yield db

    db.close()
    engine.dispose()


@pytest.fixture
def app(session):
    """Fresh app with the DB dependency pointed at the test session."""
    from flixstatus.main import create_app

    app = create_app()
    app.dependency_overrides[get_db] = lambda: session
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def route_outbound(app):
    """Route the app's outbound httpx calls through a MockTransport handler."""

    def _install(handler):
        async def _client():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
                yield c

        app.dependency_overrides[get_http_client] = _client

    return _install


class FakeClock:
    """Manual millisecond clock for the rate limiter."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()
