"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.dependencies import get_market_data_service, get_transaction_processor
from database import Base, get_db
from main import app
from services.account_ledger import AccountLedger
from services.holdings_store import HoldingsStore
from services.market_cache import SingleFlightCache
from services.market_data_service import MarketDataService
from services.transaction_log import TransactionLog
from services.transaction_processor import TransactionProcessor
from services.user_locks import UserLockRegistry
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    alice,
    bob,
    private_user,
)
from tests.fixtures.mocks import MockQuoteProvider, MockSeriesProvider


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
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
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="processor")
def processor_fixture():
    """A TransactionProcessor with a private lock registry."""
    return TransactionProcessor(
        AccountLedger(),
        HoldingsStore(),
        TransactionLog(),
        UserLockRegistry(),
        lock_timeout=1.0,
        max_attempts=3,
    )


@pytest.fixture(name="quote_provider")
def quote_provider_fixture():
    return MockQuoteProvider()


@pytest.fixture(name="series_provider")
def series_provider_fixture():
    return MockSeriesProvider()


@pytest.fixture(name="market_data_service")
def market_data_service_fixture(quote_provider, series_provider):
    return MarketDataService(
        quote_provider=quote_provider,
        series_provider=series_provider,
        cache=SingleFlightCache(ttl_seconds=60),
    )


@pytest.fixture(name="client")
def client_fixture(db, processor, market_data_service):
    """Create a test client with the test database and mocked providers."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transaction_processor] = lambda: processor
    app.dependency_overrides[get_market_data_service] = lambda: market_data_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
