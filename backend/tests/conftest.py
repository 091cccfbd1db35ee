"""Pytest configuration and fixtures for async testing."""
import os
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Callable, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import studio_payments.models  # noqa: F401  registers tables on Base.metadata
from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.api.deps import get_db, get_stripe_adapter
from studio_payments.auth.jwt import jwt_auth
from studio_payments.config import settings
from studio_payments.database import Base
from studio_payments.main import app
from studio_payments.models.booking import Booking
from studio_payments.models.invoice import Invoice
from studio_payments.models.user import User
from utils.factories import BookingFactory, InvoiceFactory, UserFactory

WEBHOOK_SECRET = "whsec_test_secret"


class _FakeCustomers:
    """``client.v1.customers`` honouring idempotency keys the way Stripe does."""

    def __init__(self) -> None:
        self.created: list[SimpleNamespace] = []
        self.calls: list[dict[str, Any]] = []
        self._by_idempotency_key: dict[str, SimpleNamespace] = {}
        self.error: Optional[Exception] = None

    async def create_async(self, params: dict[str, Any], options: Optional[dict[str, Any]] = None) -> SimpleNamespace:
        self.calls.append({"params": params, "options": options or {}})
        if self.error is not None:
            raise self.error

        key = (options or {}).get("idempotency_key")
        if key and key in self._by_idempotency_key:
            return self._by_idempotency_key[key]

        customer = SimpleNamespace(id=f"cus_{uuid4().hex[:14]}", email=params.get("email"), metadata=params.get("metadata"))
        self.created.append(customer)
        if key:
            self._by_idempotency_key[key] = customer
        return customer

    async def list_async(self, params: Optional[dict[str, Any]] = None) -> SimpleNamespace:
        limit = (params or {}).get("limit", 10)
        return SimpleNamespace(data=self.created[:limit])


class _FakePaymentIntents:
    """``client.v1.payment_intents`` recording the parameters it was called with."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.error: Optional[Exception] = None

    async def create_async(self, params: dict[str, Any], options: Optional[dict[str, Any]] = None) -> SimpleNamespace:
        self.calls.append(params)
        if self.error is not None:
            raise self.error

        intent_id = f"pi_{uuid4().hex[:24]}"
        return SimpleNamespace(
            id=intent_id,
            status="requires_payment_method",
            amount=params["amount"],
            currency=params["currency"],
            client_secret=f"{intent_id}_secret_{uuid4().hex[:16]}",
        )


class _FakeWebhookEndpoints:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def create_async(self, params: dict[str, Any], options: Optional[dict[str, Any]] = None) -> SimpleNamespace:
        self.calls.append(params)
        return SimpleNamespace(id=f"we_{uuid4().hex[:24]}", secret=f"whsec_{uuid4().hex}")


class FakeStripeClient:
    """Stand-in for ``stripe.StripeClient`` exposing the ``v1`` services the adapter uses."""

    def __init__(self) -> None:
        self.v1 = SimpleNamespace(
            customers=_FakeCustomers(),
            payment_intents=_FakePaymentIntents(),
            webhook_endpoints=_FakeWebhookEndpoints(),
        )


@pytest.fixture
def stripe_client() -> FakeStripeClient:
    """Fake Stripe client shared by the adapter and the test."""
    return FakeStripeClient()


@pytest.fixture
def stripe_adapter(stripe_client: FakeStripeClient) -> StripeAdapter:
    """Stripe adapter backed by the fake client."""
    return StripeAdapter(stripe_client)


@pytest.fixture
def webhook_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    """Configure a webhook signing secret for the test."""
    monkeypatch.setattr(settings, "stripe_webhook_secret", WEBHOOK_SECRET)
    return WEBHOOK_SECRET


@pytest.fixture
def no_webhook_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the webhook receiver in degraded mode."""
    monkeypatch.setattr(settings, "stripe_webhook_secret", None)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Engine over a fresh database per test.

    SQLite file by default; set TEST_DATABASE_URL to run against PostgreSQL.
    """
    url = os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/test.db")
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session for arranging and inspecting state.

    Yields:
        AsyncSession: Database session for testing
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def async_client(
    session_factory: async_sessionmaker,
    stripe_adapter: StripeAdapter,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client with the database and Stripe dependencies overridden.

    Each request gets its own session, as in production.

    Yields:
        AsyncClient: Async HTTP client for API testing
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_adapter] = lambda: stripe_adapter

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build a bearer header for a uid (and optional email)."""

    def _headers(uid: str, email: Optional[str] = None) -> dict[str, str]:
        token = jwt_auth.create_access_token(uid, email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Any]:
    """Persist a user built by ``UserFactory``."""

    async def _make(**overrides: Any) -> User:
        user = User(**UserFactory.create(overrides))
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_invoice(db_session: AsyncSession) -> Callable[..., Any]:
    """Persist an invoice built by ``InvoiceFactory``."""

    async def _make(**overrides: Any) -> Invoice:
        invoice = Invoice(**InvoiceFactory.create(overrides))
        db_session.add(invoice)
        await db_session.commit()
        return invoice

    return _make


@pytest_asyncio.fixture
async def make_booking(db_session: AsyncSession) -> Callable[..., Any]:
    """Persist a booking built by ``BookingFactory``."""

    async def _make(**overrides: Any) -> Booking:
        booking = Booking(**BookingFactory.create(overrides))
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _make


@pytest.fixture
def reload(db_session: AsyncSession) -> Callable[..., Any]:
    """Re-read a row from the database, bypassing the session's identity map."""

    async def _reload(model: type, key: str) -> Any:
        return await db_session.get(model, key, populate_existing=True)

    return _reload
