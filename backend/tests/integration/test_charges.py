"""Integration tests for opening payment intents."""
import pytest
import stripe
from httpx import AsyncClient
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.config import settings
from studio_payments.exceptions import InvalidArgumentError
from studio_payments.models.user import User
from studio_payments.services.charge_service import CallerIdentity, ChargeService


@pytest.mark.asyncio
async def test_guest_charge_returns_client_secret(async_client: AsyncClient, stripe_client) -> None:
    """Test a guest deposit of 24900 usd opens an intent without a customer."""
    response = await async_client.post(
        "/v1/payments/intents",
        json={"amount": 24900, "currency": "usd", "email": "guest.client@example.com"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["clientSecret"]
    assert set(body) == {"clientSecret"}

    params = stripe_client.v1.payment_intents.calls[0]
    assert params["amount"] == 24900
    assert params["currency"] == "usd"
    assert params["automatic_payment_methods"] == {"enabled": True}
    assert "customer" not in params
    assert "setup_future_usage" not in params
    assert params["metadata"] == {
        "userId": "guest",
        "invoiceId": "unknown",
        "email": "guest.client@example.com",
    }
    assert stripe_client.v1.customers.calls == []


@pytest.mark.asyncio
async def test_guest_without_email_uses_fallback(async_client: AsyncClient, stripe_client) -> None:
    """Test the configured fallback email is used when nobody supplies one."""
    response = await async_client.post("/v1/payments/intents", json={"amount": 5000})

    assert response.status_code == 201
    params = stripe_client.v1.payment_intents.calls[0]
    assert params["metadata"]["email"] == settings.guest_fallback_email
    assert params["currency"] == "usd"


@pytest.mark.asyncio
async def test_currency_is_lowercased(async_client: AsyncClient, stripe_client) -> None:
    """Test currency codes are sent to Stripe in lower case."""
    response = await async_client.post("/v1/payments/intents", json={"amount": 5000, "currency": "EUR"})

    assert response.status_code == 201
    assert stripe_client.v1.payment_intents.calls[0]["currency"] == "eur"


@pytest.mark.asyncio
async def test_authenticated_charge_creates_customer_once(
    async_client: AsyncClient,
    db_session: AsyncSession,
    stripe_client,
    auth_headers,
    reload,
) -> None:
    """Test the first signed-in charge creates one customer and later charges reuse it."""
    headers = auth_headers("uid_client_1", "client1@example.com")

    first = await async_client.post(
        "/v1/payments/intents",
        json={"amount": 30000, "invoiceId": "inv_123", "email": "ignored@example.com"},
        headers=headers,
    )
    second = await async_client.post("/v1/payments/intents", json={"amount": 20000}, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 201
    assert len(stripe_client.v1.customers.created) == 1

    customer_id = stripe_client.v1.customers.created[0].id
    user = await reload(User, "uid_client_1")
    assert user is not None
    assert user.stripe_customer_id == customer_id
    assert user.email == "client1@example.com"

    first_params, second_params = stripe_client.v1.payment_intents.calls
    assert first_params["customer"] == customer_id
    assert first_params["setup_future_usage"] == "off_session"
    assert second_params["customer"] == customer_id
    # Token identity wins over the email in the request body
    assert first_params["metadata"] == {
        "userId": "uid_client_1",
        "invoiceId": "inv_123",
        "email": "client1@example.com",
    }

    customer_call = stripe_client.v1.customers.calls[0]
    assert customer_call["params"]["metadata"] == {"portalUid": "uid_client_1"}
    assert customer_call["options"]["idempotency_key"] == "customer-uid_client_1"


@pytest.mark.asyncio
async def test_existing_customer_reference_is_reused(
    async_client: AsyncClient,
    stripe_client,
    make_user,
    auth_headers,
) -> None:
    """Test a stored customer reference is used without calling Stripe customers."""
    user = await make_user(stripe_customer_id="cus_existing123")

    response = await async_client.post(
        "/v1/payments/intents",
        json={"amount": 10000},
        headers=auth_headers(user.id, user.email),
    )

    assert response.status_code == 201
    assert stripe_client.v1.customers.calls == []
    assert stripe_client.v1.payment_intents.calls[0]["customer"] == "cus_existing123"


@pytest.mark.asyncio
async def test_lost_customer_race_adopts_stored_reference(
    db_session: AsyncSession,
    stripe_adapter: StripeAdapter,
    stripe_client,
    make_user,
    session_factory,
) -> None:
    """Test a request that loses the customer write race uses the winner's reference."""
    user = await make_user()

    async with session_factory() as racing_session:
        service = ChargeService(racing_session, stripe_adapter)

        original_create = stripe_client.v1.customers.create_async

        async def create_while_another_request_wins(params, options=None):
            # The winner's reference lands between our read and our conditional write
            await racing_session.execute(
                update(User).where(User.id == user.id).values(stripe_customer_id="cus_winner")
            )
            return await original_create(params, options)

        stripe_client.v1.customers.create_async = create_while_another_request_wins

        customer_id = await service.get_or_create_customer(user.id, user.email)
        await racing_session.commit()

    assert customer_id == "cus_winner"

    count = await db_session.execute(
        select(func.count()).select_from(User).where(User.stripe_customer_id.is_not(None))
    )
    assert count.scalar() == 1


@pytest.mark.asyncio
async def test_fractional_amount_is_rounded(async_client: AsyncClient, stripe_client) -> None:
    """Test fractional cents are rounded before reaching Stripe."""
    response = await async_client.post("/v1/payments/intents", json={"amount": 24900.5})

    assert response.status_code == 201
    assert stripe_client.v1.payment_intents.calls[0]["amount"] == 24901


@pytest.mark.asyncio
async def test_amount_rounding_to_zero_is_invalid(db_session: AsyncSession, stripe_adapter: StripeAdapter) -> None:
    """Test an amount below half a cent is rejected after rounding."""
    service = ChargeService(db_session, stripe_adapter)

    with pytest.raises(InvalidArgumentError):
        await service.create_charge(amount=0.4)


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -100])
async def test_non_positive_amount_rejected(async_client: AsyncClient, stripe_client, amount: int) -> None:
    """Test zero and negative amounts never reach Stripe."""
    response = await async_client.post("/v1/payments/intents", json={"amount": amount})

    assert response.status_code == 422
    assert stripe_client.v1.payment_intents.calls == []


@pytest.mark.asyncio
async def test_missing_secret_key_is_configuration_error(async_client: AsyncClient) -> None:
    """Test charges fail with a configuration error when Stripe is not configured."""
    from studio_payments.api.deps import get_stripe_adapter
    from studio_payments.main import app

    app.dependency_overrides[get_stripe_adapter] = lambda: StripeAdapter(None)

    response = await async_client.post("/v1/payments/intents", json={"amount": 24900})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "ConfigurationError"
    assert body["details"][0]["code"] == "configuration_error"


@pytest.mark.asyncio
async def test_stripe_rejection_is_relayed(async_client: AsyncClient, stripe_client) -> None:
    """Test Stripe's error message is passed back as an internal error."""
    stripe_client.v1.payment_intents.error = stripe.InvalidRequestError(
        "Amount must be at least $0.50 usd", "amount"
    )

    response = await async_client.post("/v1/payments/intents", json={"amount": 10})

    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "Amount must be at least $0.50 usd"
    assert body["details"][0]["code"] == "internal"


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(async_client: AsyncClient, stripe_client) -> None:
    """Test a bad bearer token is not silently treated as a guest."""
    response = await async_client.post(
        "/v1/payments/intents",
        json={"amount": 24900},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    assert response.json()["details"][0]["code"] == "unauthenticated"
    assert stripe_client.v1.payment_intents.calls == []


@pytest.mark.asyncio
async def test_payments_config_returns_publishable_key(async_client: AsyncClient, monkeypatch) -> None:
    """Test the widget configuration exposes only the publishable key."""
    monkeypatch.setattr(settings, "stripe_publishable_key", "pk_test_123")

    response = await async_client.get("/v1/payments/config")

    assert response.status_code == 200
    assert response.json() == {"publishableKey": "pk_test_123"}


@pytest.mark.asyncio
async def test_caller_identity_precedence(db_session: AsyncSession, stripe_adapter: StripeAdapter, stripe_client) -> None:
    """Test a caller without a token email falls back to the request email."""
    service = ChargeService(db_session, stripe_adapter)

    await service.create_charge(
        amount=1500,
        caller=CallerIdentity(uid="uid_no_email"),
        guest_email="typed@example.com",
    )
    await db_session.commit()

    params = stripe_client.v1.payment_intents.calls[0]
    assert params["metadata"]["userId"] == "uid_no_email"
    assert params["metadata"]["email"] == "typed@example.com"


@pytest.mark.asyncio
async def test_rejected_intent_keeps_customer_reference(
    async_client: AsyncClient,
    stripe_client,
    auth_headers,
    reload,
) -> None:
    """Test a first checkout rejected by Stripe still stores the customer it created."""
    stripe_client.v1.payment_intents.error = stripe.InvalidRequestError("Your card was declined.", "amount")
    headers = auth_headers("uid_first_checkout", "first@example.com")

    response = await async_client.post("/v1/payments/intents", json={"amount": 24900}, headers=headers)

    assert response.status_code == 500
    assert len(stripe_client.v1.customers.created) == 1

    user = await reload(User, "uid_first_checkout")
    assert user is not None
    assert user.stripe_customer_id == stripe_client.v1.customers.created[0].id

    # The next attempt reuses the stored customer instead of creating another
    stripe_client.v1.payment_intents.error = None
    retry = await async_client.post("/v1/payments/intents", json={"amount": 24900}, headers=headers)

    assert retry.status_code == 201
    assert len(stripe_client.v1.customers.calls) == 1
    assert stripe_client.v1.payment_intents.calls[-1]["customer"] == user.stripe_customer_id


@pytest.mark.asyncio
@pytest.mark.parametrize("literal", [b"Infinity", b"-Infinity", b"NaN"])
async def test_non_finite_amount_rejected(async_client: AsyncClient, stripe_client, literal: bytes) -> None:
    """Test non-finite JSON numbers are validation errors, not server errors."""
    response = await async_client.post(
        "/v1/payments/intents",
        content=b'{"amount": ' + literal + b"}",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert response.json()["details"][0]["code"] == "invalid_amount"
    assert stripe_client.v1.payment_intents.calls == []


@pytest.mark.asyncio
async def test_non_finite_amount_rejected_by_service(db_session: AsyncSession, stripe_adapter: StripeAdapter) -> None:
    """Test the service refuses an infinite amount passed around the request schema."""
    service = ChargeService(db_session, stripe_adapter)

    with pytest.raises(InvalidArgumentError):
        await service.create_charge(amount=float("inf"))
