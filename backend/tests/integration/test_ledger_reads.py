"""Integration tests for reading the payment ledger."""
import pytest
from httpx import AsyncClient

from studio_payments.models.booking import BookingStatus
from studio_payments.models.user import UserRole
from utils.factories import StripeEventFactory, encode_event, sign_payload


async def _pay(client: AsyncClient, secret: str, invoice_id: str, amount: int) -> dict:
    event = StripeEventFactory.payment_succeeded(amount=amount, invoice_id=invoice_id)
    payload = encode_event(event)
    response = await client.post(
        "/webhooks/stripe",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, secret), "Content-Type": "application/json"},
    )
    assert response.status_code == 200
    return event


@pytest.mark.asyncio
async def test_admin_lists_payment_events(
    async_client: AsyncClient,
    webhook_secret: str,
    make_user,
    make_invoice,
    auth_headers,
) -> None:
    """Test admins see recorded events with their settlement state."""
    admin = await make_user(role=UserRole.ADMIN)
    invoice = await make_invoice(total=50000)
    other_invoice = await make_invoice(total=24900)
    first = await _pay(async_client, webhook_secret, invoice.id, 20000)
    await _pay(async_client, webhook_secret, other_invoice.id, 24900)

    response = await async_client.get("/v1/payments", headers=auth_headers(admin.id, admin.email))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["page"] == 1
    assert body["pageSize"] == 100

    filtered = await async_client.get(
        "/v1/payments",
        params={"invoiceId": invoice.id},
        headers=auth_headers(admin.id, admin.email),
    )
    items = filtered.json()["items"]
    assert len(items) == 1
    assert items[0]["eventId"] == first["id"]
    assert items[0]["type"] == "payment_intent.succeeded"
    assert items[0]["amount"] == 20000
    assert items[0]["invoiceId"] == invoice.id
    assert items[0]["metadata"]["invoiceId"] == invoice.id
    assert items[0]["settlementStatus"] == "applied"


@pytest.mark.asyncio
async def test_admin_filters_by_settlement_status(
    async_client: AsyncClient,
    webhook_secret: str,
    make_user,
    make_invoice,
    auth_headers,
) -> None:
    """Test the settlementStatus filter."""
    admin = await make_user(role=UserRole.ADMIN)
    invoice = await make_invoice(total=50000)
    await _pay(async_client, webhook_secret, invoice.id, 50000)
    guest = StripeEventFactory.payment_succeeded(amount=24900)
    payload = encode_event(guest)
    await async_client.post(
        "/webhooks/stripe",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, webhook_secret)},
    )

    response = await async_client.get(
        "/v1/payments",
        params={"settlementStatus": "skipped"},
        headers=auth_headers(admin.id, admin.email),
    )

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["eventId"] for item in items] == [guest["id"]]


@pytest.mark.asyncio
async def test_admin_gets_event_by_id(
    async_client: AsyncClient,
    webhook_secret: str,
    make_user,
    make_invoice,
    auth_headers,
) -> None:
    """Test an event is addressable by its Stripe event id."""
    admin = await make_user(role=UserRole.ADMIN)
    invoice = await make_invoice(total=50000)
    event = await _pay(async_client, webhook_secret, invoice.id, 10000)

    response = await async_client.get(f"/v1/payments/{event['id']}", headers=auth_headers(admin.id, admin.email))

    assert response.status_code == 200
    body = response.json()
    assert body["paymentIntentId"] == event["data"]["object"]["id"]
    assert body["currency"] == "usd"
    assert body["settlementAttempts"] == 1

    missing = await async_client.get("/v1/payments/evt_missing", headers=auth_headers(admin.id, admin.email))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_client_cannot_list_payment_events(async_client: AsyncClient, make_user, auth_headers) -> None:
    """Test the payment ledger is admin only."""
    client = await make_user()

    response = await async_client.get("/v1/payments", headers=auth_headers(client.id, client.email))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_client_reads_own_invoice(
    async_client: AsyncClient,
    webhook_secret: str,
    make_user,
    make_invoice,
    auth_headers,
) -> None:
    """Test a client sees their own invoice with its settled payments."""
    client = await make_user()
    invoice = await make_invoice(total=50000, client_id=client.id)
    event = await _pay(async_client, webhook_secret, invoice.id, 20000)

    response = await async_client.get(f"/v1/invoices/{invoice.id}", headers=auth_headers(client.id, client.email))

    assert response.status_code == 200
    body = response.json()
    assert body["amountPaid"] == 20000
    assert body["balanceDue"] == 30000
    assert body["status"] == "partial"
    assert body["payment"]["status"] == "partial"

    with_payments = await async_client.get(
        f"/v1/invoices/{invoice.id}/payments",
        headers=auth_headers(client.id, client.email),
    )
    assert with_payments.status_code == 200
    assert [p["eventId"] for p in with_payments.json()["payments"]] == [event["id"]]


@pytest.mark.asyncio
async def test_client_cannot_read_another_clients_invoice(
    async_client: AsyncClient,
    make_user,
    make_invoice,
    auth_headers,
) -> None:
    """Test invoices are private to the client they bill."""
    owner = await make_user()
    stranger = await make_user()
    invoice = await make_invoice(client_id=owner.id)

    response = await async_client.get(
        f"/v1/invoices/{invoice.id}",
        headers=auth_headers(stranger.id, stranger.email),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_reads_any_invoice(async_client: AsyncClient, make_user, make_invoice, auth_headers) -> None:
    """Test admins can read invoices they do not own."""
    admin = await make_user(role=UserRole.ADMIN)
    invoice = await make_invoice(client_id="uid_someone")

    response = await async_client.get(f"/v1/invoices/{invoice.id}", headers=auth_headers(admin.id, admin.email))

    assert response.status_code == 200
    assert response.json()["invoiceNumber"] == invoice.invoice_number


@pytest.mark.asyncio
async def test_missing_invoice(async_client: AsyncClient, make_user, auth_headers) -> None:
    """Test an unknown invoice id is a 404."""
    admin = await make_user(role=UserRole.ADMIN)

    response = await async_client.get("/v1/invoices/inv_missing", headers=auth_headers(admin.id, admin.email))

    assert response.status_code == 404
    assert response.json()["details"][0]["code"] == "not_found"


@pytest.mark.asyncio
async def test_booking_payment_view(
    async_client: AsyncClient,
    webhook_secret: str,
    make_user,
    make_booking,
    make_invoice,
    auth_headers,
) -> None:
    """Test a client sees the booking confirmed by their deposit."""
    client = await make_user()
    booking = await make_booking(client_id=client.id, total=50000, deposit_amount=20000)
    invoice = await make_invoice(total=50000, client_id=client.id, booking_id=booking.id)
    await _pay(async_client, webhook_secret, invoice.id, 20000)

    response = await async_client.get(f"/v1/bookings/{booking.id}", headers=auth_headers(client.id, client.email))

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == BookingStatus.CONFIRMED.value
    assert body["payment"]["status"] == "deposit_paid"
    assert body["depositAmount"] == 20000


@pytest.mark.asyncio
async def test_booking_private_to_client(async_client: AsyncClient, make_user, make_booking, auth_headers) -> None:
    """Test bookings are private to their client."""
    owner = await make_user()
    stranger = await make_user()
    booking = await make_booking(client_id=owner.id)

    response = await async_client.get(
        f"/v1/bookings/{booking.id}",
        headers=auth_headers(stranger.id, stranger.email),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_ledger_reads_require_sign_in(async_client: AsyncClient, make_invoice) -> None:
    """Test ledger reads reject anonymous callers."""
    invoice = await make_invoice()

    response = await async_client.get(f"/v1/invoices/{invoice.id}")

    assert response.status_code == 401
