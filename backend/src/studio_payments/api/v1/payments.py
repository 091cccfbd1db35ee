"""Payment endpoints: opening payment intents and reading the payment ledger."""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.api.deps import get_db, get_optional_user, get_stripe_adapter
from studio_payments.auth.rbac import require_admin
from studio_payments.config import settings
from studio_payments.exceptions import NotFoundError
from studio_payments.models.payment_event import SettlementStatus
from studio_payments.models.user import User
from studio_payments.schemas.payment import (
    ChargeRequest,
    ChargeResponse,
    PaymentEventList,
    PaymentEventResponse,
    PaymentsConfigResponse,
)
from studio_payments.services.charge_service import CallerIdentity, ChargeService
from studio_payments.services.ledger_service import LedgerService
from studio_payments.services.settlement_service import SettlementOutcome, SettlementService
from studio_payments.utils.audit import log_audit

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/intents",
    response_model=ChargeResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_intent(
    charge: ChargeRequest,
    caller: Optional[CallerIdentity] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
) -> ChargeResponse:
    """
    Open a payment intent for the client payment widget.

    Works for guests and signed-in clients. Signed-in clients get a saved
    Stripe customer so the card can be reused. Payment status is never
    written here; it is set when Stripe confirms the payment by webhook.

    - **amount**: Amount in cents
    - **currency**: ISO currency code (default usd)
    - **invoiceId**: Invoice this payment settles
    - **email**: Receipt email for guest checkouts
    """
    service = ChargeService(db, stripe_adapter)

    client_secret = await service.create_charge(
        amount=charge.amount,
        currency=charge.currency,
        invoice_id=charge.invoice_id,
        caller=caller,
        guest_email=charge.email,
    )
    await db.commit()

    return ChargeResponse(client_secret=client_secret)


@router.get("/config", response_model=PaymentsConfigResponse, response_model_by_alias=True)
async def get_payments_config() -> PaymentsConfigResponse:
    """Publishable key for the client payment widget."""
    return PaymentsConfigResponse(publishable_key=settings.stripe_publishable_key)


@router.get("", response_model=PaymentEventList, response_model_by_alias=True)
async def list_payment_events(
    invoice_id: Optional[str] = Query(None, alias="invoiceId", description="Filter by invoice ID"),
    settlement_status: Optional[SettlementStatus] = Query(
        None, alias="settlementStatus", description="Filter by settlement status"
    ),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(100, ge=1, le=1000, alias="pageSize", description="Results per page"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentEventList:
    """
    List processed payment events, newest first (admin only).

    - **invoiceId**: Filter by invoice
    - **settlementStatus**: pending, applied, skipped or failed
    """
    service = LedgerService(db)
    events, total = await service.list_events(
        page=page,
        page_size=page_size,
        invoice_id=invoice_id,
        settlement_status=settlement_status,
    )

    return PaymentEventList(
        items=[PaymentEventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{event_id}", response_model=PaymentEventResponse, response_model_by_alias=True)
async def get_payment_event(
    event_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentEventResponse:
    """Get a processed payment event by its Stripe event id (admin only)."""
    event = await LedgerService(db).get_event(event_id)
    return PaymentEventResponse.model_validate(event)


@router.post("/{event_id}/settle", response_model=PaymentEventResponse, response_model_by_alias=True)
async def retry_settlement(
    event_id: str,
    request: Request,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentEventResponse:
    """
    Settle a recorded event again after a failure (admin only).

    An event that is already applied is returned unchanged.
    """
    settlement = SettlementService(db)

    try:
        outcome = await settlement.settle_event(event_id)
        if outcome == SettlementOutcome.EVENT_NOT_FOUND:
            raise NotFoundError(f"Payment event {event_id} not found")

        await log_audit(
            db,
            entity_type="payment",
            entity_id=event_id,
            action="retry_settlement",
            user_id=admin.id,
            changes={"outcome": outcome.value},
            request_id=getattr(request.state, "request_id", None),
        )
        await db.commit()
    except NotFoundError:
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("settlement_retry_failed", event_id=event_id, error=str(e))
        await settlement.record_failure(event_id, str(e))
        await db.commit()
        raise

    logger.info("settlement_retried", event_id=event_id, outcome=outcome.value, admin_id=admin.id)

    event = await LedgerService(db).get_event(event_id)
    return PaymentEventResponse.model_validate(event)
