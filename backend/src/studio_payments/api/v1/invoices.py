"""Invoice endpoints for the client portal and admin views (read-only)."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payments.api.deps import get_db
from studio_payments.auth.rbac import get_current_account
from studio_payments.models.user import User
from studio_payments.schemas.invoice import Invoice, InvoiceWithPayments
from studio_payments.schemas.payment import PaymentEventResponse
from studio_payments.services.ledger_service import LedgerService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/{invoice_id}", response_model=Invoice, response_model_by_alias=True)
async def get_invoice(
    invoice_id: str,
    user: User = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
) -> Invoice:
    """
    Get invoice details by ID.

    Visible to the client it bills and to admins. Balance and status reflect
    settled payments only.
    """
    invoice = await LedgerService(db).get_invoice(invoice_id, user)
    return Invoice.model_validate(invoice)


@router.get("/{invoice_id}/payments", response_model=InvoiceWithPayments, response_model_by_alias=True)
async def get_invoice_payments(
    invoice_id: str,
    user: User = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
) -> InvoiceWithPayments:
    """Get an invoice together with the payment events recorded against it."""
    service = LedgerService(db)
    invoice = await service.get_invoice(invoice_id, user)
    events = await service.list_invoice_payments(invoice_id)

    response = InvoiceWithPayments.model_validate(invoice)
    response.payments = [PaymentEventResponse.model_validate(e) for e in events]
    return response
