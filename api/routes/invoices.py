"""
Invoices Router.

Endpoints for listing, reading and creating patient invoices.
"""

import logging
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import CurrentUser, get_current_user, get_invoice_service
from medinvoice.core.constants import ERROR_NOT_FOUND
from medinvoice.core.exceptions import InvoiceValidationError, ResourceNotFoundError
from medinvoice.invoicing import (
    Invoice,
    InvoiceCreated,
    InvoiceRequest,
    InvoiceSearch,
    InvoiceService,
    InvoiceSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/invoices", response_model=list[InvoiceSummary])
async def list_invoices(
    debtor_uuid: str | None = None,
    cost: Decimal | None = None,
    project_id: int | None = None,
    service_id: int | None = None,
    user_id: int | None = None,
    reference: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    description: str | None = None,
    limit: int | None = Query(None, gt=0),
    service: InvoiceService = Depends(get_invoice_service),
) -> list[InvoiceSummary]:
    """
    List invoices, optionally filtered.

    Every given filter must match (conjunctive search).
    """
    search = InvoiceSearch(
        debtor_uuid=debtor_uuid,
        cost=cost,
        project_id=project_id,
        service_id=service_id,
        user_id=user_id,
        reference=reference,
        date_from=date_from,
        date_to=date_to,
        description=description,
        limit=limit,
    )
    return service.list_invoices(search)


@router.get("/invoices/{invoice_uuid}", response_model=Invoice)
async def get_invoice(
    invoice_uuid: str,
    service: InvoiceService = Depends(get_invoice_service),
) -> Invoice:
    """Get a single invoice with its items."""
    try:
        return service.get_invoice(invoice_uuid)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail={"code": ERROR_NOT_FOUND, "description": str(e)}) from e


@router.post("/invoices", response_model=InvoiceCreated, status_code=201)
async def create_invoice(
    payload: InvoiceRequest,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceCreated:
    """
    Create a patient invoice.

    The cost is computed by the server and the invoice is attributed to the
    authenticated user.

    Args:
        payload: ``{"invoice": {...}}`` body
        user: Authenticated user
        service: Injected invoice service

    Returns:
        Identifier, reference and computed cost of the new invoice
    """
    try:
        return service.create_invoice(payload.invoice, user_id=user.id)
    except InvoiceValidationError as e:
        logger.warning("Invoice rejected: %s", e)
        raise HTTPException(
            status_code=400,
            detail={"code": e.code, "description": str(e), "errors": e.errors},
        ) from e
