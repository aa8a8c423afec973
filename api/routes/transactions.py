"""
Transactions Router.

Deleting the transaction that records an invoice deletes the invoice.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_current_user, get_invoice_service
from medinvoice.core.constants import ERROR_NOT_FOUND
from medinvoice.core.exceptions import ResourceNotFoundError
from medinvoice.invoicing import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.delete("/transactions/{record_uuid}", status_code=201)
async def delete_transaction(
    record_uuid: str,
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    """Delete a posted transaction by the uuid of the record it posts."""
    try:
        deleted = service.delete_transaction(record_uuid)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail={"code": ERROR_NOT_FOUND, "description": str(e)}) from e
    return {"uuid": deleted, "deleted": True}
