"""Reference Router: invoicing fees and subsidies."""

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_invoice_service
from medinvoice.invoicing import InvoiceService, InvoicingFee, Subsidy

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/invoicing_fees", response_model=list[InvoicingFee])
async def list_invoicing_fees(service: InvoiceService = Depends(get_invoice_service)) -> list[InvoicingFee]:
    return service.list_invoicing_fees()


@router.get("/subsidies", response_model=list[Subsidy])
async def list_subsidies(service: InvoiceService = Depends(get_invoice_service)) -> list[Subsidy]:
    return service.list_subsidies()
