"""
Invoicing module for MedInvoice.

Patient invoice models, cost calculation, posting journal and service layer.
"""

from medinvoice.invoicing.calculator import AdjustmentLine, CostBreakdown, CostCalculator
from medinvoice.invoicing.journal import build_journal, check_balance
from medinvoice.invoicing.models import (
    Invoice,
    InvoiceCreated,
    InvoiceIn,
    InvoiceItem,
    InvoiceItemIn,
    InvoiceRequest,
    InvoiceSearch,
    InvoiceSummary,
    InvoicingFee,
    JournalLine,
    Subsidy,
)
from medinvoice.invoicing.service import InvoiceService, format_reference
from medinvoice.invoicing.seed import seed_database

__all__ = [
    # Models
    "Invoice",
    "InvoiceCreated",
    "InvoiceIn",
    "InvoiceItem",
    "InvoiceItemIn",
    "InvoiceRequest",
    "InvoiceSearch",
    "InvoiceSummary",
    "InvoicingFee",
    "JournalLine",
    "Subsidy",
    # Calculation
    "AdjustmentLine",
    "CostBreakdown",
    "CostCalculator",
    # Journal
    "build_journal",
    "check_balance",
    # Service
    "InvoiceService",
    "format_reference",
    "seed_database",
]
