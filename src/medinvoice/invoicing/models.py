"""
Invoice Models for MedInvoice.

Wire shapes for creating, reading and searching patient invoices.
Monetary input is parsed as Decimal; monetary output is rendered as JSON numbers.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from medinvoice.core.constants import AMOUNT_LIMIT
from medinvoice.core.identifiers import normalize_uuid

logger = logging.getLogger(__name__)


# =============================================================================
# Input Models
# =============================================================================


class InvoiceItemIn(BaseModel):
    """Line item as submitted by a client."""

    inventory_uuid: str
    quantity: Decimal = Field(..., gt=0, lt=AMOUNT_LIMIT)
    inventory_price: Decimal | None = Field(None, ge=0, lt=AMOUNT_LIMIT)
    transaction_price: Decimal = Field(..., ge=0, lt=AMOUNT_LIMIT)
    # accepted for compatibility, recomputed server-side
    credit: Decimal | None = None
    debit: Decimal | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("inventory_uuid")
    @classmethod
    def validate_inventory_uuid(cls, v: str) -> str:
        return normalize_uuid(v)


class InvoiceIn(BaseModel):
    """
    Invoice as submitted by a client.

    ``cost`` and ``user_id`` are not part of the model: the cost is computed
    by the server and the user is the authenticated one.
    """

    uuid: str | None = None
    debtor_uuid: str
    date: datetime
    description: str = Field(..., min_length=1)
    project_id: int | None = None
    service_id: int | None = None
    items: list[InvoiceItemIn] = Field(..., min_length=1)
    invoicing_fees: list[int] = Field(default_factory=list, alias="invoicingFees")
    subsidies: list[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("uuid", "debtor_uuid")
    @classmethod
    def validate_uuid(cls, v: str | None) -> str | None:
        return normalize_uuid(v) if v is not None else None

    @field_validator("date")
    @classmethod
    def naive_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must not be blank")
        return v.strip()

    @field_validator("invoicing_fees", "subsidies", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    @field_validator("invoicing_fees", "subsidies")
    @classmethod
    def no_duplicates(cls, v: list[int]) -> list[int]:
        duplicates = sorted({i for i in v if v.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate identifiers: {duplicates}")
        return v


class InvoiceRequest(BaseModel):
    """POST /invoices body."""

    invoice: InvoiceIn


class InvoiceSearch(BaseModel):
    """Conjunctive filters for the invoice listing."""

    debtor_uuid: str | None = None
    cost: Decimal | None = None
    project_id: int | None = None
    service_id: int | None = None
    user_id: int | None = None
    reference: str | None = None
    date_from: date_type | None = None
    date_to: date_type | None = None
    description: str | None = None
    limit: int | None = Field(None, gt=0)


# =============================================================================
# Output Models
# =============================================================================


class InvoiceItem(BaseModel):
    """Stored line item."""

    uuid: str
    inventory_uuid: str
    code: str
    text: str
    quantity: float
    inventory_price: float | None = None
    transaction_price: float
    credit: float
    debit: float = 0.0


class InvoiceFeeLine(BaseModel):
    invoicing_fee_id: int
    label: str
    value: float
    amount: float


class InvoiceSubsidyLine(BaseModel):
    subsidy_id: int
    label: str
    value: float
    amount: float


class InvoiceSummary(BaseModel):
    """Invoice listing row."""

    uuid: str
    reference: int
    reference_text: str
    project_id: int
    service_id: int | None = None
    service_name: str | None = None
    debtor_uuid: str
    debtor_name: str
    user_id: int
    display_name: str
    date: datetime
    description: str
    cost: float


class Invoice(InvoiceSummary):
    """Invoice with its line items, invoicing fees and subsidy."""

    project_name: str
    created_at: datetime
    items: list[InvoiceItem] = Field(default_factory=list)
    invoicing_fees: list[InvoiceFeeLine] = Field(default_factory=list)
    subsidies: list[InvoiceSubsidyLine] = Field(default_factory=list)


class InvoiceCreated(BaseModel):
    uuid: str
    reference_text: str
    cost: float


class InvoicingFee(BaseModel):
    id: int
    label: str
    description: str | None = None
    value: float = Field(..., description="Percentage of the invoice base cost")


class Subsidy(BaseModel):
    id: int
    label: str
    description: str | None = None
    value: float = Field(..., description="Percentage of the invoice cost absorbed")


# =============================================================================
# Accounting
# =============================================================================


@dataclass(slots=True, frozen=True)
class JournalLine:
    """One posting journal row of an invoice transaction."""

    uuid: str
    trans_id: str
    record_uuid: str
    role: str
    entity_uuid: str | None
    reference_id: str | None
    description: str
    debit: Decimal
    credit: Decimal
