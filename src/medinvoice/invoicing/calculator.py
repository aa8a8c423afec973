"""
Invoice Cost Calculator for MedInvoice.

The server never trusts a client-supplied cost. It is derived from:

    base    = sum(quantity * transaction_price)
    fees    = base * fee.value / 100          (each fee, not compounded)
    gross   = base + sum(fees)
    subsidy = gross * subsidy.value / 100     (at most one)
    cost    = gross - subsidy
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol, Sequence

from medinvoice.core.constants import AMOUNT_LIMIT, ERROR_AMOUNT_OUT_OF_RANGE, ERROR_TOO_MANY_SUBSIDIES
from medinvoice.core.exceptions import InvoiceValidationError

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class PricedItem(Protocol):
    quantity: Decimal
    transaction_price: Decimal


class PercentageAdjustment(Protocol):
    id: int
    label: str
    value: float


@dataclass(slots=True, frozen=True)
class AdjustmentLine:
    """Amount an invoicing fee or subsidy contributes to an invoice."""

    id: int
    label: str
    value: Decimal
    amount: Decimal


@dataclass(slots=True)
class CostBreakdown:
    item_credits: list[Decimal] = field(default_factory=list)
    base: Decimal = Decimal(0)
    fees: list[AdjustmentLine] = field(default_factory=list)
    subsidies: list[AdjustmentLine] = field(default_factory=list)
    cost: Decimal = Decimal(0)

    @property
    def fee_total(self) -> Decimal:
        return sum((f.amount for f in self.fees), Decimal(0))

    @property
    def subsidy_total(self) -> Decimal:
        return sum((s.amount for s in self.subsidies), Decimal(0))

    @property
    def gross(self) -> Decimal:
        return self.base + self.fee_total


def _out_of_range(amount: Decimal) -> InvoiceValidationError:
    return InvoiceValidationError(
        f"Invoice amounts must stay below {AMOUNT_LIMIT:,}",
        code=ERROR_AMOUNT_OUT_OF_RANGE,
        errors=[{"field": "cost", "value": str(amount)}],
    )


def as_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert to Decimal through str so floats keep their printed value."""
    return value if isinstance(value, Decimal) else Decimal(str(value))


class CostCalculator:
    """Computes invoice costs with Decimal arithmetic."""

    def __init__(self, precision: int = 4, max_subsidies: int = 1):
        self.quantum = Decimal(1).scaleb(-precision)
        self.max_subsidies = max_subsidies

    def quantize(self, value: Decimal) -> Decimal:
        return value.quantize(self.quantum, rounding=ROUND_HALF_UP)

    def item_credit(self, item: PricedItem) -> Decimal:
        credit = as_decimal(item.quantity) * as_decimal(item.transaction_price)
        # checked before quantizing, the product may exceed the Decimal context
        if abs(credit) >= AMOUNT_LIMIT:
            raise _out_of_range(credit)
        return self.quantize(credit)

    def calculate(
        self,
        items: Sequence[PricedItem],
        fees: Sequence[PercentageAdjustment] = (),
        subsidies: Sequence[PercentageAdjustment] = (),
    ) -> CostBreakdown:
        """
        Compute the cost of an invoice.

        Args:
            items: Line items (quantity, transaction_price)
            fees: Invoicing fees applied to the base cost
            subsidies: Subsidies applied to the cost after fees

        Returns:
            CostBreakdown with per-line amounts and the final cost

        Raises:
            InvoiceValidationError: If more subsidies than allowed are given,
                or an amount does not fit the stored precision
        """
        if len(subsidies) > self.max_subsidies:
            raise InvoiceValidationError(
                f"An invoice supports at most {self.max_subsidies} subsidy, got {len(subsidies)}",
                code=ERROR_TOO_MANY_SUBSIDIES,
            )

        breakdown = CostBreakdown(item_credits=[self.item_credit(i) for i in items])
        breakdown.base = sum(breakdown.item_credits, Decimal(0))

        for fee in fees:
            value = as_decimal(fee.value)
            amount = self.quantize(breakdown.base * value / HUNDRED)
            breakdown.fees.append(AdjustmentLine(fee.id, fee.label, value, amount))

        gross = breakdown.gross
        for subsidy in subsidies:
            value = as_decimal(subsidy.value)
            amount = self.quantize(gross * value / HUNDRED)
            breakdown.subsidies.append(AdjustmentLine(subsidy.id, subsidy.label, value, amount))

        breakdown.cost = self.quantize(gross - breakdown.subsidy_total)
        self._check_range(breakdown)
        logger.debug(
            "Invoice cost: base=%s fees=%s subsidy=%s cost=%s",
            breakdown.base, breakdown.fee_total, breakdown.subsidy_total, breakdown.cost,
        )
        return breakdown

    @staticmethod
    def _check_range(breakdown: CostBreakdown) -> None:
        amounts = [
            *breakdown.item_credits,
            breakdown.base,
            *(f.amount for f in breakdown.fees),
            breakdown.gross,
            *(s.amount for s in breakdown.subsidies),
            breakdown.cost,
        ]
        for amount in amounts:
            if abs(amount) >= AMOUNT_LIMIT:
                raise _out_of_range(amount)
