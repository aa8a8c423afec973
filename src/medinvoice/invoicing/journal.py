"""Posting journal lines for invoice transactions."""

import logging
from decimal import Decimal

from medinvoice.core.constants import (
    JOURNAL_ROLE_DEBTOR,
    JOURNAL_ROLE_FEE,
    JOURNAL_ROLE_ITEM,
    JOURNAL_ROLE_SUBSIDY,
)
from medinvoice.core.exceptions import JournalBalanceError
from medinvoice.core.identifiers import generate_uuid
from medinvoice.invoicing.calculator import CostBreakdown
from medinvoice.invoicing.models import InvoiceIn, JournalLine

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


def build_journal(
    invoice_uuid: str,
    invoice: InvoiceIn,
    breakdown: CostBreakdown,
    trans_id: str,
) -> list[JournalLine]:
    """
    Build the balanced transaction recording an invoice.

    The debtor is debited the final cost, each item and invoicing fee is
    credited and the subsidy amount is debited to the subsidy.

    Raises:
        JournalBalanceError: If debits and credits differ
    """

    def line(role, entity_uuid, reference_id, description, debit=ZERO, credit=ZERO):
        return JournalLine(
            uuid=generate_uuid(),
            trans_id=trans_id,
            record_uuid=invoice_uuid,
            role=role,
            entity_uuid=entity_uuid,
            reference_id=reference_id,
            description=description,
            debit=debit,
            credit=credit,
        )

    lines = [line(JOURNAL_ROLE_DEBTOR, invoice.debtor_uuid, None, invoice.description, debit=breakdown.cost)]

    for item, credit in zip(invoice.items, breakdown.item_credits):
        lines.append(line(JOURNAL_ROLE_ITEM, None, item.inventory_uuid, invoice.description, credit=credit))

    for fee in breakdown.fees:
        lines.append(line(JOURNAL_ROLE_FEE, None, str(fee.id), fee.label, credit=fee.amount))

    for subsidy in breakdown.subsidies:
        lines.append(line(JOURNAL_ROLE_SUBSIDY, None, str(subsidy.id), subsidy.label, debit=subsidy.amount))

    check_balance(lines)
    return lines


def check_balance(lines: list[JournalLine]) -> None:
    debits = sum((l.debit for l in lines), ZERO)
    credits = sum((l.credit for l in lines), ZERO)
    if debits != credits:
        raise JournalBalanceError(f"Transaction {lines[0].trans_id} does not balance: debits={debits} credits={credits}")
