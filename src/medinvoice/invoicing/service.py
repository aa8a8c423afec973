"""
Invoice Service for MedInvoice.

Creates, reads, searches and deletes patient invoices on top of the store.
"""

import logging
import re
from datetime import datetime
from typing import Any

from medinvoice.core.config import Settings, get_settings
from medinvoice.core.constants import (
    ERROR_AMOUNT_OUT_OF_RANGE,
    ERROR_DUPLICATE_RECORD,
    ERROR_TOO_MANY_SUBSIDIES,
    ERROR_UNKNOWN_REFERENCE,
    INVOICE_REFERENCE_PREFIX,
)
from medinvoice.core.exceptions import InvoiceValidationError, ResourceNotFoundError
from medinvoice.core.identifiers import generate_uuid, normalize_uuid
from medinvoice.invoicing.calculator import CostCalculator
from medinvoice.invoicing.journal import build_journal
from medinvoice.invoicing.models import (
    Invoice,
    InvoiceCreated,
    InvoiceFeeLine,
    InvoiceIn,
    InvoiceItem,
    InvoiceSearch,
    InvoiceSubsidyLine,
    InvoiceSummary,
    InvoicingFee,
    Subsidy,
)
from medinvoice.storage import AmountOutOfRangeError, DuckDBStore, DuplicateRecordError

logger = logging.getLogger(__name__)

# IV.TPA.12
REFERENCE_TEXT_PATTERN = re.compile(rf"^{INVOICE_REFERENCE_PREFIX}\.(?P<abbr>[A-Za-z0-9]+)\.(?P<reference>\d+)$")


def format_reference(project_abbr: str, reference: int) -> str:
    return f"{INVOICE_REFERENCE_PREFIX}.{project_abbr}.{reference}"


def _summary_fields(row: dict[str, Any]) -> dict[str, Any]:
    return {
        **row,
        "reference_text": format_reference(row["project_abbr"], row["reference"]),
        "cost": float(row["cost"]),
    }


class InvoiceService:
    """Patient invoicing operations."""

    def __init__(self, store: DuckDBStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()
        self.calculator = CostCalculator(
            precision=self.settings.cost_precision,
            max_subsidies=self.settings.max_subsidies_per_invoice,
        )

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def list_invoices(self, search: InvoiceSearch | None = None) -> list[InvoiceSummary]:
        """
        List invoices matching every given filter.

        Args:
            search: Filters; None lists every invoice

        Returns:
            Invoice summaries ordered by date
        """
        search = search or InvoiceSearch()
        filters = search.model_dump(exclude={"limit", "reference", "debtor_uuid"})

        if search.debtor_uuid is not None:
            try:
                filters["debtor_uuid"] = normalize_uuid(search.debtor_uuid)
            except ValueError:
                return []

        if search.reference:
            parsed = self._parse_reference(search.reference)
            if parsed is None:
                return []
            filters.update(parsed)

        rows = self.store.search_invoices(filters, limit=search.limit)
        return [InvoiceSummary(**_summary_fields(r)) for r in rows]

    @staticmethod
    def _parse_reference(reference: str) -> dict[str, Any] | None:
        reference = reference.strip()
        if reference.isdigit():
            return {"reference": int(reference)}
        if match := REFERENCE_TEXT_PATTERN.match(reference):
            return {"reference": int(match["reference"]), "project_abbr": match["abbr"].upper()}
        return None

    def get_invoice(self, invoice_uuid: str) -> Invoice:
        """
        Get one invoice with its items, invoicing fees and subsidy.

        Raises:
            ResourceNotFoundError: If no invoice has this identifier
        """
        try:
            key = normalize_uuid(invoice_uuid)
        except ValueError:
            raise ResourceNotFoundError("invoice", invoice_uuid) from None

        row = self.store.get_invoice(key)
        if row is None:
            raise ResourceNotFoundError("invoice", invoice_uuid)

        items = [
            InvoiceItem(
                uuid=i["uuid"],
                inventory_uuid=i["inventory_uuid"],
                code=i["code"],
                text=i["text"],
                quantity=float(i["quantity"]),
                inventory_price=float(i["inventory_price"]) if i["inventory_price"] is not None else None,
                transaction_price=float(i["transaction_price"]),
                credit=float(i["credit"]),
                debit=float(i["debit"] or 0),
            )
            for i in self.store.get_invoice_items(key)
        ]
        fees = [
            InvoiceFeeLine(invoicing_fee_id=f["invoicing_fee_id"], label=f["label"], value=float(f["value"]), amount=float(f["amount"]))
            for f in self.store.get_invoice_fees(key)
        ]
        subsidies = [
            InvoiceSubsidyLine(subsidy_id=s["subsidy_id"], label=s["label"], value=float(s["value"]), amount=float(s["amount"]))
            for s in self.store.get_invoice_subsidies(key)
        ]
        return Invoice(**_summary_fields(row), items=items, invoicing_fees=fees, subsidies=subsidies)

    def list_invoicing_fees(self) -> list[InvoicingFee]:
        return [InvoicingFee(**{**f, "value": float(f["value"])}) for f in self.store.list_invoicing_fees()]

    def list_subsidies(self) -> list[Subsidy]:
        return [Subsidy(**{**s, "value": float(s["value"])}) for s in self.store.list_subsidies()]

    # -------------------------------------------------------------------------
    # Write
    # -------------------------------------------------------------------------

    def create_invoice(self, payload: InvoiceIn, user_id: int) -> InvoiceCreated:
        """
        Record an invoice and post its transaction.

        The cost is computed from the items, invoicing fees and subsidy; the
        invoice is attributed to ``user_id`` whatever the client sent.

        Raises:
            InvoiceValidationError: Unknown references, duplicate identifier
                or more subsidies than allowed
        """
        if len(payload.subsidies) > self.settings.max_subsidies_per_invoice:
            raise InvoiceValidationError(
                f"An invoice supports at most {self.settings.max_subsidies_per_invoice} subsidy, "
                f"got {len(payload.subsidies)}",
                code=ERROR_TOO_MANY_SUBSIDIES,
            )

        project_id = payload.project_id or self.settings.default_project_id
        project = self.store.get_project(project_id)
        self._check_references(payload, project)

        fees = [InvoicingFee(**{**f, "value": float(f["value"])}) for f in self.store.list_invoicing_fees(payload.invoicing_fees)]
        subsidies = [Subsidy(**{**s, "value": float(s["value"])}) for s in self.store.list_subsidies(payload.subsidies)]
        self._check_found("invoicing fee", payload.invoicing_fees, {f.id for f in fees})
        self._check_found("subsidy", payload.subsidies, {s.id for s in subsidies})

        breakdown = self.calculator.calculate(payload.items, fees, subsidies)
        invoice_uuid = payload.uuid or generate_uuid()

        try:
            with self.store.transaction():
                if self.store.invoice_exists(invoice_uuid):
                    raise DuplicateRecordError(f"Invoice {invoice_uuid} already exists")

                reference = self.store.next_invoice_reference(project_id)
                trans_id = f"{project['abbr']}{self.store.next_transaction_number()}"
                journal = build_journal(invoice_uuid, payload, breakdown, trans_id)

                self.store.insert_invoice(
                    {
                        "uuid": invoice_uuid,
                        "project_id": project_id,
                        "reference": reference,
                        "cost": breakdown.cost,
                        "debtor_uuid": payload.debtor_uuid,
                        "service_id": payload.service_id,
                        "user_id": user_id,
                        "date": payload.date,
                        "description": payload.description,
                        "created_at": datetime.now(),
                    },
                    items=[
                        {
                            "uuid": generate_uuid(),
                            "item_order": position,
                            "inventory_uuid": item.inventory_uuid,
                            "quantity": item.quantity,
                            "inventory_price": item.inventory_price,
                            "transaction_price": item.transaction_price,
                            "credit": credit,
                            "debit": 0,
                        }
                        for position, (item, credit) in enumerate(zip(payload.items, breakdown.item_credits))
                    ],
                    fees=[
                        {"invoicing_fee_id": f.id, "value": f.value, "amount": f.amount}
                        for f in breakdown.fees
                    ],
                    subsidies=[
                        {"subsidy_id": s.id, "value": s.value, "amount": s.amount}
                        for s in breakdown.subsidies
                    ],
                )
                self.store.record_journal(journal, payload.date, user_id)
        except DuplicateRecordError as e:
            raise InvoiceValidationError(str(e), code=ERROR_DUPLICATE_RECORD) from e
        except AmountOutOfRangeError as e:
            raise InvoiceValidationError(str(e), code=ERROR_AMOUNT_OUT_OF_RANGE) from e

        reference_text = format_reference(project["abbr"], reference)
        logger.info(
            "Created invoice %s (%s) for debtor %s: cost=%s, transaction %s",
            invoice_uuid, reference_text, payload.debtor_uuid, breakdown.cost, trans_id,
        )
        return InvoiceCreated(uuid=invoice_uuid, reference_text=reference_text, cost=float(breakdown.cost))

    def _check_references(self, payload: InvoiceIn, project: dict | None) -> None:
        errors = []
        if project is None:
            errors.append({"field": "project_id", "value": payload.project_id})
        if self.store.get_debtor(payload.debtor_uuid) is None:
            errors.append({"field": "debtor_uuid", "value": payload.debtor_uuid})
        if payload.service_id is not None and self.store.get_service(payload.service_id) is None:
            errors.append({"field": "service_id", "value": payload.service_id})

        known = self.store.get_inventory([i.inventory_uuid for i in payload.items])
        for position, item in enumerate(payload.items):
            if item.inventory_uuid not in known:
                errors.append({"field": f"items.{position}.inventory_uuid", "value": item.inventory_uuid})

        if errors:
            logger.warning("Rejected invoice with unknown references: %s", errors)
            raise InvoiceValidationError(
                "Invoice references unknown records", code=ERROR_UNKNOWN_REFERENCE, errors=errors
            )

    @staticmethod
    def _check_found(resource: str, requested: list[int], found: set[int]) -> None:
        missing = [i for i in requested if i not in found]
        if missing:
            raise InvoiceValidationError(
                f"Unknown {resource} identifier(s): {missing}",
                code=ERROR_UNKNOWN_REFERENCE,
                errors=[{"field": resource, "value": m} for m in missing],
            )

    def delete_transaction(self, record_uuid: str) -> str:
        """
        Delete the transaction recording an invoice, and the invoice itself.

        Returns:
            Normalized identifier of the deleted record

        Raises:
            ResourceNotFoundError: If no transaction records this identifier
        """
        try:
            key = normalize_uuid(record_uuid)
        except ValueError:
            raise ResourceNotFoundError("transaction", record_uuid) from None

        with self.store.transaction():
            lines = self.store.delete_journal(key)
            if lines == 0 and not self.store.invoice_exists(key):
                raise ResourceNotFoundError("transaction", record_uuid)
            self.store.delete_invoice(key)

        logger.info("Deleted transaction for record %s (%d journal lines)", key, lines)
        return key
