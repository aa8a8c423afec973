"""Seeding of an empty database with reference data and sample invoices."""

import logging
from pathlib import Path

from medinvoice.core.config import Settings, get_settings
from medinvoice.invoicing.models import InvoiceIn
from medinvoice.invoicing.service import InvoiceService
from medinvoice.storage import DuckDBStore, insert_reference_data, load_reference_data

logger = logging.getLogger(__name__)


def seed_database(store: DuckDBStore, settings: Settings | None = None, path: Path | None = None) -> int:
    """
    Seed an empty store.

    Sample invoices go through InvoiceService so their costs and journal
    lines are computed exactly like API-created ones. Everything is written
    in one transaction: a failed seed leaves the store empty.

    Returns:
        Number of sample invoices created (0 if the store was not empty)
    """
    settings = settings or get_settings()
    if not store.is_empty():
        logger.info("Store already initialized, skipping seed")
        return 0

    data = load_reference_data(path or settings.reference_data_path)
    service = InvoiceService(store, settings)
    with store.transaction():
        insert_reference_data(store, data)
        for raw in data.invoices:
            user_id = raw.get("user_id", data.users[0].id if data.users else 1)
            service.create_invoice(InvoiceIn(**raw), user_id=user_id)

    logger.info("Seeded store with %d sample invoices", len(data.invoices))
    return len(data.invoices)
