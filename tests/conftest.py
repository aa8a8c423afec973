"""
Pytest configuration and shared fixtures for MedInvoice tests.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from medinvoice.core.config import PACKAGED_REFERENCE_DATA, Settings
from medinvoice.invoicing import InvoiceService, seed_database
from medinvoice.storage import DuckDBStore
from tests.constants import (
    ADMIN_SERVICE,
    DEBTOR_UUID,
    MULTIVITAMINE,
    OTHERUSER,
    PARACETEMOL,
    PREDNISONE,
    PROJECT,
    QUININE,
)


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an in-memory, seeded database."""
    return Settings(
        environment="testing",
        database_path=":memory:",
        reference_data_path=PACKAGED_REFERENCE_DATA,
        seed_reference_data=True,
    )


@pytest.fixture
def empty_store() -> DuckDBStore:
    store = DuckDBStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def store(empty_store: DuckDBStore, test_settings: Settings) -> DuckDBStore:
    """In-memory store seeded with the packaged reference data."""
    seed_database(empty_store, test_settings)
    return empty_store


@pytest.fixture
def service(store: DuckDBStore, test_settings: Settings) -> InvoiceService:
    return InvoiceService(store, test_settings)


@pytest.fixture
def reference_data_path() -> Path:
    return PACKAGED_REFERENCE_DATA


# =============================================================================
# Sample Invoices
# =============================================================================


@pytest.fixture
def simple_invoice() -> dict[str, Any]:
    """Two items costing 35.14 with a wrong client cost and user."""
    return {
        "date": datetime.now().isoformat(),
        "cost": 999.99,
        "description": "A Simple Invoice of two items costing $35.14",
        "service_id": ADMIN_SERVICE,
        "debtor_uuid": DEBTOR_UUID,
        "project_id": PROJECT,
        "user_id": OTHERUSER,
        "items": [
            {
                "inventory_uuid": QUININE,
                "quantity": 1,
                "inventory_price": 8,
                "transaction_price": 10.14,
                "credit": 10.14,
            },
            {
                "inventory_uuid": PARACETEMOL,
                "quantity": 1,
                "inventory_price": 25,
                "transaction_price": 25,
                "credit": 25,
            },
        ],
    }


@pytest.fixture
def invoicing_fee_invoice() -> dict[str, Any]:
    """Two items costing 100 plus the 20% invoicing fee."""
    return {
        "date": "2016-01-28T00:00:00.000Z",
        "cost": 100,
        "description": "An invoice of two items costing $100 + a billing service",
        "service_id": ADMIN_SERVICE,
        "debtor_uuid": DEBTOR_UUID,
        "project_id": PROJECT,
        "items": [
            {"inventory_uuid": MULTIVITAMINE, "quantity": 15, "inventory_price": 5, "transaction_price": 5, "credit": 75},
            {"inventory_uuid": PREDNISONE, "quantity": 1, "inventory_price": 25, "transaction_price": 25, "credit": 25},
        ],
        "invoicingFees": [1],
    }


@pytest.fixture
def subsidy_invoice() -> dict[str, Any]:
    """Three items costing 80.29 minus the 50% subsidy."""
    return {
        "date": "2016-01-28T00:00:00.000Z",
        "cost": 39.34,
        "description": "An invoice of three items costing $80.29 + a subsidy",
        "service_id": ADMIN_SERVICE,
        "debtor_uuid": DEBTOR_UUID,
        "project_id": PROJECT,
        "items": [
            {"inventory_uuid": QUININE, "quantity": 25, "inventory_price": 0.25, "transaction_price": 0.21, "credit": 5.25},
            {"inventory_uuid": PREDNISONE, "quantity": 7, "inventory_price": 4.87, "transaction_price": 4.87, "credit": 34.09},
            {"inventory_uuid": PARACETEMOL, "quantity": 13, "inventory_price": 2.50, "transaction_price": 3.15, "credit": 40.95},
        ],
        "subsidies": [1],
    }
