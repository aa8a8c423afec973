"""
Reference data loading for MedInvoice.

Users, projects, services, debtors, inventory, invoicing fees, subsidies and
sample invoices are described in a YAML file and inserted into a fresh store.
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from medinvoice.core.exceptions import ConfigurationError
from medinvoice.core.identifiers import normalize_uuid
from medinvoice.storage.duckdb_store import DuckDBStore

logger = logging.getLogger(__name__)


class UserRecord(BaseModel):
    id: int
    username: str
    display_name: str
    api_key: str


class ProjectRecord(BaseModel):
    id: int
    name: str
    abbr: str


class ServiceRecord(BaseModel):
    id: int
    name: str


class DebtorRecord(BaseModel):
    uuid: str
    text: str
    group_name: str | None = None

    @field_validator("uuid")
    @classmethod
    def validate_uuid(cls, v: str) -> str:
        return normalize_uuid(v)


class InventoryRecord(BaseModel):
    uuid: str
    code: str
    text: str
    price: Decimal = Decimal(0)

    @field_validator("uuid")
    @classmethod
    def validate_uuid(cls, v: str) -> str:
        return normalize_uuid(v)


class PercentageRecord(BaseModel):
    id: int
    label: str
    description: str | None = None
    value: Decimal = Field(..., ge=0, le=100)


class ReferenceData(BaseModel):
    users: list[UserRecord] = Field(default_factory=list)
    projects: list[ProjectRecord] = Field(default_factory=list)
    services: list[ServiceRecord] = Field(default_factory=list)
    debtors: list[DebtorRecord] = Field(default_factory=list)
    inventory: list[InventoryRecord] = Field(default_factory=list)
    invoicing_fees: list[PercentageRecord] = Field(default_factory=list)
    subsidies: list[PercentageRecord] = Field(default_factory=list)
    # raw invoice payloads, validated by the invoicing layer
    invoices: list[dict[str, Any]] = Field(default_factory=list)


def load_reference_data(path: Path) -> ReferenceData:
    """
    Load reference data from a YAML file.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Reference data not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e

    try:
        reference = ReferenceData(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid reference data in {path}: {e}") from e

    logger.info(
        "Loaded reference data from %s (%d debtors, %d inventory items, %d invoices)",
        path, len(reference.debtors), len(reference.inventory), len(reference.invoices),
    )
    return reference


def insert_reference_data(store: DuckDBStore, data: ReferenceData) -> None:
    """Insert every reference table (everything but invoices)."""
    with store.transaction():
        for u in data.users:
            store.insert_user(u.id, u.username, u.display_name, u.api_key)
        for p in data.projects:
            store.insert_project(p.id, p.name, p.abbr)
        for s in data.services:
            store.insert_service(s.id, s.name)
        for d in data.debtors:
            store.insert_debtor(d.uuid, d.text, d.group_name)
        for i in data.inventory:
            store.insert_inventory(i.uuid, i.code, i.text, i.price)
        for f in data.invoicing_fees:
            store.insert_invoicing_fee(f.id, f.label, f.description, f.value)
        for s in data.subsidies:
            store.insert_subsidy(s.id, s.label, s.description, s.value)
