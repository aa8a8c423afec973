"""
API Dependencies.

Dependency injection for FastAPI services.
"""

import logging
from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from medinvoice.core.config import Settings, get_settings
from medinvoice.core.constants import API_KEY_HEADER, ERROR_UNAUTHORIZED
from medinvoice.invoicing import InvoiceService, seed_database
from medinvoice.storage import DuckDBStore

logger = logging.getLogger(__name__)


# =============================================================================
# Settings
# =============================================================================


@lru_cache
def get_api_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# =============================================================================
# Storage & Services
# =============================================================================


@lru_cache
def get_store() -> DuckDBStore:
    """Get cached store, seeded on first use when configured."""
    settings = get_api_settings()
    logger.info("Opening DuckDB store at %s", settings.database_path)
    store = DuckDBStore(settings.database_path)
    if settings.seed_reference_data:
        seed_database(store, settings)
    return store


def get_invoice_service(
    store: DuckDBStore = Depends(get_store),
    settings: Settings = Depends(get_api_settings),
) -> InvoiceService:
    """Get invoice service bound to the store."""
    return InvoiceService(store, settings)


# =============================================================================
# Authentication
# =============================================================================


class CurrentUser(BaseModel):
    """Authenticated user."""

    id: int
    username: str
    display_name: str


async def get_current_user(
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
    store: DuckDBStore = Depends(get_store),
) -> CurrentUser:
    """Resolve the X-API-Key header to a user."""
    user = store.get_user_by_api_key(x_api_key) if x_api_key else None
    if user is None:
        logger.warning("Rejected request with %s API key", "unknown" if x_api_key else "missing")
        raise HTTPException(
            status_code=401,
            detail={"code": ERROR_UNAUTHORIZED, "description": "Invalid or missing API key"},
        )
    return CurrentUser(**user)


# =============================================================================
# Cleanup
# =============================================================================


def clear_caches() -> None:
    """Clear all LRU caches (for testing)."""
    get_api_settings.cache_clear()
    get_store.cache_clear()
