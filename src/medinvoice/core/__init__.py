# src/medinvoice/core/__init__.py
from medinvoice.core.config import Settings, get_settings
from medinvoice.core.exceptions import MedInvoiceError

__all__ = ["Settings", "get_settings", "MedInvoiceError"]
