"""MedInvoice - patient invoicing for hospital management systems."""

__version__ = "0.1.0"
