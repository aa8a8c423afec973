"""MedInvoice HTTP API."""
