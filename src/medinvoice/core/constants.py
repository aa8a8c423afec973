"""Domain constants for MedInvoice."""

from decimal import Decimal

# Reference text prefix, rendered as IV.<project abbr>.<reference>
INVOICE_REFERENCE_PREFIX: str = "IV"

# Amounts are stored as DECIMAL(19, 4): at most 15 integer digits
AMOUNT_LIMIT: Decimal = Decimal(10) ** 15

# Error codes returned in HTTP error bodies
ERROR_BAD_REQUEST: str = "ERRORS.BAD_REQUEST"
ERROR_NOT_FOUND: str = "ERRORS.NOT_FOUND"
ERROR_UNAUTHORIZED: str = "ERRORS.UNAUTHORIZED"
ERROR_TOO_MANY_SUBSIDIES: str = "ERRORS.TOO_MANY_SUBSIDIES"
ERROR_DUPLICATE_RECORD: str = "ERRORS.DUPLICATE_RECORD"
ERROR_UNKNOWN_REFERENCE: str = "ERRORS.UNKNOWN_REFERENCE"
ERROR_AMOUNT_OUT_OF_RANGE: str = "ERRORS.AMOUNT_OUT_OF_RANGE"

# Journal line roles
JOURNAL_ROLE_DEBTOR: str = "debtor"
JOURNAL_ROLE_ITEM: str = "item"
JOURNAL_ROLE_FEE: str = "invoicing_fee"
JOURNAL_ROLE_SUBSIDY: str = "subsidy"

API_KEY_HEADER: str = "X-API-Key"
