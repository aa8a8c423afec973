"""Record identifiers: 32 upper-case hex characters, no dashes."""

import uuid


def generate_uuid() -> str:
    return uuid.uuid4().hex.upper()


def normalize_uuid(value: str) -> str:
    """
    Normalize any textual UUID form to the stored representation.

    Raises:
        ValueError: If value is not a UUID
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected a string identifier, got {type(value).__name__}")
    return uuid.UUID(value.strip()).hex.upper()

