from __future__ import annotations

import re
from typing import Any


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


def coerce_int(key: str, value: Any) -> int:
    """
    Strict integer coercion.

    Rejects booleans, floats, decimals and scientific notation; accepts
    ints and plain digit strings.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def require_int(data: dict, key: str, *, minimum: int | None = None) -> int:
    if data.get(key) is None:
        raise ValidationError(f"{key} is required")
    value = coerce_int(key, data[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return value


def optional_int(data: dict, key: str, *, minimum: int | None = None, default: int | None = None) -> int | None:
    if data.get(key) is None:
        return default
    return require_int(data, key, minimum=minimum)


def require_cents(data: dict, key: str) -> int:
    value = require_int(data, key, minimum=0)
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} exceeds maximum of {MAX_PRICE_CENTS} cents")
    return value


def optional_cents(data: dict, key: str) -> int | None:
    if data.get(key) is None:
        return None
    return require_cents(data, key)


def require_text(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{key} is required")
    return str(value).strip()


def optional_text(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def normalize_email(value: Any) -> str:
    """Canonical email form used for storage and deposit lookups."""
    if value is None:
        raise ValidationError("email is required")
    email = str(value).strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Valid email address is required")
    return email


def require_email(data: dict, key: str = "email") -> str:
    return normalize_email(data.get(key))


def require_bool(data: dict, key: str, *, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no", ""}:
        return False
    if isinstance(value, int):
        return bool(value)
    raise ValidationError(f"{key} must be a boolean")


def require_choice(data: dict, key: str, choices: tuple[str, ...]) -> str:
    value = require_text(data, key)
    if value not in choices:
        raise ValidationError(f"{key} must be one of {', '.join(choices)}")
    return value
