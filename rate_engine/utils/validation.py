"""Input validation utilities."""
import math
from decimal import Decimal, InvalidOperation
from typing import Any

from rate_engine.utils.errors import InvalidRateError, ValidationError


def normalize_code(code: Any) -> str:
    """
    Validate and normalize a currency code.

    Codes are case-insensitive; the canonical form is stripped upper-case.

    Raises:
        ValidationError: If the code is not a non-empty string
    """
    if not isinstance(code, str) or not code.strip():
        raise ValidationError(f"Invalid currency code: {code!r}")
    normalized = code.strip().upper()
    if any(ch.isspace() for ch in normalized):
        raise ValidationError(f"Currency code must not contain whitespace: {code!r}")
    return normalized


def validate_rate(rate: Any) -> float:
    """
    Validate a rate against the base currency.

    Returns:
        The rate as a float

    Raises:
        InvalidRateError: If the rate is not a positive finite number
    """
    if isinstance(rate, bool):
        raise InvalidRateError(f"Rate must be a number, got: {rate!r}")
    try:
        value = float(rate)
    except (TypeError, ValueError):
        raise InvalidRateError(f"Rate must be a number, got: {rate!r}")

    if not math.isfinite(value) or value <= 0:
        raise InvalidRateError(f"Rate must be positive and finite, got: {rate!r}")
    return value


def parse_amount(amount: Any) -> Decimal:
    """
    Coerce a user supplied amount to Decimal.

    Empty, non-numeric and non-finite input is treated as zero, matching how
    converter inputs behave while the user is still typing.
    """
    if amount is None or isinstance(amount, bool):
        return Decimal(0)
    if isinstance(amount, Decimal):
        value = amount
    else:
        text = str(amount).strip().replace(",", "")
        if not text:
            return Decimal(0)
        try:
            value = Decimal(text)
        except InvalidOperation:
            return Decimal(0)
    if not value.is_finite():
        return Decimal(0)
    return value
