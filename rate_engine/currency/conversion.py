"""Cross-rate conversion through the base currency.

All functions are pure: they read a single ``RateTable`` snapshot and never
mutate it, so one computation cannot mix rates from two different refreshes.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union

from rate_engine.currency.models import CurrencyEntry, RateTable
from rate_engine.currency.registry import CurrencyRegistry
from rate_engine.utils.errors import NotFoundError, ValidationError
from rate_engine.utils.validation import parse_amount


# Precision of the dedicated fiat-to-fiat rate line
FIAT_RATE_DECIMALS = 4


def _lookup(table: RateTable, code: str) -> CurrencyEntry:
    entry = table.find(code)
    if entry is None:
        raise NotFoundError(f"Unknown currency code: {code}")
    return entry


def _quantize(value: Decimal, decimals: int) -> float:
    return float(value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP))


def _rate(entry: CurrencyEntry) -> Decimal:
    # shortest repr, so 0.92 stays 0.92
    return Decimal(str(entry.rate))


def _is_finite_number(amount: Any) -> bool:
    if isinstance(amount, bool):
        return False
    if isinstance(amount, Decimal):
        return amount.is_finite()
    if isinstance(amount, float):
        return math.isfinite(amount)
    return isinstance(amount, int)


def convert(table: RateTable, amount: Any, from_code: str, to_code: str) -> Union[int, float, Decimal]:
    """
    Convert ``amount`` of ``from_code`` into ``to_code``.

    Equal codes return a finite numeric amount untouched; anything else is
    parsed first, junk becoming 0.0. Otherwise the amount is normalized to
    the base currency and rounded to 8 decimals for a crypto target or 2
    decimals for a fiat target.
    """
    value = parse_amount(amount)
    source = _lookup(table, from_code)
    target = _lookup(table, to_code)

    if source.code == target.code:
        return amount if _is_finite_number(amount) else float(value)

    in_base = value / _rate(source)
    return _quantize(in_base * _rate(target), target.currency_class.decimals)


def rate_of(table: RateTable, from_code: str, to_code: str) -> float:
    """Unit exchange rate ``1 from = x to`` for the general converter panel."""
    source = _lookup(table, from_code)
    target = _lookup(table, to_code)
    return _quantize(_rate(target) / _rate(source), target.currency_class.decimals)


def fiat_rate_of(table: RateTable, from_code: str, to_code: str) -> float:
    """Unit exchange rate between two fiat currencies, shown with 4 decimals."""
    source = _lookup(table, from_code)
    target = _lookup(table, to_code)
    for entry in (source, target):
        if entry.is_crypto:
            raise ValidationError(f"{entry.code} is not a fiat currency")
    return _quantize(_rate(target) / _rate(source), FIAT_RATE_DECIMALS)


class ConversionEngine:
    """Conversion bound to a registry; every call reads the latest snapshot."""

    def __init__(self, registry: CurrencyRegistry):
        self.registry = registry

    def convert(self, amount: Any, from_code: str, to_code: str) -> Union[int, float, Decimal]:
        return convert(self.registry.table, amount, from_code, to_code)

    def rate_of(self, from_code: str, to_code: str) -> float:
        return rate_of(self.registry.table, from_code, to_code)

    def fiat_rate_of(self, from_code: str, to_code: str) -> float:
        return fiat_rate_of(self.registry.table, from_code, to_code)
