"""Currency registry, selection, conversion and refresh."""

from .conversion import ConversionEngine, convert, fiat_rate_of, rate_of
from .formatting import AmountFormatter, format_money
from .models import (
    BUILTIN_CURRENCIES,
    CurrencyClass,
    CurrencyEntry,
    RateTable,
    RefreshStatus,
)
from .refresher import RateRefresher
from .registry import CurrencyRegistry
from .selection import DisplayMode, SelectionState

__all__ = [
    "AmountFormatter",
    "BUILTIN_CURRENCIES",
    "ConversionEngine",
    "CurrencyClass",
    "CurrencyEntry",
    "CurrencyRegistry",
    "DisplayMode",
    "RateRefresher",
    "RateTable",
    "RefreshStatus",
    "SelectionState",
    "convert",
    "fiat_rate_of",
    "format_money",
    "rate_of",
]
