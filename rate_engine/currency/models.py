"""Currency data contracts shared by the registry, selection and refresher."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Optional, Tuple


class CurrencyClass(str, Enum):
    FIAT = "fiat"
    CRYPTO = "crypto"

    @property
    def decimals(self) -> int:
        """Display and rounding precision for amounts in this class."""
        return 8 if self is CurrencyClass.CRYPTO else 2


@dataclass(frozen=True)
class CurrencyEntry:
    """A registered currency.

    ``rate`` is expressed as units of this currency per 1 unit of the base
    currency (USD).
    """

    code: str
    symbol: str
    name: str
    rate: float
    currency_class: CurrencyClass = CurrencyClass.FIAT
    is_custom: bool = False

    @property
    def is_crypto(self) -> bool:
        return self.currency_class is CurrencyClass.CRYPTO

    def with_rate(self, rate: float) -> "CurrencyEntry":
        return replace(self, rate=rate)


@dataclass(frozen=True)
class RateTable:
    """Immutable snapshot of the registry; replaced as a whole on every change."""

    entries: Tuple[CurrencyEntry, ...] = ()
    version: int = 0
    by_code: Dict[str, CurrencyEntry] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_code", {e.code: e for e in self.entries})

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.strip().upper() in self.by_code

    def __len__(self) -> int:
        return len(self.entries)

    def find(self, code: str) -> Optional[CurrencyEntry]:
        if not isinstance(code, str):
            return None
        return self.by_code.get(code.strip().upper())


@dataclass(frozen=True)
class RefreshStatus:
    last_updated: Optional[datetime] = None
    is_updating: bool = False
    last_error: Optional[str] = None

    def is_stale(self, max_age_seconds: float, now: Optional[datetime] = None) -> bool:
        """True when rates were never refreshed or are older than ``max_age_seconds``."""
        if self.last_updated is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now - self.last_updated > timedelta(seconds=max_age_seconds)


BUILTIN_CURRENCIES: Tuple[CurrencyEntry, ...] = (
    CurrencyEntry("USD", "$", "US Dollar", 1.0),
    CurrencyEntry("EUR", "€", "Euro", 0.92),
    CurrencyEntry("GBP", "£", "British Pound", 0.79),
    CurrencyEntry("PHP", "₱", "Philippine Peso", 56.5),
    CurrencyEntry("JPY", "¥", "Japanese Yen", 149.5),
    CurrencyEntry("AUD", "A$", "Australian Dollar", 1.53),
    CurrencyEntry("CAD", "C$", "Canadian Dollar", 1.36),
    CurrencyEntry("CHF", "Fr", "Swiss Franc", 0.88),
    CurrencyEntry("CNY", "¥", "Chinese Yuan", 7.24),
    CurrencyEntry("INR", "₹", "Indian Rupee", 83.12),
    CurrencyEntry("BTC", "₿", "Bitcoin", 0.000024, CurrencyClass.CRYPTO),
    CurrencyEntry("USDT", "₮", "Tether", 1.0, CurrencyClass.CRYPTO),
    CurrencyEntry("BUSD", "B", "Binance USD", 1.0, CurrencyClass.CRYPTO),
)
