"""Rate source base classes and the snapshot contract they return."""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from rate_engine.config import Config, get_config, load_config
from rate_engine.utils.errors import ConfigurationError, ValidationError


@dataclass
class RateSnapshot:
    """One fetch worth of rates, quoted as units per 1 USD."""

    source: str
    rates: Dict[str, float] = field(default_factory=dict)
    changes: Dict[str, float] = field(default_factory=dict)  # 24h percent change
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    notes: List[str] = field(default_factory=list)

    def validate(self) -> None:
        if not self.rates:
            raise ValidationError(f"{self.source} returned no rates")
        for code, rate in self.rates.items():
            if rate is None or not math.isfinite(rate) or rate <= 0:
                raise ValidationError(f"Invalid rate for {code}: {rate}")


class BaseRateSource(ABC):
    """Abstract base class for upstream rate sources."""

    NAME: str = "base"

    @abstractmethod
    async def fetch_rates(self) -> RateSnapshot:
        """Fetch a fresh code-keyed rate table."""

    async def health_check(self) -> bool:
        """Return True when the upstream service looks reachable/healthy."""
        try:
            await self.fetch_rates()
            return True
        except Exception:
            return False

    @staticmethod
    def settings() -> Config:
        try:
            return get_config()
        except ConfigurationError:
            return load_config()

    @staticmethod
    def parse_number(value: Any) -> Optional[float]:
        """Float for a usable positive number, otherwise None."""
        if isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number) or number <= 0:
            return None
        return number
