"""ExchangeRate-API provider implementation (fiat table quoted against USD)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from rate_engine.config import Config
from rate_engine.providers.base import BaseRateSource, RateSnapshot
from rate_engine.utils.decorators import log_execution, retry
from rate_engine.utils.errors import DataProviderError, ValidationError
from rate_engine.utils.logging import get_logger


logger = get_logger(__name__)


class ExchangeRateApiSource(BaseRateSource):
    NAME = "exchange_rate_api"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        base_currency: str = "USD",
        config: Optional[Config] = None,
    ) -> None:
        if base_url is None or timeout is None:
            cfg = config or self.settings()
            base_url = base_url or cfg.get(
                "providers.exchange_rate_api.base_url", "https://api.exchangerate-api.com"
            )
            timeout = timeout if timeout is not None else cfg.get(
                "providers.exchange_rate_api.timeout", 10
            )
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = float(timeout)
        self.base_currency = base_currency.upper()

    @retry(max_attempts=2, delay=0.5, exceptions=(httpx.TransportError,))
    async def _get_json(self) -> Dict[str, Any]:
        url = f"{self.base_url}/v4/latest/{self.base_currency}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json() or {}

    @log_execution()
    async def fetch_rates(self) -> RateSnapshot:
        try:
            data = await self._get_json()
        except Exception as e:
            logger.error(f"ExchangeRate-API request failed: {e}", extra={"source": self.NAME})
            raise DataProviderError(str(e))

        # Response format: {"base": "USD", "time_last_updated": 1729800000, "rates": {"EUR": 0.92}}
        raw_rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(raw_rates, dict):
            logger.error(
                "ExchangeRate-API response missing rates table",
                extra={"source": self.NAME},
            )
            raise DataProviderError("Invalid response from ExchangeRate-API")

        rates = {}
        for code, value in raw_rates.items():
            number = self.parse_number(value)
            if number is not None:
                rates[str(code).upper()] = number

        ts = data.get("time_last_updated")
        if isinstance(ts, (int, float)):
            timestamp = datetime.fromtimestamp(ts, timezone.utc)
        else:
            timestamp = datetime.now(timezone.utc)

        snapshot = RateSnapshot(source=self.NAME, rates=rates, timestamp=timestamp)
        try:
            snapshot.validate()
        except ValidationError as e:
            raise DataProviderError(str(e))
        return snapshot
