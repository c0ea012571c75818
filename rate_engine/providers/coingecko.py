"""CoinGecko simple-price provider for crypto rates and 24h change."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from rate_engine.config import Config
from rate_engine.providers.base import BaseRateSource, RateSnapshot
from rate_engine.utils.decorators import log_execution, retry
from rate_engine.utils.errors import DataProviderError, ValidationError
from rate_engine.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_COINS = {"bitcoin": "BTC", "tether": "USDT", "binance-usd": "BUSD"}


class CoinGeckoSource(BaseRateSource):
    """Quotes coins in USD and inverts the price into units per 1 USD."""

    NAME = "coingecko"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        coins: Optional[Mapping[str, str]] = None,
        config: Optional[Config] = None,
    ) -> None:
        if base_url is None or timeout is None or coins is None:
            cfg = config or self.settings()
            base_url = base_url or cfg.get(
                "providers.coingecko.base_url", "https://api.coingecko.com"
            )
            timeout = timeout if timeout is not None else cfg.get("providers.coingecko.timeout", 10)
            coins = coins if coins is not None else cfg.get("providers.coingecko.coins", DEFAULT_COINS)
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = float(timeout)
        self.coins: Dict[str, str] = {cid: code.upper() for cid, code in coins.items()}

    @retry(max_attempts=2, delay=0.5, exceptions=(httpx.TransportError,))
    async def _get_json(self) -> Dict[str, Any]:
        url = f"{self.base_url}/api/v3/simple/price"
        params = {
            "ids": ",".join(self.coins),
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.json() or {}

    @log_execution()
    async def fetch_rates(self) -> RateSnapshot:
        try:
            data = await self._get_json()
        except Exception as e:
            logger.error(f"CoinGecko request failed: {e}", extra={"source": self.NAME})
            raise DataProviderError(str(e))

        if not isinstance(data, dict):
            raise DataProviderError("Invalid response from CoinGecko")

        # Response format: {"bitcoin": {"usd": 65000.0, "usd_24h_change": 1.25}}
        rates: Dict[str, float] = {}
        changes: Dict[str, float] = {}
        notes = []
        for coin_id, code in self.coins.items():
            quote = data.get(coin_id)
            if not isinstance(quote, dict):
                notes.append(f"No quote for {coin_id}")
                continue
            price = self.parse_number(quote.get("usd"))
            if price is None:
                notes.append(f"Invalid USD price for {coin_id}")
                continue
            rates[code] = 1.0 / price
            change = quote.get("usd_24h_change")
            if isinstance(change, (int, float)) and not isinstance(change, bool):
                changes[code] = float(change)

        if notes:
            logger.warning("; ".join(notes), extra={"source": self.NAME})

        snapshot = RateSnapshot(source=self.NAME, rates=rates, changes=changes, notes=notes)
        try:
            snapshot.validate()
        except ValidationError as e:
            raise DataProviderError(str(e))
        return snapshot
