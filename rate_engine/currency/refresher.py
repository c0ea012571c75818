"""Scheduled, coalescing refresh of the shared rate table."""
from __future__ import annotations

import asyncio
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Tuple

from rate_engine.currency.models import RefreshStatus
from rate_engine.currency.registry import CurrencyRegistry
from rate_engine.providers.base import BaseRateSource, RateSnapshot
from rate_engine.utils.errors import RefreshFailedError
from rate_engine.utils.logging import get_logger
from rate_engine.utils.validation import normalize_code


logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0


class RateRefresher:
    """
    Pulls rates from a source into the registry.

    At most one fetch is ever outstanding: ``refresh()`` calls issued while a
    fetch is running wait on that same fetch. The periodic task started by
    ``start()`` runs on a fixed cadence that manual refreshes do not shift.
    """

    def __init__(
        self,
        registry: CurrencyRegistry,
        source: BaseRateSource,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        stale_after: Optional[float] = None,
        initial_delay: float = 0.0,
    ):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got: {interval}")
        self.registry = registry
        self.source = source
        self.interval = float(interval)
        self.stale_after = stale_after
        self.initial_delay = float(initial_delay)

        self._status = RefreshStatus()
        self._changes: Dict[str, float] = {}
        self._inflight: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.Task] = None

    @property
    def status(self) -> RefreshStatus:
        return self._status

    @property
    def is_updating(self) -> bool:
        return self._status.is_updating

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._status.last_updated

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def price_change(self, code: str) -> Optional[float]:
        """24h percent change for ``code`` from the last successful fetch, if fed."""
        return self._changes.get(code.strip().upper())

    async def refresh(self) -> None:
        """
        Fetch and apply fresh rates, sharing any refresh already in flight.

        Raises:
            RefreshFailedError: If the fetch failed; existing rates are kept
        """
        if self._inflight is None or self._inflight.done():
            self._status = replace(self._status, is_updating=True)
            self._inflight = asyncio.ensure_future(self._run_refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        else:
            logger.debug("Refresh already in flight, waiting on it")
        # shield: a cancelled waiter must not abort the shared fetch
        await asyncio.shield(self._inflight)

    def _clear_inflight(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None
        if not future.cancelled():
            # retrieved here so an unawaited failure is not reported as lost
            future.exception()

    async def _run_refresh(self) -> None:
        logger.info(f"Refreshing exchange rates from {self.source.NAME}")
        try:
            try:
                result = await self.source.fetch_rates()
                rates, changes = self._unpack(result)
                rates = dict(rates)
                changes = self._normalize_changes(changes)
            except Exception as e:
                logger.error(
                    f"Failed to refresh exchange rates: {e}",
                    extra={"source": self.source.NAME},
                )
                self._status = replace(self._status, last_error=str(e))
                raise RefreshFailedError(f"Rate refresh failed: {e}") from e

            changed = self.registry.apply_rates(rates)
            self._changes = changes
            self._status = replace(
                self._status,
                last_updated=datetime.now(timezone.utc),
                last_error=None,
            )
            logger.info(f"Exchange rates updated successfully ({changed} changed)")
        finally:
            self._status = replace(self._status, is_updating=False)

    @staticmethod
    def _unpack(result: object) -> Tuple[Mapping[str, object], Mapping[str, float]]:
        if isinstance(result, RateSnapshot):
            return result.rates, result.changes
        if isinstance(result, Mapping):
            return result, {}
        raise TypeError(f"Rate source returned {type(result).__name__}, expected a mapping")

    @staticmethod
    def _normalize_changes(changes: Mapping[str, object]) -> Dict[str, float]:
        normalized = {}
        for code, value in changes.items():
            if isinstance(value, bool):
                raise ValueError(f"Invalid 24h change for {code}: {value!r}")
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid 24h change for {code}: {value!r}") from None
            if not math.isfinite(number):
                raise ValueError(f"Invalid 24h change for {code}: {value!r}")
            normalized[normalize_code(code)] = number
        return normalized

    def start(self) -> None:
        """Start the periodic refresh task on the running event loop."""
        if self.running:
            return
        self._timer = asyncio.ensure_future(self._run_periodic())
        logger.info(f"Started periodic rate refresh every {self.interval}s")

    async def stop(self) -> None:
        """Cancel the periodic task. An in-flight refresh is left to finish."""
        timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        try:
            await timer
        except asyncio.CancelledError:
            pass
        logger.info("Stopped periodic rate refresh")

    async def _run_periodic(self) -> None:
        loop = asyncio.get_running_loop()

        if self.stale_after is not None:
            if self.initial_delay > 0:
                await asyncio.sleep(self.initial_delay)
            if self._status.is_stale(self.stale_after):
                await self._refresh_quietly()

        # Deadlines are fixed multiples of the interval from the start time
        started = loop.time()
        ticks = 0
        while True:
            ticks += 1
            await asyncio.sleep(max(0.0, started + ticks * self.interval - loop.time()))
            await self._refresh_quietly()

    async def _refresh_quietly(self) -> None:
        try:
            await self.refresh()
        except RefreshFailedError:
            # next tick retries; the previous table stays authoritative
            pass
        except Exception as e:
            logger.error(f"Periodic rate refresh failed: {e}", extra={"source": self.source.NAME})
