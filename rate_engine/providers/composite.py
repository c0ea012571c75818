"""Merge several rate sources into one snapshot."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List, Sequence

from rate_engine.providers.base import BaseRateSource, RateSnapshot
from rate_engine.utils.errors import DataProviderError
from rate_engine.utils.logging import get_logger


logger = get_logger(__name__)


class CompositeRateSource(BaseRateSource):
    """
    Fetches every source concurrently and merges the results in order.

    Later sources override earlier ones for the same code. The fetch only
    fails when no source produced data.
    """

    NAME = "composite"

    def __init__(self, sources: Sequence[BaseRateSource]):
        if not sources:
            raise ValueError("CompositeRateSource needs at least one source")
        self.sources: List[BaseRateSource] = list(sources)

    async def fetch_rates(self) -> RateSnapshot:
        results = await asyncio.gather(
            *[source.fetch_rates() for source in self.sources],
            return_exceptions=True,
        )

        merged = RateSnapshot(source=self.NAME, timestamp=datetime.now(timezone.utc))
        errors = []
        timestamps = []
        for source, result in zip(self.sources, results):
            if isinstance(result, RateSnapshot):
                merged.rates.update(result.rates)
                merged.changes.update(result.changes)
                merged.notes.extend(result.notes)
                timestamps.append(result.timestamp)
            else:
                errors.append(f"{source.NAME}: {result}")
                logger.warning(f"Provider {source.NAME} failed: {result}", extra={"source": source.NAME})

        if not timestamps:
            raise DataProviderError("All rate sources failed: " + "; ".join(errors))

        # Oldest contributing quote bounds the age of the merged table
        merged.timestamp = min(timestamps)
        merged.notes.extend(errors)
        logger.info(
            f"Merged {len(merged.rates)} rates from {len(timestamps)}/{len(self.sources)} sources"
        )
        return merged
