"""Tests for the coalescing rate refresher."""
import asyncio

import pytest

from rate_engine.currency import RateRefresher
from rate_engine.utils.errors import RefreshFailedError


@pytest.mark.asyncio
async def test_refresh_applies_rates(registry, source_factory):
    source = source_factory(rates={"EUR": 0.9, "XYZ": 2.0}, changes={"BTC": -1.5})
    refresher = RateRefresher(registry, source)

    await refresher.refresh()

    assert registry.get("EUR").rate == 0.9
    assert "XYZ" not in registry
    assert refresher.last_updated is not None
    assert refresher.is_updating is False
    assert refresher.status.last_error is None
    assert refresher.price_change("btc") == -1.5
    assert refresher.price_change("EUR") is None


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_fetch(registry, source_factory):
    source = source_factory()
    source.release = asyncio.Event()
    refresher = RateRefresher(registry, source)

    waiters = [asyncio.ensure_future(refresher.refresh()) for _ in range(5)]
    await asyncio.sleep(0)
    assert refresher.is_updating is True

    source.release.set()
    await asyncio.gather(*waiters)

    assert source.calls == 1
    assert refresher.is_updating is False


@pytest.mark.asyncio
async def test_sequential_refreshes_fetch_again(registry, fake_source):
    refresher = RateRefresher(registry, fake_source)
    await refresher.refresh()
    await refresher.refresh()
    assert fake_source.calls == 2


@pytest.mark.asyncio
async def test_failed_refresh_keeps_rates(registry, source_factory):
    refresher = RateRefresher(registry, source_factory(rates={"EUR": 0.9}))
    await refresher.refresh()
    updated_at = refresher.last_updated

    refresher.source = source_factory(rates={"EUR": 0.5}, fail=True)
    with pytest.raises(RefreshFailedError):
        await refresher.refresh()

    assert registry.get("EUR").rate == 0.9
    assert refresher.last_updated == updated_at
    assert refresher.is_updating is False
    assert "upstream unavailable" in refresher.status.last_error


@pytest.mark.asyncio
async def test_failure_reaches_every_coalesced_caller(registry, source_factory):
    source = source_factory(fail=True)
    source.release = asyncio.Event()
    refresher = RateRefresher(registry, source)

    waiters = [asyncio.ensure_future(refresher.refresh()) for _ in range(3)]
    await asyncio.sleep(0)
    source.release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert source.calls == 1
    assert all(isinstance(r, RefreshFailedError) for r in results)


@pytest.mark.asyncio
async def test_non_mapping_result_fails(registry, source_factory):
    class BrokenSource(source_factory):
        async def fetch_rates(self):
            return ["not", "a", "table"]

    refresher = RateRefresher(registry, BrokenSource())
    with pytest.raises(RefreshFailedError):
        await refresher.refresh()


@pytest.mark.asyncio
async def test_malformed_change_fails_without_applying(registry, source_factory):
    eur = registry.get("EUR").rate
    source = source_factory(rates={"EUR": 0.5}, changes={"BTC": None})
    refresher = RateRefresher(registry, source)

    with pytest.raises(RefreshFailedError):
        await refresher.refresh()

    assert registry.get("EUR").rate == eur
    assert refresher.last_updated is None
    assert refresher.status.last_error is not None
    assert refresher.price_change("BTC") is None


@pytest.mark.asyncio
async def test_periodic_refresh_survives_malformed_payload(registry, source_factory):
    source = source_factory(changes={"BTC": "n/a"})
    refresher = RateRefresher(registry, source, interval=0.03)
    refresher.start()
    await asyncio.sleep(0.15)

    assert refresher.running
    assert source.calls >= 2
    await refresher.stop()


@pytest.mark.asyncio
async def test_periodic_refresh_survives_unexpected_errors(registry, fake_source, monkeypatch):
    def explode(rates):
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(registry, "apply_rates", explode)
    refresher = RateRefresher(registry, fake_source, interval=0.03)
    refresher.start()
    await asyncio.sleep(0.15)

    assert refresher.running
    assert fake_source.calls >= 2
    assert not refresher.is_updating
    await refresher.stop()


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_abort_fetch(registry, source_factory):
    source = source_factory(rates={"EUR": 0.91})
    source.release = asyncio.Event()
    refresher = RateRefresher(registry, source)

    first = asyncio.ensure_future(refresher.refresh())
    await asyncio.sleep(0)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    second = asyncio.ensure_future(refresher.refresh())
    await asyncio.sleep(0)
    source.release.set()
    await second

    assert source.calls == 1
    assert registry.get("EUR").rate == 0.91


@pytest.mark.asyncio
async def test_periodic_refresh_runs_until_stopped(registry, fake_source):
    refresher = RateRefresher(registry, fake_source, interval=0.05)
    refresher.start()
    assert refresher.running

    await asyncio.sleep(0.18)
    await refresher.stop()
    calls = fake_source.calls

    assert 2 <= calls <= 4
    assert not refresher.running
    await asyncio.sleep(0.12)
    assert fake_source.calls == calls


@pytest.mark.asyncio
async def test_periodic_refresh_survives_failures(registry, source_factory):
    source = source_factory(fail=True)
    refresher = RateRefresher(registry, source, interval=0.03)
    refresher.start()
    await asyncio.sleep(0.1)

    assert refresher.running
    assert source.calls >= 2
    assert refresher.last_updated is None
    await refresher.stop()


@pytest.mark.asyncio
async def test_stale_rates_refresh_on_start(registry, fake_source):
    refresher = RateRefresher(registry, fake_source, interval=10, stale_after=60, initial_delay=0.01)
    refresher.start()
    await asyncio.sleep(0.05)
    await refresher.stop()

    assert fake_source.calls == 1
    assert refresher.last_updated is not None


@pytest.mark.asyncio
async def test_fresh_rates_skip_startup_refresh(registry, fake_source):
    refresher = RateRefresher(registry, fake_source, interval=10, stale_after=60)
    await refresher.refresh()

    refresher.start()
    await asyncio.sleep(0.03)
    await refresher.stop()

    assert fake_source.calls == 1


@pytest.mark.asyncio
async def test_stop_lets_inflight_refresh_finish(registry, source_factory):
    source = source_factory(rates={"EUR": 0.93})
    source.release = asyncio.Event()
    refresher = RateRefresher(registry, source, interval=0.01)
    refresher.start()
    await asyncio.sleep(0.03)
    assert refresher.is_updating

    await refresher.stop()
    source.release.set()
    await asyncio.sleep(0.01)

    assert registry.get("EUR").rate == 0.93
    assert refresher.is_updating is False
    assert source.calls == 1


@pytest.mark.asyncio
async def test_manual_refresh_does_not_shift_schedule(registry, fake_source):
    refresher = RateRefresher(registry, fake_source, interval=0.1)
    refresher.start()
    await asyncio.sleep(0.05)
    await refresher.refresh()  # manual, mid-interval
    await asyncio.sleep(0.07)  # crosses the 0.1s tick
    await refresher.stop()

    assert fake_source.calls == 2


def test_interval_must_be_positive(registry, fake_source):
    with pytest.raises(ValueError):
        RateRefresher(registry, fake_source, interval=0)
