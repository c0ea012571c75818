"""Tests for primary/secondary currency selection."""
import pytest

from rate_engine.currency import DisplayMode, RateTable, SelectionState
from rate_engine.utils.errors import NotFoundError, SameAsPrimaryError, ValidationError


@pytest.fixture
def selection(registry):
    return SelectionState(registry)


def test_defaults(selection):
    assert selection.primary.code == "USD"
    assert selection.secondary is None
    assert selection.show_both is False
    assert selection.mode is DisplayMode.SINGLE


def test_set_primary_unknown(selection):
    with pytest.raises(NotFoundError):
        selection.set_primary("XYZ")
    assert selection.primary.code == "USD"


def test_set_primary_equal_to_secondary_clears_secondary(selection):
    selection.set_secondary("EUR")
    selection.set_show_both(True)

    selection.set_primary("eur")

    assert selection.primary.code == "EUR"
    assert selection.secondary is None
    assert selection.show_both is False
    assert selection.mode is DisplayMode.SINGLE


def test_set_secondary_same_as_primary(selection):
    selection.set_secondary("GBP")
    with pytest.raises(SameAsPrimaryError):
        selection.set_secondary("usd")
    assert selection.secondary.code == "GBP"
    assert selection.primary.code == "USD"


def test_set_secondary_unknown(selection):
    with pytest.raises(NotFoundError):
        selection.set_secondary("XYZ")
    assert selection.secondary is None


def test_set_secondary_none_disables_dual_display(selection):
    selection.set_secondary("BTC")
    selection.set_show_both(True)
    assert selection.mode is DisplayMode.DUAL
    assert selection.show_both is True

    selection.set_secondary(None)
    assert selection.secondary is None
    assert selection.show_both is False
    assert selection.mode is DisplayMode.SINGLE


def test_show_both_is_noop_without_secondary(selection):
    selection.set_show_both(True)
    assert selection.show_both is False

    selection.set_secondary("EUR")
    assert selection.show_both is False
    selection.set_show_both(True)
    assert selection.show_both is True
    selection.set_show_both(False)
    assert selection.show_both is False


def test_custom_currency_is_selectable(registry, selection):
    registry.add_custom("SGD", "S$", "Singapore Dollar", 1.35)
    selection.set_primary("SGD")
    selection.set_secondary("USD")
    assert selection.primary.is_custom
    assert selection.secondary.code == "USD"


def test_selection_reports_current_rates(registry, selection):
    selection.set_secondary("EUR")
    registry.apply_rates({"EUR": 0.97})
    assert selection.secondary.rate == 0.97


def test_dangling_reference_falls_back_to_default(registry, selection):
    registry.add_custom("SGD", "S$", "Singapore Dollar", 1.35)
    registry.add_custom("XAU", "oz", "Gold", 0.0004)
    selection.set_primary("SGD")
    selection.set_secondary("XAU")

    # table without the two custom entries
    builtins = tuple(e for e in registry.list() if not e.is_custom)
    selection._on_table_change(RateTable(entries=builtins))

    assert selection._primary == "USD"
    assert selection._secondary is None


def test_listeners_notified(registry, selection):
    calls = []
    unsubscribe = selection.subscribe(lambda s: calls.append(s.primary.code))

    selection.set_primary("EUR")
    registry.apply_rates({"GBP": 0.8})
    unsubscribe()
    selection.set_primary("GBP")

    assert calls == ["EUR", "EUR"]


def test_close_detaches_from_registry(registry, selection):
    calls = []
    selection.subscribe(calls.append)
    selection.close()
    registry.apply_rates({"GBP": 0.8})
    assert calls == []


def test_initial_secondary_and_default(registry):
    selection = SelectionState(registry, default_code="EUR", primary="GBP", secondary="BTC")
    assert selection.default_code == "EUR"
    assert selection.primary.code == "GBP"
    assert selection.secondary.code == "BTC"


def test_default_must_be_fiat(registry):
    with pytest.raises(ValidationError):
        SelectionState(registry, default_code="BTC")
