"""Display strings for amounts denominated in the primary currency."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from rate_engine.currency.conversion import convert
from rate_engine.currency.models import CurrencyEntry
from rate_engine.currency.selection import SelectionState
from rate_engine.utils.validation import parse_amount


def format_money(amount: Any, currency: CurrencyEntry) -> str:
    """Symbol plus the absolute amount with thousands separators.

    The sign is dropped; callers colour gains and losses themselves.
    """
    decimals = currency.currency_class.decimals
    value = abs(parse_amount(amount)).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    return f"{currency.symbol}{value:,.{decimals}f}"


class AmountFormatter:
    """Renders primary-currency amounts, optionally alongside the secondary one."""

    def __init__(self, selection: SelectionState):
        self.selection = selection

    def format_amount(
        self,
        amount: Any,
        show_both: Optional[bool] = None,
        override: Optional[str] = None,
    ) -> str:
        """
        Format an amount held in the primary currency.

        Args:
            amount: Amount in the primary currency
            show_both: Force dual display on or off; defaults to the selection flag
            override: Currency code to display instead of the primary one
        """
        selection = self.selection
        table = selection.registry.table
        primary = selection.primary

        if override is not None:
            target = selection.registry.get(override)
            return format_money(convert(table, amount, primary.code, target.code), target)

        text = format_money(amount, primary)
        secondary = selection.secondary
        wants_both = selection.show_both if show_both is None else show_both
        if secondary is not None and wants_both:
            converted = convert(table, amount, primary.code, secondary.code)
            text = f"{text} ({format_money(converted, secondary)})"
        return text

    def format_amount_in(self, amount: Any, code: str) -> str:
        """Convert a primary-currency amount into ``code`` and format it."""
        return self.format_amount(amount, override=code)
