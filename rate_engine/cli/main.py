from __future__ import annotations

import asyncio

import typer

from rate_engine.cli.display import DisplayManager
from rate_engine.config import load_config
from rate_engine.session import CurrencySession, create_session
from rate_engine.utils.errors import RateEngineError, RefreshFailedError


app = typer.Typer(add_completion=False, help="Trading journal exchange-rate engine")


def _build_session(refresh: bool, display: DisplayManager) -> CurrencySession:
    session = create_session(load_config())
    if refresh:
        try:
            asyncio.run(session.refresher.refresh())
        except RefreshFailedError as e:
            display.show_warning(f"{e}; showing default rates")
    return session


@app.command("rates")
def rates(
    refresh: bool = typer.Option(True, "--refresh/--no-refresh", help="Fetch live rates first"),
):
    """Show every registered currency with its rate against USD."""
    display = DisplayManager()
    try:
        session = _build_session(refresh, display)
    except RateEngineError as e:
        display.show_error(f"Failed to start: {e}")
        raise typer.Exit(code=1)
    display.show_rates(session)


@app.command("convert")
def convert(
    amount: str = typer.Argument(..., help="Amount to convert"),
    from_code: str = typer.Argument(..., help="Source currency code, e.g. BTC"),
    to_code: str = typer.Argument(..., help="Target currency code, e.g. USD"),
    refresh: bool = typer.Option(True, "--refresh/--no-refresh", help="Fetch live rates first"),
):
    """Convert an amount between two registered currencies."""
    display = DisplayManager()
    try:
        session = _build_session(refresh, display)
        display.show_conversion(session, amount, from_code, to_code)
    except RateEngineError as e:
        display.show_error(str(e))
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
