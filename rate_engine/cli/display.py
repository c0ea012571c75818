"""
Rich rendering for the rate engine CLI
"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from rate_engine.currency import RefreshStatus
from rate_engine.session import CurrencySession


class DisplayManager:
    """Renders rate tables and conversion results"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(width=100)

    def show_rates(self, session: CurrencySession) -> None:
        table = Table(title="Exchange rates (per 1 USD)", box=box.SIMPLE_HEAVY)
        table.add_column("Code", style="bold")
        table.add_column("Name")
        table.add_column("Symbol", justify="center")
        table.add_column("Class")
        table.add_column("Rate", justify="right", style="cyan")
        table.add_column("24h", justify="right")

        for entry in session.registry.list():
            change = session.refresher.price_change(entry.code)
            table.add_row(
                entry.code + (" *" if entry.is_custom else ""),
                entry.name,
                entry.symbol,
                entry.currency_class.value,
                f"{entry.rate:,.{entry.currency_class.decimals}f}",
                self._change_text(change),
            )

        self.console.print(table)
        self.show_status(session.refresher.status)

    def show_conversion(self, session: CurrencySession, amount: str, from_code: str, to_code: str) -> None:
        source = session.registry.get(from_code)
        target = session.registry.get(to_code)
        converted = session.engine.convert(amount, source.code, target.code)
        decimals = target.currency_class.decimals

        self.console.print(
            Text.assemble(
                (f"{amount} {source.code}", "bold"),
                " = ",
                (f"{converted:,.{decimals}f} {target.code}", "bold green"),
            )
        )

        if source.is_crypto or target.is_crypto:
            unit_rate = session.engine.rate_of(source.code, target.code)
            self.console.print(f"Exchange rate: 1 {source.code} = {unit_rate:.{decimals}f} {target.code}")
        else:
            unit_rate = session.engine.fiat_rate_of(source.code, target.code)
            self.console.print(f"Exchange rate: 1 {source.code} = {unit_rate:.4f} {target.code}")
        self.show_status(session.refresher.status)

    def show_status(self, status: RefreshStatus) -> None:
        if status.last_updated is None:
            self.console.print("[yellow]Using default rates (not refreshed)[/yellow]")
        else:
            self.console.print(f"[dim]Last updated: {status.last_updated:%Y-%m-%d %H:%M:%S} UTC[/dim]")

    def show_error(self, message: str) -> None:
        self.console.print(f"[red]{message}[/red]")

    def show_warning(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/yellow]")

    @staticmethod
    def _change_text(change: Optional[float]) -> Text:
        if change is None:
            return Text("-", style="dim")
        style = "green" if change >= 0 else "red"
        sign = "+" if change >= 0 else ""
        return Text(f"{sign}{change:.2f}%", style=style)
