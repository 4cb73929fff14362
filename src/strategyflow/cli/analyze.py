"""
Analyze command for strategyflow CLI.

Reconstructs strategies from a transaction CSV export and renders them as a table or JSON.
"""

from __future__ import annotations

import json
from typing import List, Sequence

import click
from rich.console import Console
from rich.table import Table

from ..core.legs import EngineResult, Strategy
from ..core.parser import load_csv_rows
from ..services.analytics import filter_strategies, get_context_data
from ..services.capital import estimate_capital
from ..services.display import format_currency, format_date, format_strategy_legs
from ..services.engine import process_trade_rows
from ..services.json_serializer import build_result_payload

StatusChoice = click.Choice(["all", "open", "closed"])
FormatChoice = click.Choice(["table", "json"])
ViewChoice = click.Choice(["all", "zero-dte"])

_STATUS_STYLES = {"OPEN": "green", "PARTIAL": "yellow", "CLOSED": "cyan"}


def load_result(csv_file: str) -> EngineResult:
    """Read a CSV export and run the reconstruction pipeline."""
    return process_trade_rows(load_csv_rows(csv_file))


def select_strategies(
    strategies: Sequence[Strategy], *, view: str, status: str, symbol: str
) -> List[Strategy]:
    context = get_context_data(strategies, view)
    return filter_strategies(context, status.upper(), symbol or "")


def build_strategy_table(strategies: Sequence[Strategy]) -> Table:
    """Create the Rich table used to list strategies."""
    table = Table(title="Reconstructed Strategies", expand=True)
    table.add_column("Opened", style="cyan", no_wrap=True)
    table.add_column("Closed", style="cyan", no_wrap=True)
    table.add_column("Symbol", style="magenta", no_wrap=True)
    table.add_column("Strategy", style="yellow")
    table.add_column("Legs")
    table.add_column("Status", no_wrap=True)
    table.add_column("P&L", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("Capital", justify="right")

    for strategy in strategies:
        status = strategy.status.value
        style = _STATUS_STYLES.get(status, "white")
        table.add_row(
            format_date(strategy.date_open),
            format_date(strategy.date_closed),
            strategy.underlying or "--",
            strategy.strategy_name,
            format_strategy_legs(strategy),
            f"[{style}]{status}[/{style}]",
            format_currency(strategy.total_pl),
            format_currency(strategy.fees),
            format_currency(estimate_capital(strategy)),
        )
    return table


@click.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "output_format",
    type=FormatChoice,
    default="table",
    show_default=True,
    help="Output format",
)
@click.option("--status", type=StatusChoice, default="all", show_default=True)
@click.option("--symbol", default="", help="Only strategies whose underlying contains this text")
@click.option("--view", type=ViewChoice, default="all", show_default=True)
def analyze(csv_file, output_format, status, symbol, view):
    """Reconstruct option strategies from a transaction CSV file."""
    console = Console()

    try:
        result = load_result(csv_file)
        strategies = select_strategies(result.strategies, view=view, status=status, symbol=symbol)

        if output_format == "json":
            payload = build_result_payload(result, strategies=strategies)
            click.echo(json.dumps(payload, indent=2))
            return

        console.print(f"[green]Reconstructed {len(result.strategies)} strategies[/green]")
        if not strategies:
            console.print("[yellow]No strategies match the selected filters.[/yellow]")
            return
        console.print(build_strategy_table(strategies))
        console.print(f"Initial balance: {format_currency(result.initial_balance)}")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e
