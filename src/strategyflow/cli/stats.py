"""
Stats command for strategyflow CLI.

Summarizes performance across reconstructed strategies with per-symbol and per-strategy-type
breakdowns.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Sequence

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..services.analytics import (
    PerformanceStats,
    PnlBreakdown,
    compute_stats,
    get_context_data,
    pl_per_strategy_type,
    pl_per_symbol,
)
from ..services.display import format_currency, format_percent
from ..services.json_serializer import serialize_breakdown, serialize_stats
from .analyze import ViewChoice, load_result


def _stats_lines(stats: PerformanceStats) -> list[str]:
    return [
        f"Total P&L: {format_currency(stats.total_pl)}",
        f"Closed P&L: {format_currency(stats.closed_pl)}",
        f"Closed P&L before fees: {format_currency(stats.closed_pl_before_fees)}",
        f"Fees: {format_currency(stats.total_fees)}",
        f"Win rate: {format_percent(stats.win_rate)} ({stats.win_count}W / {stats.loss_count}L)",
        f"Open strategies: {stats.open_count}",
        f"Average win: {format_currency(stats.avg_win)}",
        f"Average loss: {format_currency(stats.avg_loss)}",
        f"Average duration: {stats.avg_duration.quantize(Decimal('1'))} days",
        f"Average capital: {format_currency(stats.avg_capital)}",
        f"Average return on capital: {format_percent(stats.avg_roc)}",
        f"0DTE P&L: {format_currency(stats.zero_dte_pl)}",
        f"Starting balance: {format_currency(stats.starting_balance)}",
        f"Current balance: {format_currency(stats.current_balance)}",
        f"Return: {format_percent(stats.return_percentage)}",
    ]


def _breakdown_table(title: str, rows: Sequence[PnlBreakdown]) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="magenta")
    table.add_column("Closed", justify="right")
    table.add_column("Wins", justify="right")
    table.add_column("P&L Before Fees", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("P&L After Fees", justify="right")
    for row in rows:
        table.add_row(
            row.label,
            str(row.closed_strategies),
            str(row.winning_strategies),
            format_currency(row.pl_before_fees),
            format_currency(row.total_fees),
            format_currency(row.pl_after_fees),
        )
    return table


@click.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--view", type=ViewChoice, default="all", show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of tables")
def stats(csv_file, view, as_json):
    """Summarize trading performance from a transaction CSV file."""
    console = Console()

    try:
        result = load_result(csv_file)
        context = get_context_data(result.strategies, view)
        summary = compute_stats(context, view, result.initial_balance)
        by_symbol = pl_per_symbol(context)
        by_type = pl_per_strategy_type(context)

        if as_json:
            payload = {
                "stats": serialize_stats(summary),
                "by_symbol": [serialize_breakdown(row) for row in by_symbol],
                "by_strategy_type": [serialize_breakdown(row) for row in by_type],
            }
            click.echo(json.dumps(payload, indent=2))
            return

        panel = Panel("\n".join(_stats_lines(summary)), title="Performance", border_style="blue")
        console.print(panel)
        if by_symbol:
            console.print(_breakdown_table("P&L by Symbol", by_symbol))
        if by_type:
            console.print(_breakdown_table("P&L by Strategy Type", by_type))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e
