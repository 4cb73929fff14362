"""
Broker commands for strategyflow CLI.

``accounts`` lists tastytrade accounts; ``fetch`` downloads transaction history into the CSV
export shape and can pipe it straight into the reconstruction engine.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import click
from rich.console import Console
from rich.table import Table

from ..services.engine import process_trade_rows
from ..services.tastytrade import ROW_COLUMNS, map_transactions_to_rows
from ..services.tastytrade_client import TastytradeClient
from .analyze import build_strategy_table


def parse_date_option(ctx, param, value: Optional[str]) -> Optional[str]:
    """Click callback: accept ``YYYY-MM-DD`` or nothing."""
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date().isoformat()
    except ValueError as e:
        raise click.BadParameter(f"{value!r} is not a YYYY-MM-DD date.") from e


def write_rows_csv(rows: Sequence[Dict[str, str]], handle) -> None:
    writer = csv.DictWriter(handle, fieldnames=list(ROW_COLUMNS), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)


def rows_to_csv_text(rows: Sequence[Dict[str, str]]) -> str:
    buffer = io.StringIO()
    write_rows_csv(rows, buffer)
    return buffer.getvalue()


@click.command()
def accounts():
    """List tastytrade accounts available to the configured credentials."""
    console = Console()

    try:
        with TastytradeClient() as client:
            broker_accounts = client.fetch_accounts()
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    if not broker_accounts:
        console.print("[yellow]No accounts found.[/yellow]")
        return

    table = Table(title="tastytrade Accounts")
    table.add_column("Account", style="cyan", no_wrap=True)
    table.add_column("Nickname", style="magenta")
    table.add_column("Status")
    for account in broker_accounts:
        status = "[red]closed[/red]" if account.is_closed else "[green]open[/green]"
        table.add_row(account.account_number, account.nickname or "--", status)
    console.print(table)


@click.command()
@click.option("--account", "account_number", required=True, help="tastytrade account number")
@click.option(
    "--start-date",
    default=None,
    callback=parse_date_option,
    help="Earliest transaction date (YYYY-MM-DD)",
)
@click.option(
    "--end-date",
    default=None,
    callback=parse_date_option,
    help="Latest transaction date (YYYY-MM-DD)",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the CSV export to this file instead of stdout",
)
@click.option(
    "--analyze", "run_analysis", is_flag=True, help="Reconstruct strategies from the fetched rows"
)
def fetch(account_number, start_date, end_date, output, run_analysis):
    """Download transaction history for an account as a CSV export."""
    console = Console()

    try:
        with TastytradeClient() as client:
            transactions = client.fetch_transactions(
                account_number, start_date=start_date, end_date=end_date
            )
        rows: List[Dict[str, str]] = map_transactions_to_rows(transactions)

        output_path: Optional[str] = output
        if output_path:
            with open(output_path, "w", newline="", encoding="utf-8") as handle:
                write_rows_csv(rows, handle)
            console.print(f"[green]Wrote {len(rows)} transactions to {output_path}[/green]")
        elif not run_analysis:
            click.echo(rows_to_csv_text(rows), nl=False)

        if run_analysis:
            result = process_trade_rows(rows)
            console.print(f"[green]Reconstructed {len(result.strategies)} strategies[/green]")
            if result.strategies:
                console.print(build_strategy_table(result.strategies))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e
