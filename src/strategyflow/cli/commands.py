"""
Command-line interface for strategyflow.

Provides the CLI command group and registers individual subcommands.
"""

from __future__ import annotations

import logging

import click

from .analyze import analyze
from .broker import accounts, fetch
from .stats import stats


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Log engine warnings and debug output")
def main(verbose):
    """StrategyFlow - Options strategy reconstruction from broker transactions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Register CLI subcommands
main.add_command(analyze)
main.add_command(stats)
main.add_command(accounts)
main.add_command(fetch)


if __name__ == "__main__":
    main()
