"""Helpers shared by the CLI command groups."""

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

import click

from payledger.sdk import LedgerError, PayrollBook, open_book


@contextmanager
def cli_book() -> Iterator[PayrollBook]:
    """Open the configured book, turning SDK errors into ClickException."""
    try:
        yield open_book()
    except LedgerError as e:
        raise click.ClickException(str(e))


def given(**options: Any) -> Dict[str, Any]:
    """Keep only the options the user actually passed."""
    return {k: v for k, v in options.items() if v is not None}


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def echo_warnings(warnings: List[str]) -> None:
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)


def format_money(amount: float) -> str:
    return f"{amount:>12,.2f}"
