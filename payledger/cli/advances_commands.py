"""Deferred advance (PMA) CLI commands."""

from typing import Optional

import click

from .common import cli_book, echo_json, given


@click.group()
def advances():
    """Manage deferred advances filed under daily records.

    RECORD_ID is '<worker_id>-<YYYY-MM-DD>'.
    """
    pass


@advances.command("add")
@click.argument("record_id")
@click.argument("amount", type=float)
@click.option("--date", help="Date the advance belongs to (default: record date)")
@click.option("--notes", default="", help="Notes")
def advances_add(record_id: str, amount: float, date: Optional[str], notes: str):
    """File a deferred advance and add it to the record's advance total."""
    with cli_book() as book:
        advance = book.add_deferred_advance(record_id, {"date": date, "amount": amount, "notes": notes})
    click.echo(f"Added advance {advance.id}: {advance.amount:,.2f} for {advance.date}")


@advances.command("edit")
@click.argument("record_id")
@click.argument("pma_id")
@click.option("--amount", type=float, help="New amount (0 keeps the current amount)")
@click.option("--date", help="New date")
@click.option("--notes", help="New notes")
def advances_edit(record_id: str, pma_id: str, amount: Optional[float],
                  date: Optional[str], notes: Optional[str]):
    """Edit a deferred advance in place."""
    with cli_book() as book:
        advance = book.edit_deferred_advance(record_id, pma_id, given(amount=amount, date=date, notes=notes))
        record = book.state.get_record(record_id)
    click.echo(f"Advance {advance.id}: {advance.amount:,.2f}; record advance now {record.advance:,.2f}")


@advances.command("remove")
@click.argument("record_id")
@click.argument("pma_id")
def advances_remove(record_id: str, pma_id: str):
    """Remove a deferred advance."""
    with cli_book() as book:
        record = book.remove_deferred_advance(record_id, pma_id)
    click.echo(f"Removed {pma_id}; record advance now {record.advance:,.2f}")


@advances.command("history")
@click.argument("worker_id")
@click.argument("month")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def advances_history(worker_id: str, month: str, output_format: str):
    """List a worker's advances for MONTH (YYYY-MM)."""
    with cli_book() as book:
        items = book.advance_history(worker_id, month)

    if output_format == "json":
        echo_json([vars(i) for i in items])
        return

    if not items:
        click.echo(f"No advances for {month}")
        return

    total = 0.0
    click.echo(f"{'Date':<12} {'Kind':<9} {'Filed':<12} {'Amount':>10}  Notes")
    for item in items:
        total += item.amount
        click.echo(f"{item.date:<12} {item.kind:<9} {item.record_date:<12} {item.amount:>10,.2f}  {item.notes}")
    click.echo(f"{'Total':<35} {total:>10,.2f}")
