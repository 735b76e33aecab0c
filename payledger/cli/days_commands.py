"""Daily record CLI commands."""

import json
from pathlib import Path
from typing import Optional

import click

from payledger.sdk import record_from_legacy, record_to_legacy

from .common import cli_book, echo_json, format_money, given

STATUSES = click.Choice(["present", "absent", "paid-leave"])


def record_options(f):
    """Record field options shared by set and merge."""
    options = [
        click.option("--project", "project_id", help="Project id"),
        click.option("--status", type=STATUSES, help="Attendance status"),
        click.option("--work-day", type=float, help="Day fraction (hours for hourly pay)"),
        click.option("--overtime", "overtime_hours", type=float, help="Overtime hours"),
        click.option("--advance", type=float, help="Advance paid"),
        click.option("--smoking", type=float, help="Smoking deduction"),
        click.option("--expense", type=float, help="Expense deduction"),
        click.option("--notes", help="Free-text notes"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group()
def days():
    """Manage daily attendance records.

    \b
    Examples:
      pay-ledger days show 2023-06-01
      pay-ledger days set <worker> 2023-06-01 --status present
      pay-ledger days merge <worker> 2023-06-01 --advance 20
      pay-ledger days summary <worker> 2023-06
    """
    pass


@days.command("show")
@click.argument("date")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def days_show(date: str, output_format: str):
    """Show the roster for DATE (stored records plus defaults)."""
    with cli_book() as book:
        roster = book.draft_day(date)
        stored = {r.worker_id for r in book.list_day(date)}
        names = {w.id: w.name for w in book.list_workers()}
        nets = {
            r.worker_id: book.compute_net_pay(r.worker_id, date)
            for r in roster if r.worker_id in stored
        }

    if output_format == "json":
        echo_json([
            {**r.model_dump(), "stored": r.worker_id in stored, "net_pay": nets.get(r.worker_id)}
            for r in roster
        ])
        return

    if not roster:
        click.echo(f"No workers scheduled for {date}")
        return

    click.echo(f"{'Worker':<24} {'Status':<11} {'Day':>5} {'OT':>5} {'Advance':>10} {'Net':>12}")
    click.echo("-" * 72)
    for r in roster:
        net = format_money(nets[r.worker_id]) if r.worker_id in nets else f"{'(draft)':>12}"
        name = names.get(r.worker_id, r.worker_id)[:24]
        click.echo(
            f"{name:<24} {r.status:<11} {r.work_day:>5g} {r.overtime_hours:>5g} "
            f"{r.advance:>10,.2f} {net}"
        )


@days.command("set")
@click.argument("worker_id")
@click.argument("date")
@record_options
def days_set(worker_id: str, date: str, **fields):
    """Overwrite fields of a record (status changes apply default hours)."""
    with cli_book() as book:
        record = book.update_fields(worker_id, date, **given(**fields))
        net = book.compute_net_pay(worker_id, date)
    click.echo(f"{record.id}: {record.status}, work_day {record.work_day:g}, net {net:,.2f}")


@days.command("merge")
@click.argument("worker_id")
@click.argument("date")
@record_options
def days_merge(worker_id: str, date: str, **fields):
    """Add a same-day adjustment (deductions add up, notes append)."""
    with cli_book() as book:
        record = book.merge_into(worker_id, date, given(**fields))
    click.echo(
        f"{record.id}: advance {record.advance:,.2f}, smoking {record.smoking:,.2f}, "
        f"expense {record.expense:,.2f}"
    )


@days.command("net")
@click.argument("worker_id")
@click.argument("date")
def days_net(worker_id: str, date: str):
    """Print the net pay of a stored record."""
    with cli_book() as book:
        net = book.compute_net_pay(worker_id, date)
    click.echo(f"{net:.2f}")


@days.command("summary")
@click.argument("worker_id")
@click.argument("month")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def days_summary(worker_id: str, month: str, output_format: str):
    """Summarize a worker's MONTH (YYYY-MM)."""
    with cli_book() as book:
        summary = book.month_summary(worker_id, month)
        name = book.get_worker(worker_id).name

    if output_format == "json":
        echo_json(vars(summary))
        return

    click.echo(f"{name} - {month}")
    click.echo(f"  Present:     {summary.present_days}")
    click.echo(f"  Paid leave:  {summary.paid_leave_days}")
    click.echo(f"  Absent:      {summary.absent_days}")
    click.echo(f"  Work units:  {summary.work_units:g}")
    click.echo(f"  Overtime:    {summary.overtime_hours:g} h")
    click.echo(f"  Gross:      {format_money(summary.gross)}")
    click.echo(f"  Deductions: {format_money(summary.deductions)}")
    click.echo(f"  Net:        {format_money(summary.net)}")


@days.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--date", help="Replace one date (records must all carry it).")
@click.option("--start", help="Range start (with --end): drops stored records in range first.")
@click.option("--end", help="Range end (with --start).")
def days_import(source: str, date: Optional[str], start: Optional[str], end: Optional[str]):
    """Import records from a JSON list in legacy form.

    PMA tokens embedded in notes are lifted into deferred advances.
    """
    if bool(start) != bool(end):
        raise click.BadParameter("--start and --end must be given together")
    if not date and not start:
        raise click.BadParameter("give --date or --start/--end")

    try:
        raw = json.loads(Path(source).read_text())
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}")
    if not isinstance(raw, list):
        raise click.ClickException("Expected a JSON list of records")

    with cli_book() as book:
        records = [record_from_legacy(item) for item in raw]
        if start:
            count = book.replace_range(start, end, records)
        else:
            count = len(book.replace_day(date, records))
    click.echo(f"Imported {len(records)} record(s); {count} stored.")


@days.command("export")
@click.argument("date")
def days_export(date: str):
    """Print a date's stored records in legacy form (PMA tokens in notes)."""
    with cli_book() as book:
        records = book.list_day(date)
    echo_json([record_to_legacy(r) for r in records])
