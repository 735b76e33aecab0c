"""Worker CLI commands: registry and rate history."""

from typing import Optional

import click

from .common import cli_book, echo_json, given

PAYMENT_TYPES = click.Choice(["daily", "monthly", "hourly"])
OVERTIME_MODES = click.Choice(["automatic", "manual"])


def rate_options(f):
    """Pay-term options shared by add, raise and revise."""
    options = [
        click.option("--payment-type", type=PAYMENT_TYPES, help="daily, monthly or hourly"),
        click.option("--daily-rate", type=float, help="Pay per work day"),
        click.option("--monthly-salary", type=float, help="Monthly salary (30-day month)"),
        click.option("--hourly-rate", type=float, help="Pay per hour"),
        click.option("--overtime-mode", type=OVERTIME_MODES,
                     help="automatic derives the overtime rate from the daily rate"),
        click.option("--division-factor", type=float, help="Hours in a work day (default 8)"),
        click.option("--overtime-rate", type=float, help="Pay per overtime hour (manual mode)"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _terms(payment_type, daily_rate, monthly_salary, hourly_rate,
           overtime_mode, division_factor, overtime_rate) -> dict:
    return given(
        payment_type=payment_type,
        daily_rate=daily_rate,
        monthly_salary=monthly_salary,
        hourly_rate=hourly_rate,
        overtime_mode=overtime_mode,
        division_factor=division_factor,
        overtime_rate=overtime_rate,
    )


def _rate_line(entry) -> str:
    if entry.payment_type == "monthly":
        amount = f"{entry.monthly_salary:,.2f}/month"
    elif entry.payment_type == "hourly":
        amount = f"{entry.hourly_rate:,.2f}/hour"
    else:
        amount = f"{entry.daily_rate:,.2f}/day"
    overtime = f"  OT {entry.overtime_rate:,.2f}/h" if entry.payment_type != "hourly" else ""
    return f"{entry.effective_date:<12} {entry.payment_type:<8} {amount:>16}{overtime}  {entry.notes}"


@click.group()
def workers():
    """Manage workers and their rate history.

    \b
    Examples:
      pay-ledger workers add "Sami" --payment-type daily --daily-rate 100
      pay-ledger workers raise <id> 2024-01-01 --daily-rate 120
      pay-ledger workers rate <id> 2023-06-01
    """
    pass


@workers.command("list")
@click.option("--status", type=click.Choice(["active", "suspended"]), help="Filter by status.")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def workers_list(status: Optional[str], output_format: str):
    """List workers."""
    with cli_book() as book:
        found = book.list_workers(status)

    if output_format == "json":
        echo_json([w.model_dump() for w in found])
        return

    if not found:
        click.echo("No workers found.")
        return

    click.echo(f"{'ID':<38} {'Name':<24} {'Status':<10} {'Rates':>5}")
    click.echo("-" * 80)
    for w in found:
        click.echo(f"{w.id:<38} {w.name[:24]:<24} {w.status:<10} {len(w.salary_history):>5}")


@workers.command("add")
@click.argument("name")
@rate_options
@click.option("--effective-date", help="First day of the initial terms (default today)")
@click.option("--project", "default_project_id", help="Default project id")
def workers_add(name, effective_date, default_project_id, **terms):
    """Add a worker with initial pay terms."""
    with cli_book() as book:
        worker = book.add_worker(
            name, _terms(**terms),
            effective_date=effective_date,
            default_project_id=default_project_id,
        )
    click.echo(f"Added worker {worker.name}: {worker.id}")


@workers.command("raise")
@click.argument("worker_id")
@click.argument("effective_date")
@rate_options
@click.option("--notes", default="", help="Reason for the change")
def workers_raise(worker_id, effective_date, notes, **terms):
    """Record new pay terms from EFFECTIVE_DATE (overwrites the same date)."""
    with cli_book() as book:
        entry = {**_terms(**terms), "effective_date": effective_date, "notes": notes}
        worker = book.upsert_rate_entry(worker_id, entry)
    click.echo(f"{worker.name}: {len(worker.salary_history)} rate entries")


@workers.command("revise")
@click.argument("worker_id")
@rate_options
@click.option("--reason", default="", help="Why the initial terms were wrong")
def workers_revise(worker_id, reason, **terms):
    """Correct the initial pay terms retroactively."""
    with cli_book() as book:
        worker = book.revise_initial_rate(worker_id, _terms(**terms), reason=reason)
    click.echo(_rate_line(worker.salary_history[0]))


@workers.command("history")
@click.argument("worker_id")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def workers_history(worker_id: str, output_format: str):
    """Show a worker's rate history."""
    with cli_book() as book:
        worker = book.get_worker(worker_id)

    if output_format == "json":
        echo_json([e.model_dump() for e in worker.salary_history])
        return

    click.echo(f"Rate history for {worker.name}")
    if not worker.salary_history:
        click.echo("  (none - legacy fields apply; run 'pay-ledger workers migrate')")
    for entry in worker.salary_history:
        click.echo(f"  {_rate_line(entry)}")


@workers.command("rate")
@click.argument("worker_id")
@click.argument("date")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def workers_rate(worker_id: str, date: str, output_format: str):
    """Show the rate in force for a worker on DATE."""
    with cli_book() as book:
        entry = book.resolve_rate(worker_id, date)

    if output_format == "json":
        echo_json(entry.model_dump())
        return
    click.echo(_rate_line(entry))


@workers.command("status")
@click.argument("worker_id")
@click.argument("status", type=click.Choice(["active", "suspended"]))
def workers_status(worker_id: str, status: str):
    """Activate or suspend a worker."""
    with cli_book() as book:
        worker = book.set_worker_status(worker_id, status)
    click.echo(f"{worker.name}: {worker.status}")


@workers.command("migrate")
def workers_migrate():
    """Seed rate history from legacy fields for workers without one."""
    with cli_book() as book:
        migrated = book.migrate_legacy_workers()
    click.echo(f"Migrated {len(migrated)} worker(s).")
