"""Personal account CLI commands: transactions, cheques and reconciliation."""

from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .common import cli_book, echo_json, echo_warnings, given


def _parse_manual(values: Tuple[str, ...]) -> Optional[dict]:
    """Parse repeated CUR=AMOUNT options."""
    if not values:
        return None
    balances = {}
    for value in values:
        currency, sep, amount = value.partition("=")
        try:
            if not sep:
                raise ValueError
            balances[currency.strip().upper()] = float(amount)
        except ValueError:
            raise click.BadParameter(f"Invalid manual balance '{value}'. Expected CUR=AMOUNT.")
    return balances


def _balance_text(balances: dict) -> str:
    return ", ".join(f"{amount:,.2f} {currency}" for currency, amount in balances.items())


def _txn_line(txn) -> str:
    if txn.is_checkpoint:
        return f"{txn.date:<12} {'== ' + txn.description}"
    cheque = ""
    if txn.payment_method == "cheque":
        cheque = f" cheque #{txn.cheque_number or '?'} ({txn.cheque_status})"
    return (
        f"{txn.date:<12} {txn.payer} -> {txn.payee}: "
        f"{txn.amount:,.2f} {txn.currency}{cheque}  {txn.description}  [{txn.id[:8]}]"
    )


@click.group()
def accounts():
    """Manage two-party accounts.

    \b
    Examples:
      pay-ledger accounts add "Rent" Ahmad Khalid
      pay-ledger accounts pay <account> 200 --payer Ahmad --payee Khalid
      pay-ledger accounts balance <account>
      pay-ledger accounts reconcile <account> --exclude <cheque-id>
    """
    pass


@accounts.command("list")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def accounts_list(output_format: str):
    """List accounts with their current balance."""
    with cli_book() as book:
        rows = [(a, book.compute_balance(a.id)) for a in book.list_accounts()]

    if output_format == "json":
        echo_json([{**a.model_dump(), "balances": b} for a, b in rows])
        return

    if not rows:
        click.echo("No accounts found.")
        return
    for account, balances in rows:
        click.echo(f"{account.id[:8]}  {account.name:<24} {' / '.join(account.parties):<30} {_balance_text(balances)}")


@accounts.command("add")
@click.argument("name")
@click.argument("parties", nargs=-1, required=True)
@click.option("--description", default="", help="Description")
def accounts_add(name: str, parties: Tuple[str, ...], description: str):
    """Create an account between PARTIES (first party is the primary side)."""
    with cli_book() as book:
        account = book.add_account(name, list(parties), description=description)
    click.echo(f"Added account {account.name}: {account.id}")


@accounts.command("remove")
@click.argument("account_id")
@click.option("--force", is_flag=True, help="Delete without confirmation")
def accounts_remove(account_id: str, force: bool):
    """Delete an account and all its transactions."""
    if not force:
        click.confirm(f"Delete account {account_id} and its transactions?", abort=True)
    with cli_book() as book:
        removed = book.delete_account(account_id)
    click.echo(f"Deleted account with {removed} transaction(s).")


@accounts.command("show")
@click.argument("account_id")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def accounts_show(account_id: str, output_format: str):
    """Show an account's transaction history (settled rows dimmed)."""
    with cli_book() as book:
        history = book.account_history(account_id)

    if output_format == "json":
        echo_json({
            "account": history.account.model_dump(),
            "latest_checkpoint_id": history.latest_checkpoint_id,
            "balances": history.balances,
            "rows": [
                {**row.transaction.model_dump(), "settled": row.settled}
                for row in history.rows
            ],
        })
        return

    print_history_table(history)


def print_history_table(history) -> None:
    """Print an account history using rich, settled rows dimmed."""
    console = Console()
    account = history.account
    console.print(f"\n[bold]{account.name}[/bold] ({' / '.join(account.parties)})")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Payer → Payee", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Method")
    table.add_column("Description")
    table.add_column("Id")

    for row in history.rows:
        txn = row.transaction
        if txn.is_checkpoint:
            table.add_row(txn.date, "", "", "", txn.description, txn.id[:8], style="bold yellow")
            continue
        method = txn.payment_method
        if method == "cheque":
            method = f"cheque #{txn.cheque_number or '?'} ({txn.cheque_status})"
        table.add_row(
            txn.date,
            f"{txn.payer} → {txn.payee}",
            f"{txn.amount:,.2f} {txn.currency}",
            method,
            txn.description,
            txn.id[:8],
            style="dim" if row.settled else None,
        )

    console.print(table)
    console.print(f"Balance for {account.primary_party}: {_balance_text(history.balances)}")


@accounts.command("pay")
@click.argument("account_id")
@click.argument("amount", type=float)
@click.option("--payer", required=True, help="Paying party")
@click.option("--payee", required=True, help="Receiving party")
@click.option("--currency", help="Currency code (default: primary currency)")
@click.option("--date", help="Transaction date (default today)")
@click.option("--description", default="", help="Description")
@click.option("--cheque", "cheque_number", help="Cheque number (marks the payment as a cheque)")
@click.option("--due-date", "cheque_due_date", help="Cheque due date")
def accounts_pay(account_id, amount, payer, payee, currency, date, description,
                 cheque_number, cheque_due_date):
    """Record a payment between the account's parties."""
    data = given(
        amount=amount, payer=payer, payee=payee, currency=currency, date=date,
        description=description, cheque_number=cheque_number,
        cheque_due_date=cheque_due_date,
    )
    if cheque_number:
        data["payment_method"] = "cheque"

    with cli_book() as book:
        change = book.add_transaction(account_id, data)
    echo_warnings(change.warnings)
    click.echo(f"Added transaction {change.transaction.id}")


@accounts.command("edit")
@click.argument("transaction_id")
@click.option("--amount", type=float)
@click.option("--payer")
@click.option("--payee")
@click.option("--currency")
@click.option("--date")
@click.option("--description")
@click.option("--force", is_flag=True, help="Allow editing an older reconciliation")
def accounts_edit(transaction_id, amount, payer, payee, currency, date, description, force):
    """Edit a transaction (reconciliations: --description only)."""
    updates = given(amount=amount, payer=payer, payee=payee, currency=currency,
                    date=date, description=description)
    if not updates:
        raise click.BadParameter("nothing to change")

    with cli_book() as book:
        change = book.edit_transaction(transaction_id, updates, force=force)
    echo_warnings(change.warnings)
    click.echo(f"Updated transaction {transaction_id}")


@accounts.command("delete")
@click.argument("transaction_id")
@click.option("--force", is_flag=True, help="Allow deleting an older reconciliation")
def accounts_delete(transaction_id: str, force: bool):
    """Delete a transaction."""
    with cli_book() as book:
        change = book.delete_transaction(transaction_id, force=force)
    echo_warnings(change.warnings)
    click.echo(f"Deleted transaction {transaction_id}")


@accounts.command("balance")
@click.argument("account_id")
@click.option("--party", help="Party to report for (default: primary party)")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def accounts_balance(account_id: str, party: Optional[str], output_format: str):
    """Show the balance since the latest reconciliation."""
    with cli_book() as book:
        balances = book.compute_balance(account_id, party)
        party = party or book.get_account(account_id).primary_party

    if output_format == "json":
        echo_json({"party": party, "balances": balances})
        return
    click.echo(f"{party}: {_balance_text(balances)}")


@accounts.command("cheques")
@click.argument("account_id", required=False)
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
def accounts_cheques(account_id: Optional[str], output_format: str):
    """List pending cheques (all accounts unless ACCOUNT_ID)."""
    with cli_book() as book:
        cheques = book.pending_cheques(account_id)

    if output_format == "json":
        echo_json([c.model_dump() for c in cheques])
        return

    if not cheques:
        click.echo("No pending cheques.")
        return
    for txn in cheques:
        click.echo(_txn_line(txn))


@accounts.command("cheque-status")
@click.argument("transaction_id")
@click.argument("status", type=click.Choice(["pending", "cashed"]))
def accounts_cheque_status(transaction_id: str, status: str):
    """Mark a cheque pending or cashed."""
    with cli_book() as book:
        change = book.set_cheque_status(transaction_id, status)
    click.echo(f"Cheque {change.transaction.cheque_number or transaction_id}: {status}")


@accounts.command("reconcile")
@click.argument("account_id")
@click.option("--exclude", "excluded", multiple=True,
              help="Pending cheque id to carry forward (repeatable)")
@click.option("--manual", multiple=True,
              help="Manual balance CUR=AMOUNT for the primary party (repeatable)")
@click.option("--as-of", help="Checkpoint date (default today)")
def accounts_reconcile(account_id: str, excluded: Tuple[str, ...],
                       manual: Tuple[str, ...], as_of: Optional[str]):
    """Settle the account with a reconciliation checkpoint."""
    manual_balances = _parse_manual(manual)
    with cli_book() as book:
        result = book.reconcile(
            account_id,
            excluded_cheque_ids=excluded,
            manual_balances=manual_balances,
            as_of=as_of,
        )
    click.echo(result.transaction.description)
    if result.cashed_cheque_ids:
        click.echo(f"Marked {len(result.cashed_cheque_ids)} cheque(s) cashed.")
