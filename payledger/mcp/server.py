"""Pay Ledger MCP Server - FastMCP tools over the payroll ledger."""

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from payledger.sdk import LedgerError, open_book

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("pay-ledger")


# --- Tools ---

@mcp.tool()
async def resolve_rate(
    worker_id: str = Field(description="Worker id"),
    date: str = Field(description="Date (YYYY-MM-DD)"),
) -> dict[str, Any]:
    """Return the pay terms in force for a worker on a date."""
    try:
        book = open_book()
        entry = book.resolve_rate(worker_id, date)
        return {"worker_id": worker_id, "date": date, "rate": entry.model_dump()}
    except LedgerError as e:
        return {"error": str(e)}


@mcp.tool()
async def compute_net_pay(
    worker_id: str = Field(description="Worker id"),
    date: str = Field(description="Date of the daily record (YYYY-MM-DD)"),
) -> dict[str, Any]:
    """Compute net pay for a stored daily record (gross minus advance, smoking and expense)."""
    try:
        book = open_book()
        record = book.get_record(worker_id, date)
        net = book.compute_net_pay(worker_id, date)
        return {
            "record_id": record.id if record else None,
            "status": record.status if record else None,
            "deductions": record.deductions if record else None,
            "deferred_advances": len(record.deferred_advances) if record else 0,
            "net_pay": net,
        }
    except LedgerError as e:
        return {"error": str(e)}


@mcp.tool()
async def account_balance(
    account_id: str = Field(description="Personal account id"),
    party: str | None = Field(default=None, description="Party name (default: primary party)"),
) -> dict[str, Any]:
    """Balance per currency since the latest reconciliation. Positive: the party paid more than it received."""
    try:
        book = open_book()
        account = book.get_account(account_id)
        return {
            "account": account.name,
            "party": party or account.primary_party,
            "balances": book.compute_balance(account_id, party),
        }
    except LedgerError as e:
        return {"error": str(e)}


@mcp.tool()
async def account_history(
    account_id: str = Field(description="Personal account id"),
    limit: int = Field(default=100, description="Maximum number of most recent rows to return"),
) -> dict[str, Any]:
    """Transaction log of an account, oldest first, with settled rows flagged."""
    try:
        book = open_book()
        history = book.account_history(account_id)
        rows = history.rows[-limit:] if limit > 0 else history.rows
        return {
            "account": history.account.model_dump(),
            "latest_checkpoint_id": history.latest_checkpoint_id,
            "balances": history.balances,
            "total_count": len(history.rows),
            "rows": [{**r.transaction.model_dump(), "settled": r.settled} for r in rows],
        }
    except LedgerError as e:
        return {"error": str(e)}


@mcp.tool()
async def reconcile_account(
    account_id: str = Field(description="Personal account id"),
    excluded_cheque_ids: list[str] | None = Field(
        default=None, description="Pending cheque ids to carry forward instead of cashing"),
    manual_balances: dict[str, float] | None = Field(
        default=None, description="Operator balances per currency for the primary party, e.g. {'ILS': 150}"),
    as_of: str | None = Field(default=None, description="Checkpoint date (default today)"),
) -> dict[str, Any]:
    """Settle an account: cash pending cheques not excluded and append a reconciliation checkpoint."""
    try:
        book = open_book()
        result = book.reconcile(
            account_id,
            excluded_cheque_ids=excluded_cheque_ids or [],
            manual_balances=manual_balances,
            as_of=as_of,
        )
        return {
            "checkpoint": result.transaction.model_dump(),
            "balances": result.balances,
            "cashed_cheque_ids": result.cashed_cheque_ids,
            "carried_cheque_ids": result.carried_cheque_ids,
        }
    except LedgerError as e:
        logger.error(f"Reconcile failed for {account_id}: {e}")
        return {"error": str(e)}


# --- Resources (optional, for browsing) ---

@mcp.resource("payledger://accounts")
async def list_accounts_resource() -> str:
    """List accounts with their current balances."""
    try:
        book = open_book()
        accounts = [
            {"id": a.id, "name": a.name, "parties": a.parties, "balances": book.compute_balance(a.id)}
            for a in book.list_accounts()
        ]
        return json.dumps({"accounts": accounts}, indent=2, ensure_ascii=False)
    except LedgerError as e:
        return json.dumps({"error": str(e)})


# --- Server Entry Point ---

def run_server():
    """Run the MCP server in stdio mode."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
