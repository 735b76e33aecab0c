"""PayrollBook - the command surface of the payroll ledger.

One PayrollBook per session or tenant. It owns a Book (state + snapshot
store) and exposes the worker, daily record and ledger commands as one
object, so callers never reach for module-level state.

    book = open_book()                       # snapshot from config paths
    worker = book.add_worker("Sami", {"payment_type": "daily", "daily_rate": 100})
    book.merge_into(worker.id, "2023-06-01", {"status": "present", "work_day": 1})
    book.compute_net_pay(worker.id, "2023-06-01")
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import config
from .daily_records import AdvanceHistoryItem, DailyRecordStore, MonthSummary, RecordInput
from .ledger import AccountHistory, AccountLedger, LedgerChange, ReconciliationResult
from .schemas import (
    ChequeStatus,
    DailyRecord,
    DeferredAdvance,
    PersonalAccount,
    RateEntry,
    Transaction,
    Worker,
    WorkerStatus,
)
from .state import Book, JsonSnapshotStore, LedgerState, SnapshotStore
from .workers import TermsInput, WorkerService


class PayrollBook:
    """Workers, daily records and accounts behind one command surface.

    Args:
        store: Snapshot store (in-memory when omitted)
        currencies: Allowed currency codes, primary first
        clock: Returns today's date as YYYY-MM-DD
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        currencies: Optional[List[str]] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.book = Book(store=store, clock=clock)
        self.workers = WorkerService(self.book)
        self.records = DailyRecordStore(self.book)
        self.ledger = AccountLedger(self.book, currencies=currencies)

    @property
    def state(self) -> LedgerState:
        return self.book.state

    @property
    def currencies(self) -> List[str]:
        return self.ledger.currencies

    # --- workers ---

    def add_worker(self, name: str, terms: TermsInput, effective_date: Optional[str] = None,
                   default_project_id: Optional[str] = None, worker_id: Optional[str] = None) -> Worker:
        return self.workers.add_worker(name, terms, effective_date, default_project_id, worker_id)

    def get_worker(self, worker_id: str) -> Worker:
        return self.workers.get_worker(worker_id)

    def list_workers(self, status: Optional[WorkerStatus] = None) -> List[Worker]:
        return self.workers.list_workers(status)

    def upsert_rate_entry(self, worker_id: str, entry: Any) -> Worker:
        return self.workers.upsert_rate_entry(worker_id, entry)

    def resolve_rate(self, worker_id: str, date: str) -> RateEntry:
        return self.workers.resolve_rate(worker_id, date)

    def set_worker_status(self, worker_id: str, status: WorkerStatus) -> Worker:
        return self.workers.set_worker_status(worker_id, status)

    def revise_initial_rate(self, worker_id: str, terms: TermsInput, reason: str = "") -> Worker:
        return self.workers.revise_initial_rate(worker_id, terms, reason)

    def migrate_legacy_workers(self) -> List[str]:
        return self.workers.migrate_legacy_workers()

    # --- daily records ---

    def get_record(self, worker_id: str, date: str) -> Optional[DailyRecord]:
        return self.records.get_record(worker_id, date)

    def list_day(self, date: str) -> List[DailyRecord]:
        return self.records.list_day(date)

    def draft_day(self, date: str) -> List[DailyRecord]:
        return self.records.draft_day(date)

    def replace_day(self, date: str, records: List[RecordInput]) -> List[DailyRecord]:
        return self.records.replace_day(date, records)

    def replace_range(self, start: str, end: str, records: List[RecordInput]) -> int:
        return self.records.replace_range(start, end, records)

    def merge_into(self, worker_id: str, date: str, partial: Dict[str, Any]) -> DailyRecord:
        return self.records.merge_into(worker_id, date, partial)

    def update_fields(self, worker_id: str, date: str, **fields: Any) -> DailyRecord:
        return self.records.update_fields(worker_id, date, **fields)

    def add_deferred_advance(self, rec_id: str, data: Dict[str, Any]) -> DeferredAdvance:
        return self.records.add_deferred_advance(rec_id, data)

    def edit_deferred_advance(self, rec_id: str, pma_id: str, updates: Dict[str, Any]) -> DeferredAdvance:
        return self.records.edit_deferred_advance(rec_id, pma_id, updates)

    def remove_deferred_advance(self, rec_id: str, pma_id: str) -> DailyRecord:
        return self.records.remove_deferred_advance(rec_id, pma_id)

    def compute_net_pay(self, worker_id: str, date: str) -> float:
        return self.records.compute_net_pay(worker_id, date)

    def advance_history(self, worker_id: str, month: str) -> List[AdvanceHistoryItem]:
        return self.records.advance_history(worker_id, month)

    def month_summary(self, worker_id: str, month: str) -> MonthSummary:
        return self.records.month_summary(worker_id, month)

    # --- ledger ---

    def add_account(self, name: str, parties: List[str], description: str = "",
                    creation_date: Optional[str] = None, account_id: Optional[str] = None) -> PersonalAccount:
        return self.ledger.add_account(name, parties, description, creation_date, account_id)

    def get_account(self, account_id: str) -> PersonalAccount:
        return self.ledger.get_account(account_id)

    def list_accounts(self) -> List[PersonalAccount]:
        return self.ledger.list_accounts()

    def update_account(self, account_id: str, **changes: Any) -> PersonalAccount:
        return self.ledger.update_account(account_id, **changes)

    def delete_account(self, account_id: str) -> int:
        return self.ledger.delete_account(account_id)

    def add_transaction(self, account_id: str, data: Dict[str, Any]) -> LedgerChange:
        return self.ledger.add_transaction(account_id, data)

    def edit_transaction(self, transaction_id: str, updates: Dict[str, Any], force: bool = False) -> LedgerChange:
        return self.ledger.edit_transaction(transaction_id, updates, force)

    def delete_transaction(self, transaction_id: str, force: bool = False) -> LedgerChange:
        return self.ledger.delete_transaction(transaction_id, force)

    def set_cheque_status(self, transaction_id: str, status: ChequeStatus) -> LedgerChange:
        return self.ledger.set_cheque_status(transaction_id, status)

    def reconcile(self, account_id: str, excluded_cheque_ids: Iterable[str] = (),
                  manual_balances: Optional[Dict[str, float]] = None,
                  as_of: Optional[str] = None, description: Optional[str] = None) -> ReconciliationResult:
        return self.ledger.reconcile(account_id, excluded_cheque_ids, manual_balances, as_of, description)

    def compute_balance(self, account_id: str, party: Optional[str] = None) -> Dict[str, float]:
        return self.ledger.compute_balance(account_id, party)

    def pending_cheques(self, account_id: Optional[str] = None) -> List[Transaction]:
        return self.ledger.pending_cheques(account_id)

    def account_history(self, account_id: str) -> AccountHistory:
        return self.ledger.account_history(account_id)


def open_book(
    path: Optional[Path] = None,
    clock: Optional[Callable[[], str]] = None,
) -> PayrollBook:
    """Open the ledger snapshot at path (default: the configured snapshot path)."""
    store = JsonSnapshotStore(path or config.get_snapshot_path())
    return PayrollBook(store=store, currencies=config.get_currencies(), clock=clock)
