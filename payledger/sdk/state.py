"""In-memory ledger state with snapshot persistence.

Single-writer model: every command runs against a deep copy of the state
inside Book.mutate(). When the command finishes, the copy replaces the live
state and a full snapshot is written; when it raises, the copy is dropped so
no command is ever half-applied.

The in-memory state is authoritative. The snapshot is a mirror: a failed
flush is logged and the mutation stands.

Snapshot layout (JSON):

    {
      "version": 1,
      "workers":      {worker_id: Worker},
      "records":      {date: {worker_id: DailyRecord}},
      "accounts":     {account_id: PersonalAccount},
      "transactions": {account_id: [Transaction, ...]},   # (date, seq) order
      "next_seq": 17
    }
"""

import json
import logging
import os
from contextlib import contextmanager
from datetime import date as date_cls
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import NotFoundError, parse_model
from .schemas import DailyRecord, PersonalAccount, Transaction, Worker, split_record_id

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class LedgerState(BaseModel):
    """Everything the ledger owns, in its persisted layout."""

    model_config = ConfigDict(extra="forbid")

    version: int = SNAPSHOT_VERSION
    workers: Dict[str, Worker] = Field(default_factory=dict)
    records: Dict[str, Dict[str, DailyRecord]] = Field(default_factory=dict)
    accounts: Dict[str, PersonalAccount] = Field(default_factory=dict)
    transactions: Dict[str, List[Transaction]] = Field(default_factory=dict)
    next_seq: int = 1

    # --- workers ---

    def get_worker(self, worker_id: str) -> Worker:
        worker = self.workers.get(worker_id)
        if worker is None:
            raise NotFoundError("Worker", worker_id)
        return worker

    # --- daily records ---

    def find_record(self, worker_id: str, date: str) -> Optional[DailyRecord]:
        return self.records.get(date, {}).get(worker_id)

    def get_record(self, rec_id: str) -> DailyRecord:
        try:
            worker_id, date = split_record_id(rec_id)
        except ValueError:
            raise NotFoundError("DailyRecord", rec_id)
        record = self.find_record(worker_id, date)
        if record is None:
            raise NotFoundError("DailyRecord", rec_id)
        return record

    def put_record(self, record: DailyRecord) -> None:
        self.records.setdefault(record.date, {})[record.worker_id] = record

    def drop_record(self, worker_id: str, date: str) -> None:
        day = self.records.get(date)
        if day is None:
            return
        day.pop(worker_id, None)
        if not day:
            del self.records[date]

    def records_between(self, start: str, end: str) -> List[DailyRecord]:
        """All records with start <= date <= end, ordered by date then worker."""
        found = []
        for date in sorted(self.records):
            if start <= date <= end:
                day = self.records[date]
                found.extend(day[w] for w in sorted(day))
        return found

    # --- accounts ---

    def get_account(self, account_id: str) -> PersonalAccount:
        account = self.accounts.get(account_id)
        if account is None:
            raise NotFoundError("PersonalAccount", account_id)
        return account

    def account_log(self, account_id: str) -> List[Transaction]:
        """The account's transactions in (date, seq) order. Read-only."""
        self.get_account(account_id)
        return self.transactions.get(account_id, [])

    def log_for_update(self, account_id: str) -> List[Transaction]:
        """The account's log for in-place changes inside Book.mutate()."""
        self.get_account(account_id)
        return self.transactions.setdefault(account_id, [])

    def find_transaction(self, transaction_id: str) -> Transaction:
        for log in self.transactions.values():
            for txn in log:
                if txn.id == transaction_id:
                    return txn
        raise NotFoundError("Transaction", transaction_id)

    def take_seq(self) -> int:
        seq = self.next_seq
        self.next_seq += 1
        return seq


# =============================================================================
# Snapshot stores
# =============================================================================


class SnapshotStore:
    """Destination of the full-state snapshot written after each mutation."""

    def load(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError


class MemorySnapshotStore(SnapshotStore):
    """Keeps the last snapshot in memory (tests, embedding)."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data = data
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return json.loads(json.dumps(self.data)) if self.data is not None else None

    def save(self, data: Dict[str, Any]) -> None:
        self.data = json.loads(json.dumps(data))
        self.saves += 1


class JsonSnapshotStore(SnapshotStore):
    """Writes the snapshot to a JSON file, replacing it atomically."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        with open(self.path, "r") as f:
            return json.load(f)

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)


# =============================================================================
# Book
# =============================================================================


def _today() -> str:
    return date_cls.today().isoformat()


class Book:
    """Owns the live LedgerState and serializes every mutation.

    Args:
        store: Snapshot destination; MemorySnapshotStore when omitted
        clock: Returns today's date as YYYY-MM-DD (injectable for tests)
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.store = store if store is not None else MemorySnapshotStore()
        self.clock = clock or _today
        raw = self.store.load()
        self._state = parse_model(LedgerState, raw) if raw else LedgerState()
        logger.debug(
            f"Loaded ledger: {len(self._state.workers)} workers, "
            f"{len(self._state.accounts)} accounts"
        )

    @property
    def state(self) -> LedgerState:
        """Latest fully-applied state. Callers must treat it as read-only."""
        return self._state

    def today(self) -> str:
        return self.clock()

    @contextmanager
    def mutate(self, command: str) -> Iterator[LedgerState]:
        """Apply a command atomically.

        Yields a working copy of the state; it replaces the live state only
        if the block completes without raising.
        """
        working = self._state.model_copy(deep=True)
        yield working
        self._state = working
        logger.debug(f"{command}: applied")
        self.flush()

    def flush(self) -> None:
        """Mirror the live state to the snapshot store."""
        try:
            self.store.save(self._state.model_dump(mode="json"))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Snapshot flush failed, in-memory state kept: {e}")
