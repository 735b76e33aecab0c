"""Worker registry and rate history maintenance.

SDK layer - commands against a Book. Pure history logic lives in rates.py;
this module only locates the worker, applies the change to a working copy
and lets Book.mutate() commit it.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from . import rates
from .errors import ValidationError, coerce_model, require_date
from .schemas import RateEntry, RateTerms, Worker, WorkerStatus
from .state import Book

logger = logging.getLogger(__name__)

TermsInput = Union[RateTerms, Dict[str, Any]]


class WorkerService:
    """Worker commands: creation, status and salary history."""

    def __init__(self, book: Book):
        self.book = book

    def get_worker(self, worker_id: str) -> Worker:
        return self.book.state.get_worker(worker_id)

    def list_workers(self, status: Optional[WorkerStatus] = None) -> List[Worker]:
        """Workers sorted by name, optionally filtered by status."""
        workers = [
            w for w in self.book.state.workers.values()
            if status is None or w.status == status
        ]
        return sorted(workers, key=lambda w: (w.name.lower(), w.id))

    def add_worker(
        self,
        name: str,
        terms: TermsInput,
        effective_date: Optional[str] = None,
        default_project_id: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> Worker:
        """Create a worker with one initial rate entry.

        Args:
            name: Display name
            terms: Initial pay terms
            effective_date: Date the initial terms apply from (default today)
            default_project_id: Project pre-filled on new daily records
            worker_id: Explicit id (default: new UUID)

        Returns:
            The stored Worker
        """
        terms = coerce_model(RateTerms, terms)
        effective_date = effective_date or self.book.today()
        initial = coerce_model(RateEntry, {
            **terms.terms(),
            "effective_date": effective_date,
            "notes": "Initial salary",
        })

        with self.book.mutate("add_worker") as state:
            worker_id = worker_id or str(uuid.uuid4())
            if worker_id in state.workers:
                raise ValidationError([f"worker id already exists: {worker_id}"])
            worker = coerce_model(Worker, {
                "id": worker_id,
                "name": name,
                "default_project_id": default_project_id,
                "salary_history": [initial],
                "legacy_terms": terms,
            })
            state.workers[worker_id] = worker

        logger.info(f"Added worker {name} ({worker_id})")
        return self.get_worker(worker_id)

    def upsert_rate_entry(self, worker_id: str, entry: Union[RateEntry, Dict[str, Any]]) -> Worker:
        """Add a rate change, overwriting any entry with the same effective date."""
        entry = coerce_model(RateEntry, entry)
        with self.book.mutate("upsert_rate_entry") as state:
            worker = state.get_worker(worker_id)
            worker.salary_history = rates.upsert_rate_entry(worker.salary_history, entry)

        logger.debug(f"Rate entry {entry.effective_date} stored for worker {worker_id}")
        return self.get_worker(worker_id)

    def revise_initial_rate(self, worker_id: str, terms: TermsInput, reason: str = "") -> Worker:
        """Retroactively correct the worker's first rate entry."""
        terms = coerce_model(RateTerms, terms)
        with self.book.mutate("revise_initial_rate") as state:
            worker = state.get_worker(worker_id)
            worker.salary_history = rates.revise_initial_rate(
                worker.salary_history, terms, reason=reason,
            )
        return self.get_worker(worker_id)

    def resolve_rate(self, worker_id: str, date: str) -> RateEntry:
        """Rate entry in force for a worker on a date."""
        require_date(date)
        return rates.resolve_worker_rate(self.get_worker(worker_id), date)

    def set_worker_status(self, worker_id: str, status: WorkerStatus) -> Worker:
        if status not in ("active", "suspended"):
            raise ValidationError([f"status: invalid worker status '{status}'"])
        with self.book.mutate("set_worker_status") as state:
            state.get_worker(worker_id).status = status
        return self.get_worker(worker_id)

    def migrate_legacy_workers(self) -> List[str]:
        """Give every worker without history a history seeded from legacy fields.

        Returns:
            Ids of the workers that were migrated
        """
        migrated = []
        with self.book.mutate("migrate_legacy_workers") as state:
            for worker in state.workers.values():
                if not worker.salary_history:
                    worker.salary_history = rates.seed_history(worker)
                    migrated.append(worker.id)

        if migrated:
            logger.info(f"Migrated {len(migrated)} worker(s) to rate history")
        return migrated
