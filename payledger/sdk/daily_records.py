"""Daily record store.

SDK layer - one attendance/financial record per (worker, date), plus the
deferred-advance (PMA) sub-ledger each record carries.

Records are created lazily: draft_day() builds the roster for a date from
stored records and defaults for active workers, and nothing is stored until
the caller submits it through replace_day(), merge_into() or update_fields().
Records are never deleted except by replace_range().
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from . import pay, rates
from .errors import NotFoundError, ValidationError, coerce_model, require_date, require_month
from .pma import new_advance_id
from .schemas import DailyRecord, DeferredAdvance, RecordStatus, Worker
from .state import Book, LedgerState

logger = logging.getLogger(__name__)

RecordInput = Union[DailyRecord, Dict[str, Any]]

# Fields a caller may set through update_fields / merge_into
EDITABLE_FIELDS = (
    "project_id", "status", "work_day", "overtime_hours",
    "advance", "smoking", "expense", "notes",
)

# Deductions that merge_into adds to the stored values
ADDITIVE_FIELDS = ("advance", "smoking", "expense")

NOTES_JOINER = "; "
HOURLY_DEFAULT_HOURS = 8


def status_defaults(status: RecordStatus, payment_type: str) -> Dict[str, float]:
    """work_day / overtime_hours a record takes when its status changes."""
    if status == "present":
        return {"work_day": HOURLY_DEFAULT_HOURS if payment_type == "hourly" else 1}
    if status == "paid-leave":
        return {"work_day": 1, "overtime_hours": 0}
    return {"work_day": 0, "overtime_hours": 0}


def draft_record(worker: Worker, date: str) -> DailyRecord:
    """Default record for a worker with nothing stored on a date.

    Monthly workers default to paid leave (their salary accrues regardless);
    everyone else defaults to absent.
    """
    rate = rates.resolve_worker_rate(worker, date)
    monthly = rate.payment_type == "monthly"
    return DailyRecord(
        worker_id=worker.id,
        date=date,
        project_id=worker.default_project_id or "",
        status="paid-leave" if monthly else "absent",
        work_day=1 if monthly else 0,
    )


def _join_notes(*parts: str) -> str:
    return NOTES_JOINER.join(p for p in parts if p)


def _check_fields(fields: Iterable[str]) -> None:
    unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError([f"{name}: field cannot be set here" for name in unknown])


def _check_advance_cover(record: DailyRecord) -> None:
    """Require advance to cover the deferred advances filed under the record."""
    if record.advance + 1e-9 < record.deferred_total:
        raise ValidationError([
            f"advance: {record.advance} is below deferred advances total {record.deferred_total} "
            f"for record {record.id}"
        ])


def _rebuild(record: DailyRecord, **changes: Any) -> DailyRecord:
    """Re-validate a record with changes applied."""
    data = record.model_dump()
    data.update(changes)
    return coerce_model(DailyRecord, data)


@dataclass
class AdvanceHistoryItem:
    """One advance paid to a worker, same-day or deferred."""

    date: str
    amount: float
    kind: str  # "same-day" or "deferred"
    record_date: str
    notes: str = ""
    pma_id: Optional[str] = None


@dataclass
class MonthSummary:
    """Pay totals for one worker over one YYYY-MM month."""

    worker_id: str
    month: str
    present_days: int = 0
    paid_leave_days: int = 0
    absent_days: int = 0
    work_units: float = 0.0
    overtime_hours: float = 0.0
    gross: float = 0.0
    deductions: float = 0.0
    net: float = 0.0
    records: List[str] = field(default_factory=list)


class DailyRecordStore:
    """Commands over daily records and their deferred advances."""

    def __init__(self, book: Book):
        self.book = book

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_record(self, worker_id: str, date: str) -> Optional[DailyRecord]:
        return self.book.state.find_record(worker_id, require_date(date))

    def list_day(self, date: str) -> List[DailyRecord]:
        """Stored records for a date, ordered by worker name."""
        date = require_date(date)
        state = self.book.state
        day = state.records.get(date, {})
        return sorted(day.values(), key=lambda r: self._sort_name(state, r.worker_id))

    def draft_day(self, date: str) -> List[DailyRecord]:
        """Roster for a date: stored records plus defaults for active workers.

        Suspended workers only appear when they already have a record.
        Nothing is persisted.
        """
        date = require_date(date)
        state = self.book.state
        stored = state.records.get(date, {})

        roster = []
        for worker in state.workers.values():
            if worker.id in stored:
                roster.append(stored[worker.id])
            elif worker.status == "active":
                roster.append(draft_record(worker, date))
        return sorted(roster, key=lambda r: self._sort_name(state, r.worker_id))

    @staticmethod
    def _sort_name(state: LedgerState, worker_id: str) -> str:
        worker = state.workers.get(worker_id)
        return (worker.name.lower() if worker else "") + worker_id

    # -------------------------------------------------------------------------
    # Bulk replacement
    # -------------------------------------------------------------------------

    def _prepare(self, state: LedgerState, incoming: List[RecordInput]) -> List[DailyRecord]:
        """Validate incoming records and carry over stored deferred advances.

        A record submitted without deferred_advances keeps the advances already
        filed under it; the sub-ledger only changes through the PMA commands or
        an explicit deferred_advances list.
        """
        prepared = []
        seen = set()
        for item in incoming:
            record = coerce_model(DailyRecord, item)
            state.get_worker(record.worker_id)
            key = (record.worker_id, record.date)
            if key in seen:
                raise ValidationError([f"duplicate record for worker {record.worker_id} on {record.date}"])
            seen.add(key)

            if "deferred_advances" not in record.model_fields_set:
                existing = state.find_record(record.worker_id, record.date)
                if existing is not None and existing.deferred_advances:
                    record = record.model_copy(update={
                        "deferred_advances": [a.model_copy() for a in existing.deferred_advances],
                    })
            _check_advance_cover(record)
            prepared.append(record)
        return prepared

    def replace_day(self, date: str, records: List[RecordInput]) -> List[DailyRecord]:
        """Replace the records of the incoming workers for one date.

        Stored records of workers missing from the incoming set (e.g.
        suspended workers) are preserved; other dates are untouched.

        Raises:
            ValidationError: A record is for another date, a worker repeats, or
                advance is below the deferred advances carried over
            NotFoundError: A record names an unknown worker
        """
        date = require_date(date)
        with self.book.mutate("replace_day") as state:
            prepared = self._prepare(state, records)
            wrong = [r.worker_id for r in prepared if r.date != date]
            if wrong:
                raise ValidationError([f"record for worker {w} is not dated {date}" for w in wrong])
            for record in prepared:
                state.put_record(record)

        logger.debug(f"replace_day {date}: {len(prepared)} record(s)")
        return self.list_day(date)

    def replace_range(self, start: str, end: str, records: List[RecordInput]) -> int:
        """Replace every record in [start, end] for the workers in the incoming set.

        Stored records in range for those workers are dropped first, so this
        is the one command that deletes records.

        Returns:
            Number of records stored
        """
        start = require_date(start, "start")
        end = require_date(end, "end")
        if start > end:
            raise ValidationError([f"start {start} is after end {end}"])

        with self.book.mutate("replace_range") as state:
            prepared = self._prepare(state, records)
            outside = [r.id for r in prepared if not start <= r.date <= end]
            if outside:
                raise ValidationError([f"record {rid} is outside {start}..{end}" for rid in outside])

            worker_ids = {r.worker_id for r in prepared}
            dropped = 0
            for stored in state.records_between(start, end):
                if stored.worker_id in worker_ids:
                    state.drop_record(stored.worker_id, stored.date)
                    dropped += 1
            for record in prepared:
                state.put_record(record)

        logger.info(f"replace_range {start}..{end}: dropped {dropped}, stored {len(prepared)}")
        return len(prepared)

    # -------------------------------------------------------------------------
    # Field-level edits
    # -------------------------------------------------------------------------

    def merge_into(self, worker_id: str, date: str, partial: Dict[str, Any]) -> DailyRecord:
        """Apply an additional same-day adjustment.

        On an existing record advance, smoking and expense are added to the
        stored values and notes are appended with "; ". Other given fields
        overwrite. Without a stored record a new one is created from the
        partial fields with zero defaults (status absent).
        """
        date = require_date(date)
        _check_fields(partial)

        with self.book.mutate("merge_into") as state:
            state.get_worker(worker_id)
            existing = state.find_record(worker_id, date)
            if existing is None:
                record = coerce_model(DailyRecord, {**partial, "worker_id": worker_id, "date": date})
            else:
                changes = dict(partial)
                for name in ADDITIVE_FIELDS:
                    if name in partial:
                        changes[name] = getattr(existing, name) + (partial[name] or 0)
                if "notes" in partial:
                    changes["notes"] = _join_notes(existing.notes, partial["notes"] or "")
                record = _rebuild(existing, **changes)
            _check_advance_cover(record)
            state.put_record(record)

        logger.debug(f"merge_into {record.id}: {sorted(partial)}")
        return self.book.state.get_record(record.id)

    def update_fields(self, worker_id: str, date: str, **fields: Any) -> DailyRecord:
        """Overwrite fields of a record, creating it from the draft if needed.

        Changing status applies the status defaults for work_day and
        overtime_hours unless those fields are given explicitly.

        Raises:
            ValidationError: advance would drop below the deferred total
        """
        date = require_date(date)
        _check_fields(fields)

        with self.book.mutate("update_fields") as state:
            worker = state.get_worker(worker_id)
            current = state.find_record(worker_id, date) or draft_record(worker, date)

            changes = dict(fields)
            new_status = fields.get("status")
            if new_status is not None and new_status != current.status:
                payment_type = rates.resolve_worker_rate(worker, date).payment_type
                for name, value in status_defaults(new_status, payment_type).items():
                    changes.setdefault(name, value)

            record = _rebuild(current, **changes)
            _check_advance_cover(record)
            state.put_record(record)

        return self.book.state.get_record(record.id)

    # -------------------------------------------------------------------------
    # Deferred advances
    # -------------------------------------------------------------------------

    def add_deferred_advance(self, rec_id: str, data: Dict[str, Any]) -> DeferredAdvance:
        """File a deferred advance under a record and add it to the advance total.

        Args:
            rec_id: Owning record id ('<worker_id>-<date>')
            data: {"date", "amount", "notes"}

        Raises:
            ValidationError: amount is missing or not positive
            NotFoundError: Unknown record
        """
        amount = data.get("amount") or 0
        if amount <= 0:
            raise ValidationError([f"amount: must be greater than 0, got {amount}"])

        with self.book.mutate("add_deferred_advance") as state:
            record = state.get_record(rec_id)
            advance = coerce_model(DeferredAdvance, {
                "id": new_advance_id(),
                "date": data.get("date") or record.date,
                "amount": amount,
                "notes": data.get("notes") or "",
            })
            record.deferred_advances.append(advance)
            record.advance = round(record.advance + advance.amount, 2)

        logger.debug(f"Deferred advance {advance.id} ({advance.amount}) added to {rec_id}")
        return advance

    def edit_deferred_advance(self, rec_id: str, pma_id: str, updates: Dict[str, Any]) -> DeferredAdvance:
        """Rewrite a deferred advance in place, moving the advance total by the delta.

        A missing or zero amount keeps the old amount. The record's advance is
        clamped at 0 rather than rejecting the edit.
        """
        amount = updates.get("amount")
        if amount is not None and amount < 0:
            raise ValidationError([f"amount: must not be negative, got {amount}"])

        with self.book.mutate("edit_deferred_advance") as state:
            record = state.get_record(rec_id)
            old = record.find_advance(pma_id)
            if old is None:
                raise NotFoundError("DeferredAdvance", pma_id)

            new = coerce_model(DeferredAdvance, {
                "id": old.id,
                "date": updates.get("date") or old.date,
                "amount": amount if amount else old.amount,
                "notes": updates["notes"] if updates.get("notes") is not None else old.notes,
            })
            index = record.deferred_advances.index(old)
            record.deferred_advances[index] = new
            record.advance = max(round(record.advance + new.amount - old.amount, 2), 0.0)

        return new

    def remove_deferred_advance(self, rec_id: str, pma_id: str) -> DailyRecord:
        """Remove a deferred advance; the record's advance drops by its amount, floored at 0."""
        with self.book.mutate("remove_deferred_advance") as state:
            record = state.get_record(rec_id)
            old = record.find_advance(pma_id)
            if old is None:
                raise NotFoundError("DeferredAdvance", pma_id)
            record.deferred_advances.remove(old)
            record.advance = max(round(record.advance - old.amount, 2), 0.0)

        logger.debug(f"Deferred advance {pma_id} removed from {rec_id}")
        return self.book.state.get_record(rec_id)

    # -------------------------------------------------------------------------
    # Derived figures
    # -------------------------------------------------------------------------

    def compute_net_pay(self, worker_id: str, date: str) -> float:
        """Net pay of a stored record at the rate in force on its date."""
        date = require_date(date)
        state = self.book.state
        worker = state.get_worker(worker_id)
        record = state.find_record(worker_id, date)
        if record is None:
            raise NotFoundError("DailyRecord", f"{worker_id}-{date}")
        return pay.compute_net_pay(record, rates.resolve_worker_rate(worker, date))

    def _month_records(self, worker_id: str, month: str) -> List[DailyRecord]:
        month = require_month(month)
        self.book.state.get_worker(worker_id)
        return [
            r for r in self.book.state.records_between(f"{month}-01", f"{month}-31")
            if r.worker_id == worker_id
        ]

    def advance_history(self, worker_id: str, month: str) -> List[AdvanceHistoryItem]:
        """Same-day and deferred advances filed under a worker's records in a month."""
        items = []
        for record in self._month_records(worker_id, month):
            if record.same_day_advance > 0:
                items.append(AdvanceHistoryItem(
                    date=record.date,
                    amount=round(record.same_day_advance, 2),
                    kind="same-day",
                    record_date=record.date,
                ))
            for adv in record.deferred_advances:
                items.append(AdvanceHistoryItem(
                    date=adv.date,
                    amount=adv.amount,
                    kind="deferred",
                    record_date=record.date,
                    notes=adv.notes,
                    pma_id=adv.id,
                ))
        items.sort(key=lambda i: (i.date, i.record_date))
        return items

    def month_summary(self, worker_id: str, month: str) -> MonthSummary:
        """Attendance counts and pay totals for a worker over a month."""
        records = self._month_records(worker_id, month)
        worker = self.book.state.get_worker(worker_id)
        summary = MonthSummary(worker_id=worker_id, month=month)

        for record in records:
            rate = rates.resolve_worker_rate(worker, record.date)
            if record.status == "present":
                summary.present_days += 1
                summary.overtime_hours += record.overtime_hours
            elif record.status == "paid-leave":
                summary.paid_leave_days += 1
            else:
                summary.absent_days += 1
            if record.status != "absent":
                summary.work_units += record.work_day
            summary.gross += pay.compute_gross_pay(record, rate)
            summary.deductions += record.deductions
            summary.records.append(record.id)

        summary.gross = round(summary.gross, 2)
        summary.deductions = round(summary.deductions, 2)
        summary.net = round(summary.gross - summary.deductions, 2)
        return summary
