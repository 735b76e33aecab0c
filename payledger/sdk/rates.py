"""Rate history resolution.

SDK layer - pure logic over a worker's salary history, no storage access.

Rate entries have arbitrary effective dates (raises, switching between daily,
monthly and hourly pay). History is kept sorted ascending by effective date
with at most one entry per date, and is only ever appended to or overwritten
so that past pay can always be recomputed.
"""

from typing import List, Optional

from .schemas import RateEntry, RateTerms, Worker

# Effective date given to entries synthesized from legacy worker fields
LEGACY_EFFECTIVE_DATE = "1970-01-01"


def legacy_rate_entry(worker: Worker, notes: str = "Fallback salary") -> RateEntry:
    """Build a single rate entry from the worker's legacy top-level fields."""
    return RateEntry(
        effective_date=LEGACY_EFFECTIVE_DATE,
        notes=notes,
        **worker.legacy_terms.terms(),
    )


def resolve_rate(
    history: List[RateEntry],
    date: str,
    fallback: Optional[RateEntry] = None,
) -> RateEntry:
    """Return the rate entry in force on a date.

    Args:
        history: Rate entries sorted ascending by effective_date
        date: Target date (YYYY-MM-DD)
        fallback: Entry to use when history is empty

    Returns:
        The last entry whose effective_date <= date. A date before all
        history resolves to the earliest entry (the rate in force before
        record keeping began).

    Raises:
        ValueError: If history is empty and no fallback was supplied
    """
    if not history:
        if fallback is None:
            raise ValueError("empty rate history and no fallback entry")
        return fallback

    applicable = history[0]
    for entry in history:
        if entry.effective_date <= date:
            applicable = entry
        else:
            break
    return applicable


def resolve_worker_rate(worker: Worker, date: str) -> RateEntry:
    """Resolve a worker's rate, falling back to legacy fields for empty history."""
    return resolve_rate(worker.salary_history, date, fallback=legacy_rate_entry(worker))


def upsert_rate_entry(history: List[RateEntry], entry: RateEntry) -> List[RateEntry]:
    """Insert an entry, overwriting any entry with the same effective date.

    Returns:
        New history list, sorted ascending by effective_date
    """
    updated = [e for e in history if e.effective_date != entry.effective_date]
    updated.append(entry)
    updated.sort(key=lambda e: e.effective_date)
    return updated


def revise_initial_rate(
    history: List[RateEntry],
    terms: RateTerms,
    reason: str = "",
    fallback_date: str = LEGACY_EFFECTIVE_DATE,
) -> List[RateEntry]:
    """Correct the first history entry retroactively.

    The first entry keeps its effective date; only its terms change. With an
    empty history a first entry is created at fallback_date.
    """
    notes = f"(retroactive) {reason}".strip()
    if not history:
        return [RateEntry(effective_date=fallback_date, notes=notes, **terms.terms())]

    first = RateEntry(effective_date=history[0].effective_date, notes=notes, **terms.terms())
    return [first] + list(history[1:])


def seed_history(worker: Worker) -> List[RateEntry]:
    """Return the worker's history, migrating legacy fields when it is empty."""
    if worker.salary_history:
        return list(worker.salary_history)
    return [legacy_rate_entry(worker, notes="Base salary (migrated)")]

