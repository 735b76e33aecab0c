"""Tests for rate history resolution and maintenance (pure SDK logic)."""

import pytest

from payledger.sdk.rates import (
    LEGACY_EFFECTIVE_DATE,
    legacy_rate_entry,
    resolve_rate,
    resolve_worker_rate,
    revise_initial_rate,
    seed_history,
    upsert_rate_entry,
)
from payledger.sdk.schemas import RateEntry, RateTerms, Worker


def entry(date: str, daily_rate: float, **kwargs) -> RateEntry:
    return RateEntry(effective_date=date, payment_type="daily", daily_rate=daily_rate, **kwargs)


@pytest.fixture
def history():
    return [
        entry("2023-01-01", 100),
        entry("2023-06-01", 120),
        entry("2024-01-01", 150),
    ]


class TestResolveRate:
    """Tests for resolve_rate()."""

    @pytest.mark.parametrize("date,expected", [
        ("2022-12-31", 100),   # before all entries -> earliest
        ("2023-01-01", 100),
        ("2023-05-31", 100),
        ("2023-06-01", 120),
        ("2023-12-31", 120),
        ("2024-01-01", 150),
        ("2030-01-01", 150),
    ])
    def test_last_entry_on_or_before_date(self, history, date, expected):
        assert resolve_rate(history, date).daily_rate == expected

    def test_empty_history_uses_fallback(self):
        fallback = entry(LEGACY_EFFECTIVE_DATE, 80)
        assert resolve_rate([], "2023-01-01", fallback=fallback) is fallback

    def test_empty_history_without_fallback_raises(self):
        with pytest.raises(ValueError):
            resolve_rate([], "2023-01-01")

    def test_idempotent(self, history):
        assert resolve_rate(history, "2023-07-01") == resolve_rate(history, "2023-07-01")


class TestLegacyFallback:
    """Workers without history resolve to their legacy top-level fields."""

    def test_worker_without_history(self):
        worker = Worker(
            id="w1",
            name="Sami",
            legacy_terms=RateTerms(payment_type="monthly", monthly_salary=3000),
        )
        rate = resolve_worker_rate(worker, "2023-03-15")

        assert rate.payment_type == "monthly"
        assert rate.monthly_salary == 3000
        assert rate.effective_date == LEGACY_EFFECTIVE_DATE
        assert rate.notes == "Fallback salary"

    def test_history_wins_over_legacy(self, history):
        worker = Worker(
            id="w1",
            name="Sami",
            salary_history=history,
            legacy_terms=RateTerms(daily_rate=1),
        )
        assert resolve_worker_rate(worker, "2023-07-01").daily_rate == 120

    def test_seed_history_migrates_legacy_fields(self):
        worker = Worker(id="w1", name="Sami", legacy_terms=RateTerms(daily_rate=90))
        seeded = seed_history(worker)

        assert len(seeded) == 1
        assert seeded[0].daily_rate == 90
        assert seeded[0].notes == "Base salary (migrated)"

    def test_seed_history_keeps_existing(self, history):
        worker = Worker(id="w1", name="Sami", salary_history=history)
        assert seed_history(worker) == history

    def test_legacy_entry_notes_override(self):
        worker = Worker(id="w1", name="Sami")
        assert legacy_rate_entry(worker, notes="x").notes == "x"


class TestUpsertRateEntry:
    """Tests for upsert_rate_entry()."""

    def test_inserts_in_order(self, history):
        updated = upsert_rate_entry(history, entry("2023-03-01", 110))
        assert [e.effective_date for e in updated] == [
            "2023-01-01", "2023-03-01", "2023-06-01", "2024-01-01",
        ]

    def test_same_date_overwrites(self, history):
        updated = upsert_rate_entry(history, entry("2023-06-01", 125))
        assert len(updated) == 3
        assert resolve_rate(updated, "2023-06-01").daily_rate == 125

    def test_does_not_mutate_input(self, history):
        upsert_rate_entry(history, entry("2025-01-01", 200))
        assert len(history) == 3

    def test_unsorted_history_rejected_by_worker(self):
        with pytest.raises(ValueError):
            Worker(id="w1", name="Sami", salary_history=[
                entry("2024-01-01", 1), entry("2023-01-01", 2),
            ])


class TestReviseInitialRate:
    """Tests for revise_initial_rate()."""

    def test_keeps_effective_date_and_marks_retroactive(self, history):
        revised = revise_initial_rate(history, RateTerms(daily_rate=95), reason="typo")

        assert revised[0].effective_date == "2023-01-01"
        assert revised[0].daily_rate == 95
        assert revised[0].notes == "(retroactive) typo"
        assert revised[1:] == history[1:]

    def test_empty_history_creates_first_entry(self):
        revised = revise_initial_rate([], RateTerms(daily_rate=95))
        assert revised[0].effective_date == LEGACY_EFFECTIVE_DATE
        assert revised[0].notes == "(retroactive)"


class TestOvertimeRate:
    """Automatic overtime derivation on daily terms."""

    def test_automatic_daily(self):
        terms = RateTerms(payment_type="daily", daily_rate=100, division_factor=8, overtime_rate=1)
        assert terms.overtime_rate == 12.5

    def test_manual_keeps_supplied_rate(self):
        terms = RateTerms(payment_type="daily", daily_rate=100, overtime_mode="manual", overtime_rate=20)
        assert terms.overtime_rate == 20

    def test_monthly_keeps_supplied_rate(self):
        terms = RateTerms(payment_type="monthly", monthly_salary=3000, overtime_rate=15)
        assert terms.overtime_rate == 15
