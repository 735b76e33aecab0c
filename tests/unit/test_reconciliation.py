"""Tests for reconciliation checkpoints and the checkpoint edit/delete guard."""

import logging

import pytest

from payledger.sdk import PayrollBook
from payledger.sdk.errors import CheckpointLockedError, ValidationError


@pytest.fixture
def book():
    return PayrollBook(currencies=["ILS", "JOD"], clock=lambda: "2023-06-15")


@pytest.fixture
def account(book):
    return book.add_account("Rent", ["A", "B"], account_id="acc-1")


def pay(book, amount, date="2023-06-01", payer="A", payee="B", **kwargs):
    data = {"amount": amount, "payer": payer, "payee": payee, "date": date, **kwargs}
    return book.add_transaction("acc-1", data).transaction


class TestReconcile:

    def test_resets_balance(self, book, account):
        pay(book, 200)
        result = book.reconcile("acc-1")

        assert result.balances == {"ILS": 200.0, "JOD": 0.0}
        assert result.transaction.amount == 0
        assert result.transaction.payer == "SYSTEM"
        assert result.transaction.date == "2023-06-15"
        assert book.compute_balance("acc-1") == {"ILS": 0.0, "JOD": 0.0}

    def test_description_computed(self, book, account):
        pay(book, 200)
        pay(book, 5, payer="B", payee="A", currency="JOD")
        description = book.reconcile("acc-1").transaction.description

        assert description == (
            "Account reconciled. Remaining for A from B: 200.00 ILS and "
            "Remaining owed by A to B: 5.00 JOD. Excluded cheques: 0"
        )

    def test_description_settled(self, book, account):
        assert book.reconcile("acc-1").transaction.description == (
            "Account reconciled. Account fully settled. Excluded cheques: 0"
        )

    def test_segment_isolation(self, book, account):
        pay(book, 200, date="2023-06-01")
        pay(book, 70, date="2023-06-10", payer="B", payee="A")
        book.reconcile("acc-1", as_of="2023-06-10")
        after = pay(book, 40, date="2023-06-12")

        assert book.compute_balance("acc-1") == {"ILS": 40.0, "JOD": 0.0}

        # Adding more history before the checkpoint does not move the balance
        change = book.add_transaction("acc-1", {"amount": 999, "payer": "A", "payee": "B", "date": "2023-05-01"})
        assert change.warnings
        assert book.compute_balance("acc-1") == {"ILS": 40.0, "JOD": 0.0}
        assert after.id in [r.transaction.id for r in book.account_history("acc-1").rows if not r.settled]

    def test_same_day_transaction_after_checkpoint_counts(self, book, account):
        book.reconcile("acc-1", as_of="2023-06-10")
        pay(book, 25, date="2023-06-10")
        assert book.compute_balance("acc-1")["ILS"] == 25.0

    def test_later_dated_transactions_stay_active(self, book, account):
        pay(book, 100, date="2023-06-01")
        pay(book, 30, date="2023-06-20", payment_method="cheque")
        result = book.reconcile("acc-1", as_of="2023-06-15")

        assert result.balances["ILS"] == 100.0
        assert result.cashed_cheque_ids == []
        assert book.compute_balance("acc-1")["ILS"] == 30.0

    def test_pending_cheques_cashed_unless_excluded(self, book, account):
        cashed = pay(book, 100, payment_method="cheque", cheque_number="1")
        carried = pay(book, 300, payment_method="cheque", cheque_number="2")
        pay(book, 50)

        result = book.reconcile("acc-1", excluded_cheque_ids=[carried.id])

        assert result.balances["ILS"] == 150.0
        assert result.cashed_cheque_ids == [cashed.id]
        assert result.carried_cheque_ids == [carried.id]
        assert result.transaction.carried_cheque_ids == [carried.id]
        assert result.transaction.description.endswith("Excluded cheques: 1")
        assert [c.id for c in book.pending_cheques("acc-1")] == [carried.id]

        # The carried cheque rolls into the next segment
        assert book.compute_balance("acc-1")["ILS"] == 300.0
        rows = {r.transaction.id: r.settled for r in book.account_history("acc-1").rows}
        assert rows[carried.id] is False
        assert rows[cashed.id] is True

    def test_carried_cheque_cashed_by_next_reconcile(self, book, account):
        cheque = pay(book, 300, payment_method="cheque", date="2023-06-01")
        book.reconcile("acc-1", excluded_cheque_ids=[cheque.id], as_of="2023-06-10")
        pay(book, 20, date="2023-06-12", payer="B", payee="A")

        result = book.reconcile("acc-1", as_of="2023-06-20")

        assert result.balances["ILS"] == 280.0
        assert result.cashed_cheque_ids == [cheque.id]
        assert book.pending_cheques("acc-1") == []
        assert book.compute_balance("acc-1")["ILS"] == 0.0

    def test_carried_cheque_can_be_excluded_again(self, book, account):
        cheque = pay(book, 300, payment_method="cheque", date="2023-06-01")
        book.reconcile("acc-1", excluded_cheque_ids=[cheque.id], as_of="2023-06-10")

        result = book.reconcile("acc-1", excluded_cheque_ids=[cheque.id], as_of="2023-06-20")

        assert result.balances["ILS"] == 0.0
        assert result.carried_cheque_ids == [cheque.id]
        assert book.compute_balance("acc-1")["ILS"] == 300.0

    def test_editing_carried_cheque_not_stale(self, book, account):
        cheque = pay(book, 300, payment_method="cheque", date="2023-06-01")
        book.reconcile("acc-1", excluded_cheque_ids=[cheque.id], as_of="2023-06-10")

        change = book.edit_transaction(cheque.id, {"amount": 250})
        assert change.warnings == []
        assert book.compute_balance("acc-1")["ILS"] == 250.0

    def test_excluding_unknown_cheque_rejected(self, book, account):
        txn = pay(book, 100)
        with pytest.raises(ValidationError):
            book.reconcile("acc-1", excluded_cheque_ids=[txn.id])

    def test_manual_override(self, book, account):
        pending = pay(book, 100, payment_method="cheque")
        result = book.reconcile("acc-1", manual_balances={"ILS": 150, "JOD": -20})

        assert result.manual
        assert result.balances == {"ILS": 150.0, "JOD": -20.0}
        assert result.transaction.manual_balances == {"ILS": 150.0, "JOD": -20.0}
        assert result.cashed_cheque_ids == [pending.id]
        assert result.transaction.description == (
            "Account reconciled. Manual balance for A: in favor 150.00 ILS and "
            "owing 20.00 JOD. Excluded cheques: 0"
        )

    def test_manual_zero(self, book, account):
        result = book.reconcile("acc-1", manual_balances={"ILS": 0})
        assert "Settled manually" in result.transaction.description

    def test_manual_unknown_currency(self, book, account):
        with pytest.raises(ValidationError):
            book.reconcile("acc-1", manual_balances={"USD": 5})

    def test_as_of_before_latest_checkpoint_rejected(self, book, account):
        book.reconcile("acc-1", as_of="2023-06-10")
        with pytest.raises(ValidationError):
            book.reconcile("acc-1", as_of="2023-06-09")

    def test_rejected_reconcile_changes_nothing(self, book, account):
        cheque = pay(book, 100, payment_method="cheque")
        with pytest.raises(ValidationError):
            book.reconcile("acc-1", manual_balances={"USD": 5})
        assert book.pending_cheques("acc-1")[0].id == cheque.id
        assert book.account_history("acc-1").latest_checkpoint_id is None


class TestCheckpointGuard:

    @pytest.fixture
    def two_checkpoints(self, book, account):
        pay(book, 100, date="2023-06-01")
        first = book.reconcile("acc-1", as_of="2023-06-05").transaction
        pay(book, 40, date="2023-06-07")
        second = book.reconcile("acc-1", as_of="2023-06-10").transaction
        return first, second

    def test_latest_checkpoint_description_editable(self, book, two_checkpoints):
        _, second = two_checkpoints
        change = book.edit_transaction(second.id, {"description": "June settled"})
        assert change.warnings == []
        assert change.transaction.description == "June settled"

    def test_checkpoint_only_description(self, book, two_checkpoints):
        _, second = two_checkpoints
        with pytest.raises(ValidationError):
            book.edit_transaction(second.id, {"date": "2023-06-11"})

    def test_older_checkpoint_locked(self, book, two_checkpoints):
        first, second = two_checkpoints
        with pytest.raises(CheckpointLockedError) as exc:
            book.edit_transaction(first.id, {"description": "x"})
        assert exc.value.latest_id == second.id

        with pytest.raises(CheckpointLockedError):
            book.delete_transaction(first.id)

    def test_force_returns_warning(self, book, two_checkpoints, caplog):
        first, _ = two_checkpoints
        with caplog.at_level(logging.WARNING):
            change = book.delete_transaction(first.id, force=True)

        assert len(change.warnings) == 1
        assert "stale" in change.warnings[0]
        assert "stale" in caplog.text

    def test_delete_latest_reopens_previous_segment(self, book, two_checkpoints):
        _, second = two_checkpoints
        assert book.compute_balance("acc-1")["ILS"] == 0.0

        book.delete_transaction(second.id)
        assert book.compute_balance("acc-1")["ILS"] == 40.0

    def test_delete_sole_checkpoint_reopens_account(self, book, account):
        pay(book, 100)
        checkpoint = book.reconcile("acc-1").transaction
        book.delete_transaction(checkpoint.id)

        assert book.compute_balance("acc-1")["ILS"] == 100.0
        assert book.account_history("acc-1").latest_checkpoint_id is None

    def test_settled_standard_edit_warns(self, book, two_checkpoints):
        settled = book.account_history("acc-1").rows[0].transaction
        change = book.edit_transaction(settled.id, {"amount": 120})

        assert change.warnings
        assert book.compute_balance("acc-1")["ILS"] == 0.0

    def test_active_standard_delete_no_warning(self, book, two_checkpoints):
        txn = pay(book, 10, date="2023-06-12")
        assert book.delete_transaction(txn.id).warnings == []


class TestAccountHistory:

    def test_rows_flagged(self, book, account):
        old = pay(book, 100, date="2023-06-01")
        checkpoint = book.reconcile("acc-1", as_of="2023-06-05").transaction
        new = pay(book, 10, date="2023-06-07")

        history = book.account_history("acc-1")

        assert [(r.transaction.id, r.settled) for r in history.rows] == [
            (old.id, True),
            (checkpoint.id, False),
            (new.id, False),
        ]
        assert history.latest_checkpoint_id == checkpoint.id
        assert history.balances["ILS"] == 10.0
