"""Two-party account ledger and reconciliation checkpoints.

SDK layer - commands against a Book.

Each account owns a transaction log ordered by (date, seq). Reconciliation
transactions are checkpoints: zero-amount markers that freeze everything
before them. Only the active segment, the transactions strictly after the
latest checkpoint, counts towards the current balance.

    open ──reconcile──> settled-as-of-T ──reconcile──> settled-as-of-T'
      ^                       │
      └──delete sole checkpoint

Only the latest checkpoint may be edited (description only) or deleted;
older ones raise CheckpointLockedError unless forced. Standard transactions
can always be changed, but changing one in a settled segment leaves the
checkpoints after it stale, and the caller gets a warning saying so.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_CURRENCIES
from .errors import (
    CheckpointLockedError,
    NotFoundError,
    ValidationError,
    coerce_model,
    require_date,
)
from .schemas import SYSTEM_PARTY, ChequeStatus, PersonalAccount, Transaction
from .state import Book, LedgerState

logger = logging.getLogger(__name__)

# Fields that identify a transaction and never change after it is stored
_FIXED_FIELDS = ("id", "account_id", "seq", "transaction_type")


def _money(value: float) -> float:
    value = round(value, 2)
    return 0.0 if value == 0 else value


def format_amount(amount: float, currency: str) -> str:
    return f"{abs(amount):,.2f} {currency}"


@dataclass
class LedgerChange:
    """Result of a ledger mutation."""

    transaction: Optional[Transaction]
    warnings: List[str] = field(default_factory=list)


@dataclass
class ReconciliationResult:
    """Result of reconcile()."""

    transaction: Transaction
    balances: Dict[str, float]
    cashed_cheque_ids: List[str] = field(default_factory=list)
    carried_cheque_ids: List[str] = field(default_factory=list)
    manual: bool = False


@dataclass
class HistoryRow:
    transaction: Transaction
    settled: bool


@dataclass
class AccountHistory:
    """An account's log with each row flagged as settled or active."""

    account: PersonalAccount
    rows: List[HistoryRow]
    latest_checkpoint_id: Optional[str]
    balances: Dict[str, float]


def latest_checkpoint(log: List[Transaction]) -> Optional[Transaction]:
    """The reconciliation last in (date, seq) order, if any."""
    checkpoints = [t for t in log if t.is_checkpoint]
    if not checkpoints:
        return None
    return max(checkpoints, key=lambda t: t.sort_key)


def active_segment(log: List[Transaction]) -> List[Transaction]:
    """Transactions after the latest checkpoint (whole log when none).

    Cheques the checkpoint carried forward belong to the active segment even
    though they sort before it.
    """
    checkpoint = latest_checkpoint(log)
    ordered = sorted(log, key=lambda t: t.sort_key)
    if checkpoint is None:
        return ordered
    return [t for t in ordered if not is_settled(t, checkpoint) and t.id != checkpoint.id]


def is_settled(txn: Transaction, checkpoint: Optional[Transaction]) -> bool:
    if checkpoint is None or txn.id in checkpoint.carried_cheque_ids:
        return False
    return txn.sort_key < checkpoint.sort_key


def sum_balance(
    transactions: Iterable[Transaction],
    party: str,
    currencies: Iterable[str] = (),
) -> Dict[str, float]:
    """Σ paid by party − Σ received by party, per currency, over standard transactions."""
    totals = {c: 0.0 for c in currencies}
    for txn in transactions:
        if txn.is_checkpoint:
            continue
        totals.setdefault(txn.currency, 0.0)
        if txn.payer == party:
            totals[txn.currency] += txn.amount
        elif txn.payee == party:
            totals[txn.currency] -= txn.amount
    return {c: _money(v) for c, v in totals.items()}


def describe_balances(
    account: PersonalAccount,
    balances: Dict[str, float],
    manual: bool,
    excluded_count: int,
) -> str:
    """Human-readable summary stored on a reconciliation checkpoint."""
    primary, other = account.primary_party, account.counterparty
    nonzero = [(c, v) for c, v in balances.items() if v != 0]

    if manual:
        if nonzero:
            parts = [
                f"{'in favor' if v > 0 else 'owing'} {format_amount(v, c)}"
                for c, v in nonzero
            ]
            text = f"Manual balance for {primary}: " + " and ".join(parts)
        else:
            text = "Settled manually"
    elif nonzero:
        parts = []
        for currency, value in nonzero:
            if value > 0:
                parts.append(f"Remaining for {primary} from {other}: {format_amount(value, currency)}")
            else:
                parts.append(f"Remaining owed by {primary} to {other}: {format_amount(value, currency)}")
        text = " and ".join(parts)
    else:
        text = "Account fully settled"

    return f"Account reconciled. {text}. Excluded cheques: {excluded_count}"


class AccountLedger:
    """Commands over personal accounts and their transaction logs.

    Args:
        book: Book owning the state
        currencies: Allowed currency codes, primary first
    """

    def __init__(self, book: Book, currencies: Optional[List[str]] = None):
        self.book = book
        self.currencies = list(currencies or DEFAULT_CURRENCIES)

    @property
    def primary_currency(self) -> str:
        return self.currencies[0]

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def get_account(self, account_id: str) -> PersonalAccount:
        return self.book.state.get_account(account_id)

    def list_accounts(self) -> List[PersonalAccount]:
        """Accounts, newest first."""
        return sorted(
            self.book.state.accounts.values(),
            key=lambda a: (a.creation_date, a.id),
            reverse=True,
        )

    def add_account(
        self,
        name: str,
        parties: List[str],
        description: str = "",
        creation_date: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> PersonalAccount:
        with self.book.mutate("add_account") as state:
            account_id = account_id or str(uuid.uuid4())
            if account_id in state.accounts:
                raise ValidationError([f"account id already exists: {account_id}"])
            account = coerce_model(PersonalAccount, {
                "id": account_id,
                "name": name,
                "parties": list(parties),
                "description": description,
                "creation_date": creation_date or self.book.today(),
            })
            state.accounts[account_id] = account
            state.transactions[account_id] = []

        logger.info(f"Added account {name} ({account_id})")
        return self.get_account(account_id)

    def update_account(self, account_id: str, **changes: Any) -> PersonalAccount:
        """Change name, description or parties.

        Parties may only change if every party already used in the log stays.
        """
        unknown = sorted(set(changes) - {"name", "description", "parties"})
        if unknown:
            raise ValidationError([f"{name}: field cannot be changed" for name in unknown])

        with self.book.mutate("update_account") as state:
            account = state.get_account(account_id)
            updated = coerce_model(PersonalAccount, {**account.model_dump(), **changes})
            used = {
                p for t in state.account_log(account_id) if not t.is_checkpoint
                for p in (t.payer, t.payee)
            }
            missing = sorted(used - set(updated.parties))
            if missing:
                raise ValidationError([f"parties: {p} has transactions in this account" for p in missing])
            state.accounts[account_id] = updated

        return self.get_account(account_id)

    def delete_account(self, account_id: str) -> int:
        """Delete an account and its whole log. Returns the number of transactions removed."""
        with self.book.mutate("delete_account") as state:
            state.get_account(account_id)
            removed = len(state.transactions.pop(account_id, []))
            del state.accounts[account_id]

        logger.info(f"Deleted account {account_id} with {removed} transaction(s)")
        return removed

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _check_parties(self, account: PersonalAccount, txn: Transaction) -> None:
        errors = []
        for role in ("payer", "payee"):
            name = getattr(txn, role)
            if name not in account.parties:
                errors.append(f"{role}: '{name}' is not a party of account {account.name}")
        if txn.currency not in self.currencies:
            errors.append(f"currency: '{txn.currency}' is not one of {', '.join(self.currencies)}")
        if errors:
            raise ValidationError(errors)

    @staticmethod
    def _locate(state: LedgerState, transaction_id: str) -> Tuple[List[Transaction], int]:
        txn = state.find_transaction(transaction_id)
        log = state.log_for_update(txn.account_id)
        return log, log.index(txn)

    @staticmethod
    def _stale_warning(txn: Transaction, checkpoint: Transaction) -> str:
        return (
            f"Transaction {txn.id} ({txn.date}) is before reconciliation {checkpoint.id} "
            f"({checkpoint.date}); balances settled there are now stale"
        )

    def add_transaction(self, account_id: str, data: Dict[str, Any]) -> LedgerChange:
        """Append a standard transaction.

        Args:
            account_id: Target account
            data: Transaction fields (date defaults to today, currency to the
                primary currency)

        Returns:
            LedgerChange, with a stale-balance warning when the date falls in
            a settled segment
        """
        fixed = sorted(set(data) & set(_FIXED_FIELDS))
        if fixed:
            raise ValidationError([f"{name}: assigned by the ledger" for name in fixed])

        with self.book.mutate("add_transaction") as state:
            account = state.get_account(account_id)
            log = state.log_for_update(account_id)
            payload = {"currency": self.primary_currency, "date": self.book.today(), **data}
            txn = coerce_model(Transaction, {
                **payload,
                "id": str(uuid.uuid4()),
                "account_id": account_id,
                "seq": state.take_seq(),
            })
            self._check_parties(account, txn)
            log.append(txn)
            log.sort(key=lambda t: t.sort_key)

            warnings = []
            checkpoint = latest_checkpoint(log)
            if is_settled(txn, checkpoint):
                warnings.append(self._stale_warning(txn, checkpoint))

        for warning in warnings:
            logger.warning(warning)
        logger.debug(f"Added transaction {txn.id} to account {account_id}")
        return LedgerChange(transaction=txn, warnings=warnings)

    def edit_transaction(
        self,
        transaction_id: str,
        updates: Dict[str, Any],
        force: bool = False,
    ) -> LedgerChange:
        """Edit a transaction.

        Reconciliations accept description changes only, and only the latest
        one may be edited unless force=True.

        Raises:
            CheckpointLockedError: Editing a non-latest reconciliation without force
            ValidationError: Invalid fields
        """
        fixed = sorted(set(updates) & set(_FIXED_FIELDS))
        if fixed:
            raise ValidationError([f"{name}: cannot be changed" for name in fixed])

        with self.book.mutate("edit_transaction") as state:
            log, index = self._locate(state, transaction_id)
            old = log[index]
            account = state.get_account(old.account_id)
            checkpoint = latest_checkpoint(log)
            warnings = []

            if old.is_checkpoint:
                extra = sorted(set(updates) - {"description"})
                if extra:
                    raise ValidationError([f"{name}: reconciliations only accept description edits" for name in extra])
                warnings.extend(self._checkpoint_guard(old, checkpoint, force))
                new = old.model_copy(update={"description": updates.get("description", old.description)})
            else:
                new = coerce_model(Transaction, {**old.model_dump(), **updates})
                self._check_parties(account, new)
                for txn in (old, new):
                    if is_settled(txn, checkpoint):
                        warnings.append(self._stale_warning(txn, checkpoint))
                        break

            log[index] = new
            log.sort(key=lambda t: t.sort_key)

        for warning in warnings:
            logger.warning(warning)
        return LedgerChange(transaction=new, warnings=warnings)

    def delete_transaction(self, transaction_id: str, force: bool = False) -> LedgerChange:
        """Delete a transaction; non-latest reconciliations need force=True.

        Deleting the latest reconciliation reopens the segment before it.
        Cheques it marked cashed stay cashed.
        """
        with self.book.mutate("delete_transaction") as state:
            log, index = self._locate(state, transaction_id)
            old = log[index]
            checkpoint = latest_checkpoint(log)
            warnings = []

            if old.is_checkpoint:
                warnings.extend(self._checkpoint_guard(old, checkpoint, force))
            elif is_settled(old, checkpoint):
                warnings.append(self._stale_warning(old, checkpoint))
            del log[index]

        for warning in warnings:
            logger.warning(warning)
        logger.debug(f"Deleted transaction {transaction_id}")
        return LedgerChange(transaction=old, warnings=warnings)

    @staticmethod
    def _checkpoint_guard(
        txn: Transaction,
        checkpoint: Optional[Transaction],
        force: bool,
    ) -> List[str]:
        if checkpoint is None or txn.id == checkpoint.id:
            return []
        if not force:
            raise CheckpointLockedError(txn.id, checkpoint.id)
        return [
            f"Forced change to reconciliation {txn.id} ({txn.date}); "
            f"later reconciliation {checkpoint.id} ({checkpoint.date}) assumed it, balances are stale"
        ]

    def set_cheque_status(self, transaction_id: str, status: ChequeStatus) -> LedgerChange:
        """Mark a cheque pending or cashed."""
        if status not in ("pending", "cashed"):
            raise ValidationError([f"cheque_status: invalid status '{status}'"])

        with self.book.mutate("set_cheque_status") as state:
            log, index = self._locate(state, transaction_id)
            txn = log[index]
            if txn.payment_method != "cheque" or txn.is_checkpoint:
                raise ValidationError([f"transaction {transaction_id} is not a cheque"])
            txn.cheque_status = status

        return LedgerChange(transaction=txn)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _party(self, account: PersonalAccount, party: Optional[str]) -> str:
        party = party or account.primary_party
        if party not in account.parties:
            raise ValidationError([f"party: '{party}' is not a party of account {account.name}"])
        return party

    def compute_balance(self, account_id: str, party: Optional[str] = None) -> Dict[str, float]:
        """Current balance of a party over the active segment, per currency.

        Positive means the party has paid more than it received.
        """
        state = self.book.state
        account = state.get_account(account_id)
        party = self._party(account, party)
        return sum_balance(active_segment(state.account_log(account_id)), party, self.currencies)

    def pending_cheques(self, account_id: Optional[str] = None) -> List[Transaction]:
        """Pending cheques, by due date (or date when no due date)."""
        state = self.book.state
        if account_id is not None:
            logs = [state.account_log(account_id)]
        else:
            logs = list(state.transactions.values())
        pending = [t for log in logs for t in log if t.is_pending_cheque]
        return sorted(pending, key=lambda t: (t.cheque_due_date or t.date, t.seq))

    def account_history(self, account_id: str) -> AccountHistory:
        """Log in (date, seq) order with each standard row flagged as settled or not."""
        state = self.book.state
        account = state.get_account(account_id)
        log = state.account_log(account_id)
        checkpoint = latest_checkpoint(log)
        rows = [
            HistoryRow(transaction=t, settled=not t.is_checkpoint and is_settled(t, checkpoint))
            for t in sorted(log, key=lambda t: t.sort_key)
        ]
        return AccountHistory(
            account=account,
            rows=rows,
            latest_checkpoint_id=checkpoint.id if checkpoint else None,
            balances=self.compute_balance(account_id),
        )

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def reconcile(
        self,
        account_id: str,
        excluded_cheque_ids: Iterable[str] = (),
        manual_balances: Optional[Dict[str, float]] = None,
        as_of: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ReconciliationResult:
        """Settle the active segment with a checkpoint.

        Transactions dated after as_of are left in the new active segment.
        Excluded cheques stay pending and are recorded on the checkpoint as
        carried, so they stay in the next active segment; every other pending
        cheque being settled is marked cashed.

        Args:
            account_id: Account to settle
            excluded_cheque_ids: Pending cheques in the active segment to leave out
            manual_balances: Operator-supplied balances per currency (primary
                party's side); skips the computed balance
            as_of: Checkpoint date (default today)
            description: Overrides the generated summary

        Raises:
            ValidationError: as_of precedes the latest checkpoint, an excluded
                id is not a pending cheque in the active segment, or an
                unknown manual currency
        """
        as_of = require_date(as_of or self.book.today(), "as_of")
        excluded = list(dict.fromkeys(excluded_cheque_ids))

        with self.book.mutate("reconcile") as state:
            account = state.get_account(account_id)
            log = state.log_for_update(account_id)
            previous = latest_checkpoint(log)
            if previous is not None and as_of < previous.date:
                raise ValidationError([
                    f"as_of: {as_of} is before the latest reconciliation on {previous.date}"
                ])

            segment = [t for t in active_segment(log) if t.date <= as_of]
            pending_ids = {t.id for t in segment if t.is_pending_cheque}
            unknown = [cid for cid in excluded if cid not in pending_ids]
            if unknown:
                raise ValidationError([f"excluded_cheque_ids: {cid} is not a pending cheque in the active segment" for cid in unknown])

            if manual_balances is not None:
                bad = sorted(set(manual_balances) - set(self.currencies))
                if bad:
                    raise ValidationError([f"manual_balances: unknown currency {c}" for c in bad])
                balances = {c: _money(manual_balances.get(c, 0.0)) for c in self.currencies}
            else:
                counted = [t for t in segment if t.id not in excluded]
                balances = sum_balance(counted, account.primary_party, self.currencies)

            cashed = []
            for txn in segment:
                if txn.is_pending_cheque and txn.id not in excluded:
                    txn.cheque_status = "cashed"
                    cashed.append(txn.id)

            checkpoint = coerce_model(Transaction, {
                "id": str(uuid.uuid4()),
                "account_id": account_id,
                "seq": state.take_seq(),
                "date": as_of,
                "description": description or describe_balances(
                    account, balances, manual_balances is not None, len(excluded),
                ),
                "amount": 0,
                "currency": self.primary_currency,
                "payer": SYSTEM_PARTY,
                "payee": SYSTEM_PARTY,
                "transaction_type": "reconciliation",
                "carried_cheque_ids": excluded,
                "manual_balances": balances if manual_balances is not None else None,
            })
            log.append(checkpoint)
            log.sort(key=lambda t: t.sort_key)

        logger.info(
            f"Reconciled account {account_id} as of {as_of}: "
            f"{len(cashed)} cheque(s) cashed, {len(excluded)} carried"
        )
        return ReconciliationResult(
            transaction=checkpoint,
            balances=balances,
            cashed_cheque_ids=cashed,
            carried_cheque_ids=excluded,
            manual=manual_balances is not None,
        )
