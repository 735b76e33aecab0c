"""Pydantic schemas for pay-ledger data.

All schemas use extra='forbid' to reject unknown fields, so a typo in a
command payload or a hand-edited snapshot fails loudly instead of being
silently dropped.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


PaymentType = Literal["daily", "monthly", "hourly"]
OvertimeMode = Literal["automatic", "manual"]
WorkerStatus = Literal["active", "suspended"]
RecordStatus = Literal["present", "absent", "paid-leave"]
PaymentMethod = Literal["cash", "cheque"]
ChequeStatus = Literal["pending", "cashed"]
TransactionType = Literal["standard", "reconciliation"]

# Payer/payee recorded on reconciliation checkpoints
SYSTEM_PARTY = "SYSTEM"


def check_iso_date(value: str) -> str:
    """Validate a YYYY-MM-DD date string and return it unchanged."""
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise ValueError(f"invalid date '{value}', expected YYYY-MM-DD")
    return value


def check_month(value: str) -> str:
    """Validate a YYYY-MM month string and return it unchanged."""
    try:
        datetime.strptime(value, "%Y-%m")
    except (TypeError, ValueError):
        raise ValueError(f"invalid month '{value}', expected YYYY-MM")
    return value


def record_id(worker_id: str, date: str) -> str:
    """Build the DailyRecord id for a (worker, date) pair."""
    return f"{worker_id}-{date}"


def split_record_id(rec_id: str) -> Tuple[str, str]:
    """Split a DailyRecord id back into (worker_id, date).

    The date is always the trailing 10 characters, so worker ids may
    themselves contain dashes (UUIDs do).
    """
    if len(rec_id) < 12 or rec_id[-11] != "-":
        raise ValueError(f"malformed record id '{rec_id}'")
    return rec_id[:-11], check_iso_date(rec_id[-10:])


# =============================================================================
# Workers and rate history
# =============================================================================


class RateTerms(BaseModel):
    """Pay terms without an effective date (legacy worker fields, CLI input)."""

    model_config = ConfigDict(extra="forbid")

    payment_type: PaymentType = Field(default="daily", description="How the worker is paid")
    daily_rate: float = Field(default=0, ge=0, description="Pay per work day")
    monthly_salary: float = Field(default=0, ge=0, description="Monthly salary")
    hourly_rate: float = Field(default=0, ge=0, description="Pay per hour")
    overtime_mode: OvertimeMode = Field(
        default="automatic",
        description="automatic derives overtime_rate from daily_rate / division_factor",
    )
    division_factor: float = Field(default=8, ge=0, description="Hours in a work day")
    overtime_rate: float = Field(default=0, ge=0, description="Pay per overtime hour")

    @model_validator(mode="after")
    def derive_overtime_rate(self) -> "RateTerms":
        """Automatic overtime for daily pay is daily_rate / division_factor."""
        if (
            self.payment_type == "daily"
            and self.overtime_mode == "automatic"
            and self.division_factor > 0
        ):
            self.overtime_rate = self.daily_rate / self.division_factor
        return self

    def terms(self) -> Dict[str, object]:
        """Return only the pay-term fields, for building a RateEntry."""
        return {name: getattr(self, name) for name in RateTerms.model_fields}


class RateEntry(RateTerms):
    """One version of a worker's pay terms, effective from a date."""

    effective_date: str = Field(..., description="First day these terms apply (YYYY-MM-DD)")
    notes: str = Field(default="", description="Reason for the change")

    @field_validator("effective_date")
    @classmethod
    def valid_effective_date(cls, v: str) -> str:
        return check_iso_date(v)


class Worker(BaseModel):
    """A worker with an ordered, date-indexed rate history."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = Field(..., min_length=1)
    status: WorkerStatus = "active"
    default_project_id: Optional[str] = None
    salary_history: List[RateEntry] = Field(
        default_factory=list,
        description="Sorted ascending by effective_date, unique dates",
    )
    legacy_terms: RateTerms = Field(
        default_factory=RateTerms,
        description="Top-level rate fields from before rate history existed",
    )

    @field_validator("salary_history")
    @classmethod
    def history_sorted_unique(cls, v: List[RateEntry]) -> List[RateEntry]:
        dates = [e.effective_date for e in v]
        if dates != sorted(set(dates)):
            raise ValueError("salary_history must be sorted by effective_date with unique dates")
        return v


# =============================================================================
# Daily records
# =============================================================================


class DeferredAdvance(BaseModel):
    """An advance filed under one record but belonging to another (later) date."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., pattern=r"^[a-f0-9-]+$")
    date: str
    amount: float = Field(..., ge=0)
    notes: str = ""

    @field_validator("date")
    @classmethod
    def valid_date(cls, v: str) -> str:
        return check_iso_date(v)


class DailyRecord(BaseModel):
    """Attendance and money movements of one worker on one calendar day."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default="", description="Always '<worker_id>-<date>'")
    worker_id: str
    date: str
    project_id: str = ""
    status: RecordStatus = "absent"
    work_day: float = Field(default=0, ge=0, description="Day fraction, or hours for hourly pay")
    overtime_hours: float = Field(default=0, ge=0)
    advance: float = Field(default=0, ge=0, description="Same-day plus deferred advances")
    smoking: float = Field(default=0, ge=0)
    expense: float = Field(default=0, ge=0)
    notes: str = ""
    deferred_advances: List[DeferredAdvance] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def valid_date(cls, v: str) -> str:
        return check_iso_date(v)

    @model_validator(mode="after")
    def assign_id(self) -> "DailyRecord":
        self.id = record_id(self.worker_id, self.date)
        return self

    @property
    def deductions(self) -> float:
        return self.advance + self.smoking + self.expense

    @property
    def deferred_total(self) -> float:
        return sum(a.amount for a in self.deferred_advances)

    @property
    def same_day_advance(self) -> float:
        """Advance paid on the record's own date (never negative)."""
        return max(self.advance - self.deferred_total, 0.0)

    def find_advance(self, pma_id: str) -> Optional[DeferredAdvance]:
        for adv in self.deferred_advances:
            if adv.id == pma_id:
                return adv
        return None


# =============================================================================
# Two-party accounts
# =============================================================================


class PersonalAccount(BaseModel):
    """A running account between two (or more) named parties."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = Field(..., min_length=1)
    parties: List[str] = Field(..., min_length=2, description="parties[0] is the primary side")
    description: str = ""
    creation_date: str

    @field_validator("parties")
    @classmethod
    def distinct_parties(cls, v: List[str]) -> List[str]:
        if any(not p.strip() for p in v):
            raise ValueError("party names must not be empty")
        if len(set(v)) != len(v):
            raise ValueError("party names must be distinct")
        if SYSTEM_PARTY in v:
            raise ValueError(f"'{SYSTEM_PARTY}' is reserved")
        return v

    @field_validator("creation_date")
    @classmethod
    def valid_creation_date(cls, v: str) -> str:
        return check_iso_date(v)

    @property
    def primary_party(self) -> str:
        return self.parties[0]

    @property
    def counterparty(self) -> str:
        return self.parties[1]


class Transaction(BaseModel):
    """A money movement or a reconciliation checkpoint in an account log."""

    model_config = ConfigDict(extra="forbid")

    id: str
    account_id: str
    seq: int = Field(default=0, description="Insertion sequence, tiebreak for same-date entries")
    date: str
    description: str = ""
    amount: float = Field(default=0, ge=0)
    currency: str = "ILS"
    payer: str
    payee: str
    payment_method: PaymentMethod = "cash"
    cheque_number: Optional[str] = None
    cheque_due_date: Optional[str] = None
    cheque_status: Optional[ChequeStatus] = None
    transaction_type: TransactionType = "standard"
    carried_cheque_ids: List[str] = Field(
        default_factory=list,
        description="Pending cheques left pending by this reconciliation",
    )
    manual_balances: Optional[Dict[str, float]] = Field(
        default=None,
        description="Operator-supplied balances for a manual reconciliation",
    )

    @field_validator("date")
    @classmethod
    def valid_date(cls, v: str) -> str:
        return check_iso_date(v)

    @field_validator("cheque_due_date")
    @classmethod
    def valid_due_date(cls, v: Optional[str]) -> Optional[str]:
        return check_iso_date(v) if v else v

    @model_validator(mode="after")
    def check_shape(self) -> "Transaction":
        if self.transaction_type == "reconciliation":
            if self.amount != 0:
                raise ValueError("reconciliation transactions carry no amount")
            self.payment_method = "cash"
            self.cheque_status = None
            return self

        if self.payer == self.payee:
            raise ValueError("payer and payee must differ")
        if self.payment_method == "cheque":
            if self.cheque_status is None:
                self.cheque_status = "pending"
        else:
            self.cheque_status = None
            self.cheque_number = None
            self.cheque_due_date = None
        return self

    @property
    def is_checkpoint(self) -> bool:
        return self.transaction_type == "reconciliation"

    @property
    def is_pending_cheque(self) -> bool:
        return (
            self.transaction_type == "standard"
            and self.payment_method == "cheque"
            and self.cheque_status == "pending"
        )

    @property
    def sort_key(self) -> Tuple[str, int]:
        return (self.date, self.seq)
