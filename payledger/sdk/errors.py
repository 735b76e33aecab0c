"""Exceptions raised by the payroll ledger SDK.

CLI and MCP layers catch LedgerError and render the message; the SDK never
returns error codes.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class LedgerError(Exception):
    """Base class for all ledger errors."""


class NotFoundError(LedgerError):
    """Raised when a worker, record, account, transaction or advance id is unknown."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ValidationError(LedgerError):
    """Raised when a command fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class CheckpointLockedError(LedgerError):
    """Raised when a reconciliation older than the latest one is edited or deleted."""

    def __init__(self, transaction_id: str, latest_id: Optional[str]):
        self.transaction_id = transaction_id
        self.latest_id = latest_id
        super().__init__(
            f"Reconciliation {transaction_id} is not the latest checkpoint "
            f"(latest: {latest_id}). Pass force=True to override."
        )


def parse_model(model_cls: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Validate data into a pydantic model, raising ValidationError on failure."""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        messages = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"]) or "root"
            messages.append(f"{loc}: {err['msg']}")
        raise ValidationError(messages) from e


def coerce_model(model_cls: Type[ModelT], value: Union[ModelT, Dict[str, Any]]) -> ModelT:
    """Accept either a model instance or a plain dict payload."""
    if isinstance(value, model_cls):
        return value
    return parse_model(model_cls, value)


def require_date(value: str, field: str = "date") -> str:
    """Validate a YYYY-MM-DD argument, raising ValidationError when malformed."""
    from .schemas import check_iso_date

    try:
        return check_iso_date(value)
    except ValueError as e:
        raise ValidationError([f"{field}: {e}"])


def require_month(value: str, field: str = "month") -> str:
    """Validate a YYYY-MM argument, raising ValidationError when malformed."""
    from .schemas import check_month

    try:
        return check_month(value)
    except ValueError as e:
        raise ValidationError([f"{field}: {e}"])
