"""Deferred-advance (PMA) token codec.

Legacy daily records stored post-month advances as tokens embedded in the
free-text notes field:

    worked late;[PMA:<id>:<date>:<amount>:<notes>];[PMA:...]

Records now keep advances in DailyRecord.deferred_advances. This module
converts between the two forms so legacy notes can be imported and exported
without loss.

Grammar
-------
- id: lowercase hex and dashes (UUID4)
- date, amount: no ':' or ']'; amount is the shortest decimal that
  round-trips through float()
- notes: anything; '\\' and ']' are backslash-escaped
- tokens are joined with ';' and joined to the plain notes with ';'

A malformed token (unparseable amount, invalid date) is skipped, never fatal.
"""

import logging
import re
import uuid
from typing import Any, Dict, List

from .errors import parse_model
from .schemas import DailyRecord, DeferredAdvance

logger = logging.getLogger(__name__)

SEPARATOR = ";"

_TOKEN_RE = re.compile(
    r"\[PMA:([a-f0-9-]+):([^:\]]*):([^:\]]*):((?:[^\]\\]|\\.)*)\]"
)
_SEPARATOR_RUN_RE = re.compile(r"(?:\s*;){2,}")
_EDGE_RE = re.compile(r"^[\s;]+|[\s;]+$")
_ESCAPED_RE = re.compile(r"\\(.)", re.DOTALL)


def new_advance_id() -> str:
    """Generate an id that satisfies the token grammar."""
    return str(uuid.uuid4())


def _escape(notes: str) -> str:
    return notes.replace("\\", "\\\\").replace("]", "\\]")


def _unescape(notes: str) -> str:
    return _ESCAPED_RE.sub(r"\1", notes)


def _format_amount(amount: float) -> str:
    amount = float(amount)
    if amount.is_integer():
        return str(int(amount))
    return repr(amount)


def format_token(advance: DeferredAdvance) -> str:
    """Serialize one advance as a PMA token."""
    return (
        f"[PMA:{advance.id}:{advance.date}:"
        f"{_format_amount(advance.amount)}:{_escape(advance.notes)}]"
    )


def parse_tokens(text: str) -> List[DeferredAdvance]:
    """Extract every well-formed PMA token from a notes string, in order."""
    if not text:
        return []

    advances = []
    for match in _TOKEN_RE.finditer(text):
        pma_id, date, amount, notes = match.groups()
        try:
            advances.append(DeferredAdvance(
                id=pma_id,
                date=date,
                amount=float(amount),
                notes=_unescape(notes),
            ))
        except ValueError:
            logger.debug(f"Skipping malformed PMA token: {match.group(0)}")
    return advances


def normalize_plain(text: str) -> str:
    """Collapse repeated separators and trim separators/whitespace at the edges."""
    if not text:
        return ""
    return _EDGE_RE.sub("", _SEPARATOR_RUN_RE.sub(SEPARATOR, text))


def strip_tokens(text: str) -> str:
    """Remove all PMA tokens, leaving the human-written notes."""
    if not text:
        return ""
    return normalize_plain(_TOKEN_RE.sub("", text))


def serialize_tokens(advances: List[DeferredAdvance]) -> str:
    """Serialize a list of advances as separator-joined tokens."""
    return SEPARATOR.join(format_token(a) for a in advances)


def compose(plain: str, token_text: str) -> str:
    """Join plain notes and token text into a legacy notes string."""
    return SEPARATOR.join(part for part in (plain, token_text) if part)


# =============================================================================
# Legacy record conversion
# =============================================================================


def record_to_legacy(record: DailyRecord) -> Dict[str, Any]:
    """Export a record in the legacy shape (advances embedded in notes)."""
    data = record.model_dump(exclude={"deferred_advances"})
    data["notes"] = compose(record.notes, serialize_tokens(record.deferred_advances))
    return data


def record_from_legacy(data: Dict[str, Any]) -> DailyRecord:
    """Import a legacy record, lifting PMA tokens out of its notes.

    The record's advance total is kept as stored: it already includes the
    embedded amounts.
    """
    data = dict(data)
    notes = data.get("notes") or ""
    data["deferred_advances"] = list(data.get("deferred_advances") or []) + parse_tokens(notes)
    data["notes"] = strip_tokens(notes)
    return parse_model(DailyRecord, data)
