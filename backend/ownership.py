# ownership.py
"""Who may read a stored resume, and when an anonymous one changes hands.

The checks run in a fixed order:

1. no record            -> NOT_FOUND
2. caller is the owner  -> GRANTED
3. both anonymous       -> GRANTED
4. claim allowed, record anonymous, caller signed in -> CLAIMED
5. anything else        -> DENIED

Anonymous callers share one identity, so any anonymous caller can read any
anonymous record. A claim only ever moves ownership away from the anonymous
sentinel, never between two real users.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional, Tuple

ANONYMOUS = "anonymous"


class Outcome(str, Enum):
    GRANTED = "granted"
    CLAIMED = "claimed"
    DENIED = "denied"
    NOT_FOUND = "not_found"

    @property
    def allowed(self) -> bool:
        return self in (Outcome.GRANTED, Outcome.CLAIMED)


def resolve_access(
    record: Optional[Dict[str, Any]], caller_id: str, allow_claim: bool = False
) -> Tuple[Outcome, Optional[Dict[str, Any]]]:
    """Return the outcome and the record the caller may see.

    On CLAIMED the returned record is a copy with ``ownerId`` rewritten to the
    caller; persisting it is the caller's job.
    """
    if record is None:
        return Outcome.NOT_FOUND, None

    owner = record.get("ownerId")
    if owner == caller_id:
        return Outcome.GRANTED, record
    if owner == ANONYMOUS and caller_id == ANONYMOUS:
        return Outcome.GRANTED, record
    if allow_claim and owner == ANONYMOUS and caller_id and caller_id != ANONYMOUS:
        return Outcome.CLAIMED, {**record, "ownerId": caller_id}
    return Outcome.DENIED, None
