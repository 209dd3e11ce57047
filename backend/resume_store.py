# resume_store.py
from __future__ import annotations
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, TypedDict

from helpers import _now_iso
from ownership import Outcome, resolve_access
from storage import Collection, new_id

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    lock: Any
    def load(self) -> Collection: ...
    def save(self, records: Collection) -> None: ...


# -------- Record shapes --------
class CategoryScores(TypedDict, total=False):
    formatting: int
    content: int
    keywords: int
    impact: int

class AnalysisResult(TypedDict, total=False):
    overallScore: int
    categoryScores: CategoryScores
    suggestions: List[str]
    strengths: List[str]
    analysisTimestamp: str

class UploadedResumePayload(TypedDict, total=False):
    ownerId: str
    originalFilename: str
    mimeType: str
    parsedText: str
    analysis: AnalysisResult

class GeneratedResumePayload(TypedDict, total=False):
    ownerId: str
    title: str
    inputs: Dict[str, Any]
    content: Dict[str, Any]
    version: int
    updatedAt: str


class ResumeCollection:
    """CRUD over one record store.

    Each call is a full load -> mutate -> save cycle under the store's lock.
    ``update`` is a shallow merge restricted to ``updatable_fields``; ``id``,
    the creation timestamp and ``ownerId`` are never touched by it.
    """

    timestamp_field = "createdAt"
    updatable_fields: FrozenSet[str] = frozenset()

    def __init__(self, store: RecordStore):
        self.store = store

    def add(self, payload: Dict[str, Any]) -> str:
        if not payload.get("ownerId"):
            raise ValueError("ownerId is required (a user id or 'anonymous')")
        record_id = new_id()
        with self.store.lock:
            records = self.store.load()
            records[record_id] = {
                **self._defaults(payload),
                **payload,
                "id": record_id,
                self.timestamp_field: _now_iso(),
            }
            self.store.save(records)
        logger.info("added %s %s owner=%s", type(self).__name__, record_id, payload.get("ownerId"))
        return record_id

    def _defaults(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self.store.load().get(record_id)

    def access(self, record_id: str, caller_id: str, allow_claim: bool = False):
        """Resolve the caller's access, persisting a claim when one happens."""
        with self.store.lock:
            records = self.store.load()
            outcome, record = resolve_access(records.get(record_id), caller_id, allow_claim)
            if outcome is Outcome.CLAIMED:
                records[record_id] = record
                self.store.save(records)
                logger.info("record %s claimed by %s", record_id, caller_id)
        return outcome, record

    def get_for_caller(self, record_id: str, caller_id: str, allow_claim: bool = False) -> Optional[Dict[str, Any]]:
        outcome, record = self.access(record_id, caller_id, allow_claim)
        return record if outcome.allowed else None

    def update(self, record_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - self.updatable_fields
        if unknown:
            raise ValueError(f"cannot update fields: {', '.join(sorted(unknown))}")
        with self.store.lock:
            records = self.store.load()
            if record_id not in records:
                return
            records[record_id] = {**records[record_id], **fields}
            self.store.save(records)

    def list_by_owner(self, caller_id: str) -> List[Dict[str, Any]]:
        return [r for r in self.store.load().values() if r.get("ownerId") == caller_id]

    def delete(self, record_id: str) -> None:
        with self.store.lock:
            records = self.store.load()
            if records.pop(record_id, None) is None:
                return
            self.store.save(records)
        logger.info("deleted %s %s", type(self).__name__, record_id)


class UploadedResumes(ResumeCollection):
    timestamp_field = "uploadTimestamp"
    updatable_fields = frozenset({"originalFilename", "mimeType", "parsedText", "analysis"})


class GeneratedResumes(ResumeCollection):
    timestamp_field = "createdAt"
    updatable_fields = frozenset({"title", "inputs", "content", "version", "updatedAt"})

    def _defaults(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {"version": 1}

    def bump(self, record_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge ``fields`` and increment ``version`` in one locked cycle.

        Returns the updated record, or None if the id does not exist.
        """
        unknown = set(fields) - self.updatable_fields
        if unknown:
            raise ValueError(f"cannot update fields: {', '.join(sorted(unknown))}")
        with self.store.lock:
            records = self.store.load()
            current = records.get(record_id)
            if current is None:
                return None
            records[record_id] = {
                **current,
                **fields,
                "version": int(current.get("version") or 1) + 1,
                "updatedAt": _now_iso(),
            }
            self.store.save(records)
            return records[record_id]
