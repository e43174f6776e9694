"""Append-only audit trail for automated actions.

Every executed action produces one ``attempted`` entry before execution and
one ``completed`` or ``failed`` entry after. Actions refused by validation get
a single ``failed`` entry. Entries are never updated or deleted.

Audit writes are best-effort: a failed write is logged on the ``hostops.audit``
logger, counted, and reported to an optional callback, but never aborts the
command being audited.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from hostops.commands.actions import CandidateAction, ExecutionContext, ExecutionResult
from hostops.db import collections
from hostops.db.documents import DocumentStore, FieldFilter, to_iso, utc_now
from hostops.logging_utils import log_error

logger = logging.getLogger(__name__)

DEFAULT_AUTOMATION_ACTOR = "AI Agent"


class AuditStatus(str, Enum):
    """Lifecycle stage recorded by an audit entry."""

    ATTEMPTED = "attempted"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AuditEntry:
    """One immutable record in the audit trail."""

    action_id: str
    action_tag: str
    parameters: dict[str, Any]
    confidence: float
    safety_level: str
    actor: str
    actor_id: str
    actor_name: str
    timestamp: str
    status: AuditStatus
    session_id: str | None = None
    source: str | None = None
    description: str = ""
    result: dict[str, Any] | None = None
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "actionId": self.action_id,
            "actionTag": self.action_tag,
            "parameters": self.parameters,
            "confidence": self.confidence,
            "safetyLevel": self.safety_level,
            "actor": self.actor,
            "actorId": self.actor_id,
            "actorName": self.actor_name,
            "sessionId": self.session_id,
            "source": self.source,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "description": self.description,
            "result": self.result,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "AuditEntry":
        return cls(
            id=doc.get("id"),
            action_id=doc["actionId"],
            action_tag=doc["actionTag"],
            parameters=doc.get("parameters") or {},
            confidence=doc.get("confidence", 0.0),
            safety_level=doc.get("safetyLevel", ""),
            actor=doc["actor"],
            actor_id=doc.get("actorId", ""),
            actor_name=doc.get("actorName", ""),
            session_id=doc.get("sessionId"),
            source=doc.get("source"),
            timestamp=doc["timestamp"],
            status=AuditStatus(doc["status"]),
            description=doc.get("description", ""),
            result=doc.get("result"),
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.to_document()
        data["id"] = self.id
        return data


def count_recent_actions(
    store: DocumentStore,
    actor: str,
    window_seconds: int,
    now: datetime | None = None,
) -> int:
    """Count entries by ``actor`` in the trailing window, whatever their status.

    Attempts, results and rejections all count. Always queries the store;
    there is no in-process counter.
    """
    now = now or utc_now()
    window_start = to_iso(now - timedelta(seconds=window_seconds))
    entries = store.query(
        collections.AUDIT_LOG,
        [
            FieldFilter("actor", "==", actor),
            FieldFilter("timestamp", ">=", window_start),
        ],
    )
    return len(entries)


@dataclass
class AuditLogger:
    """Writes audit entries for the automation actor."""

    store: DocumentStore
    actor: str = DEFAULT_AUTOMATION_ACTOR
    clock: Callable[[], datetime] = utc_now
    on_error: Callable[[Exception, AuditEntry], None] | None = None
    failure_count: int = field(default=0, init=False)

    def _entry(
        self,
        action: CandidateAction,
        ctx: ExecutionContext,
        status: AuditStatus,
        result: dict[str, Any] | None = None,
    ) -> AuditEntry:
        return AuditEntry(
            action_id=action.id,
            action_tag=action.tag.value,
            parameters=action.parameters.to_dict(),
            confidence=action.confidence,
            safety_level=action.safety_level.value,
            actor=self.actor,
            actor_id=ctx.actor_id,
            actor_name=ctx.actor_name,
            session_id=ctx.session_id,
            source=ctx.source,
            timestamp=to_iso(self.clock()),
            status=status,
            description=action.description,
            result=result,
        )

    def _append(self, entry: AuditEntry) -> str | None:
        try:
            entry.id = self.store.create(collections.AUDIT_LOG, entry.to_document())
            return entry.id
        except Exception as e:
            self.failure_count += 1
            log_error(
                logger,
                "Audit write failed",
                action_id=entry.action_id,
                action_tag=entry.action_tag,
                status=entry.status.value,
                error=e,
            )
            if self.on_error is not None:
                self.on_error(e, entry)
            return None

    def log_attempt(self, action: CandidateAction, ctx: ExecutionContext) -> str | None:
        """Record that an action is about to be executed."""
        return self._append(self._entry(action, ctx, AuditStatus.ATTEMPTED))

    def log_result(
        self, action: CandidateAction, ctx: ExecutionContext, result: ExecutionResult
    ) -> str | None:
        """Record the outcome of an executed action."""
        status = AuditStatus.COMPLETED if result.success else AuditStatus.FAILED
        return self._append(self._entry(action, ctx, status, result.to_dict()))

    def log_rejection(
        self, action: CandidateAction, ctx: ExecutionContext, errors: list[str]
    ) -> str | None:
        """Record an action refused by validation. It was never executed."""
        result = {"success": False, "message": "Validation failed", "errors": list(errors)}
        return self._append(self._entry(action, ctx, AuditStatus.FAILED, result))

    def count_recent_actions(self, window_seconds: int) -> int:
        """Entries by this logger's actor within the trailing window."""
        return count_recent_actions(self.store, self.actor, window_seconds, now=self.clock())

    def list_entries(
        self,
        actor_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        status: AuditStatus | None = None,
        limit: int | None = None,
    ) -> list[AuditEntry]:
        """Export audit entries, newest first.

        Args:
            actor_id: Only entries on behalf of this user.
            since: Only entries at or after this time.
            until: Only entries at or before this time.
            status: Only entries with this status.
            limit: Maximum number of entries.

        Returns:
            Matching entries ordered by descending timestamp.
        """
        filters = []
        if actor_id is not None:
            filters.append(FieldFilter("actorId", "==", actor_id))
        if since is not None:
            filters.append(FieldFilter("timestamp", ">=", to_iso(since)))
        if until is not None:
            filters.append(FieldFilter("timestamp", "<=", to_iso(until)))
        if status is not None:
            filters.append(FieldFilter("status", "==", status.value))

        documents = self.store.query(
            collections.AUDIT_LOG,
            filters,
            order_by="timestamp",
            descending=True,
            limit=limit,
        )
        return [AuditEntry.from_document(doc) for doc in documents]
