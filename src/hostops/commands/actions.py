"""Typed action model for the admin command pipeline.

Every action the pipeline can perform is identified by an ActionTag and
carries its own frozen parameter dataclass, so handlers only ever read fields
the extractor populated.
"""

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from hostops.db.documents import to_iso, utc_now


class ActionTag(str, Enum):
    """Closed set of administrative operations."""

    ASSIGN_STAFF = "assign_staff"
    APPROVE_BOOKING = "approve_booking"
    RESCHEDULE_JOB = "reschedule_job"
    UPDATE_CALENDAR = "update_calendar"
    CREATE_JOB = "create_job"
    CREATE_BOOKING = "create_booking"
    UPDATE_BOOKING = "update_booking"
    DELETE_JOB = "delete_job"
    REASSIGN_STAFF = "reassign_staff"
    SEND_NOTIFICATION = "send_notification"
    CREATE_CALENDAR_EVENT = "create_calendar_event"


class SafetyLevel(str, Enum):
    """Risk classification controlling confirmation and override requirements."""

    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class ActionParams:
    """Base class for per-tag parameter structs.

    Wire form uses camelCase keys (``staffName``, ``jobId``) to match the
    field names of the stored documents.
    """

    tag: ClassVar[ActionTag]

    def to_dict(self) -> dict[str, Any]:
        return {_to_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionParams":
        kwargs = {}
        for f in fields(cls):
            key = _to_camel(f.name)
            if key in data:
                kwargs[f.name] = data[key]
            elif f.name in data:
                kwargs[f.name] = data[f.name]
        return cls(**kwargs)


@dataclass(frozen=True)
class AssignStaffParams(ActionParams):
    """Assign a staff member to a job. No staff name means pick one automatically."""

    tag: ClassVar[ActionTag] = ActionTag.ASSIGN_STAFF

    job_id: str
    staff_name: str | None = None


@dataclass(frozen=True)
class ApproveBookingParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.APPROVE_BOOKING

    booking_id: str
    send_confirmation: bool = False
    notes: str | None = None


@dataclass(frozen=True)
class RescheduleJobParams(ActionParams):
    """Move a job (by id) or every job on ``original_date`` to ``new_date``."""

    tag: ClassVar[ActionTag] = ActionTag.RESCHEDULE_JOB

    new_date: str
    job_id: str | None = None
    original_date: str | None = None


@dataclass(frozen=True)
class UpdateCalendarParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.UPDATE_CALENDAR

    booking_id: str | None = None


@dataclass(frozen=True)
class CreateJobParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.CREATE_JOB

    property_name: str
    job_type: str = "cleaning"
    scheduled_date: str | None = None
    priority: str = "medium"
    description: str = ""
    estimated_duration: int = 120


@dataclass(frozen=True)
class CreateBookingParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.CREATE_BOOKING

    property_name: str
    guest_name: str
    guest_email: str
    check_in_date: str
    check_out_date: str
    guest_count: int = 2
    price: float = 0.0
    special_requests: str = ""


@dataclass(frozen=True)
class UpdateBookingParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.UPDATE_BOOKING

    booking_id: str
    updates: str


@dataclass(frozen=True)
class DeleteJobParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.DELETE_JOB

    job_id: str
    has_override: bool = False


@dataclass(frozen=True)
class ReassignStaffParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.REASSIGN_STAFF

    staff_name: str
    from_job_id: str
    to_job_id: str


@dataclass(frozen=True)
class SendNotificationParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.SEND_NOTIFICATION

    staff_name: str
    message: str
    priority: str = "normal"
    notification_type: str = "general"


@dataclass(frozen=True)
class CreateCalendarEventParams(ActionParams):
    tag: ClassVar[ActionTag] = ActionTag.CREATE_CALENDAR_EVENT

    title: str
    date: str
    property_name: str = "Unknown Property"
    start_time: str = "09:00"
    duration: int = 120
    event_type: str = "general"
    description: str = ""


PARAMS_BY_TAG: dict[ActionTag, type[ActionParams]] = {
    cls.tag: cls
    for cls in (
        AssignStaffParams,
        ApproveBookingParams,
        RescheduleJobParams,
        UpdateCalendarParams,
        CreateJobParams,
        CreateBookingParams,
        UpdateBookingParams,
        DeleteJobParams,
        ReassignStaffParams,
        SendNotificationParams,
        CreateCalendarEventParams,
    )
}


def new_action_id() -> str:
    """Generate an identifier for a candidate action."""
    return f"act_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class CandidateAction:
    """A structured action extracted from free text. Immutable once created."""

    tag: ActionTag
    parameters: ActionParams
    confidence: float
    safety_level: SafetyLevel
    requires_confirmation: bool
    original_text: str
    source_collection: str
    operation: str
    description: str = ""
    target_document_id: str | None = None
    id: str = field(default_factory=new_action_id)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.safety_level == SafetyLevel.DANGEROUS and not self.requires_confirmation:
            raise ValueError("Dangerous actions must require confirmation")
        expected = PARAMS_BY_TAG[self.tag]
        if not isinstance(self.parameters, expected):
            raise ValueError(
                f"{self.tag.value} expects {expected.__name__}, "
                f"got {type(self.parameters).__name__}"
            )

    @property
    def has_override(self) -> bool:
        """Whether the caller explicitly acknowledged a dangerous operation."""
        return bool(getattr(self.parameters, "has_override", False))

    def with_override(self) -> "CandidateAction":
        """Return a copy with the override flag set on its parameters.

        Actions whose parameters carry no override flag are returned unchanged.
        """
        if not hasattr(self.parameters, "has_override"):
            return self
        return replace(self, parameters=replace(self.parameters, has_override=True))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and pending storage."""
        return {
            "id": self.id,
            "tag": self.tag.value,
            "parameters": self.parameters.to_dict(),
            "confidence": self.confidence,
            "safety_level": self.safety_level.value,
            "requires_confirmation": self.requires_confirmation,
            "original_text": self.original_text,
            "source_collection": self.source_collection,
            "operation": self.operation,
            "description": self.description,
            "target_document_id": self.target_document_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandidateAction":
        tag = ActionTag(data["tag"])
        return cls(
            id=data["id"],
            tag=tag,
            parameters=PARAMS_BY_TAG[tag].from_dict(data["parameters"]),
            confidence=data["confidence"],
            safety_level=SafetyLevel(data["safety_level"]),
            requires_confirmation=data["requires_confirmation"],
            original_text=data["original_text"],
            source_collection=data["source_collection"],
            operation=data["operation"],
            description=data.get("description", ""),
            target_document_id=data.get("target_document_id"),
        )


@dataclass
class ExecutionContext:
    """Who is acting, and through which surface."""

    actor_id: str
    actor_name: str
    session_id: str | None = None
    source: str = "ai_assistant"
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "session_id": self.session_id,
            "source": self.source,
            "timestamp": to_iso(self.timestamp),
        }


@dataclass
class ExecutionResult:
    """Outcome of running (or refusing to run) a single action."""

    success: bool
    message: str
    data: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str, errors: list[str] | None = None) -> "ExecutionResult":
        return cls(success=False, message=message, errors=errors or [message])

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "errors": list(self.errors),
        }
