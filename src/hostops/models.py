"""Pydantic models for the HTTP API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class CommandRequest(BaseModel):
    """Free-text admin command."""

    text: str = Field(..., min_length=1, max_length=2000)
    session_id: str | None = None
    auto_execute: bool = True


class CandidateActionModel(BaseModel):
    id: str
    tag: str
    parameters: dict[str, Any]
    confidence: float = Field(..., ge=0.0, le=1.0)
    safety_level: Literal["safe", "caution", "dangerous"]
    requires_confirmation: bool
    original_text: str
    source_collection: str
    operation: str
    description: str = ""
    target_document_id: str | None = None


class ExecutionResultModel(BaseModel):
    success: bool
    message: str
    data: dict[str, Any] | None = None
    errors: list[str] = Field(default_factory=list)


class CommandResponse(BaseModel):
    """Actions found in a command, what ran, and what awaits confirmation."""

    has_commands: bool
    actions: list[CandidateActionModel] = Field(default_factory=list)
    results: dict[str, ExecutionResultModel] = Field(default_factory=dict)
    pending_action_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ConfirmRequest(BaseModel):
    action_id: str
    override: bool = False
    session_id: str | None = None


class CancelRequest(BaseModel):
    action_id: str


class CancelResponse(BaseModel):
    action_id: str
    cancelled: bool


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Conversational message for the operations assistant."""

    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str | None = None
    selected_provider: Literal["auto", "anthropic", "openai"] = "auto"
    automation_enabled: bool = True
    history: list[ChatTurn] = Field(default_factory=list)


class RoutingModel(BaseModel):
    provider: str
    task_type: str
    confidence: float
    reasoning: str


class ChatResponse(BaseModel):
    reply: str
    success: bool
    direct_command: bool
    provider: str
    actual_provider: str | None = None
    routing: RoutingModel | None = None
    response_time_ms: int
    commands: CommandResponse
    errors: list[str] = Field(default_factory=list)


class SuggestionRequest(BaseModel):
    job_id: str
    limit: int | None = Field(default=None, ge=1, le=50)


class StaffSuggestionModel(BaseModel):
    staff_id: str
    staff_name: str
    skill_match_pct: int
    availability_match_pct: int
    workload_match_pct: int
    performance_pct: int
    location_match_pct: int
    overall_score: int = Field(..., ge=0, le=100)
    confidence: Literal["high", "medium", "low"]
    match_reasons: list[str]
    concerns: list[str]
    estimated_response_minutes: int


class SuggestionResponse(BaseModel):
    job_id: str
    suggestions: list[StaffSuggestionModel]


class AuditEntryModel(BaseModel):
    id: str | None = None
    action_id: str
    action_tag: str
    parameters: dict[str, Any]
    confidence: float
    safety_level: str
    actor: str
    actor_id: str
    actor_name: str
    session_id: str | None = None
    source: str | None = None
    timestamp: str
    status: Literal["attempted", "completed", "failed"]
    description: str = ""
    result: dict[str, Any] | None = None


class AuditResponse(BaseModel):
    entries: list[AuditEntryModel]
    since: datetime | None = None
    until: datetime | None = None
