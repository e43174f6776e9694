"""FastAPI surface for the hostops admin command pipeline."""

import dataclasses
import logging
from datetime import datetime

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from hostops.assistant import AssistantOptions, OpsAssistant
from hostops.audit import AuditLogger, AuditStatus
from hostops.auth import CurrentActor
from hostops.commands.actions import ExecutionContext
from hostops.commands.pending_actions import PendingActionManager, RedisPendingActionManager
from hostops.commands.pipeline import CommandPipeline, PendingActionNotFoundError
from hostops.config import get_config
from hostops.db import DuckDBDocumentStore, init_db
from hostops.llm.client import ModelClient
from hostops.logging_utils import clear_request_id, log_info, set_request_id
from hostops.metrics import get_metrics_collector, is_metrics_enabled
from hostops.models import (
    AuditEntryModel,
    AuditResponse,
    CancelRequest,
    CancelResponse,
    ChatRequest,
    ChatResponse,
    CommandRequest,
    CommandResponse,
    ConfirmRequest,
    ExecutionResultModel,
    StaffSuggestionModel,
    SuggestionRequest,
    SuggestionResponse,
)
from hostops.redis_client import get_redis_client
from hostops.scoring import StaffSuggestionScorer, load_job_requirements, load_staff_candidates
from hostops.usage import UsageLogger

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
app = FastAPI(
    title="HostOps Admin API",
    version="0.1.0",
    description="Natural-language admin commands for short-term rental operations",
)

# Initialized lazily
_db_conn = None
_store: DuckDBDocumentStore | None = None
_pipeline: CommandPipeline | None = None
_assistant: OpsAssistant | None = None


def get_db():
    """Get or initialize database connection.

    Uses HOSTOPS_DB_PATH or defaults to data/hostops.db.
    Tests set HOSTOPS_DB_PATH=:memory: in conftest.py for isolation.
    """
    global _db_conn
    if _db_conn is None:
        _db_conn = init_db()
    return _db_conn


def get_store() -> DuckDBDocumentStore:
    global _store
    if _store is None:
        _store = DuckDBDocumentStore(get_db())
    return _store


def _make_pending_store() -> PendingActionManager | RedisPendingActionManager:
    ttl = get_config().pending_action_ttl_seconds
    client = get_redis_client()
    if client is not None:
        return RedisPendingActionManager(client, default_expiry_seconds=ttl)
    return PendingActionManager(default_expiry_seconds=ttl)


def get_pipeline() -> CommandPipeline:
    """Get or initialize the command pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = CommandPipeline(get_store(), get_config(), pending=_make_pending_store())
    return _pipeline


def get_assistant() -> OpsAssistant:
    global _assistant
    if _assistant is None:
        config = get_config()
        _assistant = OpsAssistant(
            pipeline=get_pipeline(),
            client=ModelClient(config),
            usage_logger=UsageLogger(get_store()),
        )
    return _assistant


def reset_state() -> None:
    """Drop lazily built services so the next request rebuilds them."""
    global _db_conn, _store, _pipeline, _assistant
    if _db_conn is not None:
        _db_conn.close()
    _db_conn = None
    _store = None
    _pipeline = None
    _assistant = None


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag the request with X-Request-ID (generated when absent)."""
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-ID"] = request_id
    return response


def _context(actor, session_id: str | None, source: str) -> ExecutionContext:
    return ExecutionContext(
        actor_id=actor.actor_id,
        actor_name=actor.actor_name,
        session_id=session_id,
        source=source,
    )


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/v1/commands", response_model=CommandResponse)
def submit_command(request: CommandRequest, actor: CurrentActor) -> CommandResponse:
    """Extract actions from a command, run the safe ones and park the rest."""
    ctx = _context(actor, request.session_id, "admin_command")
    outcome = get_pipeline().process(request.text, ctx, auto_execute=request.auto_execute)
    log_info(
        logger,
        "Command processed",
        actor_id=actor.actor_id,
        actions=len(outcome.actions),
        pending=len(outcome.pending_action_ids),
    )
    return CommandResponse(**outcome.to_dict())


@app.post("/v1/commands/confirm", response_model=ExecutionResultModel)
def confirm_command(request: ConfirmRequest, actor: CurrentActor) -> ExecutionResultModel:
    """Execute a parked action.

    A validation refusal comes back as ``success: false`` with the errors and
    leaves the action parked.
    """
    ctx = _context(actor, request.session_id, "admin_confirmation")
    try:
        result = get_pipeline().execute_confirmed(request.action_id, ctx, override=request.override)
    except PendingActionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "message": str(e)},
        ) from e
    return ExecutionResultModel(**result.to_dict())


@app.post("/v1/commands/cancel", response_model=CancelResponse)
def cancel_command(request: CancelRequest, actor: CurrentActor) -> CancelResponse:
    if not get_pipeline().cancel(request.action_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "not_found",
                "message": f"Pending action {request.action_id} not found or expired",
            },
        )
    logger.info("Action %s cancelled by %s", request.action_id, actor.actor_id)
    return CancelResponse(action_id=request.action_id, cancelled=True)


@app.post("/v1/chat", response_model=ChatResponse)
def chat(request: ChatRequest, actor: CurrentActor) -> ChatResponse:
    """Answer a conversational message with the operations assistant."""
    ctx = _context(actor, request.session_id, "ai_chat")
    selected = None if request.selected_provider == "auto" else request.selected_provider
    options = AssistantOptions(
        force_provider=selected,
        automation_enabled=request.automation_enabled,
    )
    history = [turn.model_dump() for turn in request.history]
    reply = get_assistant().handle_message(request.message, ctx, options, history)
    return ChatResponse(**reply.to_dict())


@app.post("/v1/staff/suggestions", response_model=SuggestionResponse)
def staff_suggestions(request: SuggestionRequest) -> SuggestionResponse:
    """Rank staff for a job."""
    store = get_store()
    config = get_config()
    job = load_job_requirements(store, request.job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "message": f"Job {request.job_id} not found"},
        )

    scorer = StaffSuggestionScorer(config.max_concurrent_jobs)
    suggestions = scorer.suggest(
        job, load_staff_candidates(store), limit=request.limit or config.suggestion_limit
    )
    return SuggestionResponse(
        job_id=request.job_id,
        suggestions=[StaffSuggestionModel(**s.to_dict()) for s in suggestions],
    )


@app.get("/v1/audit", response_model=AuditResponse)
def export_audit(
    actor_id: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    status_filter: AuditStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
) -> AuditResponse:
    """Export audit entries, newest first."""
    audit_logger = AuditLogger(get_store(), actor=get_config().automation_actor)
    entries = audit_logger.list_entries(
        actor_id=actor_id, since=since, until=until, status=status_filter, limit=limit
    )
    return AuditResponse(
        entries=[
            AuditEntryModel(**{**dataclasses.asdict(entry), "status": entry.status.value})
            for entry in entries
        ],
        since=since,
        until=until,
    )


@app.get("/v1/usage/stats")
def usage_stats(
    actor_id: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
):
    """Model usage statistics and per-provider performance."""
    usage_logger = UsageLogger(get_store())
    stats = usage_logger.get_usage_stats(actor_id=actor_id, since=since, until=until)
    stats["provider_performance"] = usage_logger.get_provider_performance(since=since, until=until)
    return stats


@app.get("/v1/metrics")
def get_metrics():
    """In-process metrics snapshot. 404 unless HOSTOPS_ENABLE_METRICS is set."""
    if not is_metrics_enabled():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "message": "Metrics are disabled"},
        )
    return get_metrics_collector().get_snapshot()


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPExceptions and return Error schema."""
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": str(exc.detail),
        },
    )
