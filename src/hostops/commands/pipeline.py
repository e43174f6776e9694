"""Command pipeline: extract, classify, validate, audit, execute.

Safe actions that need no confirmation run immediately. Everything else is
parked in the confirmation store until a user confirms it by id. No action
reaches the executor without passing validation first, and every executed
action is bracketed by an ``attempted`` and a ``completed``/``failed`` audit
entry.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hostops.audit import AuditLogger
from hostops.commands.actions import CandidateAction, ExecutionContext, ExecutionResult
from hostops.commands.executor import ActionExecutor
from hostops.commands.extractor import ActionExtractor
from hostops.commands.pending_actions import PendingActionManager, RedisPendingActionManager
from hostops.commands.safety import is_auto_executable
from hostops.commands.validator import ActionValidator
from hostops.config import PipelineConfig
from hostops.db.documents import DocumentStore, utc_now
from hostops.metrics import get_metrics_collector, is_metrics_enabled

logger = logging.getLogger(__name__)


class PendingActionNotFoundError(LookupError):
    """Raised when a confirmation refers to an unknown, expired or consumed action."""

    def __init__(self, action_id: str) -> None:
        self.action_id = action_id
        super().__init__(f"Pending action {action_id} not found or expired")


@dataclass
class CommandOutcome:
    """Result of processing one free-text command."""

    has_commands: bool
    actions: list[CandidateAction] = field(default_factory=list)
    results: dict[str, ExecutionResult] = field(default_factory=dict)
    pending_action_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_commands": self.has_commands,
            "actions": [action.to_dict() for action in self.actions],
            "results": {action_id: r.to_dict() for action_id, r in self.results.items()},
            "pending_action_ids": list(self.pending_action_ids),
            "errors": list(self.errors),
        }


class CommandPipeline:
    """Wires the extractor, validator, executor, audit logger and confirmation store."""

    def __init__(
        self,
        store: DocumentStore,
        config: PipelineConfig,
        extractor: ActionExtractor | None = None,
        validator: ActionValidator | None = None,
        executor: ActionExecutor | None = None,
        audit_logger: AuditLogger | None = None,
        pending: PendingActionManager | RedisPendingActionManager | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the pipeline.

        Any collaborator left as None is built from ``store`` and ``config``.
        """
        self.store = store
        self.config = config
        self.extractor = extractor or ActionExtractor(today=lambda: clock().date())
        self.validator = validator or ActionValidator(store, config, clock=clock)
        self.executor = executor or ActionExecutor(store, config, clock=clock)
        self.audit_logger = audit_logger or AuditLogger(
            store, actor=config.automation_actor, clock=clock
        )
        self.pending = pending or PendingActionManager(
            default_expiry_seconds=config.pending_action_ttl_seconds, clock=clock
        )

    def process(
        self, text: str, ctx: ExecutionContext, auto_execute: bool = True
    ) -> CommandOutcome:
        """Process a free-text command.

        Args:
            text: The user's instruction.
            ctx: Who is acting.
            auto_execute: Run safe, unconfirmed actions now. When False every
                candidate is parked for confirmation.

        Returns:
            CommandOutcome. ``has_commands`` is False when nothing actionable
            was found.
        """
        try:
            actions = self.extractor.extract(text)
        except Exception as e:
            logger.exception("Extraction failed")
            return CommandOutcome(has_commands=False, errors=[f"Failed to parse command: {e}"])

        outcome = CommandOutcome(has_commands=bool(actions), actions=actions)
        for action in actions:
            if auto_execute and is_auto_executable(action):
                outcome.results[action.id] = self.run_action(action, ctx)
            else:
                self.park(action, ctx)
                outcome.pending_action_ids.append(action.id)
        return outcome

    def park(self, action: CandidateAction, ctx: ExecutionContext) -> None:
        """Hold an action in the confirmation store."""
        self.pending.create(action, actor_id=ctx.actor_id, session_id=ctx.session_id)
        self._record(action, "pending", 0.0)
        logger.info("Parked %s (%s) for confirmation", action.id, action.tag.value)

    def run_action(self, action: CandidateAction, ctx: ExecutionContext) -> ExecutionResult:
        """Validate then execute one action, auditing both sides of execution.

        Never raises.
        """
        start = time.perf_counter()
        try:
            validation = self.validator.validate(action)
            if not validation.valid:
                return self._reject(action, ctx, validation.errors, start)
            return self._execute(action, ctx, start)
        except Exception as e:
            logger.exception("Unexpected error running %s", action.id)
            self._record(action, "failed", self._elapsed_ms(start))
            return ExecutionResult.failure(f"Unexpected error: {e}")

    def execute_confirmed(
        self, action_id: str, ctx: ExecutionContext, override: bool = False
    ) -> ExecutionResult:
        """Execute a parked action after a user confirms it.

        The action is validated before it is consumed, so a rejected action
        stays parked and may be confirmed again with ``override=True``.

        Args:
            action_id: Id returned in ``pending_action_ids``.
            ctx: The confirming user.
            override: Acknowledge a dangerous operation.

        Returns:
            ExecutionResult of the validation refusal or the execution.

        Raises:
            PendingActionNotFoundError: If the action is unknown, expired or
                was consumed concurrently.
        """
        pending = self.pending.get(action_id)
        if pending is None:
            self._record_confirmation("not_found")
            raise PendingActionNotFoundError(action_id)

        action = pending.action.with_override() if override else pending.action
        start = time.perf_counter()
        try:
            validation = self.validator.validate(action)
            if not validation.valid:
                self._record_confirmation("rejected")
                return self._reject(action, ctx, validation.errors, start)

            if self.pending.confirm(action_id) is None:
                self._record_confirmation("not_found")
                raise PendingActionNotFoundError(action_id)

            self._record_confirmation("ok")
            return self._execute(action, ctx, start)
        except PendingActionNotFoundError:
            raise
        except Exception as e:
            logger.exception("Unexpected error confirming %s", action_id)
            self._record_confirmation("error")
            return ExecutionResult.failure(f"Unexpected error: {e}")

    def cancel(self, action_id: str) -> bool:
        """Discard a parked action. Returns False if it was not found."""
        cancelled = self.pending.cancel(action_id)
        if cancelled:
            self._record_confirmation("cancelled")
            logger.info("Cancelled pending action %s", action_id)
        return cancelled

    def _reject(
        self, action: CandidateAction, ctx: ExecutionContext, errors: list[str], start: float
    ) -> ExecutionResult:
        self.audit_logger.log_rejection(action, ctx, errors)
        self._record(action, "rejected", self._elapsed_ms(start))
        return ExecutionResult.failure("Validation failed", errors=errors)

    def _execute(
        self, action: CandidateAction, ctx: ExecutionContext, start: float
    ) -> ExecutionResult:
        self.audit_logger.log_attempt(action, ctx)
        result = self.executor.execute(action, ctx)
        self.audit_logger.log_result(action, ctx, result)
        self._record(action, "completed" if result.success else "failed", self._elapsed_ms(start))
        return result

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.perf_counter() - start) * 1000

    @staticmethod
    def _record(action: CandidateAction, status: str, latency_ms: float) -> None:
        if is_metrics_enabled():
            get_metrics_collector().record_action(action.tag.value, status, latency_ms)

    @staticmethod
    def _record_confirmation(outcome: str) -> None:
        if is_metrics_enabled():
            get_metrics_collector().record_confirmation(outcome)
