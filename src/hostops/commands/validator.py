"""Pre-execution validation for candidate actions.

Checks run in a fixed order and every failure is collected:

1. Dangerous actions need an explicit override.
2. Automated actions are rate limited over a trailing window.
3. A targeted document must exist.
4. Business rules registered for the action's tag.
5. Locked documents are never modified.

Validation only reads from the store.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from hostops.audit import count_recent_actions
from hostops.commands.actions import CandidateAction
from hostops.commands.registry import get_action_spec
from hostops.commands.rules import RuleContext, record_not_locked
from hostops.commands.safety import needs_override
from hostops.config import PipelineConfig
from hostops.db.documents import DocumentStore, StoreError, utc_now

logger = logging.getLogger(__name__)

OVERRIDE_REQUIRED_ERROR = "Dangerous operation requires explicit override"


@dataclass
class ValidationResult:
    """Outcome of validating one action."""

    valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors)}


class ActionValidator:
    """Validate candidate actions against current store state."""

    def __init__(
        self,
        store: DocumentStore,
        config: PipelineConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the validator.

        Args:
            store: Document store to read current state from.
            config: Thresholds (rate limit, concurrency cap, blackout weekday).
            clock: Source of the current time.
        """
        self.store = store
        self.config = config
        self.clock = clock

    def check_override(self, action: CandidateAction) -> list[str]:
        if needs_override(action):
            return [OVERRIDE_REQUIRED_ERROR]
        return []

    def check_rate_limit(self, now: datetime) -> list[str]:
        count = count_recent_actions(
            self.store,
            self.config.automation_actor,
            self.config.rate_limit_window_seconds,
            now=now,
        )
        if count > self.config.rate_limit_max_actions:
            return [
                f"Rate limit exceeded: {count} automated actions in the last "
                f"{self.config.rate_limit_window_seconds}s "
                f"(max {self.config.rate_limit_max_actions})"
            ]
        return []

    def validate(self, action: CandidateAction) -> ValidationResult:
        """Validate an action without mutating anything.

        Args:
            action: Candidate action to check.

        Returns:
            ValidationResult with every error found.
        """
        now = self.clock()
        errors = self.check_override(action)

        try:
            errors.extend(self.check_rate_limit(now))

            target = None
            if action.target_document_id:
                target = self.store.get(action.source_collection, action.target_document_id)
                if target is None:
                    errors.append(
                        f"Document {action.target_document_id} not found in "
                        f"{action.source_collection}"
                    )

            ctx = RuleContext(
                action=action,
                store=self.store,
                config=self.config,
                today=now.date(),
                target=target,
            )
            for rule in get_action_spec(action.tag).rules:
                errors.extend(rule(ctx))
            errors.extend(record_not_locked(ctx))
        except StoreError as e:
            # Fail closed when current state cannot be read
            logger.error("Validation of %s failed on store error: %s", action.id, e)
            errors.append(f"Validation error: {e}")

        if errors:
            logger.info("Action %s (%s) failed validation: %s", action.id, action.tag.value, errors)
        return ValidationResult(valid=not errors, errors=errors)
