"""Action executor: dispatches validated actions to their handlers."""

import logging
from collections.abc import Callable
from datetime import datetime

from hostops.commands.actions import CandidateAction, ExecutionContext, ExecutionResult
from hostops.commands.handlers import HandlerContext
from hostops.commands.registry import get_action_spec
from hostops.config import PipelineConfig
from hostops.db.documents import DocumentStore, StoreError, utc_now
from hostops.scoring import StaffSuggestionScorer

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Run a validated action against the document store.

    The executor assumes validity; it never re-checks business rules. Failures
    inside a handler come back as ``success=False`` results and are never
    retried.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: PipelineConfig,
        scorer: StaffSuggestionScorer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.config = config
        self.scorer = scorer or StaffSuggestionScorer(config.max_concurrent_jobs)
        self.clock = clock

    def execute(self, action: CandidateAction, ctx: ExecutionContext) -> ExecutionResult:
        """Execute an action.

        Args:
            action: Validated candidate action.
            ctx: Who is acting, and through which surface.

        Returns:
            ExecutionResult describing the outcome. Never raises.
        """
        hctx = HandlerContext(
            store=self.store,
            config=self.config,
            execution=ctx,
            scorer=self.scorer,
            clock=self.clock,
        )

        try:
            handler = get_action_spec(action.tag).handler
            result = handler(action, hctx)
        except StoreError as e:
            logger.error("Store error executing %s (%s): %s", action.id, action.tag.value, e)
            return ExecutionResult.failure(f"Failed to {action.description.lower() or action.tag.value}: {e}")
        except Exception as e:
            logger.exception("Unexpected error executing %s (%s)", action.id, action.tag.value)
            return ExecutionResult.failure(f"Unexpected error executing {action.tag.value}: {e}")

        if result.success:
            logger.info("Executed %s (%s): %s", action.id, action.tag.value, result.message)
        else:
            logger.warning("Action %s (%s) failed: %s", action.id, action.tag.value, result.message)
        return result
