"""Conversational operations assistant.

A message that itself contains commands goes straight through the command
pipeline and no model is called. Anything else is routed to a language model;
actions suggested in the model's reply are parked for confirmation and never
run automatically.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hostops.commands.actions import ExecutionContext
from hostops.commands.pipeline import CommandOutcome, CommandPipeline
from hostops.db.documents import to_iso, utc_now
from hostops.llm.client import ChatResult, ModelClient
from hostops.llm.router import ModelRouter, ModelRoutingDecision, RoutingOptions
from hostops.usage import UsageLogEntry, UsageLogger

logger = logging.getLogger(__name__)

DIRECT_COMMAND_PROVIDER = "direct_command"

SYSTEM_PROMPT = """You are the operations assistant for a short-term rental company. \
Administrators ask you about bookings, cleaning and maintenance jobs, staff and the calendar.

Current time: {timestamp}
Automation: {automation}

When you recommend a change, state it as a plain instruction on its own line, for example \
"assign Maria Santos to job job-001" or "approve booking bk-12". Changes you suggest are \
shown to the administrator for confirmation before anything is modified. Be concise and \
specific."""


@dataclass
class AssistantOptions:
    force_provider: str | None = None
    preferred_provider: str | None = None
    automation_enabled: bool = True
    temperature: float = 0.7
    max_tokens: int = 1000

    def routing(self) -> RoutingOptions:
        return RoutingOptions(
            force_provider=self.force_provider, preferred_provider=self.preferred_provider
        )


@dataclass
class AssistantReply:
    """What the assistant says back, plus everything it did."""

    reply: str
    success: bool
    outcome: CommandOutcome
    provider: str
    actual_provider: str | None = None
    routing: ModelRoutingDecision | None = None
    response_time_ms: int = 0
    usage_log_id: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def direct_command(self) -> bool:
        return self.provider == DIRECT_COMMAND_PROVIDER

    def to_dict(self) -> dict[str, Any]:
        return {
            "reply": self.reply,
            "success": self.success,
            "direct_command": self.direct_command,
            "provider": self.provider,
            "actual_provider": self.actual_provider,
            "routing": self.routing.to_dict() if self.routing else None,
            "response_time_ms": self.response_time_ms,
            "commands": self.outcome.to_dict(),
            "errors": list(self.errors),
        }


def summarize_outcome(outcome: CommandOutcome) -> str:
    """Render executed and parked actions as a short reply."""
    lines = []
    for action in outcome.actions:
        result = outcome.results.get(action.id)
        if result is None:
            lines.append(f"Awaiting confirmation: {action.description} (action {action.id})")
        elif result.success:
            lines.append(result.message)
        else:
            detail = "; ".join(result.errors) or result.message
            lines.append(f"Could not {action.description.lower()}: {detail}")
    return "\n".join(lines)


class OpsAssistant:
    """Answers administrator messages, running or proposing actions."""

    def __init__(
        self,
        pipeline: CommandPipeline,
        client: ModelClient,
        usage_logger: UsageLogger,
        router: ModelRouter | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.pipeline = pipeline
        self.client = client
        self.usage_logger = usage_logger
        self.router = router or ModelRouter()
        self.clock = clock

    def handle_message(
        self,
        message: str,
        ctx: ExecutionContext,
        options: AssistantOptions | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> AssistantReply:
        """Answer one message.

        Args:
            message: The administrator's message
            ctx: Who is asking
            options: Provider overrides, automation switch and sampling settings
            history: Earlier ``{"role", "content"}`` turns of the conversation

        Returns:
            AssistantReply. Provider failures come back as ``success=False``
            with a connectivity error reply.
        """
        options = options or AssistantOptions()
        start = time.perf_counter()

        outcome = self.pipeline.process(message, ctx, auto_execute=options.automation_enabled)
        if outcome.has_commands:
            reply = AssistantReply(
                reply=summarize_outcome(outcome),
                success=True,
                outcome=outcome,
                provider=DIRECT_COMMAND_PROVIDER,
                response_time_ms=self._elapsed_ms(start),
            )
            confidence = max(action.confidence for action in outcome.actions)
            reply.usage_log_id = self._log(message, ctx, reply, "action", confidence, None)
            return reply

        decision = self.router.route(message, options.routing())
        chat = self.client.chat(
            message,
            decision.provider,
            system_prompt=self.system_prompt(options.automation_enabled),
            history=history,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )

        follow_ups = CommandOutcome(has_commands=False)
        if chat.success:
            follow_ups = self.pipeline.process(chat.text, ctx, auto_execute=False)

        reply = AssistantReply(
            reply=chat.text,
            success=chat.success,
            outcome=follow_ups,
            provider=decision.provider,
            actual_provider=chat.actual_provider,
            routing=decision,
            response_time_ms=self._elapsed_ms(start),
            errors=[chat.error] if chat.error else [],
        )
        reply.usage_log_id = self._log(
            message, ctx, reply, decision.task_type, decision.confidence, chat
        )
        return reply

    def system_prompt(self, automation_enabled: bool) -> str:
        return SYSTEM_PROMPT.format(
            timestamp=to_iso(self.clock()),
            automation="ON" if automation_enabled else "OFF",
        )

    def _log(
        self,
        message: str,
        ctx: ExecutionContext,
        reply: AssistantReply,
        task_type: str,
        confidence: float,
        chat: ChatResult | None,
    ) -> str | None:
        executed = sum(1 for result in reply.outcome.results.values() if result.success)
        return self.usage_logger.log_interaction(
            UsageLogEntry(
                session_id=ctx.session_id,
                actor_id=ctx.actor_id,
                provider=reply.provider,
                actual_provider=reply.actual_provider,
                response_time_ms=reply.response_time_ms,
                success=reply.success,
                user_message=message,
                reply=reply.reply,
                task_type=task_type,
                routing_reason=reply.routing.reasoning if reply.routing else "Direct command",
                confidence=confidence,
                token_usage=chat.token_usage if chat else None,
                error=chat.error if chat else None,
                commands_detected=len(reply.outcome.actions),
                commands_executed=executed,
                source=ctx.source,
            )
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
