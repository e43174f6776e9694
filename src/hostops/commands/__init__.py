"""Command extraction, validation and execution."""

from hostops.commands.actions import (
    ActionTag,
    CandidateAction,
    ExecutionContext,
    ExecutionResult,
    SafetyLevel,
)
from hostops.commands.extractor import ActionExtractor, extract

__all__ = [
    "ActionExtractor",
    "ActionTag",
    "CandidateAction",
    "ExecutionContext",
    "ExecutionResult",
    "SafetyLevel",
    "extract",
]
