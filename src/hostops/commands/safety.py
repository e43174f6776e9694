"""Safety classification for candidate actions.

Classification is a static lookup: every pattern rule declares its safety
level and whether it requires confirmation. Refusing dangerous actions that
lack an override is the validator's job, not this module's.
"""

from dataclasses import dataclass

from hostops.commands.actions import ActionTag, CandidateAction, SafetyLevel
from hostops.commands.patterns import RULES_BY_TAG


@dataclass(frozen=True)
class SafetyClassification:
    """Declared risk of an action tag."""

    safety_level: SafetyLevel
    requires_confirmation: bool


def classify(tag: ActionTag) -> SafetyClassification:
    """Look up the declared safety of an action tag.

    Raises:
        KeyError: If the tag has no registered pattern rule.
    """
    rule = RULES_BY_TAG[tag]
    return SafetyClassification(
        safety_level=rule.safety_level,
        requires_confirmation=rule.requires_confirmation,
    )


def is_auto_executable(action: CandidateAction) -> bool:
    """Whether an action may run without asking the user first."""
    return action.safety_level == SafetyLevel.SAFE and not action.requires_confirmation


def needs_override(action: CandidateAction) -> bool:
    """Whether an action is dangerous and still lacks an explicit override."""
    return action.safety_level == SafetyLevel.DANGEROUS and not action.has_override
