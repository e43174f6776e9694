"""Action registry: one entry per ActionTag.

Adding an action type means adding a parameter class, a pattern rule, and one
entry here naming its validation rules and handler.
"""

from dataclasses import dataclass

from hostops.commands import handlers, rules
from hostops.commands.actions import ActionTag
from hostops.commands.handlers import Handler
from hostops.commands.patterns import RULES_BY_TAG, PatternRule
from hostops.commands.rules import Rule


@dataclass(frozen=True)
class ActionSpec:
    """Everything the pipeline needs to know about one action tag."""

    pattern: PatternRule
    rules: tuple[Rule, ...]
    handler: Handler


_BOOKING_WRITE_RULES = (rules.booking_check_in_not_past,)

REGISTRY: dict[ActionTag, ActionSpec] = {
    ActionTag.ASSIGN_STAFF: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.ASSIGN_STAFF],
        rules=(rules.staff_assignable,),
        handler=handlers.assign_staff,
    ),
    ActionTag.APPROVE_BOOKING: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.APPROVE_BOOKING],
        rules=(rules.booking_not_already_approved, *_BOOKING_WRITE_RULES),
        handler=handlers.approve_booking,
    ),
    ActionTag.RESCHEDULE_JOB: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.RESCHEDULE_JOB],
        rules=(rules.reschedule_date_allowed,),
        handler=handlers.reschedule_job,
    ),
    ActionTag.UPDATE_CALENDAR: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.UPDATE_CALENDAR],
        rules=(),
        handler=handlers.update_calendar,
    ),
    ActionTag.CREATE_JOB: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.CREATE_JOB],
        rules=(),
        handler=handlers.create_job,
    ),
    ActionTag.CREATE_BOOKING: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.CREATE_BOOKING],
        rules=(),
        handler=handlers.create_booking,
    ),
    ActionTag.UPDATE_BOOKING: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.UPDATE_BOOKING],
        rules=_BOOKING_WRITE_RULES,
        handler=handlers.update_booking,
    ),
    ActionTag.DELETE_JOB: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.DELETE_JOB],
        rules=(rules.job_not_in_flight_for_delete,),
        handler=handlers.delete_job,
    ),
    ActionTag.REASSIGN_STAFF: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.REASSIGN_STAFF],
        rules=(rules.staff_reassignable,),
        handler=handlers.reassign_staff,
    ),
    ActionTag.SEND_NOTIFICATION: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.SEND_NOTIFICATION],
        rules=(),
        handler=handlers.send_notification,
    ),
    ActionTag.CREATE_CALENDAR_EVENT: ActionSpec(
        pattern=RULES_BY_TAG[ActionTag.CREATE_CALENDAR_EVENT],
        rules=(),
        handler=handlers.create_calendar_event,
    ),
}


def get_action_spec(tag: ActionTag) -> ActionSpec:
    """Look up the registry entry for a tag.

    Raises:
        ValueError: If the tag is not registered.
    """
    try:
        return REGISTRY[tag]
    except KeyError:
        raise ValueError(f"Unregistered action tag: {tag}") from None
