"""Pattern library for admin commands.

One PatternRule per ActionTag. Each rule pairs trigger expressions (with named
capture groups) with a builder that turns a match plus the full message into
that tag's typed parameters, and statically declares the rule's safety level.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from hostops.commands import text_helpers as th
from hostops.commands.actions import (
    ActionParams,
    ActionTag,
    ApproveBookingParams,
    AssignStaffParams,
    CreateBookingParams,
    CreateCalendarEventParams,
    CreateJobParams,
    DeleteJobParams,
    ReassignStaffParams,
    RescheduleJobParams,
    SafetyLevel,
    SendNotificationParams,
    UpdateBookingParams,
    UpdateCalendarParams,
)

ParamBuilder = Callable[[re.Match, str, date], ActionParams | None]

_ID = r"[a-zA-Z0-9][a-zA-Z0-9\-_]*"
_NAME = r"[a-zA-Z][a-zA-Z'.\-]*(?:\s+[a-zA-Z][a-zA-Z'.\-]*){0,3}?"
_FREE_VALUE = rf"[{th.QUOTES}]?(?P<{{group}}>[^{th.QUOTES}\n,]+?)[{th.QUOTES}]?{th.VALUE_STOP}"
_JOB_TYPES = "|".join(th.JOB_TYPES)

# A message can chain commands: "... to Maria Santos and approve booking bk-100".
_COMMAND_VERBS = (
    "assign|give|approve|reject|create|schedule|book|update|reschedule|move"
    "|delete|remove|cancel|reassign|send|notify|add"
)
_NEXT_COMMAND = (
    rf"(?:\s*[,;]\s*(?:and\s+|then\s+)?|\s+(?:and\s+then|and|then)\s+)(?:{_COMMAND_VERBS})\b"
)
_NAME_END = r"(?=\s+(?:and|then)\b|\s*[,.;!?\n]|\s*$)"
_TEXT_END = rf"(?={_NEXT_COMMAND}|\s*\n|\s*$)"

# Phrases that stand in for "some staff member" rather than naming one.
UNSPECIFIED_STAFF = {"staff", "someone", "somebody", "anyone", "a cleaner", "a staff member"}


def _free_value(group: str) -> str:
    return _FREE_VALUE.format(group=group)


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _group(match: re.Match, name: str) -> str | None:
    if name not in match.re.groupindex:
        return None
    value = match.group(name)
    if value is None:
        return None
    value = value.strip().strip(th.QUOTES).rstrip(".!?;").strip()
    return value or None


@dataclass(frozen=True)
class PatternRule:
    """Trigger patterns, parameter builder and safety declaration for one tag."""

    tag: ActionTag
    patterns: tuple[re.Pattern, ...]
    build: ParamBuilder
    safety_level: SafetyLevel
    requires_confirmation: bool
    collection: str
    operation: str
    describe: Callable[[ActionParams], str]
    target_field: str | None = None

    def __post_init__(self) -> None:
        if self.safety_level == SafetyLevel.DANGEROUS and not self.requires_confirmation:
            raise ValueError(f"Dangerous rule {self.tag.value} must require confirmation")

    def target_id(self, params: ActionParams) -> str | None:
        if self.target_field is None:
            return None
        return getattr(params, self.target_field)


def _build_assign(match: re.Match, text: str, today: date) -> AssignStaffParams | None:
    job_id = _group(match, "job")
    if not job_id:
        return None
    staff_name = _group(match, "staff")
    if staff_name and staff_name.lower() in UNSPECIFIED_STAFF:
        staff_name = None
    return AssignStaffParams(job_id=job_id, staff_name=staff_name)


def _build_approve(match: re.Match, text: str, today: date) -> ApproveBookingParams | None:
    booking_id = _group(match, "booking")
    if not booking_id:
        return None
    lowered = text.lower()
    return ApproveBookingParams(
        booking_id=booking_id,
        send_confirmation="send confirmation" in lowered or "notify guest" in lowered,
        notes=th.extract_notes(text),
    )


def _build_reschedule(match: re.Match, text: str, today: date) -> RescheduleJobParams | None:
    new_date = _group(match, "new")
    if not new_date:
        return None
    job_id = _group(match, "job")
    original = _group(match, "original")
    # "reschedule job 2025-08-01 to ..." names a date, not a job id
    if job_id and re.fullmatch(r"\d{4}-\d{2}-\d{2}", job_id):
        job_id, original = None, job_id
    return RescheduleJobParams(
        new_date=th.normalize_date(new_date, today=today),
        job_id=job_id,
        original_date=th.normalize_date(original, today=today) if original else None,
    )


def _build_update_calendar(match: re.Match, text: str, today: date) -> UpdateCalendarParams:
    return UpdateCalendarParams(booking_id=_group(match, "booking"))


def _build_create_job(match: re.Match, text: str, today: date) -> CreateJobParams | None:
    property_name = _group(match, "property") or th.extract_property_name(text)
    if not property_name:
        return None
    job_type = (_group(match, "type") or th.extract_job_type(text) or "cleaning").lower()
    dates = th.extract_dates(text, today=today)
    return CreateJobParams(
        property_name=property_name,
        job_type=job_type,
        scheduled_date=dates.get("single") or th.default_check_in(today),
        priority=th.extract_priority(text) or "medium",
        description=th.extract_notes(text) or f"{job_type.capitalize()} for {property_name}",
        estimated_duration=th.extract_duration(text) or 120,
    )


def _build_create_booking(match: re.Match, text: str, today: date) -> CreateBookingParams | None:
    property_name = th.extract_property_name(text) or _group(match, "property")
    if not property_name:
        return None
    guest_name = th.extract_guest_name(text) or "Guest"
    dates = th.extract_dates(text, today=today)
    check_in = dates.get("check_in") or dates.get("single") or th.default_check_in(today)
    return CreateBookingParams(
        property_name=property_name,
        guest_name=guest_name,
        guest_email=th.extract_email(text) or th.email_for_guest(guest_name),
        check_in_date=check_in,
        check_out_date=dates.get("check_out") or th.default_check_out(check_in, today=today),
        guest_count=th.extract_guest_count(text) or 2,
        special_requests=th.extract_notes(text) or "",
    )


def _build_update_booking(match: re.Match, text: str, today: date) -> UpdateBookingParams | None:
    booking_id = _group(match, "booking")
    updates = _group(match, "updates")
    if not booking_id or not updates:
        return None
    return UpdateBookingParams(booking_id=booking_id, updates=updates)


def _build_delete(match: re.Match, text: str, today: date) -> DeleteJobParams | None:
    job_id = _group(match, "job")
    if not job_id:
        return None
    return DeleteJobParams(job_id=job_id, has_override=bool(match.group("override")))


def _build_reassign(match: re.Match, text: str, today: date) -> ReassignStaffParams | None:
    staff_name = _group(match, "staff")
    from_job = _group(match, "from_job")
    to_job = _group(match, "to_job")
    if not (staff_name and from_job and to_job):
        return None
    return ReassignStaffParams(staff_name=staff_name, from_job_id=from_job, to_job_id=to_job)


def _build_notification(match: re.Match, text: str, today: date) -> SendNotificationParams | None:
    staff_name = _group(match, "staff")
    message = _group(match, "message")
    if not staff_name or not message:
        return None
    return SendNotificationParams(
        staff_name=staff_name,
        message=message,
        priority=th.extract_priority(text) or "normal",
        notification_type=th.extract_notification_type(text) or "general",
    )


def _build_calendar_event(match: re.Match, text: str, today: date) -> CreateCalendarEventParams:
    dates = th.extract_dates(text, today=today)
    return CreateCalendarEventParams(
        title=_group(match, "title") or "New Event",
        date=(
            dates.get("check_in")
            or dates.get("single")
            or th.find_date(text, today=today)
            or th.default_check_in(today)
        ),
        property_name=th.extract_property_name(text) or "Unknown Property",
        start_time=th.extract_time(text) or "09:00",
        duration=th.extract_duration(text) or 120,
        event_type=th.extract_event_type(text) or "general",
        description=th.extract_notes(text) or "",
    )


def _describe_reschedule(p: RescheduleJobParams) -> str:
    if p.job_id:
        return f"Reschedule job {p.job_id} to {p.new_date}"
    return f"Reschedule jobs on {p.original_date} to {p.new_date}"


PATTERN_LIBRARY: tuple[PatternRule, ...] = (
    PatternRule(
        tag=ActionTag.ASSIGN_STAFF,
        patterns=_compile(
            rf"\bassign\s+(?:staff\s+)?(?!job\b)(?P<staff>{_NAME})\s+to\s+job\s+(?P<job>{_ID})",
            rf"\bassign\s+job\s+(?P<job>{_ID})\s+to\s+(?:staff\s+)?(?P<staff>{_NAME}){_NAME_END}",
            rf"\bassign\s+job\s+(?P<job>{_ID})\b(?!\s+to\b)",
            rf"\bgive\s+job\s+(?P<job>{_ID})\s+to\s+(?:staff\s+)?(?P<staff>{_NAME}){_NAME_END}",
        ),
        build=_build_assign,
        safety_level=SafetyLevel.SAFE,
        requires_confirmation=False,
        collection="jobs",
        operation="update",
        describe=lambda p: (
            f"Assign {p.staff_name} to job {p.job_id}"
            if p.staff_name
            else f"Assign best available staff to job {p.job_id}"
        ),
        target_field="job_id",
    ),
    PatternRule(
        tag=ActionTag.APPROVE_BOOKING,
        patterns=_compile(
            rf"\b(?:approve|confirm|accept)\s+booking\s+(?:id\s+)?(?P<booking>{_ID})",
        ),
        build=_build_approve,
        safety_level=SafetyLevel.CAUTION,
        requires_confirmation=True,
        collection="bookings",
        operation="update",
        describe=lambda p: f"Approve booking {p.booking_id}",
        target_field="booking_id",
    ),
    PatternRule(
        tag=ActionTag.RESCHEDULE_JOB,
        patterns=_compile(
            rf"\breschedule\s+(?:the\s+)?(?:(?:{_JOB_TYPES})\s+)?job\s+"
            rf"(?:(?:on|from)\s+(?P<original>{th.DATE_TOKEN})|(?P<job>{_ID}))"
            rf"\s+to\s+(?P<new>{th.DATE_TOKEN})",
            rf"\bmove\s+(?:the\s+)?job\s+(?P<job>{_ID})\s+to\s+(?P<new>{th.DATE_TOKEN})",
        ),
        build=_build_reschedule,
        safety_level=SafetyLevel.CAUTION,
        requires_confirmation=True,
        collection="jobs",
        operation="update",
        describe=_describe_reschedule,
        target_field="job_id",
    ),
    PatternRule(
        tag=ActionTag.UPDATE_CALENDAR,
        patterns=_compile(
            r"\b(?:update|sync)\s+(?:the\s+)?calendar"
            r"(?:\s+(?:to\s+)?(?:reflect\s+)?(?:booking\s+)?"
            rf"(?:changes?|for\s+booking\s+(?P<booking>{_ID})))?",
        ),
        build=_build_update_calendar,
        safety_level=SafetyLevel.SAFE,
        requires_confirmation=False,
        collection="bookings",
        operation="sync",
        describe=lambda p: (
            f"Update calendar for booking {p.booking_id}"
            if p.booking_id
            else "Update calendar to reflect changes"
        ),
        target_field="booking_id",
    ),
    PatternRule(
        tag=ActionTag.CREATE_JOB,
        patterns=_compile(
            rf"\bcreate\s+(?:a\s+)?(?:new\s+)?(?:(?P<type>{_JOB_TYPES})\s+)?job\s+"
            rf"(?:for|at)\s+(?:property\s+)?{_free_value('property')}",
            rf"\bschedule\s+(?:a\s+)?(?:new\s+)?(?P<type>{_JOB_TYPES})\s+(?:job\s+)?"
            rf"(?:for|at)\s+(?:property\s+)?{_free_value('property')}",
        ),
        build=_build_create_job,
        safety_level=SafetyLevel.SAFE,
        requires_confirmation=False,
        collection="jobs",
        operation="create",
        describe=lambda p: f"Create {p.job_type} job for {p.property_name} on {p.scheduled_date}",
    ),
    PatternRule(
        tag=ActionTag.CREATE_BOOKING,
        patterns=_compile(
            r"\b(?:create|make|add)\s+(?:a\s+)?(?:new\s+)?(?:booking|reservation)"
            rf"(?:\s+(?:for|at)\s+(?:property\s+)?{_free_value('property')})?",
            rf"\bbook\s+(?:property\s+)?{_free_value('property')}",
        ),
        build=_build_create_booking,
        safety_level=SafetyLevel.SAFE,
        requires_confirmation=False,
        collection="bookings",
        operation="create",
        describe=lambda p: (
            f"Create booking at {p.property_name} for {p.guest_name} "
            f"({p.check_in_date} to {p.check_out_date})"
        ),
    ),
    PatternRule(
        tag=ActionTag.UPDATE_BOOKING,
        patterns=_compile(
            rf"\bupdate\s+booking\s+(?:id\s+)?(?P<booking>{_ID})\s+(?:with\s+|to\s+)?"
            rf"(?P<updates>[^\n]+?){_TEXT_END}",
        ),
        build=_build_update_booking,
        safety_level=SafetyLevel.CAUTION,
        requires_confirmation=True,
        collection="bookings",
        operation="update",
        describe=lambda p: f"Update booking {p.booking_id}: {p.updates}",
        target_field="booking_id",
    ),
    PatternRule(
        tag=ActionTag.DELETE_JOB,
        patterns=_compile(
            rf"\b(?:delete|remove)\s+job\s+(?:id\s+)?(?P<job>{_ID})(?P<override>\s+with\s+override)?",
        ),
        build=_build_delete,
        safety_level=SafetyLevel.DANGEROUS,
        requires_confirmation=True,
        collection="jobs",
        operation="delete",
        describe=lambda p: f"Delete job {p.job_id}{' (with override)' if p.has_override else ''}",
        target_field="job_id",
    ),
    PatternRule(
        tag=ActionTag.REASSIGN_STAFF,
        patterns=_compile(
            rf"\breassign\s+(?:staff\s+)?(?P<staff>{_NAME})\s+from\s+job\s+(?P<from_job>{_ID})"
            rf"\s+to\s+job\s+(?P<to_job>{_ID})",
        ),
        build=_build_reassign,
        safety_level=SafetyLevel.CAUTION,
        requires_confirmation=True,
        collection="jobs",
        operation="update",
        describe=lambda p: (
            f"Reassign {p.staff_name} from job {p.from_job_id} to job {p.to_job_id}"
        ),
        target_field="from_job_id",
    ),
    PatternRule(
        tag=ActionTag.SEND_NOTIFICATION,
        patterns=_compile(
            r"\b(?:send|notify)\s+(?:a\s+)?(?:(?:notification|message|reminder)\s+to\s+)?"
            rf"(?:staff\s+)?(?P<staff>{_NAME})\s+(?:about|that)\s+(?P<message>[^\n]+?){_TEXT_END}",
        ),
        build=_build_notification,
        safety_level=SafetyLevel.SAFE,
        requires_confirmation=False,
        collection="notifications",
        operation="create",
        describe=lambda p: f"Notify {p.staff_name}: {p.message}",
    ),
    PatternRule(
        tag=ActionTag.CREATE_CALENDAR_EVENT,
        patterns=_compile(
            r"\b(?:create|add|schedule)\s+(?:a\s+)?(?:new\s+)?(?:calendar\s+)?event"
            rf"(?:\s+(?:for|called)\s+{_free_value('title')})?",
            rf"\b(?:add|put)\s+{_free_value('title')}\s+(?:on|to)\s+(?:the\s+)?calendar\b",
        ),
        build=_build_calendar_event,
        safety_level=SafetyLevel.SAFE,
        requires_confirmation=False,
        collection="calendar_events",
        operation="create",
        describe=lambda p: f"Create {p.event_type} event '{p.title}' on {p.date} at {p.start_time}",
    ),
)

RULES_BY_TAG: dict[ActionTag, PatternRule] = {rule.tag: rule for rule in PATTERN_LIBRARY}
