"""Business rules checked before an action is executed.

Each rule receives a RuleContext describing the action and the current state
of the document it targets, and returns a list of human-readable errors (empty
when the rule passes). Rules only read from the store.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from hostops.commands import lookups
from hostops.commands import text_helpers as th
from hostops.commands.actions import (
    ApproveBookingParams,
    AssignStaffParams,
    CandidateAction,
    ReassignStaffParams,
    RescheduleJobParams,
    UpdateBookingParams,
)
from hostops.config import PipelineConfig
from hostops.db import collections
from hostops.db.documents import DocumentStore


@dataclass
class RuleContext:
    """Inputs available to a business rule."""

    action: CandidateAction
    store: DocumentStore
    config: PipelineConfig
    today: date
    target: dict[str, Any] | None = None


Rule = Callable[[RuleContext], list[str]]


def job_not_in_flight_for_delete(ctx: RuleContext) -> list[str]:
    if ctx.target is None:
        return []
    status = ctx.target.get("status")
    if status == "in_progress":
        return ["Cannot delete in-progress job"]
    if status == "completed" and not ctx.action.has_override:
        return ["Cannot delete completed job without override"]
    return []


def _check_staff(ctx: RuleContext, staff_name: str, exclude_job_id: str | None = None) -> list[str]:
    staff = lookups.find_staff_by_name(ctx.store, staff_name)
    if staff is None:
        return [f'Staff member "{staff_name}" not found']

    errors = []
    if staff.get("status") == "inactive":
        errors.append(f'Staff member "{staff_name}" is inactive')

    active = lookups.count_active_jobs(ctx.store, staff["id"], exclude_job_id=exclude_job_id)
    if active >= ctx.config.max_concurrent_jobs:
        errors.append(
            f'Staff member "{staff_name}" already has {active} concurrent jobs '
            f"(max {ctx.config.max_concurrent_jobs})"
        )
    return errors


def staff_assignable(ctx: RuleContext) -> list[str]:
    params: AssignStaffParams = ctx.action.parameters
    errors = []
    if ctx.target is not None and ctx.target.get("status") == "completed":
        errors.append("Cannot assign staff to completed job")
    # Without a name the best available candidate is chosen at execution time
    if params.staff_name:
        errors.extend(_check_staff(ctx, params.staff_name))
    return errors


def staff_reassignable(ctx: RuleContext) -> list[str]:
    params: ReassignStaffParams = ctx.action.parameters
    errors = []

    if params.from_job_id == params.to_job_id:
        errors.append("Source and destination jobs must differ")

    to_job = ctx.store.get(collections.JOBS, params.to_job_id)
    if to_job is None:
        errors.append(f"Document {params.to_job_id} not found in {collections.JOBS}")
    else:
        if to_job.get("status") == "completed":
            errors.append("Cannot assign staff to completed job")
        if to_job.get("locked") is True:
            errors.append("Cannot modify locked record")

    staff = lookups.find_staff_by_name(ctx.store, params.staff_name)
    if (
        staff is not None
        and ctx.target is not None
        and ctx.target.get("assignedStaff") not in (None, staff["id"])
    ):
        errors.append(
            f'Staff member "{params.staff_name}" is not assigned to job {params.from_job_id}'
        )

    # The job being vacated does not count against the cap
    errors.extend(_check_staff(ctx, params.staff_name, exclude_job_id=params.from_job_id))
    return errors


def booking_not_already_approved(ctx: RuleContext) -> list[str]:
    if ctx.target is not None and ctx.target.get("status") == "approved":
        return ["Booking is already approved"]
    return []


def booking_check_in_not_past(ctx: RuleContext) -> list[str]:
    params: ApproveBookingParams | UpdateBookingParams = ctx.action.parameters
    booking = ctx.target
    if booking is None:
        booking = ctx.store.get(collections.BOOKINGS, params.booking_id)
    if booking is None:
        return []

    check_in = booking.get("checkInDate")
    if isinstance(check_in, str) and th.is_past(check_in, today=ctx.today):
        return ["Cannot modify booking with past check-in date"]
    return []


def reschedule_date_allowed(ctx: RuleContext) -> list[str]:
    params: RescheduleJobParams = ctx.action.parameters
    new_date = th.parse_date(params.new_date, today=ctx.today)
    if new_date is None:
        return [f"Invalid date: {params.new_date}"]

    errors = []
    if new_date < ctx.today:
        errors.append("Cannot reschedule job to a past date")

    blackout = ctx.config.blackout_weekday
    if blackout is not None and new_date.weekday() == blackout:
        errors.append(f"Jobs cannot be scheduled on {th.WEEKDAYS[blackout].capitalize()}s")

    if params.job_id is None and params.original_date:
        if th.parse_date(params.original_date, today=ctx.today) is None:
            errors.append(f"Invalid date: {params.original_date}")
    return errors


def record_not_locked(ctx: RuleContext) -> list[str]:
    if ctx.target is not None and ctx.target.get("locked") is True:
        return ["Cannot modify locked record"]
    return []
