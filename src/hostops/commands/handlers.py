"""Executor handlers, one per action tag.

Handlers assume the action already passed validation and perform the minimal
sequential writes it needs. Multi-step handlers (assign writes the job and then
a notification) have no rollback. Store errors propagate to the executor,
which turns them into failed results.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from hostops.commands import lookups
from hostops.commands.actions import (
    ApproveBookingParams,
    AssignStaffParams,
    CandidateAction,
    CreateBookingParams,
    CreateCalendarEventParams,
    CreateJobParams,
    DeleteJobParams,
    ExecutionContext,
    ExecutionResult,
    ReassignStaffParams,
    RescheduleJobParams,
    SendNotificationParams,
    UpdateBookingParams,
    UpdateCalendarParams,
)
from hostops.config import PipelineConfig
from hostops.db import collections
from hostops.db.documents import DocumentStore, to_iso, utc_now
from hostops.scoring import StaffSuggestionScorer, load_job_requirements, load_staff_candidates

logger = logging.getLogger(__name__)

NOTIFICATION_TTL = timedelta(hours=24)
COMMAND_SOURCE = "ai_command"


@dataclass
class HandlerContext:
    """Collaborators available to handlers."""

    store: DocumentStore
    config: PipelineConfig
    execution: ExecutionContext
    scorer: StaffSuggestionScorer
    clock: Callable[[], datetime] = utc_now

    def now(self) -> str:
        return to_iso(self.clock())


Handler = Callable[[CandidateAction, HandlerContext], ExecutionResult]


def _notify_about_job(
    hctx: HandlerContext, staff: dict[str, Any], job_id: str, notification_type: str
) -> str:
    """Create a staff notification for a job and stamp the job with it."""
    job = hctx.store.get(collections.JOBS, job_id) or {}
    readable = notification_type.replace("_", " ")

    notification_id = hctx.store.create(
        collections.NOTIFICATIONS,
        {
            "type": notification_type,
            "staffId": staff["id"],
            "staffName": staff.get("name", "Unknown Staff"),
            "staffEmail": staff.get("email", ""),
            "jobId": job_id,
            "jobTitle": job.get("title") or f"AI {readable}",
            "jobType": job.get("jobType", "general"),
            "priority": job.get("priority", "medium"),
            "propertyName": job.get("propertyName") or job.get("property") or "Unknown Property",
            "scheduledDate": job.get("scheduledDate"),
            "message": f"This job was {readable} by {hctx.execution.actor_name}",
            "status": "pending",
            "readAt": None,
            "actionRequired": True,
            "source": COMMAND_SOURCE,
            "expiresAt": to_iso(hctx.clock() + NOTIFICATION_TTL),
        },
    )
    hctx.store.update(
        collections.JOBS,
        job_id,
        {
            "lastNotificationAt": hctx.now(),
            "lastNotificationType": notification_type,
            "notificationId": notification_id,
        },
    )
    logger.info("Created %s notification %s for staff %s", notification_type, notification_id, staff["id"])
    return notification_id


def _assignment_fields(hctx: HandlerContext, staff: dict[str, Any]) -> dict[str, Any]:
    return {
        "assignedStaff": staff["id"],
        "assignedStaffName": staff.get("name"),
        "status": "assigned",
        "assignedBy": hctx.execution.actor_name,
        "assignedById": hctx.execution.actor_id,
        "assignedAt": hctx.now(),
    }


def _pick_staff(hctx: HandlerContext, job_id: str) -> tuple[dict[str, Any] | None, int | None]:
    """Choose the best-scoring staff member below the concurrency cap."""
    requirements = load_job_requirements(hctx.store, job_id)
    if requirements is None:
        return None, None

    candidates = [
        c
        for c in load_staff_candidates(hctx.store)
        if c.active_job_count < hctx.config.max_concurrent_jobs
    ]
    suggestions = hctx.scorer.suggest(requirements, candidates, limit=1)
    if not suggestions:
        return None, None

    top = suggestions[0]
    return hctx.store.get(collections.STAFF, top.staff_id), top.overall_score


def assign_staff(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: AssignStaffParams = action.parameters
    score = None

    if params.staff_name:
        staff = lookups.find_staff_by_name(hctx.store, params.staff_name)
        if staff is None:
            return ExecutionResult.failure(f'Staff member "{params.staff_name}" not found')
    else:
        staff, score = _pick_staff(hctx, params.job_id)
        if staff is None:
            return ExecutionResult.failure(f"No available staff to assign to job {params.job_id}")

    hctx.store.update(collections.JOBS, params.job_id, _assignment_fields(hctx, staff))
    notification_id = _notify_about_job(hctx, staff, params.job_id, "job_assigned")

    data = {
        "jobId": params.job_id,
        "staffId": staff["id"],
        "staffName": staff.get("name"),
        "notificationId": notification_id,
    }
    if score is not None:
        data["suggestionScore"] = score
    return ExecutionResult(
        success=True,
        message=f"Successfully assigned {staff.get('name')} to job {params.job_id}",
        data=data,
    )


def approve_booking(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: ApproveBookingParams = action.parameters
    hctx.store.update(
        collections.BOOKINGS,
        params.booking_id,
        {
            "status": "approved",
            "approvedBy": hctx.execution.actor_name,
            "approvedById": hctx.execution.actor_id,
            "approvedAt": hctx.now(),
            "approvalNotes": params.notes or "Approved via AI assistant",
            "confirmationRequested": params.send_confirmation,
        },
    )
    return ExecutionResult(
        success=True,
        message=f"Successfully approved booking {params.booking_id}",
        data={"bookingId": params.booking_id},
    )


def reschedule_job(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: RescheduleJobParams = action.parameters

    if params.job_id:
        job_ids = [params.job_id]
    else:
        job_ids = [
            job["id"]
            for job in hctx.store.query(collections.JOBS)
            if str(job.get("scheduledDate") or "")[:10] == params.original_date
        ]
        if not job_ids:
            return ExecutionResult.failure(f"No jobs scheduled on {params.original_date}")

    for job_id in job_ids:
        job = hctx.store.get(collections.JOBS, job_id) or {}
        hctx.store.update(
            collections.JOBS,
            job_id,
            {
                "scheduledDate": params.new_date,
                "previousScheduledDate": job.get("scheduledDate"),
                "rescheduledBy": hctx.execution.actor_name,
                "rescheduledAt": hctx.now(),
            },
        )

    return ExecutionResult(
        success=True,
        message=f"Rescheduled {len(job_ids)} job(s) to {params.new_date}",
        data={"jobIds": job_ids, "newDate": params.new_date},
    )


def update_calendar(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: UpdateCalendarParams = action.parameters
    event_id = hctx.store.create(
        collections.CALENDAR_EVENTS,
        {
            "type": "calendar_sync",
            "bookingId": params.booking_id,
            "status": "pending",
            "requestedBy": hctx.execution.actor_name,
            "source": COMMAND_SOURCE,
        },
    )
    target = f" for booking {params.booking_id}" if params.booking_id else ""
    return ExecutionResult(
        success=True,
        message=f"Calendar update requested{target}",
        data={"calendarEventId": event_id, "bookingId": params.booking_id},
    )


def create_job(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: CreateJobParams = action.parameters
    job_id = hctx.store.create(
        collections.JOBS,
        {
            "title": f"{params.job_type.capitalize()} - {params.property_name}",
            "propertyName": params.property_name,
            "jobType": params.job_type,
            "scheduledDate": params.scheduled_date,
            "priority": params.priority,
            "description": params.description,
            "estimatedDuration": params.estimated_duration,
            "status": "pending",
            "createdBy": hctx.execution.actor_name,
            "source": COMMAND_SOURCE,
        },
    )
    return ExecutionResult(
        success=True,
        message=f"Created {params.job_type} job {job_id} for {params.property_name}",
        data={"jobId": job_id},
    )


def create_booking(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: CreateBookingParams = action.parameters
    booking_id = hctx.store.create(
        collections.BOOKINGS,
        {
            "propertyName": params.property_name,
            "guestName": params.guest_name,
            "guestEmail": params.guest_email,
            "checkInDate": params.check_in_date,
            "checkOutDate": params.check_out_date,
            "guestCount": params.guest_count,
            "price": params.price,
            "specialRequests": params.special_requests,
            "status": "pending_approval",
            "createdBy": hctx.execution.actor_name,
            "source": COMMAND_SOURCE,
        },
    )
    return ExecutionResult(
        success=True,
        message=f"Created booking {booking_id} at {params.property_name} for {params.guest_name}",
        data={"bookingId": booking_id},
    )


def update_booking(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: UpdateBookingParams = action.parameters
    hctx.store.update(
        collections.BOOKINGS,
        params.booking_id,
        {"notes": params.updates, "lastUpdatedBy": hctx.execution.actor_name},
    )
    return ExecutionResult(
        success=True,
        message=f"Updated booking {params.booking_id}",
        data={"bookingId": params.booking_id},
    )


def delete_job(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: DeleteJobParams = action.parameters
    hctx.store.delete(collections.JOBS, params.job_id)
    return ExecutionResult(
        success=True,
        message=f"Deleted job {params.job_id}",
        data={"jobId": params.job_id, "override": params.has_override},
    )


def reassign_staff(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: ReassignStaffParams = action.parameters
    staff = lookups.find_staff_by_name(hctx.store, params.staff_name)
    if staff is None:
        return ExecutionResult.failure(f'Staff member "{params.staff_name}" not found')

    hctx.store.update(
        collections.JOBS,
        params.from_job_id,
        {"assignedStaff": None, "assignedStaffName": None, "status": "pending"},
    )
    hctx.store.update(collections.JOBS, params.to_job_id, _assignment_fields(hctx, staff))
    notification_id = _notify_about_job(hctx, staff, params.to_job_id, "job_reassigned")

    return ExecutionResult(
        success=True,
        message=(
            f"Successfully reassigned {staff.get('name')} from job {params.from_job_id} "
            f"to job {params.to_job_id}"
        ),
        data={
            "staffId": staff["id"],
            "fromJobId": params.from_job_id,
            "toJobId": params.to_job_id,
            "notificationId": notification_id,
        },
    )


def send_notification(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: SendNotificationParams = action.parameters
    staff = lookups.find_staff_by_name(hctx.store, params.staff_name)
    if staff is None:
        return ExecutionResult.failure(f'Staff member "{params.staff_name}" not found')

    notification_id = hctx.store.create(
        collections.NOTIFICATIONS,
        {
            "type": params.notification_type,
            "staffId": staff["id"],
            "staffName": staff.get("name"),
            "staffEmail": staff.get("email", ""),
            "message": params.message,
            "priority": params.priority,
            "status": "pending",
            "readAt": None,
            "source": COMMAND_SOURCE,
            "createdBy": hctx.execution.actor_name,
        },
    )
    return ExecutionResult(
        success=True,
        message=f"Notification sent to {staff.get('name')}",
        data={"notificationId": notification_id, "staffId": staff["id"]},
    )


def create_calendar_event(action: CandidateAction, hctx: HandlerContext) -> ExecutionResult:
    params: CreateCalendarEventParams = action.parameters
    event_id = hctx.store.create(
        collections.CALENDAR_EVENTS,
        {
            "title": params.title,
            "propertyName": params.property_name,
            "date": params.date,
            "startTime": params.start_time,
            "duration": params.duration,
            "eventType": params.event_type,
            "description": params.description,
            "status": "scheduled",
            "createdBy": hctx.execution.actor_name,
            "source": COMMAND_SOURCE,
        },
    )
    return ExecutionResult(
        success=True,
        message=f"Created calendar event '{params.title}' on {params.date} at {params.start_time}",
        data={"calendarEventId": event_id},
    )
