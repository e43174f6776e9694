"""Store lookups shared by validation rules, handlers and the scorer.

Every function reads current state from the store; nothing is cached.
"""

from typing import Any

from hostops.db import collections
from hostops.db.documents import DocumentStore, FieldFilter

# Job statuses that count against a staff member's concurrency cap
ACTIVE_JOB_STATUSES = ["assigned", "in_progress"]
# Job statuses accepted or scheduled but not yet started
PENDING_JOB_STATUSES = ["accepted", "scheduled"]


def find_staff_by_name(store: DocumentStore, name: str) -> dict[str, Any] | None:
    """Find a staff member by exact name, falling back to a case-insensitive match."""
    matches = store.query(collections.STAFF, [FieldFilter("name", "==", name)], limit=1)
    if matches:
        return matches[0]

    wanted = name.strip().lower()
    for staff in store.query(collections.STAFF):
        if str(staff.get("name", "")).strip().lower() == wanted:
            return staff
    return None


def jobs_for_staff(
    store: DocumentStore,
    staff_id: str,
    statuses: list[str],
    exclude_job_id: str | None = None,
) -> list[dict[str, Any]]:
    """Jobs assigned to a staff member whose status is in ``statuses``."""
    jobs = store.query(
        collections.JOBS,
        [
            FieldFilter("assignedStaff", "==", staff_id),
            FieldFilter("status", "in", statuses),
        ],
    )
    return [job for job in jobs if job["id"] != exclude_job_id]


def count_active_jobs(
    store: DocumentStore, staff_id: str, exclude_job_id: str | None = None
) -> int:
    """Number of assigned or in-progress jobs held by a staff member."""
    return len(jobs_for_staff(store, staff_id, ACTIVE_JOB_STATUSES, exclude_job_id))


def count_pending_jobs(store: DocumentStore, staff_id: str) -> int:
    """Number of accepted or scheduled jobs held by a staff member."""
    return len(jobs_for_staff(store, staff_id, PENDING_JOB_STATUSES))
