"""Staff suggestion scoring.

Ranks staff candidates for a job on five weighted dimensions: skills,
availability, workload, performance and location. Scoring is a pure function
of its inputs; the loaders below read fresh candidate state from the store for
each request.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from hostops.commands import lookups
from hostops.db import collections
from hostops.db.documents import DocumentStore

logger = logging.getLogger(__name__)

WEIGHTS = {
    "skill": 0.30,
    "availability": 0.25,
    "workload": 0.20,
    "performance": 0.15,
    "location": 0.10,
}

REASON_THRESHOLD = 80
CONCERN_THRESHOLD = 50

MATCH_REASONS = {
    "skill": "Excellent skill match",
    "availability": "Available at scheduled time",
    "workload": "Low current workload",
    "performance": "High performance rating",
    "location": "Assigned to this property",
}
CONCERNS = {
    "skill": "Limited skill match",
    "availability": "May not be available",
    "workload": "High current workload",
    "performance": "Below average performance",
    "location": "Not assigned to this property",
}

DEFAULT_RESPONSE_MINUTES = 15


class SuggestionConfidence(str, Enum):
    """Confidence band for a staff suggestion."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class JobRequirements:
    """What a job needs from the staff member assigned to it."""

    job_id: str
    property_id: str | None = None
    required_skills: list[str] = field(default_factory=list)
    scheduled_date: str | None = None
    job_type: str | None = None


@dataclass
class StaffCandidate:
    """A staff member's current state as seen by the scorer."""

    staff_id: str
    name: str
    role: str = "staff"
    skills: list[str] = field(default_factory=list)
    current_status: str = "available"
    active_job_count: int = 0
    pending_job_count: int = 0
    completion_rate_pct: float = 0.0
    average_rating: float = 0.0
    punctuality_pct: float = 0.0
    assigned_property_ids: list[str] = field(default_factory=list)
    average_response_minutes: int | None = None


@dataclass
class StaffSuggestion:
    """Scored suggestion for one candidate. Derived; never persisted."""

    staff_id: str
    staff_name: str
    skill_match_pct: int
    availability_match_pct: int
    workload_match_pct: int
    performance_pct: int
    location_match_pct: int
    overall_score: int
    confidence: SuggestionConfidence
    match_reasons: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)
    estimated_response_minutes: int = DEFAULT_RESPONSE_MINUTES

    def to_dict(self) -> dict[str, Any]:
        return {
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "skill_match_pct": self.skill_match_pct,
            "availability_match_pct": self.availability_match_pct,
            "workload_match_pct": self.workload_match_pct,
            "performance_pct": self.performance_pct,
            "location_match_pct": self.location_match_pct,
            "overall_score": self.overall_score,
            "confidence": self.confidence.value,
            "match_reasons": list(self.match_reasons),
            "concerns": list(self.concerns),
            "estimated_response_minutes": self.estimated_response_minutes,
        }


def _clamp(value: float) -> int:
    # Halves round up (12.5 -> 13), not to even
    return int(max(0, min(100, math.floor(value + 0.5))))


def skill_match(required: list[str], skills: list[str]) -> int:
    """Percentage of required skills the candidate has (case-insensitive)."""
    wanted = {s.strip().lower() for s in required if s and s.strip()}
    if not wanted:
        return 100
    have = {s.strip().lower() for s in skills if s and s.strip()}
    return _clamp(100 * len(wanted & have) / len(wanted))


def availability_match(current_status: str, active_job_count: int, max_concurrent: int = 3) -> int:
    if current_status == "available":
        return 100
    if current_status == "busy" and active_job_count < max_concurrent:
        return 70
    if current_status == "off_duty":
        return 20
    return 50


def workload_match(active_job_count: int, pending_job_count: int) -> int:
    total = active_job_count + pending_job_count
    if total == 0:
        return 100
    if total <= 2:
        return 80
    if total <= 4:
        return 60
    if total <= 6:
        return 40
    return 20


def performance_score(completion_rate_pct: float, average_rating: float, punctuality_pct: float) -> int:
    return _clamp((completion_rate_pct + average_rating * 20 + punctuality_pct) / 3)


def location_match(assigned_property_ids: list[str], property_id: str | None) -> int:
    if property_id is not None and property_id in assigned_property_ids:
        return 100
    if not assigned_property_ids:
        return 80
    return 40


def confidence_for(score: int) -> SuggestionConfidence:
    if score >= 80:
        return SuggestionConfidence.HIGH
    if score >= 60:
        return SuggestionConfidence.MEDIUM
    return SuggestionConfidence.LOW


class StaffSuggestionScorer:
    """Score and rank staff candidates for a job."""

    def __init__(self, max_concurrent_jobs: int = 3) -> None:
        self.max_concurrent_jobs = max_concurrent_jobs

    def score(self, job: JobRequirements, candidate: StaffCandidate) -> StaffSuggestion:
        """Score a single candidate against a job."""
        sub_scores = {
            "skill": skill_match(job.required_skills, candidate.skills),
            "availability": availability_match(
                candidate.current_status, candidate.active_job_count, self.max_concurrent_jobs
            ),
            "workload": workload_match(candidate.active_job_count, candidate.pending_job_count),
            "performance": performance_score(
                candidate.completion_rate_pct,
                candidate.average_rating,
                candidate.punctuality_pct,
            ),
            "location": location_match(candidate.assigned_property_ids, job.property_id),
        }
        overall = _clamp(sum(sub_scores[k] * w for k, w in WEIGHTS.items()))

        return StaffSuggestion(
            staff_id=candidate.staff_id,
            staff_name=candidate.name,
            skill_match_pct=sub_scores["skill"],
            availability_match_pct=sub_scores["availability"],
            workload_match_pct=sub_scores["workload"],
            performance_pct=sub_scores["performance"],
            location_match_pct=sub_scores["location"],
            overall_score=overall,
            confidence=confidence_for(overall),
            match_reasons=[MATCH_REASONS[k] for k, v in sub_scores.items() if v >= REASON_THRESHOLD],
            concerns=[CONCERNS[k] for k, v in sub_scores.items() if v < CONCERN_THRESHOLD],
            estimated_response_minutes=candidate.average_response_minutes or DEFAULT_RESPONSE_MINUTES,
        )

    def suggest(
        self,
        job: JobRequirements,
        candidates: list[StaffCandidate],
        limit: int | None = None,
    ) -> list[StaffSuggestion]:
        """Rank candidates for a job.

        Args:
            job: Requirements of the job being staffed.
            candidates: Staff to consider.
            limit: Maximum number of suggestions to return (all if None).

        Returns:
            Suggestions sorted by descending overall score; ties are broken by
            staff id so the ordering is deterministic.
        """
        suggestions = [self.score(job, candidate) for candidate in candidates]
        suggestions.sort(key=lambda s: (-s.overall_score, s.staff_id))
        if limit is not None:
            suggestions = suggestions[:limit]
        return suggestions


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def load_job_requirements(store: DocumentStore, job_id: str) -> JobRequirements | None:
    """Build job requirements from a stored job document."""
    job = store.get(collections.JOBS, job_id)
    if job is None:
        return None

    property_id = job.get("propertyId")
    if property_id is None and isinstance(job.get("propertyRef"), dict):
        property_id = job["propertyRef"].get("id")

    return JobRequirements(
        job_id=job_id,
        property_id=property_id,
        required_skills=_as_list(job.get("requiredSkills")),
        scheduled_date=job.get("scheduledDate"),
        job_type=job.get("jobType"),
    )


def load_staff_candidates(store: DocumentStore) -> list[StaffCandidate]:
    """Read every non-inactive staff member with fresh job counts."""
    candidates = []
    for staff in store.query(collections.STAFF, order_by="name"):
        if staff.get("status") == "inactive":
            continue

        active = lookups.count_active_jobs(store, staff["id"])
        pending = lookups.count_pending_jobs(store, staff["id"])
        current_status = staff.get("currentStatus") or ("busy" if active > 0 else "available")

        candidates.append(
            StaffCandidate(
                staff_id=staff["id"],
                name=staff.get("name", staff["id"]),
                role=staff.get("role", "staff"),
                skills=_as_list(staff.get("skills")),
                current_status=current_status,
                active_job_count=active,
                pending_job_count=pending,
                completion_rate_pct=float(staff.get("completionRate") or 0),
                average_rating=float(staff.get("averageRating") or 0),
                punctuality_pct=float(staff.get("punctualityScore") or 0),
                assigned_property_ids=_as_list(staff.get("assignedProperties")),
                average_response_minutes=staff.get("averageResponseTime"),
            )
        )

    logger.debug("Loaded %d staff candidates", len(candidates))
    return candidates
