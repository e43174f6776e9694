"""Tests for staff suggestion scoring."""

import pytest

from hostops.scoring import (
    JobRequirements,
    StaffCandidate,
    StaffSuggestionScorer,
    SuggestionConfidence,
    availability_match,
    confidence_for,
    load_job_requirements,
    load_staff_candidates,
    location_match,
    performance_score,
    skill_match,
    workload_match,
)


@pytest.fixture
def scorer() -> StaffSuggestionScorer:
    return StaffSuggestionScorer(max_concurrent_jobs=3)


@pytest.fixture
def cleaning_job() -> JobRequirements:
    return JobRequirements(job_id="job-001", property_id="prop-sunset", required_skills=["cleaning"])


def _perfect_candidate(**overrides) -> StaffCandidate:
    fields = {
        "staff_id": "staff-maria",
        "name": "Maria Santos",
        "skills": ["Cleaning", "laundry"],
        "current_status": "available",
        "completion_rate_pct": 100,
        "average_rating": 5.0,
        "punctuality_pct": 100,
        "assigned_property_ids": ["prop-sunset"],
    }
    fields.update(overrides)
    return StaffCandidate(**fields)


class TestSubScores:
    def test_skill_match_is_case_insensitive_fraction(self) -> None:
        assert skill_match(["cleaning", "Laundry"], ["LAUNDRY"]) == 50
        assert skill_match(["cleaning"], ["cleaning"]) == 100
        assert skill_match(["cleaning"], []) == 0
        assert skill_match([], ["anything"]) == 100

    def test_half_points_round_up(self) -> None:
        assert skill_match(list("abcdefgh"), ["a"]) == 13
        assert skill_match(list("abcdefgh"), list("abcde")) == 63

    @pytest.mark.parametrize(
        "status,active,expected",
        [
            ("available", 0, 100),
            ("busy", 2, 70),
            ("busy", 3, 50),
            ("off_duty", 0, 20),
            ("on_leave", 0, 50),
        ],
    )
    def test_availability(self, status: str, active: int, expected: int) -> None:
        assert availability_match(status, active, max_concurrent=3) == expected

    @pytest.mark.parametrize(
        "active,pending,expected",
        [(0, 0, 100), (1, 1, 80), (2, 2, 60), (3, 3, 40), (5, 5, 20)],
    )
    def test_workload(self, active: int, pending: int, expected: int) -> None:
        assert workload_match(active, pending) == expected

    def test_performance(self) -> None:
        assert performance_score(100, 5.0, 100) == 100
        assert performance_score(90, 4.5, 90) == 90
        assert performance_score(0, 0, 0) == 0

    def test_location(self) -> None:
        assert location_match(["prop-sunset"], "prop-sunset") == 100
        assert location_match([], "prop-sunset") == 80
        assert location_match(["prop-paradise"], "prop-sunset") == 40

    def test_confidence_bands(self) -> None:
        assert confidence_for(80) == SuggestionConfidence.HIGH
        assert confidence_for(79) == SuggestionConfidence.MEDIUM
        assert confidence_for(60) == SuggestionConfidence.MEDIUM
        assert confidence_for(59) == SuggestionConfidence.LOW


class TestScorer:
    def test_perfect_candidate(self, scorer, cleaning_job) -> None:
        suggestion = scorer.score(cleaning_job, _perfect_candidate())

        assert suggestion.overall_score == 100
        assert suggestion.confidence == SuggestionConfidence.HIGH
        assert suggestion.concerns == []
        assert suggestion.match_reasons == [
            "Excellent skill match",
            "Available at scheduled time",
            "Low current workload",
            "High performance rating",
            "Assigned to this property",
        ]
        assert suggestion.estimated_response_minutes == 15

    def test_weak_candidate(self, scorer, cleaning_job) -> None:
        candidate = _perfect_candidate(
            staff_id="staff-x",
            skills=["plumbing"],
            current_status="off_duty",
            active_job_count=4,
            pending_job_count=4,
            completion_rate_pct=40,
            average_rating=2.0,
            punctuality_pct=40,
            assigned_property_ids=["prop-paradise"],
            average_response_minutes=45,
        )

        suggestion = scorer.score(cleaning_job, candidate)

        # 0*.30 + 20*.25 + 20*.20 + 40*.15 + 40*.10
        assert suggestion.overall_score == 19
        assert suggestion.confidence == SuggestionConfidence.LOW
        assert suggestion.match_reasons == []
        assert "Limited skill match" in suggestion.concerns
        assert "Not assigned to this property" in suggestion.concerns
        assert suggestion.estimated_response_minutes == 45

    def test_half_point_overall_rounds_up(self, scorer, cleaning_job) -> None:
        suggestion = scorer.score(cleaning_job, _perfect_candidate(current_status="busy"))

        # 30 + 70*.25 + 20 + 15 + 10 = 92.5
        assert suggestion.availability_match_pct == 70
        assert suggestion.overall_score == 93

    def test_ranking_and_limit(self, scorer, cleaning_job) -> None:
        candidates = [
            _perfect_candidate(staff_id="b", skills=[]),
            _perfect_candidate(staff_id="a"),
            _perfect_candidate(staff_id="c"),
        ]

        suggestions = scorer.suggest(cleaning_job, candidates, limit=2)

        # Equal scores are ordered by staff id
        assert [s.staff_id for s in suggestions] == ["a", "c"]

    def test_scoring_is_deterministic(self, scorer, cleaning_job) -> None:
        candidates = [_perfect_candidate(staff_id=f"s{i}", punctuality_pct=60 + i) for i in range(5)]

        first = scorer.suggest(cleaning_job, candidates)
        second = scorer.suggest(cleaning_job, list(reversed(candidates)))

        assert [s.to_dict() for s in first] == [s.to_dict() for s in second]

    def test_overall_score_stays_in_range(self, scorer, cleaning_job) -> None:
        candidate = _perfect_candidate(completion_rate_pct=500, average_rating=50, punctuality_pct=500)

        suggestion = scorer.score(cleaning_job, candidate)

        assert suggestion.performance_pct == 100
        assert 0 <= suggestion.overall_score <= 100


class TestLoaders:
    def test_load_job_requirements(self, seeded_store) -> None:
        job = load_job_requirements(seeded_store, "job-001")

        assert job.property_id == "prop-sunset"
        assert job.required_skills == ["cleaning"]
        assert job.scheduled_date == "2025-07-18"
        assert load_job_requirements(seeded_store, "job-404") is None

    def test_load_candidates_skips_inactive(self, seeded_store) -> None:
        candidates = load_staff_candidates(seeded_store)

        assert [c.staff_id for c in candidates] == ["staff-john", "staff-maria"]
        maria = candidates[1]
        assert maria.current_status == "available"
        assert maria.completion_rate_pct == 98.0
        assert maria.assigned_property_ids == ["prop-sunset"]

    def test_candidates_reflect_current_jobs(self, seeded_store) -> None:
        seeded_store.update("jobs", "job-002", {"assignedStaff": "staff-john", "status": "assigned"})
        seeded_store.update("jobs", "job-099", {"assignedStaff": "staff-john"})
        seeded_store.update("jobs", "job-001", {"assignedStaff": "staff-john", "status": "scheduled"})

        john = load_staff_candidates(seeded_store)[0]

        assert john.active_job_count == 2
        assert john.pending_job_count == 1
        assert john.current_status == "busy"

    def test_maria_ranks_first_for_cleaning(self, seeded_store, scorer) -> None:
        job = load_job_requirements(seeded_store, "job-001")

        suggestions = scorer.suggest(job, load_staff_candidates(seeded_store))

        assert suggestions[0].staff_name == "Maria Santos"
        assert suggestions[0].overall_score == 99
        assert suggestions[1].staff_name == "John Smith"
