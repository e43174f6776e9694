"""Tests for safety classification and candidate action invariants."""

import pytest

from hostops.commands.actions import (
    ActionTag,
    ApproveBookingParams,
    AssignStaffParams,
    CandidateAction,
    DeleteJobParams,
    SafetyLevel,
)
from hostops.commands.safety import classify, is_auto_executable, needs_override


class TestClassify:
    def test_every_tag_is_classified(self) -> None:
        for tag in ActionTag:
            classification = classify(tag)
            if classification.safety_level == SafetyLevel.DANGEROUS:
                assert classification.requires_confirmation is True

    @pytest.mark.parametrize(
        "tag,level,confirm",
        [
            (ActionTag.ASSIGN_STAFF, SafetyLevel.SAFE, False),
            (ActionTag.CREATE_JOB, SafetyLevel.SAFE, False),
            (ActionTag.APPROVE_BOOKING, SafetyLevel.CAUTION, True),
            (ActionTag.REASSIGN_STAFF, SafetyLevel.CAUTION, True),
            (ActionTag.DELETE_JOB, SafetyLevel.DANGEROUS, True),
        ],
    )
    def test_declared_levels(self, tag: ActionTag, level: SafetyLevel, confirm: bool) -> None:
        classification = classify(tag)

        assert classification.safety_level == level
        assert classification.requires_confirmation is confirm


class TestAutoExecution:
    def test_safe_action_runs_automatically(self, action_for) -> None:
        assert is_auto_executable(action_for("assign Maria Santos to job job-001")) is True

    def test_caution_action_waits(self, action_for) -> None:
        assert is_auto_executable(action_for("approve booking bk-100")) is False

    def test_dangerous_action_needs_override(self, action_for) -> None:
        action = action_for("delete job job-002")

        assert is_auto_executable(action) is False
        assert needs_override(action) is True
        assert needs_override(action.with_override()) is False

    def test_override_is_ignored_for_actions_without_flag(self, action_for) -> None:
        action = action_for("approve booking bk-100")

        assert action.with_override() is action
        assert needs_override(action) is False


class TestCandidateActionInvariants:
    """CandidateAction refuses inconsistent construction."""

    def _make(self, **overrides) -> CandidateAction:
        fields = {
            "tag": ActionTag.DELETE_JOB,
            "parameters": DeleteJobParams(job_id="job-1"),
            "confidence": 0.8,
            "safety_level": SafetyLevel.DANGEROUS,
            "requires_confirmation": True,
            "original_text": "delete job job-1",
            "source_collection": "jobs",
            "operation": "delete",
        }
        fields.update(overrides)
        return CandidateAction(**fields)

    def test_valid_action(self) -> None:
        assert self._make().tag == ActionTag.DELETE_JOB

    def test_dangerous_without_confirmation_rejected(self) -> None:
        with pytest.raises(ValueError, match="require confirmation"):
            self._make(requires_confirmation=False)

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_out_of_range_rejected(self, confidence: float) -> None:
        with pytest.raises(ValueError, match="confidence"):
            self._make(confidence=confidence)

    def test_parameters_must_match_tag(self) -> None:
        with pytest.raises(ValueError, match="DeleteJobParams"):
            self._make(parameters=AssignStaffParams(job_id="job-1"))

    def test_with_override_returns_new_action(self) -> None:
        action = self._make()
        overridden = action.with_override()

        assert overridden is not action
        assert overridden.id == action.id
        assert overridden.has_override is True
        assert action.has_override is False

    def test_dict_round_trip_keeps_typed_parameters(self) -> None:
        action = self._make(
            tag=ActionTag.APPROVE_BOOKING,
            parameters=ApproveBookingParams(booking_id="bk-1", notes="VIP"),
            safety_level=SafetyLevel.CAUTION,
            source_collection="bookings",
            operation="update",
            target_document_id="bk-1",
        )

        restored = CandidateAction.from_dict(action.to_dict())

        assert restored == action
        assert isinstance(restored.parameters, ApproveBookingParams)
