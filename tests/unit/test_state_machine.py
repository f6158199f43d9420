"""Unit tests for the contract lifecycle state machine."""

import pytest

from core.errors import InvalidTransition
from core.lifecycle.models import ContractStatus as S
from core.lifecycle.state_machine import (
    ANALYZABLE_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
    ensure_transition,
)


class TestTransitions:
    """Tests for legal and illegal moves."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.UPLOADED, S.ANALYZING),
            (S.ANALYZING, S.ANALYZED),
            (S.ANALYZING, S.UPLOAD_FAILED),
            (S.UPLOAD_FAILED, S.ANALYZING),
            (S.ANALYZED, S.ANALYZING),
            (S.ANALYZED, S.UNDER_NEGOTIATION),
            (S.UNDER_NEGOTIATION, S.FINALIZED),
            (S.FINALIZED, S.SIGNED),
            (S.FINALIZED, S.REJECTED),
        ],
    )
    def test_legal_transitions(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.UPLOADED, S.ANALYZED),
            (S.UPLOADED, S.UPLOAD_FAILED),
            (S.ANALYZED, S.FINALIZED),
            (S.UNDER_NEGOTIATION, S.ANALYZING),
            (S.FINALIZED, S.UNDER_NEGOTIATION),
            (S.SIGNED, S.REJECTED),
            (S.REJECTED, S.ANALYZING),
        ],
    )
    def test_illegal_transitions(self, current, target):
        assert can_transition(current, target) is False

    def test_upload_failed_only_from_analyzing(self):
        sources = [s for s in S if can_transition(s, S.UPLOAD_FAILED)]

        assert sources == [S.ANALYZING]

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            assert not any(can_transition(status, target) for target in S)

    def test_analyzable_statuses(self):
        assert ANALYZABLE_STATUSES == {S.UPLOADED, S.UPLOAD_FAILED, S.ANALYZED}


class TestEnsureTransition:
    """Tests for the raising guard."""

    def test_legal_move_passes(self):
        ensure_transition("c1", S.UPLOADED, S.ANALYZING)

    def test_illegal_move_raises_with_states(self):
        with pytest.raises(InvalidTransition) as exc_info:
            ensure_transition("c1", S.SIGNED, S.ANALYZING)

        error = exc_info.value
        assert error.status_code == 409
        assert error.details["from_status"] == "signed"
        assert error.details["to_status"] == "analyzing"
