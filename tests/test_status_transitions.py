"""Tests for the forward-only application state machine."""

import pytest

from mms.models.status import ApplicationStatus, can_transition


class TestCanTransition:
    """Allowed and refused moves"""

    @pytest.mark.parametrize("current,target", [
        ("draft", "submitted"),
        ("submitted", "payment_pending"),
        ("payment_pending", "payment_received"),
        ("payment_received", "under_review"),
        ("under_review", "document_review"),
        ("document_review", "approved"),
        ("document_review", "rejected"),
        ("submitted", "document_review"),
        ("under_review", "rejected"),
    ])
    def test_forward_moves_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize("current,target", [
        ("document_review", "under_review"),
        ("under_review", "payment_received"),
        ("submitted", "submitted"),
        ("draft", "approved"),
        ("draft", "under_review"),
        ("approved", "rejected"),
        ("rejected", "approved"),
        ("approved", "document_review"),
    ])
    def test_backward_and_terminal_moves_refused(self, current, target):
        assert can_transition(current, target) is False

    def test_new_application_starts_as_draft(self):
        assert can_transition(None, ApplicationStatus.DRAFT.value) is True
        assert can_transition(None, ApplicationStatus.SUBMITTED.value) is False

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            can_transition("archived", "approved")
