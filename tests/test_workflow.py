"""Tests for staff-driven lifecycle transitions."""

import asyncio
from datetime import date

import pytest
from fastapi import HTTPException

from mms.models.application import StatusHistory
from mms.models.member import Member
from mms.models.naming_series import NamingSeriesCounter
from mms.models.user import User
from mms.schemas.sections import IndividualSections
from mms.services import workflow
from mms.services.applications import save_draft, submit_application
from tests.conftest import COMPLETE_INDIVIDUAL_SECTIONS


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def draft(db_session, verified_applicant):
    return save_draft(db_session, verified_applicant, IndividualSections.model_validate(COMPLETE_INDIVIDUAL_SECTIONS))


@pytest.fixture
def submitted(db_session, mailer, verified_applicant, draft):
    run(submit_application(db_session, mailer, verified_applicant))
    mailer.sent.clear()
    return draft


@pytest.fixture
def member_manager(db_session):
    user = User(full_name="Mona Manager", email="manager@council.example.com",
                hashed_password="x", role="member_manager", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


class TestGuards:
    """Forward-only enforcement"""

    def test_staff_cannot_move_a_draft(self, db_session, mailer, admin_user, draft):
        with pytest.raises(HTTPException) as exc:
            run(workflow.approve_and_create_member(db_session, mailer, draft.application_id, admin_user))

        assert exc.value.status_code == 409
        assert exc.value.detail["code"] == "INVALID_TRANSITION"
        assert db_session.query(Member).count() == 0

    def test_backwards_move_refused(self, db_session, mailer, admin_user, submitted):
        run(workflow.move_to_document_review(db_session, mailer, submitted.application_id, admin_user))

        with pytest.raises(HTTPException) as exc:
            run(workflow.move_to_under_review(db_session, mailer, submitted.application_id, admin_user))

        assert exc.value.status_code == 409
        assert exc.value.detail["current_status"] == "document_review"

    def test_unknown_application_is_404(self, db_session, mailer, admin_user):
        with pytest.raises(HTTPException) as exc:
            run(workflow.move_to_under_review(db_session, mailer, "MBR-APP-2025-9999", admin_user))
        assert exc.value.status_code == 404


class TestStageTransitions:
    """Status change, history and notifications"""

    def test_payment_review_settles_fee(self, db_session, mailer, admin_user, submitted):
        result = run(workflow.move_to_payment_review(db_session, mailer, submitted.application_id, admin_user, "Bank ref ok"))

        db_session.refresh(submitted)
        assert result["status"] == "payment_received"
        assert submitted.fee_status == "settled"
        assert submitted.payment_received_at is not None
        assert submitted.review_notes == "Bank ref ok"

    def test_applicant_and_review_staff_are_emailed(self, db_session, mailer, admin_user, member_manager, staff_user, submitted):
        result = run(workflow.move_to_under_review(db_session, mailer, submitted.application_id, staff_user))

        assert result["emails_sent"] == 3
        assert "email_error" not in result
        assert sorted(mailer.recipients()) == sorted([
            "jane.doe@example.com", admin_user.email, member_manager.email,
        ])
        staff_subjects = [m["subject"] for m in mailer.sent if m["to"] == admin_user.email]
        assert staff_subjects == [f"Action Required: Under Review - {submitted.application_id}"]

    def test_history_records_each_move(self, db_session, mailer, admin_user, submitted):
        run(workflow.move_to_under_review(db_session, mailer, submitted.application_id, admin_user, "Looks complete"))

        history = (
            db_session.query(StatusHistory)
            .filter(StatusHistory.application_id == submitted.application_id)
            .order_by(StatusHistory.created_at)
            .all()
        )
        assert [(h.from_status, h.to_status) for h in history] == [
            (None, "draft"), ("draft", "submitted"), ("submitted", "under_review"),
        ]
        assert history[-1].changed_by == admin_user.id
        assert history[-1].comment == "Looks complete"

    def test_failed_email_does_not_undo_transition(self, db_session, mailer, admin_user, submitted):
        mailer.fail_for.add("jane.doe@example.com")

        result = run(workflow.move_to_document_review(db_session, mailer, submitted.application_id, admin_user))

        db_session.refresh(submitted)
        assert submitted.status == "document_review"
        assert result["emails_sent"] == 1
        assert "jane.doe@example.com" in result["email_error"]


class TestApproval:
    """Promotion to member"""

    def test_approve_creates_member_and_marks_application(self, db_session, mailer, admin_user, submitted):
        result = run(workflow.approve_and_create_member(db_session, mailer, submitted.application_id, admin_user))

        member = db_session.query(Member).one()
        db_session.refresh(submitted)
        year = date.today().year
        assert result["member_number"] == f"EAC-MBR-{year}-0001"
        assert member.membership_number == result["member_number"]
        assert member.first_name == "Jane"
        assert member.membership_status == "active"
        assert member.expiry_date == workflow.add_years(date.today(), 1)
        assert submitted.status == "approved"
        assert submitted.created_member_number == member.membership_number
        assert submitted.applicant.status == "approved"

    def test_failed_member_insert_rolls_back_everything(self, db_session, mailer, admin_user, submitted, monkeypatch):
        def broken_record(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(workflow, "_build_member_record", broken_record)

        with pytest.raises(HTTPException) as exc:
            run(workflow.approve_and_create_member(db_session, mailer, submitted.application_id, admin_user))

        db_session.expire_all()
        assert exc.value.status_code == 500
        assert db_session.query(Member).count() == 0
        assert db_session.get(NamingSeriesCounter, ("member_ind", date.today().year)) is None
        assert submitted.status == "submitted"

    def test_approved_application_is_final(self, db_session, mailer, admin_user, submitted):
        run(workflow.approve_and_create_member(db_session, mailer, submitted.application_id, admin_user))

        with pytest.raises(HTTPException) as exc:
            run(workflow.reject_application(db_session, mailer, submitted.application_id, admin_user, "Too late"))
        assert exc.value.status_code == 409

    def test_reject_records_reason(self, db_session, mailer, admin_user, submitted):
        result = run(workflow.reject_application(
            db_session, mailer, submitted.application_id, admin_user, "Certificates could not be verified",
        ))

        db_session.refresh(submitted)
        assert result["status"] == "rejected"
        assert submitted.rejection_reason == "Certificates could not be verified"
        assert submitted.applicant.status == "rejected"
        assert any("Update on application" in m["subject"] for m in mailer.sent)

    def test_leap_day_expiry(self):
        assert workflow.add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)
