# mms/services/workflow.py
"""Staff-driven application lifecycle transitions.

Each transition commits the status change first and only then sends email,
to the applicant and to every active user holding a review-notification role.
A failed email never undoes the transition; it is logged and reported back
as ``email_error``.

Moves are forward-only: a draft cannot be touched by staff, terminal states
are final, and the target must rank after the current status.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session

from mms.models.application import INDIVIDUAL
from mms.models.member import Member, Organization
from mms.models.status import ApplicantStatus, ApplicationStatus, FeeStatus, MembershipStatus, can_transition
from mms.models.user import REVIEW_NOTIFY_ROLES, User
from mms.services.applications import (
    ApplicationRow,
    applicant_name,
    get_application_or_404,
    invalid_transition,
    load_sections,
    record_status_change,
)
from mms.services.email_service import (
    Mailer,
    send_approval_email,
    send_rejection_email,
    send_staff_notification,
    send_stage_email,
)
from mms.services.naming_series import next_member_number

logger = logging.getLogger(__name__)

MEMBERSHIP_TERM_YEARS = 1


def add_years(start: date, years: int) -> date:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # 29 February
        return start.replace(year=start.year + years, day=28)


def _guard(application: ApplicationRow, target: str) -> None:
    if not can_transition(application.status, target):
        logger.warning(f"Rejected transition {application.application_id}: {application.status} -> {target}")
        raise invalid_transition(application, target)


def notification_recipients(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.role.in_(REVIEW_NOTIFY_ROLES), User.is_active == True)  # noqa: E712
        .order_by(User.email)
        .all()
    )


async def notify_staff(db: Session, mailer: Mailer, application: ApplicationRow, stage: str) -> Tuple[int, List[str]]:
    sent, failed = 0, []
    name = applicant_name(application)
    for user in notification_recipients(db):
        if await send_staff_notification(mailer, user.email, user.full_name, application.application_id, stage, name):
            sent += 1
        else:
            failed.append(user.email)
    return sent, failed


def _result(application: ApplicationRow, sent: int, failed: List[str], **extra) -> dict:
    result = {
        "application_id": application.application_id,
        "status": application.status,
        "emails_sent": sent,
        **extra,
    }
    if failed:
        result["email_error"] = f"Failed to email: {', '.join(failed)}"
    return result


async def _stage_transition(
    db: Session,
    mailer: Mailer,
    application_id: str,
    target: ApplicationStatus,
    reviewer: User,
    timestamp_field: str,
    notes: Optional[str] = None,
    applicant_status: Optional[ApplicantStatus] = None,
    fee_status: Optional[FeeStatus] = None,
) -> dict:
    application = get_application_or_404(db, application_id)
    _guard(application, target.value)

    try:
        previous = application.status
        record_status_change(db, application, target.value, actor_id=reviewer.id, comment=notes)
        application.reviewed_by = reviewer.id
        setattr(application, timestamp_field, datetime.utcnow())
        if notes:
            application.review_notes = notes
        if applicant_status:
            application.applicant.status = applicant_status.value
        if fee_status:
            application.fee_status = fee_status.value
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to move {application_id} to {target.value}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update application status")

    db.refresh(application)
    logger.info(f"{application_id}: {previous} -> {application.status} by {reviewer.email}")

    sent, failed = 0, []
    if await send_stage_email(mailer, application.applicant.email, applicant_name(application),
                              application.application_id, target.value):
        sent += 1
    else:
        failed.append(application.applicant.email)

    staff_sent, staff_failed = await notify_staff(db, mailer, application, target.value)
    return _result(application, sent + staff_sent, failed + staff_failed)


async def move_to_payment_review(db: Session, mailer: Mailer, application_id: str, reviewer: User,
                                 notes: Optional[str] = None) -> dict:
    """Confirm the fee and mark the application ``payment_received``."""
    return await _stage_transition(
        db, mailer, application_id, ApplicationStatus.PAYMENT_RECEIVED, reviewer,
        "payment_received_at", notes=notes, fee_status=FeeStatus.SETTLED,
    )


async def move_to_under_review(db: Session, mailer: Mailer, application_id: str, reviewer: User,
                               notes: Optional[str] = None) -> dict:
    return await _stage_transition(
        db, mailer, application_id, ApplicationStatus.UNDER_REVIEW, reviewer,
        "review_started_at", notes=notes, applicant_status=ApplicantStatus.UNDER_REVIEW,
    )


async def move_to_document_review(db: Session, mailer: Mailer, application_id: str, reviewer: User,
                                  notes: Optional[str] = None) -> dict:
    return await _stage_transition(
        db, mailer, application_id, ApplicationStatus.DOCUMENT_REVIEW, reviewer,
        "document_review_started_at", notes=notes, applicant_status=ApplicantStatus.UNDER_REVIEW,
    )


def _build_member_record(application: ApplicationRow, number: str, expiry: date):
    applicant = application.applicant
    sections = load_sections(application)

    if application.application_type == INDIVIDUAL:
        personal = sections.personal
        return Member(
            membership_number=number,
            first_name=(personal and personal.first_name) or applicant.first_name,
            last_name=(personal and personal.last_name) or applicant.surname,
            email=applicant.email,
            phone=(personal and personal.phone) or applicant.phone,
            member_type="individual",
            membership_status=MembershipStatus.ACTIVE.value,
            expiry_date=expiry,
            application_id=application.application_id,
        )

    company = sections.company
    return Organization(
        registration_number=number,
        name=(company and company.name) or applicant.company_name,
        email=applicant.email,
        phone=(company and company.phone) or applicant.phone,
        physical_address=company.physical_address if company else None,
        membership_status=MembershipStatus.ACTIVE.value,
        expiry_date=expiry,
        application_id=application.application_id,
    )


async def approve_and_create_member(db: Session, mailer: Mailer, application_id: str, reviewer: User,
                                    notes: Optional[str] = None) -> dict:
    """Approve the application and promote it to a Member or Organization.

    Minting the number, inserting the member row and marking the application
    approved share one transaction; any failure leaves none of them behind.
    """
    application = get_application_or_404(db, application_id)
    _guard(application, ApplicationStatus.APPROVED.value)

    try:
        kind = application.application_type
        number = next_member_number(db, kind)
        expiry = add_years(date.today(), MEMBERSHIP_TERM_YEARS)

        db.add(_build_member_record(application, number, expiry))

        record_status_change(db, application, ApplicationStatus.APPROVED.value, actor_id=reviewer.id, comment=notes)
        application.reviewed_by = reviewer.id
        application.approved_at = datetime.utcnow()
        application.created_member_number = number
        if notes:
            application.review_notes = notes
        application.applicant.status = ApplicantStatus.APPROVED.value
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to approve {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to approve application")

    db.refresh(application)
    logger.info(f"{application_id} approved by {reviewer.email}; created {number}")

    sent, failed = 0, []
    if await send_approval_email(mailer, application.applicant.email, applicant_name(application),
                                 application.application_id, number, expiry):
        sent += 1
    else:
        failed.append(application.applicant.email)

    staff_sent, staff_failed = await notify_staff(db, mailer, application, ApplicationStatus.APPROVED.value)
    return _result(application, sent + staff_sent, failed + staff_failed, member_number=number)


async def reject_application(db: Session, mailer: Mailer, application_id: str, reviewer: User, reason: str) -> dict:
    application = get_application_or_404(db, application_id)
    _guard(application, ApplicationStatus.REJECTED.value)

    try:
        record_status_change(db, application, ApplicationStatus.REJECTED.value, actor_id=reviewer.id, comment=reason)
        application.reviewed_by = reviewer.id
        application.rejected_at = datetime.utcnow()
        application.rejection_reason = reason
        application.applicant.status = ApplicantStatus.REJECTED.value
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to reject {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to reject application")

    db.refresh(application)
    logger.info(f"{application_id} rejected by {reviewer.email}")

    sent, failed = 0, []
    if await send_rejection_email(mailer, application.applicant.email, applicant_name(application),
                                  application.application_id, reason):
        sent += 1
    else:
        failed.append(application.applicant.email)

    staff_sent, staff_failed = await notify_staff(db, mailer, application, ApplicationStatus.REJECTED.value)
    return _result(application, sent + staff_sent, failed + staff_failed)
