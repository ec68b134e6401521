# mms/services/applications.py
"""Applicant-side application handling: drafts, submission and fee recording."""

import logging
from datetime import datetime
from typing import List, Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from mms.models.applicant import Applicant, OrganizationApplicant
from mms.models.application import (
    INDIVIDUAL,
    ORGANIZATION,
    IndividualApplication,
    OrganizationApplication,
    StatusHistory,
)
from mms.models.document import UploadedDocument
from mms.models.status import ApplicantStatus, ApplicationStatus, FeeStatus, can_transition
from mms.schemas.sections import SECTION_MODELS, SECTIONS_SCHEMA_VERSION, section_errors
from mms.services import eligibility
from mms.services.email_service import Mailer, send_submission_confirmation

logger = logging.getLogger(__name__)

ApplicationRow = Union[IndividualApplication, OrganizationApplication]
ApplicantRow = Union[Applicant, OrganizationApplicant]

APPLICATION_MODELS = {
    INDIVIDUAL: IndividualApplication,
    ORGANIZATION: OrganizationApplication,
}


def applicant_kind(applicant: ApplicantRow) -> str:
    return ORGANIZATION if isinstance(applicant, OrganizationApplicant) else INDIVIDUAL


def find_application(db: Session, application_id: str) -> Optional[ApplicationRow]:
    """Look an application up by its human ID in either table."""
    ordered = [IndividualApplication, OrganizationApplication]
    if application_id.startswith("ORG-"):
        ordered.reverse()
    for model in ordered:
        application = db.query(model).filter(model.application_id == application_id).first()
        if application:
            return application
    return None


def get_application_or_404(db: Session, application_id: str) -> ApplicationRow:
    application = find_application(db, application_id)
    if not application:
        raise HTTPException(status_code=404, detail=f"Application {application_id} not found")
    return application


def get_applicant_application(db: Session, applicant: ApplicantRow) -> Optional[ApplicationRow]:
    model = APPLICATION_MODELS[applicant_kind(applicant)]
    return db.query(model).filter(model.applicant_pk == applicant.id).first()


# ---------------- Sections ----------------

def load_sections(application: ApplicationRow):
    """Validate the stored JSON sections back into their typed model."""
    if application.schema_version != SECTIONS_SCHEMA_VERSION:
        raise ValueError(
            f"{application.application_id} has section schema v{application.schema_version}, "
            f"expected v{SECTIONS_SCHEMA_VERSION}"
        )
    model = SECTION_MODELS[application.application_type]
    return model.model_validate({name: getattr(application, name) for name in model.model_fields})


def store_sections(application: ApplicationRow, sections) -> None:
    dumped = sections.model_dump(mode="json")
    for name in type(sections).model_fields:
        setattr(application, name, dumped[name])
    application.schema_version = SECTIONS_SCHEMA_VERSION


def applicant_name(application: ApplicationRow) -> str:
    applicant = application.applicant
    try:
        sections = load_sections(application)
    except ValueError:
        return applicant.display_name

    if application.application_type == INDIVIDUAL and sections.personal:
        first = sections.personal.first_name or applicant.first_name
        last = sections.personal.last_name or applicant.surname
        return f"{first} {last}"
    if application.application_type == ORGANIZATION and sections.company and sections.company.name:
        return sections.company.name
    return applicant.display_name


def record_status_change(
    db: Session,
    application: ApplicationRow,
    to_status: str,
    actor_id=None,
    comment: Optional[str] = None,
) -> None:
    db.add(StatusHistory(
        application_type=application.application_type,
        application_id=application.application_id,
        from_status=application.status,
        to_status=to_status,
        changed_by=actor_id,
        comment=comment,
    ))
    application.status = to_status


def get_status_history(db: Session, application_id: str) -> List[StatusHistory]:
    return (
        db.query(StatusHistory)
        .filter(StatusHistory.application_id == application_id)
        .order_by(StatusHistory.created_at.asc())
        .all()
    )


def get_documents(db: Session, application_id: str) -> List[UploadedDocument]:
    return (
        db.query(UploadedDocument)
        .filter(UploadedDocument.application_id == application_id)
        .order_by(UploadedDocument.created_at.asc())
        .all()
    )


def outstanding_documents_for(db: Session, application: ApplicationRow) -> List[str]:
    uploaded = [
        doc.doc_type for doc in get_documents(db, application.application_id)
        if doc.status != "rejected"
    ]
    return eligibility.outstanding_documents(application.application_type, load_sections(application), uploaded)


def invalid_transition(application: ApplicationRow, target: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "code": "INVALID_TRANSITION",
            "message": f"Cannot move application from {application.status} to {target}",
            "current_status": application.status,
            "target_status": target,
        },
    )


# ---------------- Drafts ----------------

def save_draft(db: Session, applicant: ApplicantRow, sections) -> ApplicationRow:
    """Create the applicant's draft on first save, then merge section updates into it.

    Sections omitted from ``sections`` keep their stored value.
    """
    kind = applicant_kind(applicant)
    application = get_applicant_application(db, applicant)

    try:
        if application is None:
            application = APPLICATION_MODELS[kind](
                application_id=applicant.applicant_id,
                applicant_pk=applicant.id,
                status=ApplicationStatus.DRAFT.value,
                schema_version=SECTIONS_SCHEMA_VERSION,
            )
            application.applicant = applicant
            db.add(application)
            db.add(StatusHistory(
                application_type=kind,
                application_id=application.application_id,
                from_status=None,
                to_status=ApplicationStatus.DRAFT.value,
                comment="Draft created",
            ))
            logger.info(f"Draft {application.application_id} created")
            merged = sections
        else:
            if application.status != ApplicationStatus.DRAFT.value:
                raise HTTPException(
                    status_code=409,
                    detail={"code": "NOT_A_DRAFT", "message": "Application has already been submitted"},
                )
            current = load_sections(application)
            updates = {
                name: getattr(sections, name)
                for name in sections.model_fields_set
                if getattr(sections, name) is not None
            }
            merged = current.model_copy(update=updates)

        store_sections(application, merged)
        if applicant.status in (ApplicantStatus.REGISTERED.value, ApplicantStatus.EMAIL_VERIFIED.value):
            applicant.status = ApplicantStatus.APPLICATION_STARTED.value

        db.commit()
        db.refresh(application)
        return application
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save draft for {applicant.applicant_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save draft")


# ---------------- Submission ----------------

async def submit_application(db: Session, mailer: Mailer, applicant: ApplicantRow) -> dict:
    application = get_applicant_application(db, applicant)
    if application is None:
        raise HTTPException(status_code=404, detail="No draft application found")
    if not can_transition(application.status, ApplicationStatus.SUBMITTED.value):
        raise invalid_transition(application, ApplicationStatus.SUBMITTED.value)

    sections = load_sections(application)
    missing = section_errors(sections)
    if missing:
        raise HTTPException(
            status_code=422,
            detail={"code": "INCOMPLETE_APPLICATION", "message": "Application is incomplete", "errors": missing},
        )

    result = eligibility.check_eligibility(application.application_type, sections)
    if not result.ok:
        logger.info(f"{application.application_id} failed eligibility: {result.reasons}")
        raise HTTPException(
            status_code=422,
            detail={"code": "ELIGIBILITY_FAILED", "message": "Eligibility check failed", "errors": result.reasons},
        )

    try:
        record_status_change(db, application, ApplicationStatus.SUBMITTED.value, comment="Submitted by applicant")
        application.submitted_at = datetime.utcnow()
        application.fee_amount = result.fee_amount
        application.fee_currency = eligibility.FEE_CURRENCY
        if application.application_type == INDIVIDUAL:
            application.mature_entry = result.mature
        applicant.status = ApplicantStatus.APPLICATION_COMPLETED.value
        db.commit()
        db.refresh(application)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to submit {application.application_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to submit application")

    logger.info(f"{application.application_id} submitted (fee {application.fee_amount} {application.fee_currency})")

    response = {
        "application_id": application.application_id,
        "status": application.status,
        "fee_amount": application.fee_amount,
        "fee_currency": application.fee_currency,
        "outstanding_documents": outstanding_documents_for(db, application),
    }
    sent = await send_submission_confirmation(
        mailer, applicant.email, applicant_name(application), application.application_id,
        application.fee_amount, application.fee_currency,
    )
    if not sent:
        response["email_error"] = "Submission confirmation email could not be sent"
    return response


def record_fee_payment(db: Session, applicant: ApplicantRow, amount: float, payment_method: str, reference: str) -> ApplicationRow:
    application = get_applicant_application(db, applicant)
    if application is None:
        raise HTTPException(status_code=404, detail="No application found")

    target = ApplicationStatus.PAYMENT_PENDING.value
    if application.status != ApplicationStatus.SUBMITTED.value:
        raise invalid_transition(application, target)

    if application.fee_amount is not None and round(amount, 2) != round(application.fee_amount, 2):
        raise HTTPException(
            status_code=422,
            detail={
                "code": "FEE_MISMATCH",
                "message": f"Amount must equal the application fee of {application.fee_amount:.2f} {application.fee_currency}",
            },
        )

    try:
        record_status_change(db, application, target, comment=f"Fee recorded via {payment_method}")
        application.fee_status = FeeStatus.PENDING.value
        application.payment_method = payment_method
        application.payment_reference = reference
        application.payment_recorded_at = datetime.utcnow()
        db.commit()
        db.refresh(application)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to record fee for {application.application_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to record fee payment")

    logger.info(f"Fee recorded for {application.application_id}: {payment_method} {reference}")
    return application


def application_to_response(db: Session, application: ApplicationRow) -> dict:
    sections = load_sections(application)
    documents = get_documents(db, application.application_id)
    return {
        "application_id": application.application_id,
        "application_type": application.application_type,
        "status": application.status,
        "schema_version": application.schema_version,
        "sections": sections.model_dump(mode="json"),
        "mature_entry": getattr(application, "mature_entry", None),
        "fee_amount": application.fee_amount,
        "fee_currency": application.fee_currency,
        "fee_status": application.fee_status,
        "payment_method": application.payment_method,
        "payment_reference": application.payment_reference,
        "reviewed_by": application.reviewed_by,
        "review_notes": application.review_notes,
        "rejection_reason": application.rejection_reason,
        "created_member_number": application.created_member_number,
        "submitted_at": application.submitted_at,
        "approved_at": application.approved_at,
        "rejected_at": application.rejected_at,
        "documents": documents,
        "status_history": get_status_history(db, application.application_id),
        "outstanding_documents": eligibility.outstanding_documents(
            application.application_type,
            sections,
            [doc.doc_type for doc in documents if doc.status != "rejected"],
        ),
    }
