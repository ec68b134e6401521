# mms/routes/applications.py
from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session
from typing import List, Union
import logging
import uuid

from mms.auth.dependencies import get_applicant_or_staff, get_current_applicant
from mms.database import get_db
from mms.dependencies import Services, enforce_upload_rate_limit, get_services
from mms.models.applicant import Applicant, OrganizationApplicant
from mms.models.application import INDIVIDUAL, ORGANIZATION
from mms.models.user import User
from mms.schemas.application import ApplicationResponse, FeePaymentRequest, SubmitResponse
from mms.schemas.document import (
    DocumentResponse,
    FinalizeDocumentRequest,
    FinalizeDocumentResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from mms.schemas.sections import IndividualSections, OrganizationSections
from mms.services.applications import (
    applicant_kind,
    application_to_response,
    get_applicant_application,
    get_application_or_404,
    get_documents,
    record_fee_payment,
    save_draft,
    submit_application,
)
from mms.services.documents import create_upload_url, delete_document, finalize_document

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/applications", tags=["Applications"])

ApplicantPrincipal = Union[Applicant, OrganizationApplicant]


def _require_kind(applicant: ApplicantPrincipal, kind: str) -> None:
    if applicant_kind(applicant) != kind:
        raise HTTPException(
            status_code=400,
            detail=f"This form is for {kind} applicants; you are registered as {applicant_kind(applicant)}",
        )


def _owned_application(db: Session, applicant: ApplicantPrincipal, application_id: str):
    application = get_application_or_404(db, application_id)
    if application.application_type != applicant_kind(applicant) or application.applicant_pk != applicant.id:
        raise HTTPException(status_code=403, detail="You do not have access to this application")
    return application


@router.put("/individual/draft", response_model=ApplicationResponse)
def save_individual_draft(
    sections: IndividualSections,
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
):
    _require_kind(applicant, INDIVIDUAL)
    application = save_draft(db, applicant, sections)
    return application_to_response(db, application)


@router.put("/organization/draft", response_model=ApplicationResponse)
def save_organization_draft(
    sections: OrganizationSections,
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
):
    _require_kind(applicant, ORGANIZATION)
    application = save_draft(db, applicant, sections)
    return application_to_response(db, application)


@router.get("/draft", response_model=ApplicationResponse)
def get_my_application(
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
):
    application = get_applicant_application(db, applicant)
    if application is None:
        raise HTTPException(status_code=404, detail="No application started yet")
    return application_to_response(db, application)


@router.post("/submit", response_model=SubmitResponse)
async def submit(
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return await submit_application(db, services.mailer, applicant)


@router.post("/fee", response_model=ApplicationResponse)
def record_fee(
    payload: FeePaymentRequest,
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
):
    application = record_fee_payment(db, applicant, payload.amount, payload.payment_method, payload.reference)
    return application_to_response(db, application)


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: str,
    principal: Union[ApplicantPrincipal, User] = Depends(get_applicant_or_staff),
    db: Session = Depends(get_db),
):
    if isinstance(principal, User):
        application = get_application_or_404(db, application_id)
    else:
        application = _owned_application(db, principal, application_id)
    return application_to_response(db, application)


# ---------------- Documents ----------------

@router.post(
    "/{application_id}/documents/upload-url",
    response_model=UploadUrlResponse,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
def request_upload_url(
    application_id: str,
    payload: UploadUrlRequest,
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    application = _owned_application(db, applicant, application_id)
    return create_upload_url(
        services.storage, application, payload.doc_type, payload.file_name, payload.mime_type,
        services.settings.UPLOAD_URL_EXPIRE_SECONDS,
    )


@router.post(
    "/{application_id}/documents/finalize",
    response_model=FinalizeDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
def finalize_upload(
    application_id: str,
    payload: FinalizeDocumentRequest,
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    application = _owned_application(db, applicant, application_id)
    return finalize_document(
        db, services.storage, application,
        payload.file_key, payload.file_name, payload.mime_type, payload.doc_type,
    )


@router.get("/{application_id}/documents", response_model=List[DocumentResponse])
def list_documents(
    application_id: str,
    principal: Union[ApplicantPrincipal, User] = Depends(get_applicant_or_staff),
    db: Session = Depends(get_db),
):
    if isinstance(principal, User):
        application = get_application_or_404(db, application_id)
    else:
        application = _owned_application(db, principal, application_id)
    return get_documents(db, application.application_id)


@router.delete("/{application_id}/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_document(
    application_id: str,
    document_id: uuid.UUID,
    applicant: ApplicantPrincipal = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    application = _owned_application(db, applicant, application_id)
    delete_document(db, services.storage, application, document_id)
    logger.info(f"Document {document_id} removed from {application_id}")
