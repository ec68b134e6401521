# mms/routes/applicants.py
from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timedelta
from typing import Union
import logging
import re
import uuid
import dns.exception
import dns.resolver

from mms.auth.dependencies import APPLICANT_MODELS, get_current_applicant
from mms.config import settings
from mms.database import get_db
from mms.dependencies import Services, get_services
from mms.models.applicant import Applicant, OrganizationApplicant
from mms.models.status import ApplicantStatus
from mms.schemas.admin import Token
from mms.schemas.applicant import (
    ApplicantLogin,
    ApplicantRegister,
    ApplicantStatusResponse,
    EmailCheckRequest,
    EmailCheckResponse,
    OrganizationApplicantRegister,
    RegistrationResponse,
    ResendVerificationRequest,
    VerifyEmailRequest,
)
from mms.services.applications import applicant_kind, get_applicant_application
from mms.services.email_service import send_verification_email, send_welcome_email
from mms.services.naming_series import next_application_id
from mms.utils.token import create_access_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/applicants", tags=["Applicants"])
organization_router = APIRouter(prefix="/organization-applicants", tags=["Organization Applicants"])

APPLICANT_ID_PATTERN = re.compile(r"^(MBR|ORG)-APP-\d{4}-\d{4,}$")

DISPOSABLE_DOMAINS = {"mailinator.com", "tempmail.com", "10minutemail.com", "maildrop.cc", "guerrillamail.com"}


def _find_by_email(db: Session, model, email: str):
    return db.query(model).filter(func.lower(model.email) == email.strip().lower()).first()


def _find_by_token(db: Session, token: str):
    for model in APPLICANT_MODELS.values():
        applicant = db.query(model).filter(model.verification_token == token).first()
        if applicant:
            return applicant
    return None


async def _register(db: Session, services: Services, model, kind: str, email: str, **fields) -> dict:
    normalized_email = email.strip().lower()
    if _find_by_email(db, model, normalized_email):
        raise HTTPException(status_code=409, detail="An applicant with this email already exists")

    token = uuid.uuid4().hex
    try:
        applicant = model(
            applicant_id=next_application_id(db, kind),
            email=normalized_email,
            status=ApplicantStatus.REGISTERED.value,
            verification_token=token,
            verification_token_expires_at=datetime.utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_HOURS),
            **fields,
        )
        db.add(applicant)
        db.commit()
        db.refresh(applicant)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="An applicant with this email already exists")
    except Exception as e:
        db.rollback()
        logger.error(f"Registration failed for {normalized_email}: {e}")
        raise HTTPException(status_code=500, detail="Registration failed")

    logger.info(f"Registered {kind} applicant {applicant.applicant_id}")

    emails_sent = []
    if await send_welcome_email(services.mailer, applicant.email, applicant.display_name, applicant.applicant_id):
        emails_sent.append("welcome")
    if await send_verification_email(services.mailer, applicant.email, applicant.display_name, token):
        emails_sent.append("verification")

    response = {
        "message": "Registration successful. Check your email to verify your address.",
        "applicant_id": applicant.applicant_id,
        "emails_sent": emails_sent,
    }
    if len(emails_sent) < 2:
        response["email_error"] = "Some registration emails could not be sent"
    return response


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_individual(
    payload: ApplicantRegister,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return await _register(
        db, services, Applicant, "individual", payload.email,
        first_name=payload.first_name.strip(),
        middle_name=payload.middle_name.strip() if payload.middle_name else None,
        surname=payload.surname.strip(),
        phone=payload.phone,
    )


@organization_router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_organization(
    payload: OrganizationApplicantRegister,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return await _register(
        db, services, OrganizationApplicant, "organization", payload.email,
        company_name=payload.company_name.strip(),
        contact_person=payload.contact_person.strip(),
        phone=payload.phone,
    )


@router.post("/verify-email")
@organization_router.post("/verify-email")
def verify_email(payload: VerifyEmailRequest, db: Session = Depends(get_db)):
    applicant = _find_by_token(db, payload.token.strip())
    if not applicant:
        raise HTTPException(status_code=404, detail="Invalid verification token")

    if applicant.email_verified:
        return {"status": "already_verified", "applicant_id": applicant.applicant_id}

    if applicant.verification_token_expires_at and applicant.verification_token_expires_at < datetime.utcnow():
        raise HTTPException(status_code=410, detail="Verification token has expired, request a new one")

    applicant.email_verified = True
    applicant.email_verified_at = datetime.utcnow()
    applicant.status = ApplicantStatus.EMAIL_VERIFIED.value
    applicant.verification_token = None
    applicant.verification_token_expires_at = None
    db.commit()

    logger.info(f"Email verified for {applicant.applicant_id}")
    return {"status": "verified", "applicant_id": applicant.applicant_id}


@router.post("/resend-verification")
async def resend_verification(
    payload: ResendVerificationRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    message = {"message": "If the address is registered and unverified, a new link has been sent"}

    applicant = None
    for model in APPLICANT_MODELS.values():
        applicant = _find_by_email(db, model, payload.email)
        if applicant:
            break
    if not applicant or applicant.email_verified:
        return message

    token = uuid.uuid4().hex
    applicant.verification_token = token
    applicant.verification_token_expires_at = datetime.utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_HOURS)
    db.commit()

    if not await send_verification_email(services.mailer, applicant.email, applicant.display_name, token):
        message["email_error"] = "Verification email could not be sent"
    return message


@router.post("/login", response_model=Token)
def login(payload: ApplicantLogin, db: Session = Depends(get_db)):
    applicant_id = payload.applicant_id.strip().upper()
    if not APPLICANT_ID_PATTERN.match(applicant_id):
        raise HTTPException(status_code=400, detail="Applicant ID must look like MBR-APP-2025-0001")

    kind = "organization" if applicant_id.startswith("ORG-") else "individual"
    model = APPLICANT_MODELS[kind]
    applicant = db.query(model).filter(model.applicant_id == applicant_id).first()
    if not applicant or applicant.email.lower() != payload.email.strip().lower():
        raise HTTPException(status_code=401, detail="Invalid applicant ID or email")
    if not applicant.email_verified:
        raise HTTPException(status_code=403, detail="Email address has not been verified")

    applicant.last_login = datetime.utcnow()
    db.commit()

    token = create_access_token({"sub": applicant.applicant_id, "role": "applicant", "kind": kind})
    return Token(access_token=token, role="applicant")


@router.get("/me/status", response_model=ApplicantStatusResponse)
def my_status(
    applicant: Union[Applicant, OrganizationApplicant] = Depends(get_current_applicant),
    db: Session = Depends(get_db),
):
    application = get_applicant_application(db, applicant)
    return ApplicantStatusResponse(
        applicant_id=applicant.applicant_id,
        applicant_type=applicant_kind(applicant),
        name=applicant.display_name,
        email=applicant.email,
        status=applicant.status,
        email_verified=applicant.email_verified,
        application_status=application.status if application else None,
        created_at=applicant.created_at,
    )


@router.post("/check-email", response_model=EmailCheckResponse)
def check_email(payload: EmailCheckRequest):
    domain = payload.email.strip().lower().split("@")[-1]
    if domain in DISPOSABLE_DOMAINS:
        return EmailCheckResponse(valid=False, reason="Disposable email providers are not allowed")
    try:
        answers = dns.resolver.resolve(domain, "MX")
        if not answers:
            return EmailCheckResponse(valid=False, reason="Domain has no MX records")
    except dns.exception.DNSException:
        return EmailCheckResponse(valid=False, reason="Domain not resolvable or DNS timeout")
    return EmailCheckResponse(valid=True)
