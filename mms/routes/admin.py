# mms/routes/admin.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import uuid

from mms.auth.dependencies import require_admin, require_roles, require_staff
from mms.database import get_db
from mms.dependencies import Services, get_services
from mms.models.application import INDIVIDUAL, ORGANIZATION
from mms.models.member import Member, Organization
from mms.models.user import ADMIN_ROLES, User
from mms.schemas.admin import (
    MemberResponse,
    MemberUpdate,
    OrganizationResponse,
    OrganizationUpdate,
    StaffLogin,
    StaffUserCreate,
    StaffUserResponse,
    Token,
)
from mms.schemas.application import (
    ApplicationResponse,
    ApplicationSummary,
    RejectRequest,
    TransitionRequest,
    TransitionResponse,
)
from mms.schemas.document import DocumentResponse, DocumentVerifyRequest
from mms.services import workflow
from mms.services.applications import (
    APPLICATION_MODELS,
    applicant_name,
    application_to_response,
    get_application_or_404,
)
from mms.services.documents import verify_document
from mms.services.members import (
    get_member_or_404,
    get_organization_or_404,
    renew_membership,
    update_record,
)
from mms.services.naming_series import get_current_counters
from mms.services.users import authenticate_staff, create_staff_user
from mms.utils.token import create_access_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])

require_payment_staff = require_roles(*(ADMIN_ROLES | {"accountant", "member_manager"}))
require_approver = require_roles(*(ADMIN_ROLES | {"member_manager"}))


def _notes(payload: Optional[TransitionRequest]) -> Optional[str]:
    return payload.notes if payload else None


# ------------------ Authentication ------------------

@router.post("/login", response_model=Token)
def staff_login(payload: StaffLogin, db: Session = Depends(get_db)):
    user = authenticate_staff(db, payload.email, payload.password)
    if not user:
        logger.warning(f"Failed staff login for {payload.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token({"sub": user.email, "role": user.role})
    logger.info(f"Staff login: {user.email} ({user.role})")
    return Token(access_token=token, role=user.role)


@router.post("/users", response_model=StaffUserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: StaffUserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    if payload.role == "super_admin" and current_user.role != "super_admin":
        raise HTTPException(status_code=403, detail="Only a super admin can create super admins")
    return create_staff_user(db, payload.full_name, payload.email, payload.password, payload.role)


@router.get("/users", response_model=List[StaffUserResponse])
def list_users(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return db.query(User).order_by(User.created_at.desc()).all()


# ------------------ Applications ------------------

def _summary(a) -> ApplicationSummary:
    return ApplicationSummary(
        application_id=a.application_id,
        application_type=a.application_type,
        applicant_name=applicant_name(a),
        status=a.status,
        fee_status=a.fee_status,
        submitted_at=a.submitted_at,
        created_at=a.created_at,
    )


@router.get("/applications", response_model=List[ApplicationSummary])
def list_applications(
    status_filter: Optional[str] = Query(None, alias="status"),
    application_type: Optional[str] = Query(None, pattern="^(individual|organization)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    kinds = [application_type] if application_type else [INDIVIDUAL, ORGANIZATION]
    rows = []
    for kind in kinds:
        model = APPLICATION_MODELS[kind]
        query = db.query(model)
        if status_filter:
            query = query.filter(model.status == status_filter)
        query = query.order_by(model.created_at.desc(), model.application_id.desc())
        if len(kinds) == 1:
            return [_summary(a) for a in query.offset(skip).limit(limit).all()]
        # The first skip + limit rows of each table bound the merged page
        rows.extend(query.limit(skip + limit).all())

    rows.sort(key=lambda a: (a.created_at.timestamp() if a.created_at else 0, a.application_id), reverse=True)
    return [_summary(a) for a in rows[skip:skip + limit]]


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return application_to_response(db, get_application_or_404(db, application_id))


@router.post("/applications/{application_id}/payment-review", response_model=TransitionResponse)
async def payment_review(
    application_id: str,
    payload: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    current_user: User = Depends(require_payment_staff),
):
    return await workflow.move_to_payment_review(db, services.mailer, application_id, current_user, _notes(payload))


@router.post("/applications/{application_id}/under-review", response_model=TransitionResponse)
async def under_review(
    application_id: str,
    payload: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    current_user: User = Depends(require_staff),
):
    return await workflow.move_to_under_review(db, services.mailer, application_id, current_user, _notes(payload))


@router.post("/applications/{application_id}/document-review", response_model=TransitionResponse)
async def document_review(
    application_id: str,
    payload: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    current_user: User = Depends(require_staff),
):
    return await workflow.move_to_document_review(db, services.mailer, application_id, current_user, _notes(payload))


@router.post("/applications/{application_id}/approve", response_model=TransitionResponse)
async def approve(
    application_id: str,
    payload: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    current_user: User = Depends(require_approver),
):
    return await workflow.approve_and_create_member(db, services.mailer, application_id, current_user, _notes(payload))


@router.post("/applications/{application_id}/reject", response_model=TransitionResponse)
async def reject(
    application_id: str,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    current_user: User = Depends(require_approver),
):
    return await workflow.reject_application(db, services.mailer, application_id, current_user, payload.reason)


@router.put("/documents/{document_id}/verify", response_model=DocumentResponse)
def verify_uploaded_document(
    document_id: uuid.UUID,
    payload: DocumentVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return verify_document(db, document_id, current_user, payload.status, payload.notes)


@router.get("/naming-series")
def naming_series(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return {"series": get_current_counters(db)}


# ------------------ Members ------------------

@router.get("/members", response_model=List[MemberResponse])
def list_members(
    membership_status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    query = db.query(Member)
    if membership_status:
        query = query.filter(Member.membership_status == membership_status)
    return query.order_by(Member.membership_number).offset(skip).limit(limit).all()


@router.get("/members/{membership_number}", response_model=MemberResponse)
def get_member(membership_number: str, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    return get_member_or_404(db, membership_number)


@router.patch("/members/{membership_number}", response_model=MemberResponse)
def update_member(
    membership_number: str,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    member = get_member_or_404(db, membership_number)
    return update_record(db, member, payload.model_dump(exclude_unset=True))


@router.post("/members/{membership_number}/renew", response_model=MemberResponse)
def renew_member(membership_number: str, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    return renew_membership(db, get_member_or_404(db, membership_number))


@router.get("/organizations", response_model=List[OrganizationResponse])
def list_organizations(
    membership_status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    query = db.query(Organization)
    if membership_status:
        query = query.filter(Organization.membership_status == membership_status)
    return query.order_by(Organization.registration_number).offset(skip).limit(limit).all()


@router.get("/organizations/{registration_number}", response_model=OrganizationResponse)
def get_organization(registration_number: str, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    return get_organization_or_404(db, registration_number)


@router.patch("/organizations/{registration_number}", response_model=OrganizationResponse)
def update_organization(
    registration_number: str,
    payload: OrganizationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    organization = get_organization_or_404(db, registration_number)
    return update_record(db, organization, payload.model_dump(exclude_unset=True))


@router.post("/organizations/{registration_number}/renew", response_model=OrganizationResponse)
def renew_organization(registration_number: str, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    return renew_membership(db, get_organization_or_404(db, registration_number))
