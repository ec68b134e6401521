# mms/auth/dependencies.py
from typing import Union
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import logging

from mms.database import get_db
from mms.models.applicant import Applicant, OrganizationApplicant
from mms.models.user import User, ADMIN_ROLES, ALL_ROLES, STAFF_ROLES
from mms.utils.token import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer()

APPLICANT_MODELS = {
    "individual": Applicant,
    "organization": OrganizationApplicant,
}


def _decode_or_401(token: str) -> dict:
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def _staff_from_payload(payload: dict, db: Session) -> User:
    email = payload.get("sub")
    if payload.get("role") not in ALL_ROLES or not email:
        raise HTTPException(status_code=401, detail="Invalid staff token")

    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Staff user not found or inactive")
    return user


def get_current_staff(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    return _staff_from_payload(_decode_or_401(credentials.credentials), db)


def require_roles(*roles: str):
    """Dependency factory: current staff user must hold one of ``roles``."""
    allowed = set(roles)

    def checker(user: User = Depends(get_current_staff)) -> User:
        if user.role not in allowed:
            logger.warning(f"{user.email} ({user.role}) denied, needs one of {sorted(allowed)}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of the roles: {', '.join(sorted(allowed))}",
            )
        return user

    return checker


require_staff = require_roles(*STAFF_ROLES)
require_admin = require_roles(*ADMIN_ROLES)


def _applicant_from_payload(payload: dict, db: Session) -> Union[Applicant, OrganizationApplicant]:
    applicant_id = payload.get("sub")
    model = APPLICANT_MODELS.get(payload.get("kind"))
    if payload.get("role") != "applicant" or not applicant_id or model is None:
        raise HTTPException(status_code=401, detail="Invalid applicant token")

    applicant = db.query(model).filter(model.applicant_id == applicant_id).first()
    if not applicant:
        raise HTTPException(status_code=401, detail="Applicant not found")
    if not applicant.email_verified:
        raise HTTPException(status_code=403, detail="Email address has not been verified")
    return applicant


def get_current_applicant(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Union[Applicant, OrganizationApplicant]:
    return _applicant_from_payload(_decode_or_401(credentials.credentials), db)


def get_applicant_or_staff(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Union[Applicant, OrganizationApplicant, User]:
    """Either principal; routes check ownership when it is an applicant."""
    payload = _decode_or_401(credentials.credentials)
    if payload.get("role") == "applicant":
        return _applicant_from_payload(payload, db)
    return _staff_from_payload(payload, db)
