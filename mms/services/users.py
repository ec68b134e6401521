import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from mms.models.user import ALL_ROLES, User
from mms.utils.token import hash_password, verify_password

logger = logging.getLogger(__name__)


def create_staff_user(db: Session, full_name: str, email: str, password: str, role: str = "staff") -> User:
    if role not in ALL_ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown role '{role}'")

    normalized_email = email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == normalized_email).first():
        raise HTTPException(status_code=409, detail="A staff user with this email already exists")

    try:
        user = User(
            full_name=full_name,
            email=normalized_email,
            hashed_password=hash_password(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create staff user {normalized_email}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create staff user")

    logger.info(f"Staff user {user.email} created with role {role}")
    return user


def authenticate_staff(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        return None
    user.last_login = datetime.utcnow()
    db.commit()
    return user
