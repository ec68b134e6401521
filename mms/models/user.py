from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.sql import func
from mms.database import Base
import uuid

ADMIN_ROLES = {"admin", "super_admin"}
STAFF_ROLES = {"admin", "super_admin", "member_manager", "staff"}
REVIEW_NOTIFY_ROLES = {"admin", "member_manager"}
ALL_ROLES = STAFF_ROLES | {"accountant"}


class User(Base):
    """Council staff account."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False, default="staff")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User {self.email} role={self.role}>"
