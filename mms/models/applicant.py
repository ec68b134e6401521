from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.sql import func
from mms.database import Base
from mms.models.status import ApplicantStatus
import uuid


class ApplicantAccountMixin:
    """Identity, verification and login fields shared by both applicant kinds."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    # Human-facing ID, e.g. MBR-APP-2025-0001
    applicant_id = Column(String(20), unique=True, nullable=False, index=True)

    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(30), nullable=True)
    status = Column(String(30), nullable=False, default=ApplicantStatus.REGISTERED.value)

    email_verified = Column(Boolean, nullable=False, default=False)
    email_verified_at = Column(DateTime, nullable=True)
    verification_token = Column(String(64), nullable=True, index=True)
    verification_token_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)


class Applicant(ApplicantAccountMixin, Base):
    __tablename__ = "applicants"

    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    surname = Column(String(100), nullable=False)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.surname}"

    def __repr__(self):
        return f"<Applicant {self.applicant_id} status={self.status}>"


class OrganizationApplicant(ApplicantAccountMixin, Base):
    __tablename__ = "organization_applicants"

    company_name = Column(String(255), nullable=False)
    contact_person = Column(String(200), nullable=False)

    @property
    def display_name(self) -> str:
        return self.company_name

    def __repr__(self):
        return f"<OrganizationApplicant {self.applicant_id} status={self.status}>"
