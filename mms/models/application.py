from sqlalchemy import Column, String, Integer, Boolean, DateTime, Float, Text, JSON, ForeignKey, Uuid
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func
from mms.database import Base
from mms.models.status import ApplicationStatus, FeeStatus
from datetime import datetime
import uuid

INDIVIDUAL = "individual"
ORGANIZATION = "organization"


class ApplicationLifecycleMixin:
    """Status, fee and per-stage timestamps common to both application kinds."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    application_id = Column(String(20), unique=True, nullable=False, index=True)

    # Version of the typed section payloads stored in the JSON columns
    schema_version = Column(Integer, nullable=False, default=1)

    status = Column(String(30), nullable=False, default=ApplicationStatus.DRAFT.value, index=True)

    # Fee
    fee_amount = Column(Float, nullable=True)
    fee_currency = Column(String(3), nullable=False, default="USD")
    fee_status = Column(String(20), nullable=False, default=FeeStatus.UNPAID.value)
    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(100), nullable=True)

    # Review
    @declared_attr
    def reviewed_by(cls):
        return Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    review_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_member_number = Column(String(20), nullable=True)

    # Stage timestamps
    submitted_at = Column(DateTime, nullable=True)
    payment_recorded_at = Column(DateTime, nullable=True)
    payment_received_at = Column(DateTime, nullable=True)
    review_started_at = Column(DateTime, nullable=True)
    document_review_started_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class IndividualApplication(ApplicationLifecycleMixin, Base):
    __tablename__ = "individual_applications"

    application_type = INDIVIDUAL

    applicant_pk = Column(Uuid, ForeignKey("applicants.id", ondelete="CASCADE"), nullable=False, unique=True)

    # Typed sections (see mms.schemas.sections)
    personal = Column(JSON, nullable=True)
    o_level = Column(JSON, nullable=True)
    a_level = Column(JSON, nullable=True)
    equivalent_qualification = Column(JSON, nullable=True)

    mature_entry = Column(Boolean, nullable=False, default=False)

    applicant = relationship("Applicant")

    def __repr__(self):
        return f"<IndividualApplication {self.application_id} status={self.status}>"


class OrganizationApplication(ApplicationLifecycleMixin, Base):
    __tablename__ = "organization_applications"

    application_type = ORGANIZATION

    applicant_pk = Column(Uuid, ForeignKey("organization_applicants.id", ondelete="CASCADE"), nullable=False, unique=True)

    company = Column(JSON, nullable=True)
    contact_person = Column(JSON, nullable=True)
    trust_account = Column(JSON, nullable=True)
    directors = Column(JSON, nullable=True)

    applicant = relationship("OrganizationApplicant")

    def __repr__(self):
        return f"<OrganizationApplication {self.application_id} status={self.status}>"


class StatusHistory(Base):
    __tablename__ = "status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_type = Column(String(20), nullable=False)
    application_id = Column(String(20), nullable=False, index=True)
    from_status = Column(String(30), nullable=True)
    to_status = Column(String(30), nullable=False)
    changed_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
