from sqlalchemy import Column, String, Date, DateTime, Text, Uuid
from sqlalchemy.sql import func
from mms.database import Base
from mms.models.status import MembershipStatus
import uuid


class Member(Base):
    __tablename__ = "members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    membership_number = Column(String(20), unique=True, nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    member_type = Column(String(30), nullable=False, default="individual")

    membership_status = Column(String(20), nullable=False, default=MembershipStatus.ACTIVE.value)
    expiry_date = Column(Date, nullable=True)

    # Application this record was promoted from
    application_id = Column(String(20), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Member {self.membership_number} status={self.membership_status}>"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    registration_number = Column(String(20), unique=True, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    physical_address = Column(Text, nullable=True)

    membership_status = Column(String(20), nullable=False, default=MembershipStatus.ACTIVE.value)
    expiry_date = Column(Date, nullable=True)

    application_id = Column(String(20), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Organization {self.registration_number} {self.name}>"
