from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from uuid import UUID
from datetime import date, datetime
from typing import Optional, Literal


class StaffLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Optional[str] = None


class StaffUserCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Literal["admin", "super_admin", "member_manager", "staff", "accountant"] = "staff"


class StaffUserResponse(BaseModel):
    id: UUID
    full_name: str
    email: EmailStr
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    id: UUID
    membership_number: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    member_type: str
    membership_status: str
    expiry_date: Optional[date] = None
    application_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MemberUpdate(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    membership_status: Optional[Literal["active", "lapsed", "suspended", "cancelled"]] = None

    @field_validator("email", "membership_status")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class OrganizationResponse(BaseModel):
    id: UUID
    registration_number: str
    name: str
    email: str
    phone: Optional[str] = None
    physical_address: Optional[str] = None
    membership_status: str
    expiry_date: Optional[date] = None
    application_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrganizationUpdate(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    physical_address: Optional[str] = None
    membership_status: Optional[Literal["active", "lapsed", "suspended", "cancelled"]] = None

    @field_validator("email", "membership_status")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v
