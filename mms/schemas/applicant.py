from pydantic import BaseModel, EmailStr, ConfigDict, Field
from datetime import datetime
from typing import Optional, List


class ApplicantRegister(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    surname: str = Field(..., min_length=1, max_length=100)
    middle_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None

    model_config = ConfigDict(title="ApplicantRegister")


class OrganizationApplicantRegister(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    contact_person: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None

    model_config = ConfigDict(title="OrganizationApplicantRegister")


class RegistrationResponse(BaseModel):
    status: str = "success"
    message: str
    applicant_id: str
    emails_sent: List[str] = []
    email_error: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    token: str


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class ApplicantLogin(BaseModel):
    applicant_id: str
    email: EmailStr


class ApplicantStatusResponse(BaseModel):
    applicant_id: str
    applicant_type: str
    name: str
    email: EmailStr
    status: str
    email_verified: bool
    application_status: Optional[str] = None
    created_at: Optional[datetime] = None


class EmailCheckRequest(BaseModel):
    email: EmailStr


class EmailCheckResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
