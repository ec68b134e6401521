from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime
from typing import Optional, List, Dict, Any

from mms.schemas.document import DocumentResponse


class StatusHistoryResponse(BaseModel):
    from_status: Optional[str] = None
    to_status: str
    changed_by: Optional[UUID] = None
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationSummary(BaseModel):
    application_id: str
    application_type: str
    applicant_name: str
    status: str
    fee_status: str
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ApplicationResponse(BaseModel):
    application_id: str
    application_type: str
    status: str
    schema_version: int
    sections: Dict[str, Any]
    mature_entry: Optional[bool] = None
    fee_amount: Optional[float] = None
    fee_currency: str
    fee_status: str
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    reviewed_by: Optional[UUID] = None
    review_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_member_number: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    documents: List[DocumentResponse] = []
    status_history: List[StatusHistoryResponse] = []
    outstanding_documents: List[str] = []


class SubmitResponse(BaseModel):
    application_id: str
    status: str
    fee_amount: float
    fee_currency: str
    outstanding_documents: List[str] = []
    email_error: Optional[str] = None


class FeePaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1, max_length=50)
    reference: str = Field(..., min_length=1, max_length=100)


class TransitionRequest(BaseModel):
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class TransitionResponse(BaseModel):
    application_id: str
    status: str
    emails_sent: int
    email_error: Optional[str] = None
    member_number: Optional[str] = None
