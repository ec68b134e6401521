from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime
from typing import Optional, List, Literal


class UploadUrlRequest(BaseModel):
    doc_type: str
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str


class UploadUrlResponse(BaseModel):
    file_key: str
    upload_url: str
    expires_in: int


class FinalizeDocumentRequest(BaseModel):
    file_key: str
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str
    doc_type: str


class FinalizeDocumentResponse(BaseModel):
    document_id: UUID
    file_key: str
    file_hash: str
    doc_type: str
    category: str
    validation_warnings: List[str] = []


class DocumentResponse(BaseModel):
    id: UUID
    application_id: str
    doc_type: str
    file_name: str
    mime_type: str
    size_bytes: int
    sha256: str
    status: str
    notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentVerifyRequest(BaseModel):
    status: Literal["verified", "rejected"]
    notes: Optional[str] = None
