from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Uuid
from sqlalchemy.sql import func
from mms.database import Base
from mms.models.status import DocumentStatus
import uuid


class UploadedDocument(Base):
    __tablename__ = "uploaded_documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    # Either an individual or an organization application, keyed by its human ID
    application_type = Column(String(20), nullable=False)
    application_id = Column(String(20), nullable=False, index=True)

    doc_type = Column(String(50), nullable=False)
    file_key = Column(String(500), nullable=False, unique=True)
    file_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size_bytes = Column(Integer, nullable=False)

    # Content hash, unique system-wide
    sha256 = Column(String(64), nullable=False, unique=True, index=True)

    status = Column(String(20), nullable=False, default=DocumentStatus.UPLOADED.value)
    verified_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<UploadedDocument {self.doc_type} app={self.application_id} sha256={self.sha256[:12]}>"
