# mms/services/documents.py
"""Upload URL issuing and the finalize step for application documents."""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mms.models.document import UploadedDocument
from mms.models.status import DocumentStatus, UPLOAD_OPEN_STATUSES
from mms.models.user import User
from mms.services.applications import ApplicationRow
from mms.services.file_validation import (
    DOCUMENT_TYPE_CONFIG,
    SINGLE_INSTANCE_DOC_TYPES,
    DocumentValidator,
    generate_document_key,
    generate_file_key,
)
from mms.services.storage import ObjectStorage, StorageError, StorageObjectNotFound

logger = logging.getLogger(__name__)

_OPEN_STATUS_VALUES = {status.value for status in UPLOAD_OPEN_STATUSES}


def _ensure_uploads_open(application: ApplicationRow) -> None:
    if application.status not in _OPEN_STATUS_VALUES:
        raise HTTPException(
            status_code=409,
            detail={
                "code": "UPLOADS_CLOSED",
                "message": f"Documents cannot be changed while the application is {application.status}",
            },
        )


def _duplicate_conflict(existing: UploadedDocument) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "code": "DUPLICATE_FILE_CONTENT",
            "message": "This file has already been uploaded",
            "existing_document": {
                "id": str(existing.id),
                "application_id": existing.application_id,
                "doc_type": existing.doc_type,
                "file_name": existing.file_name,
            },
        },
    )


def create_upload_url(storage: ObjectStorage, application: ApplicationRow, doc_type: str,
                      file_name: str, mime_type: str, expires_in: int) -> dict:
    _ensure_uploads_open(application)

    errors = DocumentValidator.validate_metadata(file_name, mime_type, doc_type)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"code": "FILE_VALIDATION_FAILED", "message": "File rejected", "errors": errors},
        )

    file_key = generate_file_key(application.application_id, file_name)
    try:
        upload_url = storage.create_upload_url(file_key, mime_type, expires_in)
    except StorageError as e:
        logger.error(f"Could not create upload URL for {application.application_id}: {e}")
        raise HTTPException(status_code=502, detail="Object storage unavailable")

    return {"file_key": file_key, "upload_url": upload_url, "expires_in": expires_in}


def _discard(storage: ObjectStorage, file_key: str, reason: str) -> None:
    try:
        storage.delete(file_key)
    except StorageError as e:
        logger.warning(f"Could not delete {reason} object {file_key}: {e}")


def finalize_document(db: Session, storage: ObjectStorage, application: ApplicationRow,
                      file_key: str, file_name: str, mime_type: str, doc_type: str) -> dict:
    """Validate an uploaded object and record it against the application.

    The validated bytes are written to a fresh ``documents/`` key that no
    upload URL points at, and the uploaded object is removed, so what the row
    describes cannot be replaced afterwards. Identical bytes (same SHA-256)
    already stored anywhere in the system are refused with 409 and no row is
    written.
    """
    if not file_key.startswith(f"applications/{application.application_id}/"):
        raise HTTPException(status_code=400, detail={"code": "INVALID_FILE_KEY", "message": "File key does not belong to this application"})
    _ensure_uploads_open(application)

    try:
        data = storage.read(file_key)
    except StorageObjectNotFound:
        raise HTTPException(status_code=404, detail={"code": "UPLOAD_NOT_FOUND", "message": "Uploaded file not found"})
    except StorageError as e:
        logger.error(f"Could not read {file_key}: {e}")
        raise HTTPException(status_code=502, detail="Object storage unavailable")

    result = DocumentValidator.validate(data, file_name, mime_type, doc_type)
    if not result.is_valid:
        _discard(storage, file_key, "rejected")
        raise HTTPException(
            status_code=400,
            detail={
                "code": "FILE_VALIDATION_FAILED",
                "message": "File validation failed",
                "errors": result.errors,
                "warnings": result.warnings,
            },
        )

    file_hash = result.file_info["sha256"]
    existing = db.query(UploadedDocument).filter(UploadedDocument.sha256 == file_hash).first()
    if existing:
        logger.info(f"Duplicate upload for {application.application_id} matches document {existing.id}")
        _discard(storage, file_key, "duplicate")
        raise _duplicate_conflict(existing)

    stored_key = generate_document_key(application.application_id, doc_type, file_name)
    try:
        storage.put(stored_key, data, mime_type)
    except StorageError as e:
        logger.error(f"Could not store finalized copy of {file_key}: {e}")
        raise HTTPException(status_code=502, detail="Object storage unavailable")

    replaced_keys = []
    try:
        if doc_type in SINGLE_INSTANCE_DOC_TYPES:
            replaced = (
                db.query(UploadedDocument)
                .filter(
                    UploadedDocument.application_id == application.application_id,
                    UploadedDocument.doc_type == doc_type,
                )
                .all()
            )
            for old in replaced:
                logger.info(f"Replacing {doc_type} document {old.id} on {application.application_id}")
                replaced_keys.append(old.file_key)
                db.delete(old)
            db.flush()

        document = UploadedDocument(
            application_type=application.application_type,
            application_id=application.application_id,
            doc_type=doc_type,
            file_key=stored_key,
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=result.file_info["size"],
            sha256=file_hash,
            status=DocumentStatus.UPLOADED.value,
        )
        db.add(document)
        db.commit()
        db.refresh(document)
    except IntegrityError:
        # A concurrent finalize stored the same content first
        db.rollback()
        _discard(storage, stored_key, "unrecorded")
        existing = db.query(UploadedDocument).filter(UploadedDocument.sha256 == file_hash).first()
        if existing:
            _discard(storage, file_key, "duplicate")
            raise _duplicate_conflict(existing)
        raise HTTPException(status_code=409, detail={"code": "DUPLICATE_FILE_KEY", "message": "File already finalized"})
    except Exception as e:
        db.rollback()
        _discard(storage, stored_key, "unrecorded")
        logger.error(f"Failed to record document for {application.application_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save document")

    _discard(storage, file_key, "uploaded")
    for old_key in replaced_keys:
        _discard(storage, old_key, "replaced")

    logger.info(f"Stored {doc_type} {document.id} for {application.application_id} at {stored_key}")
    return {
        "document_id": document.id,
        "file_key": stored_key,
        "file_hash": file_hash,
        "doc_type": doc_type,
        "category": DOCUMENT_TYPE_CONFIG[doc_type]["category"],
        "validation_warnings": result.warnings,
    }


def delete_document(db: Session, storage: ObjectStorage, application: ApplicationRow, document_id) -> None:
    document = (
        db.query(UploadedDocument)
        .filter(UploadedDocument.id == document_id, UploadedDocument.application_id == application.application_id)
        .first()
    )
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    _ensure_uploads_open(application)
    if document.status != DocumentStatus.UPLOADED.value:
        raise HTTPException(
            status_code=409,
            detail={"code": "DOCUMENT_LOCKED", "message": f"Document is {document.status} and cannot be deleted"},
        )

    file_key = document.file_key
    try:
        db.delete(document)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete document {document_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete document")

    try:
        storage.delete(file_key)
    except StorageError as e:
        logger.warning(f"Document row removed but object {file_key} was not deleted: {e}")


def verify_document(db: Session, document_id, reviewer: User, status: str, notes=None) -> UploadedDocument:
    document = db.query(UploadedDocument).filter(UploadedDocument.id == document_id).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    try:
        document.status = DocumentStatus(status).value
        document.verified_by = reviewer.id
        document.verified_at = datetime.utcnow()
        document.notes = notes
        db.commit()
        db.refresh(document)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update document {document_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update document")

    logger.info(f"Document {document_id} marked {document.status} by {reviewer.email}")
    return document
