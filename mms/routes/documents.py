# mms/routes/documents.py
from fastapi import APIRouter, Query
from typing import Optional

from mms.services.file_validation import (
    DOCUMENT_TYPE_CONFIG,
    SINGLE_INSTANCE_DOC_TYPES,
    get_document_categories,
    get_documents_by_category,
)

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.get("/types")
def document_types(category: Optional[str] = Query(None)):
    """Upload policy per document type, optionally narrowed to one category."""
    types = get_documents_by_category(category) if category else DOCUMENT_TYPE_CONFIG
    return {
        "categories": get_document_categories(),
        "document_types": {
            doc_type: {**config, "single_instance": doc_type in SINGLE_INSTANCE_DOC_TYPES}
            for doc_type, config in types.items()
        },
    }
