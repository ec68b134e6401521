# mms/routes/storage.py
from fastapi import APIRouter, HTTPException, Depends, Request
import logging

from mms.dependencies import Services, get_services
from mms.services.storage import LocalObjectStorage, StorageError, StorageObjectExists

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/storage", tags=["Storage"])


@router.put("/local/{token}")
async def upload_to_local_storage(
    token: str,
    request: Request,
    services: Services = Depends(get_services),
):
    """Receiving end of the upload URLs issued by the local storage backend."""
    storage = services.storage
    if not isinstance(storage, LocalObjectStorage):
        raise HTTPException(status_code=404, detail="Local storage is not enabled")

    try:
        key = storage.resolve_upload_token(token)
    except StorageError as e:
        logger.warning(f"Rejected local upload: {e}")
        raise HTTPException(status_code=400, detail="Invalid or expired upload URL")

    data = await request.body()
    try:
        storage.write(key, data)
    except StorageObjectExists:
        logger.warning(f"Refused overwrite of {key}")
        raise HTTPException(status_code=409, detail="An object has already been uploaded to this URL")
    except StorageError as e:
        logger.error(f"Local upload to {key} failed: {e}")
        raise HTTPException(status_code=400, detail="Invalid object key")

    logger.info(f"Stored {len(data)} bytes at {key}")
    return {"file_key": key, "size": len(data)}
