"""Long-lived collaborators shared by request handlers.

``build_services`` runs once at startup and the result is stored on
``app.state.services``. Handlers receive it through ``get_services`` so tests
can swap in a recording mailer or temporary storage with
``app.dependency_overrides``.
"""

from dataclasses import dataclass
import logging

from fastapi import Depends, HTTPException, Request

from mms.config import Settings
from mms.services.email_service import Mailer, build_mailer
from mms.services.rate_limit import UploadRateLimiter
from mms.services.storage import ObjectStorage, build_storage

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    mailer: Mailer
    storage: ObjectStorage
    upload_limiter: UploadRateLimiter


def build_services(settings: Settings) -> Services:
    services = Services(
        settings=settings,
        mailer=build_mailer(settings),
        storage=build_storage(settings),
        upload_limiter=UploadRateLimiter(
            max_requests=settings.UPLOAD_RATE_LIMIT_MAX,
            window_seconds=settings.UPLOAD_RATE_LIMIT_WINDOW_SECONDS,
        ),
    )
    logger.info(f"Services ready: mailer={services.mailer.name}, storage={services.storage.name}")
    return services


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialised; build_services must run at startup")
    return services


def enforce_upload_rate_limit(request: Request, services: Services = Depends(get_services)) -> None:
    client_ip = request.client.host if request.client else "unknown"
    allowed, retry_after = services.upload_limiter.hit(client_ip)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail={"code": "RATE_LIMITED", "message": "Too many uploads, please try again later"},
            headers={"Retry-After": str(retry_after)},
        )
