from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from mms.config import settings
from mms.dependencies import build_services

# Init app
app = FastAPI(
    title="Membership Management Backend",
    version="1.0.0",
    description="Member registration, application review and membership records",
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

# Route registrations
from mms.routes.applicants import router as applicants_router, organization_router as organization_applicants_router  # noqa: E402
from mms.routes.applications import router as applications_router  # noqa: E402
from mms.routes.documents import router as documents_router  # noqa: E402
from mms.routes.storage import router as storage_router  # noqa: E402
from mms.routes.admin import router as admin_router  # noqa: E402
from mms.routes.health import router as health_router  # noqa: E402

routers = [
    applicants_router,
    organization_applicants_router,
    applications_router,
    documents_router,
    storage_router,
    admin_router,
    health_router,
]

for router in routers:
    app.include_router(router)
    logger.info(f"Included router: {router.prefix}")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "status": "ok",
        "message": "Membership Management Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": [
            "/applicants/* - Registration, verification and login",
            "/applications/* - Drafts, submission, fees and documents",
            "/admin/* - Staff review and membership records",
            "/health - System health check",
        ],
    }


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )


@app.on_event("startup")
async def startup_event():
    logger.info("Membership backend starting up...")
    app.state.services = build_services(settings)
    logger.info(f"CORS enabled for origins: {settings.CORS_ORIGINS}")
    logger.info("Server is ready to handle requests")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Membership backend shutting down")
