# mms/routes/health.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
import datetime
import logging
import sys
import psutil

from mms.database import get_db
from mms.dependencies import Services, get_services

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health Check"])

NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


@router.get("")
async def health_check(db: Session = Depends(get_db), services: Services = Depends(get_services)):
    """
    Health check with database connectivity, configured collaborators and memory stats
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.datetime.now().isoformat(),
        "service": "Membership Management API",
        "version": "1.0.0",
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = {"status": "connected", "dialect": db.get_bind().dialect.name}
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        health_status["database"] = {"status": "disconnected", "error": str(e)}
        health_status["status"] = "degraded"

    memory = psutil.virtual_memory()
    health_status["system"] = {
        "python_version": sys.version,
        "platform": sys.platform,
        "memory_percent": memory.percent,
        "memory_available": f"{memory.available / (1024**3):.2f} GB",
        "memory_total": f"{memory.total / (1024**3):.2f} GB",
    }
    health_status["services"] = {
        "mailer": services.mailer.name,
        "storage": services.storage.name,
    }

    return JSONResponse(content=health_status, headers=NO_CACHE)


@router.get("/ping")
async def ping():
    """Minimal liveness response."""
    return JSONResponse(
        content={"status": "pong", "timestamp": datetime.datetime.now().isoformat()},
        headers=NO_CACHE,
    )
