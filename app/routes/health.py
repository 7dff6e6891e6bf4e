"""
Health check endpoints.
"""
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.database.session import get_session
from app.models.import_models import ImportJob

router = APIRouter()
logger = logging.getLogger("app.health")

SERVICE_NAME = "StayDesk"
SERVICE_VERSION = "0.1.0"


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint for Kubernetes/Docker health probes.

    Returns:
        Dict with status information
    """
    logger.info("Health check requested")

    return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/health")
def detailed_health(db: Session = Depends(get_session)) -> Dict[str, Any]:
    """
    Detailed health check with component status.

    Returns:
        Dict with detailed health information
    """
    logger.info("Detailed health check requested")

    database: Dict[str, Any] = {"status": "healthy", "response_time": 0}
    try:
        start_time = time.time()
        db.execute(text("SELECT 1"))
        database["response_time"] = round((time.time() - start_time) * 1000, 2)  # ms
        database["active_imports"] = db.exec(
            select(func.count()).select_from(ImportJob).where(ImportJob.active_tenant_id.is_not(None))
        ).one()
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = {"status": "unhealthy", "response_time": 0, "error": str(e)}

    return {
        "status": "ok" if database["status"] == "healthy" else "degraded",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "components": {"database": database},
    }
