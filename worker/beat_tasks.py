"""
Celery Beat tasks for import job housekeeping.
"""
import logging

from app.database.session import get_db_session
from app.services.config_service import config_service
from app.services.import_progress_service import progress_publisher

from worker.celery_app import celery_app

logger = logging.getLogger("worker.beat_tasks")


@celery_app.task
def expire_import_jobs():
    """
    Drop finished import jobs past retention and fail jobs that stopped reporting.
    This task runs periodically so tenants are never blocked by a lost worker.
    """
    logger.info("Starting import job expiry")

    try:
        with get_db_session() as db:
            count = progress_publisher.expire_jobs(db)

            return {
                "status": "success",
                "expired": count,
                "timestamp": config_service.now().isoformat()
            }

    except Exception as e:
        logger.error(f"Error in expire_import_jobs: {e}")
        return {
            "status": "error",
            "error": str(e),
            "timestamp": config_service.now().isoformat()
        }
