"""
Celery tasks for StayDesk.
"""
import logging
from typing import Any, Dict

from app.database.session import get_db_session
from app.models.import_models import ImportJob
from app.services.import_service import import_runner

from worker.celery_app import celery_app

logger = logging.getLogger("worker.tasks")


@celery_app.task(bind=True)
def process_property_import(self, job_id: str) -> Dict[str, Any]:
    """
    Process a property batch import in background.

    Args:
        job_id: Import job ID to process
    """
    logger.info(f"Starting property import processing: {job_id} task={self.request.id}")

    with get_db_session() as db:
        job = db.get(ImportJob, job_id)
        if not job:
            logger.error(f"Import job not found: {job_id}")
            return {"status": "error", "error": "job not found", "job_id": job_id}

        result = import_runner.run_batch(db, job_id, job.payload_json)

    logger.info(f"Property import finished: {job_id} success={result.success}")
    return {
        "status": "success" if result.success else "failed",
        "job_id": job_id,
        "created": len(result.created_properties),
        "updated": len(result.updated_properties),
        "skipped": len(result.skipped_properties),
    }
