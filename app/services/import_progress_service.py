"""
Progress publisher for property imports.

Keeps one import job per tenant in the ``import_jobs`` table. The job runner
replaces the whole snapshot on every update, in a single transaction, so
pollers never observe a half-written state.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.import_models import ImportJob
from app.models.property import utc_now
from app.models.import_schemas import (
    STAGE_ORDER,
    TERMINAL_STAGES,
    ImportErrorDetail,
    ImportErrorType,
    ImportProgress,
    ImportResult,
    ImportStage,
)
from app.services.config_service import config_service
from app.services.import_errors import ImportConflictError

logger = logging.getLogger("app.import.progress")


def job_to_progress(job: ImportJob) -> ImportProgress:
    return ImportProgress(
        total=job.total,
        completed_count=job.completed_count,
        failed_count=job.failed_count,
        current_entry_label=job.current_entry_label,
        stage=ImportStage(job.stage),
        errors=[ImportErrorDetail.model_validate(error) for error in job.errors_json or []],
    )


def is_complete(progress: ImportProgress) -> bool:
    """True once the job reached a terminal stage."""
    return progress.stage in TERMINAL_STAGES


class ProgressPublisher:
    """Keyed store tenant -> import job with the single-active-job rule."""

    def __init__(
        self,
        retention_seconds: Optional[int] = None,
        stale_after_seconds: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if retention_seconds is None:
            retention_seconds = int(config_service.get_setting("IMPORT_STATUS_RETENTION_SECONDS"))
        if stale_after_seconds is None:
            stale_after_seconds = int(config_service.get_setting("IMPORT_STALE_AFTER_SECONDS"))
        self.retention = timedelta(seconds=retention_seconds)
        self.stale_after = timedelta(seconds=stale_after_seconds)
        self.clock = clock or utc_now

    def start_job(
        self,
        db: Session,
        tenant_id: str,
        kind: str,
        total: int,
        payload: Any = None,
        created_by: Optional[str] = None,
    ) -> ImportJob:
        """
        Register a new job for the tenant.

        Raises:
            ImportConflictError: another job for the tenant is not terminal yet
        """
        self._expire_tenant_jobs(db, tenant_id)

        active = db.exec(select(ImportJob).where(ImportJob.active_tenant_id == tenant_id)).first()
        if active:
            logger.warning(f"Import rejected, job {active.job_id} still running for tenant {tenant_id}")
            raise ImportConflictError(tenant_id, active.job_id)

        # A tenant only keeps its latest job
        for previous in db.exec(select(ImportJob).where(ImportJob.tenant_id == tenant_id)).all():
            db.delete(previous)

        now = self.clock()
        job = ImportJob(
            job_id=f"import_{uuid.uuid4().hex[:12]}",
            tenant_id=tenant_id,
            active_tenant_id=tenant_id,
            kind=kind,
            stage=ImportStage.VALIDATING.value,
            total=total,
            errors_json=[],
            payload_json=payload,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        db.add(job)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ImportConflictError(tenant_id)
        db.refresh(job)

        logger.info(f"Import job created: {job.job_id} tenant={tenant_id} kind={kind} total={total}")
        return job

    def publish(
        self,
        db: Session,
        job_id: str,
        progress: ImportProgress,
        result: Optional[ImportResult] = None,
    ) -> ImportJob:
        """
        Replace the job snapshot.

        Raises:
            ValueError: when the update would move the stage backwards or drop
                errors that were already published
        """
        job = db.get(ImportJob, job_id)
        if job is None:
            raise LookupError(f"Import job not found: {job_id}")

        current = ImportStage(job.stage)
        if current in TERMINAL_STAGES and progress.stage != current:
            raise ValueError(f"Job {job_id} already finished as {current.value}")
        if STAGE_ORDER[progress.stage] < STAGE_ORDER[current]:
            raise ValueError(f"Stage cannot go back from {current.value} to {progress.stage.value}")

        errors = [error.model_dump(mode="json") for error in progress.errors]
        published = job.errors_json or []
        if errors[: len(published)] != published:
            raise ValueError("Published import errors cannot be rewritten")

        now = self.clock()
        job.stage = progress.stage.value
        job.total = progress.total
        job.completed_count = progress.completed_count
        job.failed_count = progress.failed_count
        job.current_entry_label = progress.current_entry_label
        job.errors_json = errors
        job.updated_at = now
        if result is not None:
            job.result_json = result.model_dump(mode="json", by_alias=True)
        if progress.stage in TERMINAL_STAGES:
            job.finished_at = job.finished_at or now
            job.active_tenant_id = None
            job.payload_json = None

        db.add(job)
        db.commit()
        return job

    def get_job(self, db: Session, tenant_id: str) -> Optional[ImportJob]:
        """Latest job for the tenant, or None when never started or expired."""
        job = db.exec(
            select(ImportJob).where(ImportJob.tenant_id == tenant_id).order_by(ImportJob.created_at.desc())
        ).first()
        if job is None:
            return None

        if self._is_expired(job):
            logger.info(f"Import job expired: {job.job_id} tenant={tenant_id}")
            db.delete(job)
            db.commit()
            return None

        if self._is_stale(job):
            self._abandon(db, job)
        return job

    def get_status(self, db: Session, tenant_id: str) -> Optional[ImportProgress]:
        job = self.get_job(db, tenant_id)
        return job_to_progress(job) if job else None

    def is_complete(self, progress: ImportProgress) -> bool:
        return is_complete(progress)

    def expire_jobs(self, db: Session) -> int:
        """
        Drop terminal jobs past the retention window and abandon stale ones.

        Returns:
            Number of jobs deleted or abandoned
        """
        count = 0
        for job in db.exec(select(ImportJob)).all():
            if self._is_expired(job):
                db.delete(job)
                count += 1
            elif self._is_stale(job):
                self._abandon(db, job)
                count += 1
        db.commit()

        if count:
            logger.info(f"Expired {count} import jobs")
        return count

    def _expire_tenant_jobs(self, db: Session, tenant_id: str) -> None:
        for job in db.exec(select(ImportJob).where(ImportJob.tenant_id == tenant_id)).all():
            if self._is_stale(job):
                self._abandon(db, job)

    def _age(self, moment: datetime) -> timedelta:
        # SQLite hands timestamps back without tzinfo
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.clock() - moment

    def _is_expired(self, job: ImportJob) -> bool:
        return (
            job.stage in (stage.value for stage in TERMINAL_STAGES)
            and job.finished_at is not None
            and self._age(job.finished_at) > self.retention
        )

    def _is_stale(self, job: ImportJob) -> bool:
        return (
            job.stage not in (stage.value for stage in TERMINAL_STAGES)
            and self._age(job.updated_at) > self.stale_after
        )

    def _abandon(self, db: Session, job: ImportJob) -> None:
        """Fail a job whose worker stopped reporting."""
        logger.warning(f"Import job abandoned: {job.job_id} tenant={job.tenant_id}")
        progress = job_to_progress(job)
        errors: List[ImportErrorDetail] = list(progress.errors)
        errors.append(
            ImportErrorDetail(
                entry_index=-1,
                message="Import stopped reporting progress and was abandoned",
                type=ImportErrorType.DATABASE,
            )
        )
        self.publish(db, job.job_id, progress.model_copy(update={"stage": ImportStage.FAILED, "errors": errors}))


# Global instance
progress_publisher = ProgressPublisher()
