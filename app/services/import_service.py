"""
Import job runner for property batches and external listings.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.import_models import ImportJob
from app.models.import_schemas import (
    ImportErrorDetail,
    ImportErrorType,
    ImportProgress,
    ImportResult,
    ImportSettings,
    ImportStage,
    PropertyEntry,
)
from app.models.property import MappedProperty
from app.services.airbnb_import_service import validate_mapped_property
from app.services.import_errors import BatchValidationError
from app.services.import_progress_service import ProgressPublisher, progress_publisher
from app.services.import_validator import decode_document, parse_batch, validate_entry
from app.services.media_service import MediaProcessingService
from app.services.property_service import (
    PropertyService,
    map_entry_to_property,
    normalize_text,
    property_service,
)

logger = logging.getLogger("app.import")

# Width of import_jobs.current_entry_label
MAX_LABEL_LENGTH = 255


@dataclass
class PreparedEntry:
    """An entry that passed validation and media processing."""

    index: int
    label: str
    mapped: MappedProperty


@dataclass
class BatchState:
    progress: ImportProgress
    result: ImportResult
    prepared: List[PreparedEntry] = field(default_factory=list)
    seen: set = field(default_factory=set)


def identity_key(title: str, address: str, external_id: Optional[str], external_source: Optional[str]) -> Tuple:
    if external_id:
        return ("external", external_source or "", external_id)
    return ("title_address", normalize_text(title), normalize_text(address))


def default_media_factory(tenant_id: str, settings: ImportSettings) -> MediaProcessingService:
    return MediaProcessingService(
        tenant_id=tenant_id,
        create_thumbnails=settings.create_thumbnails,
        validate_media=settings.validate_media,
    )


class ImportJobRunner:
    """Drives one import job from validation to a terminal stage."""

    def __init__(
        self,
        publisher: Optional[ProgressPublisher] = None,
        properties: Optional[PropertyService] = None,
        media_factory: Optional[Callable[[str, ImportSettings], MediaProcessingService]] = None,
    ):
        self.publisher = publisher or progress_publisher
        self.properties = properties or property_service
        self.media_factory = media_factory or default_media_factory

    def run_batch(self, db: Session, job_id: str, document: Any) -> ImportResult:
        """
        Process a batch document for an already registered job.

        Entry-level problems are recorded on the job and never stop the batch;
        only batch-wide problems end the job as ``failed``.

        Args:
            db: Database session
            job_id: Job created by ProgressPublisher.start_job
            document: Raw or decoded batch document

        Returns:
            Final import result, also stored on the job
        """
        job = self._get_job(db, job_id)
        tenant_id = job.tenant_id
        progress = ImportProgress(total=job.total, stage=ImportStage.VALIDATING)
        state = BatchState(progress=progress, result=ImportResult(import_id=job_id, progress=progress))

        logger.info(f"Starting batch import {job_id} tenant={tenant_id}")

        try:
            self._publish(db, job_id, progress)

            envelope = parse_batch(decode_document(document))
            settings = envelope.settings
            progress.total = len(envelope.properties)
            progress.stage = ImportStage.PROCESSING_MEDIA
            self._publish(db, job_id, progress)

            media = self.media_factory(tenant_id, settings) if settings.download_media else None

            for index, raw in enumerate(envelope.properties):
                self._prepare_entry(db, tenant_id, job_id, index, raw, settings, media, state)

            progress.stage = ImportStage.SAVING_PROPERTIES
            self._publish(db, job_id, progress)

            for item in state.prepared:
                self._save_entry(db, tenant_id, job_id, item, settings, state)

            progress.stage = ImportStage.COMPLETED
            state.result.success = progress.completed_count > 0
            state.result.message = (
                f"Import completed: {progress.completed_count} imported, {progress.failed_count} failed"
            )
            self._publish(db, job_id, progress, state.result)

            logger.info(
                f"Batch import completed: {job_id} total={progress.total} "
                f"completed={progress.completed_count} failed={progress.failed_count} errors={len(progress.errors)}"
            )

        except BatchValidationError as e:
            logger.warning(f"Batch import rejected: {job_id} - {e}")
            for message in e.errors:
                progress.errors.append(
                    ImportErrorDetail(entry_index=-1, message=message, type=ImportErrorType.VALIDATION)
                )
            self._fail(db, job_id, state, f"Import failed: {e}")

        except Exception as e:
            logger.exception(f"Batch import failed: {job_id}")
            db.rollback()
            progress.errors.append(ImportErrorDetail(entry_index=-1, message=str(e), type=ImportErrorType.DATABASE))
            self._fail(db, job_id, state, f"Import failed: {e}")

        return state.result

    def run_listing(self, db: Session, job_id: str, mapped: MappedProperty) -> ImportResult:
        """
        Persist a single mapped external listing for an already registered job.

        Returns:
            Import result; ``created_properties`` holds the new property id
        """
        job = self._get_job(db, job_id)
        label = mapped.title[:MAX_LABEL_LENGTH]
        progress = ImportProgress(total=1, stage=ImportStage.VALIDATING, current_entry_label=label)
        result = ImportResult(import_id=job_id, progress=progress)
        state = BatchState(progress=progress, result=result)

        try:
            self._publish(db, job_id, progress)

            errors = validate_mapped_property(mapped)
            if errors:
                for error in errors:
                    progress.errors.append(
                        ImportErrorDetail(
                            entry_index=0, entry_title=mapped.title, message=error, type=ImportErrorType.VALIDATION
                        )
                    )
                progress.failed_count += 1
            else:
                progress.stage = ImportStage.SAVING_PROPERTIES
                self._publish(db, job_id, progress)
                self._save_entry(
                    db, job.tenant_id, job_id, PreparedEntry(index=0, label=label, mapped=mapped), None, state
                )

            progress.stage = ImportStage.COMPLETED
            result.success = progress.completed_count == 1
            result.message = "Listing imported" if result.success else "Listing could not be imported"
            self._publish(db, job_id, progress, result)

        except Exception as e:
            logger.exception(f"Listing import failed: {job_id}")
            db.rollback()
            progress.errors.append(ImportErrorDetail(entry_index=-1, message=str(e), type=ImportErrorType.DATABASE))
            self._fail(db, job_id, state, f"Import failed: {e}")

        return result

    def _prepare_entry(
        self,
        db: Session,
        tenant_id: str,
        job_id: str,
        index: int,
        raw: Any,
        settings: ImportSettings,
        media: Optional[MediaProcessingService],
        state: BatchState,
    ) -> None:
        progress = state.progress
        label = self._entry_label(raw, index)
        progress.current_entry_label = label
        self._publish(db, job_id, progress)

        entry, errors = validate_entry(raw, index)
        if entry is None:
            logger.warning(f"Import {job_id}: entry {index} invalid ({len(errors)} errors)")
            progress.errors.extend(errors)
            progress.failed_count += 1
            self._publish(db, job_id, progress)
            return

        key = identity_key(entry.title, entry.address, entry.external_id, entry.external_source)
        if settings.skip_duplicates:
            reason = None
            if key in state.seen:
                reason = "Duplicate of an earlier property in this import"
            elif self.properties.find_duplicate(
                db, tenant_id, entry.title, entry.address, entry.external_id, entry.external_source
            ):
                reason = (
                    f"Duplicate external ID: {entry.external_id}"
                    if entry.external_id
                    else "Duplicate property: same title and address"
                )
            if reason:
                progress.errors.append(
                    ImportErrorDetail(
                        entry_index=index, entry_title=entry.title, message=reason, type=ImportErrorType.DUPLICATE
                    )
                )
                progress.failed_count += 1
                state.result.skipped_properties.append(entry.external_id or entry.title)
                self._publish(db, job_id, progress)
                return
        state.seen.add(key)

        photos, videos = entry.photos, entry.videos
        if media is not None:
            media_key = f"{job_id}_{index}"
            photos = self._process_media(media, entry, index, entry.photos, "photo", media_key, progress)
            videos = self._process_media(media, entry, index, entry.videos, "video", media_key, progress)
            self._publish(db, job_id, progress)

        state.prepared.append(PreparedEntry(index=index, label=label, mapped=map_entry_to_property(entry, photos, videos)))

    def _process_media(
        self,
        media: MediaProcessingService,
        entry: PropertyEntry,
        index: int,
        urls: List[str],
        media_type: str,
        media_key: str,
        progress: ImportProgress,
    ) -> List[str]:
        stored = []
        for result in media.process_media_urls(urls, media_type, media_key):
            if result.success and result.new_url:
                stored.append(result.new_url)
            else:
                progress.errors.append(
                    ImportErrorDetail(
                        entry_index=index,
                        entry_title=entry.title,
                        field=f"{media_type}s",
                        message=f"{media_type.capitalize()} processing failed: {result.error}",
                        type=ImportErrorType.MEDIA,
                    )
                )
        return stored

    def _save_entry(
        self,
        db: Session,
        tenant_id: str,
        job_id: str,
        item: PreparedEntry,
        settings: Optional[ImportSettings],
        state: BatchState,
    ) -> None:
        progress = state.progress
        progress.current_entry_label = item.label
        self._publish(db, job_id, progress)

        mapped = item.mapped
        try:
            existing = None
            if settings is not None and settings.update_existing:
                existing = self.properties.find_duplicate(
                    db, tenant_id, mapped.title, mapped.address, mapped.external_id, mapped.external_source
                )
            if existing is not None:
                prop = self.properties.update_property(db, existing, mapped)
                state.result.updated_properties.append(prop.id)
            else:
                prop = self.properties.create_property(db, tenant_id, mapped)
                state.result.created_properties.append(prop.id)
            progress.completed_count += 1

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Import {job_id}: failed to save entry {item.index} ({item.label}): {e}")
            progress.errors.append(
                ImportErrorDetail(
                    entry_index=item.index, entry_title=mapped.title, message=str(e), type=ImportErrorType.DATABASE
                )
            )
            progress.failed_count += 1

        self._publish(db, job_id, progress)

    def _fail(self, db: Session, job_id: str, state: BatchState, message: str) -> None:
        state.progress.stage = ImportStage.FAILED
        state.result.success = False
        state.result.message = message
        try:
            self._publish(db, job_id, state.progress, state.result)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update job status for {job_id}: {e}")
            raise

    def _publish(
        self, db: Session, job_id: str, progress: ImportProgress, result: Optional[ImportResult] = None
    ) -> None:
        self.publisher.publish(db, job_id, progress, result)

    @staticmethod
    def _get_job(db: Session, job_id: str) -> ImportJob:
        job = db.get(ImportJob, job_id)
        if job is None:
            raise LookupError(f"Import job not found: {job_id}")
        return job

    @staticmethod
    def _entry_label(raw: Any, index: int) -> str:
        if isinstance(raw, dict) and isinstance(raw.get("title"), str) and raw["title"].strip():
            return raw["title"].strip()[:MAX_LABEL_LENGTH]
        return f"Property {index + 1}"


# Global instance
import_runner = ImportJobRunner()
