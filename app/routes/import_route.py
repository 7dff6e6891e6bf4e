"""
Import routes for property batches and external listings.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.database.session import get_session
from app.middleware.auth import TenantContext, require_tenant
from app.models.calendar_sync import CalendarSyncFrequency, CalendarSyncSource
from app.models.import_models import ImportJob
from app.models.import_schemas import (
    CamelModel,
    ImportErrorDetail,
    ImportErrorType,
    ImportStage,
)
from app.services.airbnb_import_service import airbnb_import_service, is_valid_external_url
from app.services.calendar_sync_service import calendar_sync_service
from app.services.config_service import config_service
from app.services.import_errors import BatchValidationError, ExternalListingError, ImportConflictError
from app.services.import_progress_service import is_complete, job_to_progress, progress_publisher
from app.services.import_service import import_runner
from app.services.import_validator import decode_document, validate_import_content
from worker.tasks import process_property_import

router = APIRouter(prefix="/api/properties/import", tags=["import"])
logger = logging.getLogger("app.import")


class AirbnbImportRequest(CamelModel):
    url: str
    ical_url: Optional[str] = None
    sync_frequency: CalendarSyncFrequency = CalendarSyncFrequency.DAILY


def _entry_count(document: Any) -> int:
    if isinstance(document, dict) and isinstance(document.get("properties"), list):
        return len(document["properties"])
    return 0


def _start_batch(db: Session, ctx: TenantContext, content: Any) -> Dict[str, Any]:
    """
    Register a batch job and run it inline or hand it to the worker.

    Blocks on the database and media downloads; async routes call it through
    ``run_in_threadpool``.
    """
    try:
        document = decode_document(content)
    except BatchValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    total = _entry_count(document)
    try:
        job = progress_publisher.start_job(
            db, ctx.tenant_id, kind="batch", total=total, payload=document, created_by=ctx.user_id
        )
    except ImportConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if total <= int(config_service.get_setting("IMPORT_SYNC_MAX_ENTRIES")):
        result = import_runner.run_batch(db, job.job_id, document)
        return {"completed": True, "result": result.model_dump(mode="json", by_alias=True)}

    try:
        task = process_property_import.delay(job.job_id)
    except Exception as e:
        logger.error(f"Failed to enqueue import {job.job_id}: {e}")
        _fail_job(db, job, f"Import worker unavailable: {e}")
        raise HTTPException(status_code=503, detail="Import worker unavailable")

    logger.info(f"Import job queued: {job.job_id}, task: {task.id}, entries={total}")
    return {"completed": False, "job_id": job.job_id}


def _fail_job(db: Session, job: ImportJob, message: str) -> None:
    progress = job_to_progress(job)
    errors = list(progress.errors)
    errors.append(ImportErrorDetail(entry_index=-1, message=message, type=ImportErrorType.DATABASE))
    progress_publisher.publish(db, job.job_id, progress.model_copy(update={"stage": ImportStage.FAILED, "errors": errors}))


@router.post("/validate")
async def validate_import(
    request: Request, ctx: TenantContext = Depends(require_tenant)
) -> Dict[str, Any]:
    """
    Validate a batch document without importing anything.

    Returns:
        {valid, errors}
    """
    content = await request.body()
    result = validate_import_content(content)
    logger.info(f"Import validation tenant={ctx.tenant_id} valid={result.valid} errors={len(result.errors)}")
    return result.model_dump(by_alias=True)


@router.post("")
async def start_import(
    request: Request,
    db: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_tenant),
) -> Dict[str, Any]:
    """
    Start a batch import from a JSON body.

    Small batches run inline and return their result; larger ones are queued
    and must be followed through the status endpoint.
    """
    content = await request.body()
    logger.info(f"Import requested tenant={ctx.tenant_id} bytes={len(content)}")
    return await run_in_threadpool(_start_batch, db, ctx, content)


@router.post("/upload")
async def upload_import_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_tenant),
) -> Dict[str, Any]:
    """
    Start a batch import from an uploaded ``.json`` file.

    Args:
        file: Uploaded JSON document
    """
    logger.info(f"File upload requested: {file.filename}")

    if not (file.filename or "").lower().endswith(".json"):
        raise HTTPException(status_code=400, detail="Only JSON files (.json) are allowed")

    content = await file.read()
    max_mb = float(config_service.get_setting("IMPORT_MAX_FILE_MB"))
    if len(content) > max_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File too large, maximum is {max_mb:g}MB")

    return await run_in_threadpool(_start_batch, db, ctx, content)


@router.post("/airbnb")
def import_airbnb_listing(
    body: AirbnbImportRequest,
    db: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_tenant),
) -> Dict[str, Any]:
    """
    Import a single Airbnb listing and optionally attach its iCal feed.

    The calendar sync step never fails the import.
    """
    valid, reason = is_valid_external_url(body.url)
    if not valid:
        raise HTTPException(status_code=400, detail=reason)

    try:
        listing = airbnb_import_service.import_listing(body.url)
    except ExternalListingError as e:
        logger.error(f"Airbnb fetch failed for {body.url}: {e}")
        raise HTTPException(status_code=503 if e.status_code == 503 else 502, detail=str(e))

    if not listing.valid:
        raise HTTPException(status_code=422, detail={"message": "Listing could not be mapped", "errors": listing.errors})

    try:
        job = progress_publisher.start_job(db, ctx.tenant_id, kind="listing", total=1, created_by=ctx.user_id)
    except ImportConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    result = import_runner.run_listing(db, job.job_id, listing.property)
    if not result.success:
        raise HTTPException(
            status_code=500,
            detail={"message": result.message, "errors": [e.message for e in result.progress.errors]},
        )

    property_id = result.created_properties[0]
    calendar_sync: Dict[str, Any] = {"configured": False}
    if body.ical_url:
        try:
            config = calendar_sync_service.create_sync_configuration(
                db,
                ctx.tenant_id,
                property_id,
                body.ical_url,
                source=CalendarSyncSource.AIRBNB,
                sync_frequency=body.sync_frequency,
                created_by=ctx.user_id,
            )
            calendar_sync = {"configured": True, "id": config.id}
        except Exception as e:
            logger.warning(f"Calendar sync setup failed for property {property_id}: {e}")
            calendar_sync = {"configured": False, "error": str(e)}

    return {
        "completed": True,
        "propertyId": property_id,
        "calendarSync": calendar_sync,
        "result": result.model_dump(mode="json", by_alias=True),
    }


@router.get("/status")
def get_import_status(
    db: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_tenant),
) -> Dict[str, Any]:
    """
    Current import snapshot for the tenant.

    A 404 means no job is tracked: never started or already cleaned up.
    """
    progress = progress_publisher.get_status(db, ctx.tenant_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="No import in progress")

    return {"progress": progress.model_dump(mode="json", by_alias=True), "completed": is_complete(progress)}


@router.get("/template")
async def get_import_template(ctx: TenantContext = Depends(require_tenant)) -> Dict[str, Any]:
    """Sample batch document to start from."""
    return {
        "source": "manual_import",
        "importedAt": config_service.now().isoformat(),
        "settings": {
            "skipDuplicates": True,
            "updateExisting": False,
            "downloadMedia": False,
            "validateMedia": True,
            "createThumbnails": True,
        },
        "properties": [
            {
                "title": "Beachfront apartment",
                "description": "Bright two-bedroom apartment a short walk from the beach.",
                "address": "12 Ocean Avenue",
                "neighborhood": "Seaside",
                "city": "Florianopolis",
                "category": "apartment",
                "type": "vacation",
                "status": "active",
                "bedrooms": 2,
                "bathrooms": 1,
                "maxGuests": 4,
                "basePrice": 250,
                "cleaningFee": 80,
                "pricePerExtraGuest": 30,
                "minimumNights": 2,
                "photos": ["https://example.com/photos/apartment-1.jpg"],
                "videos": [],
                "amenities": ["Wi-Fi", "Air conditioning", "Parking"],
                "allowsPets": False,
                "isFeatured": False,
                "isActive": True,
                "advancePaymentPercentage": 30,
                "weekendSurcharge": 20,
                "holidaySurcharge": 30,
                "decemberSurcharge": 40,
                "externalId": "sample-001",
                "externalSource": "manual",
            }
        ],
    }
