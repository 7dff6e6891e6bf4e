"""
Calendar sync configuration routes.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.database.session import get_session
from app.middleware.auth import TenantContext, require_tenant
from app.models.calendar_sync import CalendarSyncFrequency, CalendarSyncSource
from app.models.import_schemas import CamelModel
from app.services.calendar_sync_service import calendar_sync_service

router = APIRouter(prefix="/api/calendar-sync", tags=["calendar-sync"])
logger = logging.getLogger("app.calendar_sync")


class CalendarSyncRequest(CamelModel):
    property_id: int
    ical_url: str
    source: CalendarSyncSource = CalendarSyncSource.AIRBNB
    sync_frequency: CalendarSyncFrequency = CalendarSyncFrequency.DAILY


@router.post("/configure")
def configure_calendar_sync(
    body: CalendarSyncRequest,
    db: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_tenant),
) -> Dict[str, Any]:
    """
    Attach an iCal feed to one of the tenant's properties.

    Returns:
        {id} of the stored configuration
    """
    try:
        config = calendar_sync_service.create_sync_configuration(
            db,
            ctx.tenant_id,
            body.property_id,
            body.ical_url,
            source=body.source,
            sync_frequency=body.sync_frequency,
            created_by=ctx.user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"id": config.id}
