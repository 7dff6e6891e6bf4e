"""
Calendar sync configuration for imported properties.
"""
import logging
from typing import Optional

from sqlmodel import Session, select

from app.models.calendar_sync import CalendarSyncConfig, CalendarSyncFrequency, CalendarSyncSource
from app.models.import_schemas import is_http_url
from app.services.property_service import property_service

logger = logging.getLogger("app.calendar_sync")


class CalendarSyncService:
    def create_sync_configuration(
        self,
        db: Session,
        tenant_id: str,
        property_id: int,
        ical_url: str,
        source: CalendarSyncSource = CalendarSyncSource.AIRBNB,
        sync_frequency: CalendarSyncFrequency = CalendarSyncFrequency.DAILY,
        created_by: Optional[str] = None,
    ) -> CalendarSyncConfig:
        """
        Attach an iCal feed to a property, replacing any feed from the same source.

        Raises:
            ValueError: the iCal URL is not an http(s) URL
            LookupError: the property does not belong to the tenant
        """
        if not ical_url or not is_http_url(ical_url.strip()):
            raise ValueError("iCal URL must be an http(s) URL")

        if property_service.get_property(db, tenant_id, property_id) is None:
            raise LookupError(f"Property not found: {property_id}")

        existing = db.exec(
            select(CalendarSyncConfig).where(
                CalendarSyncConfig.tenant_id == tenant_id,
                CalendarSyncConfig.property_id == property_id,
                CalendarSyncConfig.source == source.value,
            )
        ).first()
        if existing:
            db.delete(existing)

        config = CalendarSyncConfig(
            property_id=property_id,
            tenant_id=tenant_id,
            source=source.value,
            ical_url=ical_url.strip(),
            sync_frequency=sync_frequency.value,
            created_by=created_by,
        )
        db.add(config)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(config)

        logger.info(
            f"Calendar sync configured: id={config.id} property={property_id} "
            f"source={source.value} frequency={sync_frequency.value}"
        )
        return config


# Global instance
calendar_sync_service = CalendarSyncService()
