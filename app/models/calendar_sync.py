"""
Calendar synchronization models.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.models.property import utc_now


class CalendarSyncSource(str, Enum):
    AIRBNB = "airbnb"
    BOOKING = "booking"
    VRBO = "vrbo"
    ICAL_URL = "ical_url"


class CalendarSyncFrequency(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    MANUAL = "manual"


class CalendarSyncStatus(str, Enum):
    ACTIVE = "active"
    SYNCING = "syncing"
    ERROR = "error"
    PAUSED = "paused"


class CalendarSyncConfig(SQLModel, table=True):
    """External iCal feed attached to a property."""

    __tablename__ = "calendar_sync_configs"

    id: Optional[int] = Field(default=None, primary_key=True)
    property_id: int = Field(foreign_key="properties.id", index=True)
    tenant_id: str = Field(index=True, max_length=64)
    source: str = Field(max_length=20, default=CalendarSyncSource.AIRBNB.value)
    ical_url: str = Field(max_length=2000)
    sync_frequency: str = Field(max_length=20, default=CalendarSyncFrequency.DAILY.value)
    status: str = Field(max_length=20, default=CalendarSyncStatus.ACTIVE.value)
    is_active: bool = Field(default=True)
    error_count: int = Field(default=0)
    last_error: Optional[str] = Field(default=None, max_length=1000)
    last_sync_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_by: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
