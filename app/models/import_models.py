"""
Import job models.
"""
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field

from app.models.property import utc_now


class ImportJob(SQLModel, table=True):
    """Import job tracking model, one row per import request."""

    __tablename__ = "import_jobs"

    job_id: str = Field(primary_key=True, max_length=50)
    tenant_id: str = Field(index=True, max_length=64)
    # Set while the job is running, cleared on completion; unique per tenant
    active_tenant_id: Optional[str] = Field(default=None, unique=True, max_length=64)
    kind: str = Field(max_length=20, default="batch")  # batch, listing
    stage: str = Field(max_length=20, default="validating")
    total: int = Field(default=0)
    completed_count: int = Field(default=0)
    failed_count: int = Field(default=0)
    current_entry_label: Optional[str] = Field(default=None, max_length=255)
    errors_json: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    payload_json: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    result_json: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_by: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    finished_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
