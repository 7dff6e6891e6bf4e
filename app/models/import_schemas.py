"""
Wire schemas for property import documents and job progress.
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.property import PropertyCategory, PropertyStatus, PropertyType


class ImportStage(str, Enum):
    VALIDATING = "validating"
    PROCESSING_MEDIA = "processing_media"
    SAVING_PROPERTIES = "saving_properties"
    COMPLETED = "completed"
    FAILED = "failed"


# Forward-only ordering of stages
STAGE_ORDER = {
    ImportStage.VALIDATING: 0,
    ImportStage.PROCESSING_MEDIA: 1,
    ImportStage.SAVING_PROPERTIES: 2,
    ImportStage.COMPLETED: 3,
    ImportStage.FAILED: 3,
}

TERMINAL_STAGES = (ImportStage.COMPLETED, ImportStage.FAILED)


class ImportErrorType(str, Enum):
    VALIDATION = "validation"
    MEDIA = "media"
    DATABASE = "database"
    DUPLICATE = "duplicate"


class CamelModel(BaseModel):
    """Base for models exchanged with clients in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def is_http_url(value: str) -> bool:
    """Check that a value is an absolute http(s) URL."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ImportSettings(CamelModel):
    skip_duplicates: bool = True
    update_existing: bool = False
    download_media: bool = False
    validate_media: bool = True
    create_thumbnails: bool = True


class PropertyEntry(CamelModel):
    """One property inside a batch document, validated."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=10000)
    address: str = Field(min_length=1, max_length=500)
    city: str = Field(min_length=1, max_length=255)
    category: PropertyCategory = Field(strict=False)
    bedrooms: int = Field(ge=0)
    bathrooms: int = Field(ge=0)
    max_guests: int = Field(ge=0)
    base_price: float = Field(gt=0)

    neighborhood: str = ""
    type: PropertyType = Field(default=PropertyType.VACATION, strict=False)
    status: PropertyStatus = Field(default=PropertyStatus.ACTIVE, strict=False)
    cleaning_fee: float = Field(default=0, ge=0)
    price_per_extra_guest: float = Field(default=0, ge=0)
    minimum_nights: int = Field(default=1, ge=1)
    photos: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    allows_pets: bool = False
    is_featured: bool = False
    is_active: bool = True
    advance_payment_percentage: float = Field(default=30, ge=0, le=100)
    weekend_surcharge: float = Field(default=0, ge=0)
    holiday_surcharge: float = Field(default=0, ge=0)
    december_surcharge: float = Field(default=0, ge=0)
    external_id: Optional[str] = Field(default=None, max_length=100)
    external_source: Optional[str] = Field(default=None, max_length=50)

    @field_validator("photos", "videos")
    @classmethod
    def check_media_urls(cls, value: List[str]) -> List[str]:
        for url in value:
            if not is_http_url(url):
                raise ValueError(f"invalid media URL: {url}")
        return value

    @field_validator("amenities")
    @classmethod
    def dedupe_amenities(cls, value: List[str]) -> List[str]:
        seen = []
        for amenity in value:
            amenity = amenity.strip()
            if amenity and amenity not in seen:
                seen.append(amenity)
        return seen


class ImportBatchEnvelope(CamelModel):
    """Batch-level structure; entries stay raw until validated one by one."""

    source: str = "manual_import"
    imported_at: Optional[datetime] = None
    settings: ImportSettings = Field(default_factory=ImportSettings)
    properties: List[Any] = Field(min_length=1)


class ImportBatch(ImportBatchEnvelope):
    properties: List[PropertyEntry] = Field(min_length=1)


class ImportErrorDetail(CamelModel):
    entry_index: int
    entry_title: Optional[str] = None
    field: Optional[str] = None
    message: str
    type: ImportErrorType


class ImportProgress(CamelModel):
    """Snapshot of an import job as seen by pollers."""

    total: int = 0
    completed_count: int = 0
    failed_count: int = 0
    current_entry_label: Optional[str] = None
    stage: ImportStage = ImportStage.VALIDATING
    errors: List[ImportErrorDetail] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES


class ImportResult(CamelModel):
    success: bool = False
    import_id: str
    progress: ImportProgress
    created_properties: List[int] = Field(default_factory=list)
    updated_properties: List[int] = Field(default_factory=list)
    skipped_properties: List[str] = Field(default_factory=list)
    message: str = ""


class ValidationResult(CamelModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
