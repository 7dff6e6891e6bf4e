"""
Property models.
"""
import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime, event
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_text(value: Optional[str]) -> str:
    """Case-fold and collapse whitespace for identity comparisons."""
    return " ".join((value or "").casefold().split())


def identity_hash(title: Optional[str], address: Optional[str]) -> str:
    """Digest of the normalized title and address, used to find duplicates."""
    key = f"{normalize_text(title)}\n{normalize_text(address)}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class PropertyCategory(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    STUDIO = "studio"
    VILLA = "villa"
    CONDO = "condo"


class PropertyType(str, Enum):
    VACATION = "vacation"
    RESIDENTIAL = "residential"


class PropertyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# Default surcharge per payment method, in percent
DEFAULT_PAYMENT_SURCHARGES = {
    "pix": 0,
    "credit_card": 5,
    "debit_card": 0,
    "bank_transfer": 0,
    "cash": 0,
}


class MappedProperty(SQLModel):
    """Normalized property record handed to persistence."""

    title: str
    description: str = ""
    address: str
    neighborhood: str = ""
    city: str
    location: str = ""
    category: PropertyCategory = PropertyCategory.APARTMENT
    type: PropertyType = PropertyType.VACATION
    status: PropertyStatus = PropertyStatus.ACTIVE
    bedrooms: int
    bathrooms: int
    max_guests: int
    base_price: float
    cleaning_fee: float = 0
    price_per_extra_guest: float = 0
    minimum_nights: int = 1
    amenities: List[str] = Field(default_factory=list)
    photos: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    allows_pets: bool = False
    is_featured: bool = False
    is_active: bool = True
    advance_payment_percentage: float = 30
    weekend_surcharge: float = 0
    holiday_surcharge: float = 0
    december_surcharge: float = 0
    high_season_surcharge: float = 0
    high_season_months: List[int] = Field(default_factory=list)
    external_id: Optional[str] = None
    external_source: Optional[str] = None


class Property(SQLModel, table=True):
    """Tenant-scoped rental property."""

    __tablename__ = "properties"

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True, max_length=64)

    title: str = Field(max_length=255)
    description: str = Field(default="", max_length=10000)
    address: str = Field(max_length=500)
    neighborhood: str = Field(default="", max_length=255)
    city: str = Field(max_length=255)
    location: str = Field(default="", max_length=1000)
    category: str = Field(default=PropertyCategory.APARTMENT.value, max_length=20)
    type: str = Field(default=PropertyType.VACATION.value, max_length=20)
    status: str = Field(default=PropertyStatus.ACTIVE.value, max_length=20)

    bedrooms: int = Field(default=0)
    bathrooms: int = Field(default=0)
    max_guests: int = Field(default=1)
    capacity: int = Field(default=1)

    base_price: float = Field(default=0)
    cleaning_fee: float = Field(default=0)
    price_per_extra_guest: float = Field(default=0)
    minimum_nights: int = Field(default=1)
    advance_payment_percentage: float = Field(default=30)
    weekend_surcharge: float = Field(default=0)
    holiday_surcharge: float = Field(default=0)
    december_surcharge: float = Field(default=0)
    high_season_surcharge: float = Field(default=0)
    high_season_months: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    payment_method_surcharges: dict = Field(default_factory=lambda: dict(DEFAULT_PAYMENT_SURCHARGES), sa_column=Column(JSON))

    amenities: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    photos: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    videos: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    allows_pets: bool = Field(default=False)
    is_featured: bool = Field(default=False)
    is_active: bool = Field(default=True)

    external_id: Optional[str] = Field(default=None, index=True, max_length=100)
    external_source: Optional[str] = Field(default=None, max_length=50)
    dedupe_hash: str = Field(default="", index=True, max_length=64)

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


@event.listens_for(Property, "before_insert")
@event.listens_for(Property, "before_update")
def _set_identity_hash(mapper, connection, target: Property) -> None:
    target.dedupe_hash = identity_hash(target.title, target.address)
