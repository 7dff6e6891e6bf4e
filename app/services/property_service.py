"""
Property persistence and duplicate detection.
"""
import logging
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from app.models.import_schemas import PropertyEntry
from app.models.property import MappedProperty, Property, identity_hash, normalize_text, utc_now

logger = logging.getLogger("app.properties")


def build_location(address: str, neighborhood: str, city: str) -> str:
    return " ".join(part for part in (address, neighborhood, city) if part).strip()


def map_entry_to_property(
    entry: PropertyEntry,
    photos: Optional[List[str]] = None,
    videos: Optional[List[str]] = None,
) -> MappedProperty:
    """
    Convert a validated batch entry into the internal property schema.

    Args:
        entry: validated entry
        photos: stored photo URLs, defaults to the entry's own URLs
        videos: stored video URLs, defaults to the entry's own URLs
    """
    return MappedProperty(
        title=entry.title,
        description=entry.description,
        address=entry.address,
        neighborhood=entry.neighborhood,
        city=entry.city,
        location=build_location(entry.address, entry.neighborhood, entry.city),
        category=entry.category,
        type=entry.type,
        status=entry.status,
        bedrooms=entry.bedrooms,
        bathrooms=entry.bathrooms,
        max_guests=entry.max_guests,
        base_price=entry.base_price,
        cleaning_fee=entry.cleaning_fee,
        price_per_extra_guest=entry.price_per_extra_guest,
        minimum_nights=entry.minimum_nights,
        amenities=list(entry.amenities),
        photos=list(entry.photos if photos is None else photos),
        videos=list(entry.videos if videos is None else videos),
        allows_pets=entry.allows_pets,
        is_featured=entry.is_featured,
        is_active=entry.is_active,
        advance_payment_percentage=entry.advance_payment_percentage,
        weekend_surcharge=entry.weekend_surcharge,
        holiday_surcharge=entry.holiday_surcharge,
        december_surcharge=entry.december_surcharge,
        external_id=entry.external_id,
        external_source=entry.external_source,
    )


def _merge_lists(existing: Iterable, incoming: Iterable) -> list:
    merged = list(existing or [])
    for item in incoming or []:
        if item not in merged:
            merged.append(item)
    return merged


class PropertyService:
    """Tenant-scoped property storage used by the importers."""

    def get_property(self, db: Session, tenant_id: str, property_id: int) -> Optional[Property]:
        return db.exec(
            select(Property).where(Property.id == property_id, Property.tenant_id == tenant_id)
        ).first()

    def find_duplicate(
        self,
        db: Session,
        tenant_id: str,
        title: str,
        address: str,
        external_id: Optional[str] = None,
        external_source: Optional[str] = None,
    ) -> Optional[Property]:
        """
        Find an existing property with the same identity.

        Identity is the (external_source, external_id) pair when an external id
        is given; otherwise the case-insensitive, whitespace-collapsed title and
        address must both match.
        """
        if external_id:
            query = select(Property).where(
                Property.tenant_id == tenant_id,
                Property.external_id == external_id,
            )
            if external_source:
                query = query.where(Property.external_source == external_source)
            else:
                query = query.where(Property.external_source.is_(None))
            return db.exec(query).first()

        wanted = (normalize_text(title), normalize_text(address))
        candidates = db.exec(
            select(Property).where(
                Property.tenant_id == tenant_id,
                Property.dedupe_hash == identity_hash(title, address),
            )
        ).all()
        for candidate in candidates:
            if (normalize_text(candidate.title), normalize_text(candidate.address)) == wanted:
                return candidate
        return None

    def create_property(self, db: Session, tenant_id: str, mapped: MappedProperty) -> Property:
        """Persist a new property and return it with its id."""
        data = mapped.model_dump(mode="json")
        prop = Property(tenant_id=tenant_id, capacity=mapped.max_guests, **data)
        db.add(prop)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(prop)

        logger.info(f"Property created: id={prop.id} tenant={tenant_id} title={prop.title!r}")
        return prop

    def update_property(self, db: Session, existing: Property, mapped: MappedProperty) -> Property:
        """
        Merge imported data into an existing property.

        Scalar fields are overwritten; amenities and media are merged keeping
        the existing items first.
        """
        data = mapped.model_dump(mode="json")
        for key in ("amenities", "photos", "videos"):
            setattr(existing, key, _merge_lists(getattr(existing, key), data.pop(key)))
        for key, value in data.items():
            if key in ("external_id", "external_source") and value is None:
                continue
            setattr(existing, key, value)
        existing.capacity = mapped.max_guests
        existing.updated_at = utc_now()

        db.add(existing)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(existing)

        logger.info(f"Property updated: id={existing.id} tenant={existing.tenant_id}")
        return existing


# Global instance
property_service = PropertyService()
