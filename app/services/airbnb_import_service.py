"""
External listing importer for Airbnb listing URLs.

Listing data is fetched through a scraping provider (hasdata-compatible API)
and mapped to the internal property schema.
"""
import logging
import math
import re
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from pydantic import BaseModel, Field, ValidationError

from app.models.property import MappedProperty, PropertyCategory, PropertyStatus, PropertyType
from app.services.config_service import config_service
from app.services.import_errors import ExternalListingError

logger = logging.getLogger("app.airbnb")

AIRBNB_HOST_RE = re.compile(r"^(www\.|m\.)?airbnb\.[a-z]{2,3}(\.[a-z]{2})?$")
AIRBNB_LISTING_PATH_RE = re.compile(r"^/rooms/(\d+)/?$")

DEFAULT_TITLE = "Imported Airbnb property"

CATEGORY_KEYWORDS = [
    (("apartment", "apartamento", "flat"), PropertyCategory.APARTMENT),
    (("house", "casa", "home"), PropertyCategory.HOUSE),
    (("studio", "estúdio", "loft"), PropertyCategory.STUDIO),
    (("villa",), PropertyCategory.VILLA),
    (("condo", "condomínio"), PropertyCategory.CONDO),
]

AMENITY_MAP = {
    "SYSTEM_WIFI": "Wi-Fi",
    "SYSTEM_WIRELESS_INTERNET": "Wi-Fi",
    "SYSTEM_TV": "TV",
    "SYSTEM_CABLE_TV": "TV",
    "SYSTEM_NETFLIX": "Netflix",
    "SYSTEM_AIR_CONDITIONING": "Air conditioning",
    "SYSTEM_AC": "Air conditioning",
    "SYSTEM_HEATING": "Heating",
    "SYSTEM_FAN": "Fan",
    "SYSTEM_POOL": "Pool",
    "SYSTEM_SWIMMING_POOL": "Pool",
    "SYSTEM_BBQ": "BBQ grill",
    "SYSTEM_GRILL": "BBQ grill",
    "SYSTEM_BACKYARD": "Garden",
    "SYSTEM_GARDEN": "Garden",
    "SYSTEM_BALCONY": "Balcony",
    "SYSTEM_PATIO": "Balcony",
    "SYSTEM_TERRACE": "Terrace",
    "SYSTEM_PARKING": "Parking",
    "SYSTEM_FREE_PARKING": "Parking",
    "SYSTEM_GARAGE": "Parking",
    "SYSTEM_DOORMAN": "24h doorman",
    "SYSTEM_SECURITY": "24h doorman",
    "SYSTEM_ELEVATOR": "Elevator",
    "SYSTEM_SAFE": "Safe",
    "SYSTEM_KITCHEN": "Equipped kitchen",
    "SYSTEM_REFRIGERATOR": "Refrigerator",
    "SYSTEM_FRIDGE": "Refrigerator",
    "SYSTEM_MICROWAVE": "Microwave",
    "SYSTEM_STOVE": "Stove",
    "SYSTEM_OVEN": "Stove",
    "SYSTEM_WASHER": "Washing machine",
    "SYSTEM_WASHING_MACHINE": "Washing machine",
    "SYSTEM_DRYER": "Dryer",
    "SYSTEM_IRON": "Iron",
    "SYSTEM_GYM": "Gym",
    "SYSTEM_FITNESS": "Gym",
    "SYSTEM_HOT_TUB": "Bathtub",
    "SYSTEM_BATHTUB": "Bathtub",
    "SYSTEM_FIREPLACE": "Fireplace",
    "SYSTEM_CRIB": "Crib",
    "SYSTEM_BABY_COT": "Crib",
    "SYSTEM_HIGH_CHAIR": "High chair",
    "SYSTEM_FIRE_EXTINGUISHER": "Fire extinguisher",
    "SYSTEM_SMOKE_DETECTOR": "Smoke alarm",
    "SYSTEM_SMOKE_ALARM": "Smoke alarm",
    "SYSTEM_FIRST_AID_KIT": "First aid kit",
    "SYSTEM_LAUNDRY_ROOM": "Laundry area",
}


class ListingImportResult(BaseModel):
    """Outcome of mapping one external listing."""

    valid: bool
    listing_id: Optional[str] = None
    property: Optional[MappedProperty] = None
    errors: List[str] = Field(default_factory=list)


def is_valid_external_url(url: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Classify an external listing URL without touching the network.

    Returns:
        (True, None) for canonical Airbnb listing URLs, else (False, reason)
    """
    if not url or not url.strip():
        return False, "URL is required"

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False, "URL is malformed"

    if parsed.scheme not in ("http", "https"):
        return False, "URL must start with http:// or https://"
    if not AIRBNB_HOST_RE.match((parsed.hostname or "").lower()):
        return False, "Only Airbnb listing URLs are supported"
    if not AIRBNB_LISTING_PATH_RE.match(parsed.path):
        return False, "URL must point to a listing, e.g. https://www.airbnb.com/rooms/12345"

    return True, None


def extract_listing_id(url: str) -> Optional[str]:
    valid, _ = is_valid_external_url(url)
    if not valid:
        return None
    return AIRBNB_LISTING_PATH_RE.match(urlparse(url.strip()).path).group(1)


def _text(value: Any) -> str:
    """Scalar provider value as text; nested structures count as missing."""
    if value is None or isinstance(value, (dict, list, bool)):
        return ""
    return str(value)


def _first_text(*values: Any) -> str:
    for value in values:
        text = _text(value)
        if text:
            return text
    return ""


def _extract_photos(listing: Dict[str, Any]) -> List[Dict[str, Any]]:
    photos = []
    expectations = listing.get("listingExpectations")
    sources = [
        listing.get("photos"),
        listing.get("images"),
        listing.get("pictureUrls"),
        expectations.get("photos") if isinstance(expectations, dict) else None,
    ]
    for source in sources:
        if isinstance(source, list) and source:
            for index, photo in enumerate(source):
                if isinstance(photo, str):
                    photos.append({"url": photo, "sort_order": index})
                elif isinstance(photo, dict):
                    urls = (photo.get("url"), photo.get("picture"), photo.get("baseUrl"))
                    url = next((u for u in urls if isinstance(u, str) and u), None)
                    if url:
                        photos.append({
                            "url": url,
                            "caption": _first_text(photo.get("caption"), photo.get("description")),
                            "sort_order": _as_int(photo.get("sortOrder") or photo.get("order"), index),
                        })
            break
    return photos


def _amenity_type(name: str) -> str:
    return "SYSTEM_" + re.sub(r"\s+", "_", name.strip().upper())


def _extract_amenities(listing: Dict[str, Any]) -> List[Dict[str, Any]]:
    amenities = []
    for source in (listing.get("amenities"), listing.get("listingAmenities")):
        if isinstance(source, list) and source:
            for amenity in source:
                if isinstance(amenity, str):
                    amenities.append({"type": _amenity_type(amenity), "name": amenity})
                elif isinstance(amenity, dict):
                    if amenity.get("available") is False:
                        continue
                    name = _first_text(amenity.get("title"), amenity.get("name"))
                    if name:
                        amenities.append({
                            "type": _text(amenity.get("type")) or _amenity_type(name),
                            "name": name,
                            "category": _first_text(amenity.get("category"), amenity.get("group")) or None,
                        })
            break
    return amenities


def _extract_address(listing: Dict[str, Any]) -> Dict[str, str]:
    city = state = country = ""
    if isinstance(listing.get("address"), str):
        parts = [p.strip() for p in listing["address"].split(",") if p.strip()]
        if len(parts) >= 3:
            city, state, country = parts[0], parts[1], parts[2]
        elif len(parts) == 2:
            city, state = parts
        elif len(parts) == 1:
            city = parts[0]

    location = listing.get("location") if isinstance(listing.get("location"), dict) else {}
    return {
        "street": _first_text(location.get("street"), listing.get("street")),
        "city": city or _first_text(location.get("city"), listing.get("city")),
        "state": state or _first_text(location.get("state"), listing.get("state")),
        "zip_code": _first_text(location.get("zipcode"), location.get("zipCode"), listing.get("zipCode")),
        "country": country or _first_text(location.get("country"), listing.get("country")),
    }


def _as_price(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return None


def _extract_price(listing: Dict[str, Any]) -> float:
    for value in (listing.get("price"), listing.get("pricing"), listing.get("priceDetails")):
        candidates = [value.get(k) for k in ("amount", "rate", "price", "nightly")] if isinstance(value, dict) else [value]
        for candidate in candidates:
            price = _as_price(candidate)
            if price is not None:
                return price
    return 0.0


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except (TypeError, ValueError, OverflowError):
        return default


def transform_listing_response(api_data: Dict[str, Any], listing_id: str) -> Dict[str, Any]:
    """
    Normalize a scraping provider response into a flat listing dict.

    Raises:
        ExternalListingError: when the provider reports an error
    """
    if not isinstance(api_data, dict):
        raise ExternalListingError("Unexpected response from listing provider")
    if api_data.get("error"):
        raise ExternalListingError(str(api_data["error"]))

    listing = api_data.get("property") or api_data.get("data") or api_data.get("listing") or api_data
    if not isinstance(listing, dict):
        raise ExternalListingError("Unexpected listing format from listing provider")

    return {
        "id": _text(listing.get("id")) or listing_id,
        "title": _first_text(listing.get("title"), listing.get("name")),
        "description": _first_text(listing.get("description"), listing.get("summary")),
        "address": _extract_address(listing),
        "photos": _extract_photos(listing),
        "amenities": _extract_amenities(listing),
        "guests": _as_int(
            listing.get("guestCapacity") or listing.get("personCapacity") or listing.get("maxGuests"), 2
        ),
        "bedrooms": _as_int(listing.get("bedrooms") or listing.get("bedroomCount"), 1),
        "bathrooms": _as_int(listing.get("bathrooms") or listing.get("bathroomCount"), 1),
        "property_type": _first_text(listing.get("roomType"), listing.get("propertyType")),
        "price": _extract_price(listing),
    }


def map_property_category(property_type: Optional[str]) -> PropertyCategory:
    value = (property_type or "").lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(keyword in value for keyword in keywords):
            return category
    return PropertyCategory.APARTMENT


def map_amenity(amenity: Dict[str, Any]) -> str:
    amenity_type = (amenity.get("type") or "").upper()
    if amenity_type in AMENITY_MAP:
        return AMENITY_MAP[amenity_type]
    name = amenity.get("name") or ""
    name_type = _amenity_type(name)
    if name_type in AMENITY_MAP:
        return AMENITY_MAP[name_type]
    logger.debug(f"Unmapped Airbnb amenity type={amenity_type} name={name}")
    return name.strip()


def map_listing_to_property(listing: Dict[str, Any]) -> MappedProperty:
    """Map a normalized listing to the internal property schema."""
    address = listing["address"]
    parts = [address.get(key) for key in ("street", "city", "state", "zip_code", "country")]
    full_address = ", ".join(part for part in parts if part)
    neighborhood = address.get("street") or address.get("city") or ""
    city = address.get("city") or ""

    amenities: List[str] = []
    for amenity in listing["amenities"]:
        mapped = map_amenity(amenity)
        if mapped and mapped not in amenities:
            amenities.append(mapped)

    photos = [p["url"] for p in sorted(listing["photos"], key=lambda p: p.get("sort_order") or 0)]

    return MappedProperty(
        title=listing["title"] or DEFAULT_TITLE,
        description=listing["description"],
        address=full_address,
        neighborhood=neighborhood,
        city=city,
        location=" ".join(part for part in (full_address, neighborhood, city) if part),
        category=map_property_category(listing["property_type"]),
        type=PropertyType.VACATION,
        status=PropertyStatus.ACTIVE,
        bedrooms=listing["bedrooms"],
        bathrooms=listing["bathrooms"],
        max_guests=listing["guests"],
        base_price=listing["price"],
        minimum_nights=2,
        amenities=amenities,
        photos=photos,
        videos=[],
        advance_payment_percentage=30,
        weekend_surcharge=20,
        holiday_surcharge=30,
        december_surcharge=40,
        high_season_surcharge=25,
        high_season_months=[12, 1, 2, 7],
        external_id=listing["id"],
        external_source="airbnb",
    )


def validate_mapped_property(mapped: MappedProperty) -> List[str]:
    """Check that a mapped listing carries what a property needs."""
    errors = []
    if not mapped.title.strip():
        errors.append("Title is required")
    if not mapped.address.strip():
        errors.append("Address is required")
    if not mapped.city.strip():
        errors.append("City is required")
    if mapped.bedrooms < 0:
        errors.append("Invalid number of bedrooms")
    if mapped.bathrooms < 0:
        errors.append("Invalid number of bathrooms")
    if mapped.max_guests < 1:
        errors.append("Invalid guest capacity")
    if mapped.base_price < 0:
        errors.append("Invalid base price")
    if not mapped.photos:
        errors.append("At least one photo is required")
    return errors


class AirbnbImportService:
    """Fetches Airbnb listings through the configured scraping provider."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        http: Optional[requests.Session] = None,
    ):
        self.api_url = api_url or config_service.get_setting("AIRBNB_SCRAPER_URL")
        self.api_key = api_key if api_key is not None else config_service.get_setting("AIRBNB_SCRAPER_API_KEY")
        self.timeout = float(timeout or config_service.get_setting("AIRBNB_SCRAPER_TIMEOUT"))
        self.max_retries = int(max_retries or config_service.get_setting("AIRBNB_SCRAPER_MAX_RETRIES"))
        self.http = http or requests.Session()

    def fetch_listing(self, listing_id: str) -> Dict[str, Any]:
        """
        Fetch raw listing data from the provider.

        Raises:
            ExternalListingError: provider not configured, unreachable or failing
        """
        if not self.api_key:
            logger.error("Airbnb scraper API key not configured")
            raise ExternalListingError("Airbnb import is not configured", status_code=503)

        listing_url = f"https://www.airbnb.com/rooms/{listing_id}"
        headers = {"x-api-key": self.api_key, "Content-Type": "application/json"}

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching Airbnb listing {listing_id} (attempt {attempt + 1}/{self.max_retries})")
                response = self.http.get(
                    self.api_url, params={"url": listing_url}, headers=headers, timeout=self.timeout
                )
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                logger.warning(f"Listing provider unreachable: {e}")
                last_error = e
                time.sleep(min(2 ** attempt, 5))
                continue

            if response.status_code >= 500 and attempt + 1 < self.max_retries:
                logger.warning(f"Listing provider returned {response.status_code}, retrying")
                time.sleep(min(2 ** attempt, 5))
                continue

            if not response.ok:
                logger.error(f"Listing provider request failed: {response.status_code} {response.reason}")
                raise ExternalListingError(
                    f"Listing provider returned status {response.status_code}", status_code=response.status_code
                )

            try:
                return response.json()
            except ValueError:
                raise ExternalListingError("Listing provider returned invalid JSON", status_code=502)

        raise ExternalListingError(f"Listing provider unreachable: {last_error}", status_code=502)

    def import_listing(self, url: str) -> ListingImportResult:
        """
        Classify, fetch and map one listing URL.

        Invalid URLs are rejected before any request. Mapping problems come
        back as ``errors``; only provider failures raise.

        Raises:
            ExternalListingError: when the provider cannot deliver the listing
        """
        valid, reason = is_valid_external_url(url)
        if not valid:
            return ListingImportResult(valid=False, errors=[reason])

        listing_id = extract_listing_id(url)
        raw = self.fetch_listing(listing_id)

        try:
            listing = transform_listing_response(raw, listing_id)
        except ExternalListingError as e:
            return ListingImportResult(valid=False, listing_id=listing_id, errors=[str(e)])

        try:
            mapped = map_listing_to_property(listing)
        except ValidationError as e:
            errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            logger.warning(f"Airbnb listing {listing_id} could not be mapped: {errors}")
            return ListingImportResult(valid=False, listing_id=listing_id, errors=errors)
        except (TypeError, ValueError) as e:
            logger.warning(f"Airbnb listing {listing_id} could not be mapped: {e}")
            return ListingImportResult(valid=False, listing_id=listing_id, errors=[f"Invalid listing data: {e}"])

        errors = validate_mapped_property(mapped)

        logger.info(
            f"Airbnb listing {listing_id} mapped: photos={len(mapped.photos)} "
            f"amenities={len(mapped.amenities)} errors={len(errors)}"
        )
        return ListingImportResult(valid=not errors, listing_id=listing_id, property=mapped, errors=errors)


# Global instance
airbnb_import_service = AirbnbImportService()
