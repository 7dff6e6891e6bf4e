"""
Tests for the Airbnb listing importer.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.models.property import PropertyCategory
from app.services.airbnb_import_service import (
    AirbnbImportService,
    extract_listing_id,
    is_valid_external_url,
    map_listing_to_property,
    map_property_category,
    transform_listing_response,
    validate_mapped_property,
)
from app.services.import_errors import ExternalListingError

LISTING_RESPONSE = {
    "property": {
        "id": 12345,
        "title": "Cozy loft in Copacabana",
        "description": "Two blocks from the beach",
        "address": "Rio de Janeiro, State of Rio de Janeiro, Brazil",
        "roomType": "Entire apartment",
        "guestCapacity": 4,
        "bedrooms": 2,
        "bathrooms": 1,
        "photos": [
            {"url": "https://a0.muscache.com/2.jpg", "caption": "Kitchen", "sortOrder": 2},
            {"url": "https://a0.muscache.com/1.jpg", "caption": "Living room", "sortOrder": 1},
        ],
        "amenities": [
            {"title": "Wifi", "type": "SYSTEM_WIFI"},
            {"title": "Wireless internet", "type": "SYSTEM_WIRELESS_INTERNET"},
            {"title": "Pool", "type": "SYSTEM_POOL"},
            {"title": "Hair dryer", "type": "SYSTEM_HAIR_DRYER"},
            {"title": "Hot tub", "type": "SYSTEM_HOT_TUB", "available": False},
        ],
        "price": {"amount": 320},
    }
}


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "OK" if response.ok else "Error"
    response.json.return_value = payload if payload is not None else LISTING_RESPONSE
    return response


class TestUrlClassification:
    """Test listing URL classification."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.airbnb.com/rooms/12345",
            "https://airbnb.com/rooms/12345/",
            "https://www.airbnb.com.br/rooms/12345?adults=2&check_in=2026-01-10",
            "https://www.airbnb.co.uk/rooms/987654321",
            "http://www.airbnb.fr/rooms/12345",
        ],
    )
    def test_accepts_listing_urls(self, url):
        assert is_valid_external_url(url) == (True, None)

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.airbnb.com/",
            "https://www.airbnb.com/rooms/",
            "https://www.airbnb.com/rooms/abc",
            "https://www.airbnb.com/users/show/12345",
            "https://www.booking.com/rooms/12345",
            "ftp://www.airbnb.com/rooms/12345",
            "airbnb.com/rooms/12345",
            "",
            None,
        ],
    )
    def test_rejects_other_urls(self, url):
        valid, reason = is_valid_external_url(url)

        assert valid is False
        assert reason

    def test_extract_listing_id(self):
        assert extract_listing_id("https://www.airbnb.com/rooms/12345?adults=2") == "12345"
        assert extract_listing_id("https://www.airbnb.com/rooms/") is None


class TestMapping:
    """Test normalization and mapping of listing data."""

    def test_transform_response(self):
        listing = transform_listing_response(LISTING_RESPONSE, "12345")

        assert listing["id"] == "12345"
        assert listing["guests"] == 4
        assert listing["address"]["city"] == "Rio de Janeiro"
        assert listing["address"]["country"] == "Brazil"
        assert len(listing["photos"]) == 2
        assert len(listing["amenities"]) == 4
        assert listing["price"] == 320

    def test_transform_fallbacks(self):
        raw = {
            "name": "Tiny house",
            "pictureUrls": ["https://a0.muscache.com/x.jpg"],
            "listingAmenities": ["Wifi"],
            "personCapacity": "3",
            "location": {"city": "Lisbon", "country": "Portugal"},
        }

        listing = transform_listing_response(raw, "999")

        assert listing["id"] == "999"
        assert listing["title"] == "Tiny house"
        assert listing["photos"] == [{"url": "https://a0.muscache.com/x.jpg", "sort_order": 0}]
        assert listing["amenities"][0]["type"] == "SYSTEM_WIFI"
        assert listing["guests"] == 3
        assert listing["bedrooms"] == 1
        assert listing["address"]["city"] == "Lisbon"
        assert listing["price"] == 0

    def test_transform_provider_error(self):
        with pytest.raises(ExternalListingError):
            transform_listing_response({"error": "listing not found"}, "1")

    @pytest.mark.parametrize("payload", [{"data": [{"id": 1}]}, {"property": "unavailable"}, [{"id": 1}]])
    def test_transform_rejects_non_object_listing(self, payload):
        with pytest.raises(ExternalListingError):
            transform_listing_response(payload, "123")

    def test_transform_ignores_malformed_fields(self):
        raw = {
            "title": {"text": "Nice flat"},
            "description": ["not", "text"],
            "address": "Paris, France",
            "roomType": {"label": "Loft"},
            "photos": [
                {"url": {"href": "https://a0.muscache.com/bad.jpg"}},
                {"url": "https://a0.muscache.com/2.jpg", "sortOrder": "2"},
                {"url": "https://a0.muscache.com/1.jpg", "sortOrder": 1},
                {"url": "https://a0.muscache.com/3.jpg", "sortOrder": {"n": 3}},
            ],
            "amenities": [{"title": ["Wifi"]}, {"title": "Pool", "type": 7}],
            "guestCapacity": float("inf"),
            "price": {"amount": float("nan"), "rate": 90},
        }

        listing = transform_listing_response(raw, "55")
        mapped = map_listing_to_property(listing)

        assert listing["title"] == ""
        assert listing["description"] == ""
        assert listing["guests"] == 2
        assert listing["price"] == 90
        assert mapped.title == "Imported Airbnb property"
        assert mapped.photos == [
            "https://a0.muscache.com/1.jpg",
            "https://a0.muscache.com/2.jpg",
            "https://a0.muscache.com/3.jpg",
        ]
        assert mapped.amenities == ["Pool"]
        assert mapped.category == PropertyCategory.APARTMENT

    def test_map_listing(self):
        mapped = map_listing_to_property(transform_listing_response(LISTING_RESPONSE, "12345"))

        assert mapped.title == "Cozy loft in Copacabana"
        assert mapped.category == PropertyCategory.APARTMENT
        assert mapped.photos == ["https://a0.muscache.com/1.jpg", "https://a0.muscache.com/2.jpg"]
        assert mapped.amenities == ["Wi-Fi", "Pool", "Hair dryer"]
        assert mapped.max_guests == 4
        assert mapped.base_price == 320
        assert mapped.minimum_nights == 2
        assert mapped.high_season_months == [12, 1, 2, 7]
        assert mapped.external_id == "12345"
        assert mapped.external_source == "airbnb"
        assert mapped.address == "Rio de Janeiro, State of Rio de Janeiro, Brazil"

    def test_mapping_is_deterministic(self):
        listing = transform_listing_response(LISTING_RESPONSE, "12345")

        assert map_listing_to_property(listing) == map_listing_to_property(listing)

    @pytest.mark.parametrize(
        "room_type,category",
        [
            ("Entire house", PropertyCategory.HOUSE),
            ("Private room in villa", PropertyCategory.VILLA),
            ("Loft", PropertyCategory.STUDIO),
            ("Condo", PropertyCategory.CONDO),
            ("Treehouse", PropertyCategory.HOUSE),
            ("", PropertyCategory.APARTMENT),
        ],
    )
    def test_category_mapping(self, room_type, category):
        assert map_property_category(room_type) == category

    def test_validate_mapped_property(self):
        listing = transform_listing_response({"title": "", "photos": []}, "1")
        mapped = map_listing_to_property(listing)
        mapped.title = ""

        errors = validate_mapped_property(mapped)

        assert "Title is required" in errors
        assert "Address is required" in errors
        assert "At least one photo is required" in errors


class TestImportListing:
    """Test the fetch and import flow."""

    def test_invalid_url_makes_no_request(self):
        http = MagicMock()
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        result = service.import_listing("https://www.airbnb.com/users/show/1")

        assert result.valid is False
        assert result.errors
        http.get.assert_not_called()

    def test_import_listing(self):
        http = MagicMock()
        http.get.return_value = _response()
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        result = service.import_listing("https://www.airbnb.com/rooms/12345?adults=2")

        assert result.valid is True
        assert result.listing_id == "12345"
        assert result.property.title == "Cozy loft in Copacabana"
        _, kwargs = http.get.call_args
        assert kwargs["headers"]["x-api-key"] == "key"
        assert kwargs["params"] == {"url": "https://www.airbnb.com/rooms/12345"}

    def test_mapping_errors_are_returned(self):
        http = MagicMock()
        http.get.return_value = _response(payload={"property": {"title": "No photos", "address": "Paris, France"}})
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        result = service.import_listing("https://www.airbnb.com/rooms/1")

        assert result.valid is False
        assert result.errors == ["At least one photo is required"]
        assert result.property is not None

    def test_provider_error_payload_is_returned(self):
        http = MagicMock()
        http.get.return_value = _response(payload={"error": "Listing unavailable"})
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        result = service.import_listing("https://www.airbnb.com/rooms/1")

        assert result.valid is False
        assert result.errors == ["Listing unavailable"]

    def test_missing_api_key(self):
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="", http=MagicMock())

        with pytest.raises(ExternalListingError) as exc_info:
            service.fetch_listing("12345")

        assert exc_info.value.status_code == 503

    @patch("app.services.airbnb_import_service.time.sleep")
    def test_retries_connection_errors(self, mock_sleep):
        http = MagicMock()
        http.get.side_effect = [requests.exceptions.ConnectionError("refused"), _response()]
        service = AirbnbImportService(
            api_url="https://scraper.test/airbnb", api_key="key", max_retries=3, http=http
        )

        raw = service.fetch_listing("12345")

        assert raw == LISTING_RESPONSE
        assert http.get.call_count == 2
        mock_sleep.assert_called_once()

    @patch("app.services.airbnb_import_service.time.sleep")
    def test_gives_up_after_retries(self, mock_sleep):
        http = MagicMock()
        http.get.side_effect = requests.exceptions.Timeout("slow")
        service = AirbnbImportService(
            api_url="https://scraper.test/airbnb", api_key="key", max_retries=2, http=http
        )

        with pytest.raises(ExternalListingError) as exc_info:
            service.fetch_listing("12345")

        assert exc_info.value.status_code == 502
        assert http.get.call_count == 2

    def test_client_error_is_not_retried(self):
        http = MagicMock()
        http.get.return_value = _response(status_code=404)
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        with pytest.raises(ExternalListingError) as exc_info:
            service.fetch_listing("12345")

        assert exc_info.value.status_code == 404
        assert http.get.call_count == 1

    def test_non_object_listing_is_returned_as_error(self):
        http = MagicMock()
        http.get.return_value = _response(payload={"data": [{"id": 1}]})
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        result = service.import_listing("https://www.airbnb.com/rooms/123")

        assert result.valid is False
        assert result.listing_id == "123"
        assert result.errors == ["Unexpected listing format from listing provider"]

    def test_malformed_fields_never_raise(self):
        http = MagicMock()
        http.get.return_value = _response(payload={
            "title": {"text": "Nice flat"},
            "address": "Paris, France",
            "photos": [{"url": "https://a0.muscache.com/1.jpg", "sortOrder": "first"}],
        })
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        result = service.import_listing("https://www.airbnb.com/rooms/1")

        assert result.valid is True
        assert result.property.title == "Imported Airbnb property"
        assert result.property.photos == ["https://a0.muscache.com/1.jpg"]

    @pytest.mark.parametrize("error", [TypeError("bad type"), ValueError("bad value")])
    def test_mapping_exceptions_are_returned_as_errors(self, error):
        http = MagicMock()
        http.get.return_value = _response()
        service = AirbnbImportService(api_url="https://scraper.test/airbnb", api_key="key", http=http)

        with patch("app.services.airbnb_import_service.map_listing_to_property", side_effect=error):
            result = service.import_listing("https://www.airbnb.com/rooms/12345")

        assert result.valid is False
        assert result.property is None
        assert result.errors == [f"Invalid listing data: {error}"]
