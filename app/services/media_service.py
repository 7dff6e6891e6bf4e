"""
Media processing for imported properties.

Downloads external photo and video URLs, stores them under the tenant's media
root and optionally creates photo thumbnails.
"""
import logging
import time
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import List, Optional
from urllib.parse import urlparse

import requests
from PIL import Image, ImageOps
from pydantic import BaseModel

from app.models.import_schemas import is_http_url
from app.services.config_service import config_service
from app.services.import_errors import MediaProcessingError

logger = logging.getLogger("app.media")

USER_AGENT = "StayDesk Property Import Bot/1.0"
THUMBNAIL_SIZE = (300, 200)
CHUNK_SIZE = 64 * 1024


class MediaResult(BaseModel):
    original_url: str
    new_url: Optional[str] = None
    success: bool
    error: Optional[str] = None
    type: str
    size: Optional[int] = None
    thumbnail_url: Optional[str] = None


class MediaProcessingService:
    """Service for downloading and storing property media."""

    def __init__(
        self,
        tenant_id: str,
        create_thumbnails: bool = True,
        validate_media: bool = True,
        media_root: Optional[str] = None,
        base_url: Optional[str] = None,
        max_file_mb: Optional[float] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.tenant_id = tenant_id
        self.create_thumbnails = create_thumbnails
        self.validate_media = validate_media
        self.media_root = Path(media_root or config_service.get_setting("MEDIA_ROOT"))
        self.base_url = (base_url or config_service.get_setting("MEDIA_BASE_URL")).rstrip("/")
        self.max_file_mb = float(max_file_mb or config_service.get_setting("MEDIA_MAX_FILE_MB"))
        self.timeout = float(timeout or config_service.get_setting("MEDIA_TIMEOUT"))
        self.http = http or requests.Session()
        self.http.headers.update({"User-Agent": USER_AGENT})

    def process_media_urls(self, urls: List[str], media_type: str, property_key: str) -> List[MediaResult]:
        """
        Process media URLs one after another.

        Args:
            urls: external URLs
            media_type: "photo" or "video"
            property_key: folder name for this property's media

        Returns:
            One result per URL, in input order
        """
        if not urls:
            return []

        logger.info(f"Processing {len(urls)} {media_type}s for {property_key} tenant={self.tenant_id}")

        results = [self.process_media_url(url, media_type, property_key, index) for index, url in enumerate(urls)]

        success_count = sum(1 for r in results if r.success)
        logger.info(f"Media batch done: {success_count}/{len(urls)} {media_type}s stored for {property_key}")
        return results

    def process_media_url(self, url: str, media_type: str, property_key: str, index: int) -> MediaResult:
        """Download and store a single media URL. Never raises."""
        try:
            if not is_http_url(url):
                raise MediaProcessingError("Invalid URL format")

            if self.validate_media and not self.validate_media_url(url, media_type):
                raise MediaProcessingError(f"URL does not point to a valid {media_type}")

            content = self._download(url)

            extension = self._get_file_extension(url) or ("jpg" if media_type == "photo" else "mp4")
            filename = f"{property_key}_{media_type}_{index + 1}_{int(time.time() * 1000)}.{extension}"
            relative = PurePosixPath("tenants", self.tenant_id, "properties", property_key, f"{media_type}s", filename)
            new_url = self._store(relative, content)

            thumbnail_url = None
            if media_type == "photo" and self.create_thumbnails:
                try:
                    thumbnail_url = self._create_thumbnail(content, filename, property_key)
                except Exception as e:
                    logger.warning(f"Failed to create thumbnail for {filename}: {e}")

            return MediaResult(
                original_url=url,
                new_url=new_url,
                success=True,
                type=media_type,
                size=len(content),
                thumbnail_url=thumbnail_url,
            )

        except (MediaProcessingError, requests.RequestException, OSError) as e:
            logger.error(f"Failed to process media URL {url[:100]}: {e}")
            return MediaResult(original_url=url, success=False, error=str(e), type=media_type)

    def validate_media_url(self, url: str, media_type: str) -> bool:
        """Check with a HEAD request that the URL serves the expected content type."""
        try:
            response = self.http.head(url, timeout=5, allow_redirects=True)
        except requests.RequestException:
            return False
        if not response.ok:
            return False

        content_type = response.headers.get("content-type", "")
        expected = "image/" if media_type == "photo" else "video/"
        return content_type.startswith(expected)

    def _download(self, url: str) -> bytes:
        limit = int(self.max_file_mb * 1024 * 1024)

        with self.http.get(url, timeout=self.timeout, stream=True) as response:
            if not response.ok:
                raise MediaProcessingError(f"HTTP {response.status_code}: {response.reason}")

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > limit:
                raise MediaProcessingError(f"File too large: {int(declared) / 1024 / 1024:.2f}MB")

            buffer = BytesIO()
            for chunk in response.iter_content(CHUNK_SIZE):
                buffer.write(chunk)
                if buffer.tell() > limit:
                    raise MediaProcessingError(f"File too large: more than {self.max_file_mb:g}MB")

        return buffer.getvalue()

    def _store(self, relative: PurePosixPath, content: bytes) -> str:
        path = self.media_root.joinpath(*relative.parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.debug(f"Media stored: {path}")
        return f"{self.base_url}/{relative}"

    def _create_thumbnail(self, content: bytes, filename: str, property_key: str) -> str:
        image = Image.open(BytesIO(content))
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        thumb = ImageOps.fit(image, THUMBNAIL_SIZE, Image.Resampling.LANCZOS)
        out = BytesIO()
        thumb.save(out, format="JPEG", quality=80, optimize=True)

        thumb_name = f"thumb_{PurePosixPath(filename).stem}.jpg"
        relative = PurePosixPath("tenants", self.tenant_id, "properties", property_key, "thumbnails", thumb_name)
        return self._store(relative, out.getvalue())

    @staticmethod
    def _get_file_extension(url: str) -> Optional[str]:
        suffix = PurePosixPath(urlparse(url).path).suffix
        return suffix[1:].lower() if suffix else None
