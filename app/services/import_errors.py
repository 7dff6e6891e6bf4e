"""
Exceptions raised by the property import services.
"""
from typing import List, Optional


class PropertyImportError(Exception):
    """Base class for import failures."""


class ImportConflictError(PropertyImportError):
    """Another import is still running for the tenant."""

    def __init__(self, tenant_id: str, job_id: Optional[str] = None):
        self.tenant_id = tenant_id
        self.job_id = job_id
        super().__init__(f"An import is already in progress for tenant {tenant_id}")


class BatchValidationError(PropertyImportError):
    """The batch document cannot be processed at all."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors) or "Invalid import document")


class ExternalListingError(PropertyImportError):
    """Fetching an external listing failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class MediaProcessingError(PropertyImportError):
    """A single media file could not be downloaded or stored."""
