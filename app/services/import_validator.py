"""
Validation of property import documents.

The same functions back the validate endpoint (fast feedback on file
selection) and the job runner (re-validation at job start), so they must stay
pure: no database, no network.
"""
import json
import logging
from typing import Any, List, Optional, Tuple, Union

from pydantic import ValidationError

from app.models.import_schemas import (
    ImportBatchEnvelope,
    ImportErrorDetail,
    ImportErrorType,
    PropertyEntry,
    ValidationResult,
)
from app.services.import_errors import BatchValidationError

logger = logging.getLogger("app.import.validator")

INVALID_JSON_MESSAGE = "Invalid JSON format"


def decode_document(content: Union[str, bytes, dict, list]) -> Any:
    """
    Decode raw import content into Python data.

    Raises:
        BatchValidationError: when the content is not valid JSON
    """
    if isinstance(content, (dict, list)):
        return content
    try:
        if isinstance(content, bytes):
            content = content.decode("utf-8-sig")
        return json.loads(content)
    except (UnicodeDecodeError, ValueError, TypeError):
        raise BatchValidationError([INVALID_JSON_MESSAGE])


def _field_path(loc: Tuple[Any, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def parse_batch(document: Any) -> ImportBatchEnvelope:
    """
    Validate the batch-level structure of a decoded document.

    Entries are left untouched; they are validated one by one by
    ``validate_entry``.

    Raises:
        BatchValidationError: when the document cannot be imported at all
    """
    if not isinstance(document, dict):
        raise BatchValidationError(["Import document must be a JSON object"])

    try:
        return ImportBatchEnvelope.model_validate(document)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            path = _field_path(error["loc"])
            if path == "properties" and error["type"] == "missing":
                errors.append("properties: at least one property is required")
            elif path == "properties" and error["type"] == "too_short":
                errors.append("properties: at least one property is required")
            else:
                errors.append(f"{path}: {error['msg']}")
        raise BatchValidationError(errors)


def validate_entry(raw: Any, index: int) -> Tuple[Optional[PropertyEntry], List[ImportErrorDetail]]:
    """
    Validate one entry of a batch.

    Returns:
        (entry, []) when valid, (None, errors) otherwise
    """
    title = raw.get("title") if isinstance(raw, dict) else None
    title = title if isinstance(title, str) else None

    if not isinstance(raw, dict):
        return None, [
            ImportErrorDetail(
                entry_index=index,
                message="Property entry must be an object",
                type=ImportErrorType.VALIDATION,
            )
        ]

    try:
        return PropertyEntry.model_validate(raw), []
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field = _field_path(error["loc"]) or None
            errors.append(
                ImportErrorDetail(
                    entry_index=index,
                    entry_title=title,
                    field=field,
                    message=error["msg"],
                    type=ImportErrorType.VALIDATION,
                )
            )
        return None, errors


def format_entry_error(error: ImportErrorDetail) -> str:
    """Render an entry error as a single line for the validate endpoint."""
    prefix = f"properties[{error.entry_index}]"
    if error.field:
        prefix = f"{prefix}.{error.field}"
    return f"{prefix}: {error.message}"


def validate_import_content(content: Union[str, bytes, dict, list]) -> ValidationResult:
    """
    Validate a raw import document without side effects.

    Args:
        content: file content, request body or already decoded JSON

    Returns:
        ValidationResult with ``valid`` and the list of error messages
    """
    try:
        document = decode_document(content)
        envelope = parse_batch(document)
    except BatchValidationError as e:
        return ValidationResult(valid=False, errors=e.errors)

    errors: List[str] = []
    for index, raw in enumerate(envelope.properties):
        _, entry_errors = validate_entry(raw, index)
        errors.extend(format_entry_error(error) for error in entry_errors)

    if errors:
        logger.info(f"Import document rejected with {len(errors)} errors")

    return ValidationResult(valid=not errors, errors=errors)
