"""
Tests for the client-side import status poller.
"""
from unittest.mock import MagicMock

import requests

from app.models.import_schemas import ImportErrorType, ImportStage
from app.services.import_poller import TIMEOUT_MESSAGE, ImportStatusPoller


def _status(stage, completed=0, failed=0, errors=None):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {
        "progress": {
            "total": 2,
            "completedCount": completed,
            "failedCount": failed,
            "currentEntryLabel": "Beach House",
            "stage": stage,
            "errors": errors or [],
        },
        "completed": stage in ("completed", "failed"),
    }
    return response


def _http_status(code):
    response = MagicMock()
    response.status_code = code
    return response


def _poller(responses, token="token", **kwargs):
    http = MagicMock()
    http.get.side_effect = responses
    sleeps = []
    poller = ImportStatusPoller(
        "http://api.test/",
        token_provider=lambda: token,
        http=http,
        sleep=sleeps.append,
        **kwargs,
    )
    return poller, http, sleeps


def test_polls_until_completed():
    seen = []
    poller, http, sleeps = _poller(
        [_status("validating"), _status("saving_properties", completed=1), _status("completed", completed=2)],
        interval=2,
        on_progress=seen.append,
    )

    result = poller.poll()

    assert result.progress.stage == ImportStage.COMPLETED
    assert result.progress.completed_count == 2
    assert result.attempts == 3
    assert sleeps == [2, 2]
    assert [p.stage for p in seen] == [ImportStage.VALIDATING, ImportStage.SAVING_PROPERTIES, ImportStage.COMPLETED]
    _, kwargs = http.get.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer token"}
    assert http.get.call_args[0][0] == "http://api.test/api/properties/import/status"


def test_failed_stage_is_terminal():
    errors = [{"entryIndex": -1, "message": "Invalid JSON format", "type": "validation"}]
    poller, _, _ = _poller([_status("failed", errors=errors)])

    result = poller.poll()

    assert result.progress.stage == ImportStage.FAILED
    assert result.progress.errors[0].message == "Invalid JSON format"


def test_not_found_is_not_failure():
    poller, _, _ = _poller([_status("validating"), _http_status(404)])

    result = poller.poll()

    assert result.not_found is True
    assert result.progress.stage == ImportStage.VALIDATING


def test_attempt_ceiling_synthesizes_timeout():
    poller, http, sleeps = _poller([_status("processing_media")] * 5, max_attempts=5)

    result = poller.poll()

    assert result.timed_out is True
    assert http.get.call_count == 5
    assert len(sleeps) == 4
    assert result.progress.stage == ImportStage.FAILED
    assert result.progress.errors[-1].message == TIMEOUT_MESSAGE
    assert result.progress.errors[-1].type == ImportErrorType.DATABASE


def test_transient_failures_are_retried():
    poller, _, _ = _poller(
        [requests.exceptions.ConnectionError("down"), _http_status(502), _status("completed", completed=2)],
        max_failures=3,
    )

    result = poller.poll()

    assert result.progress.stage == ImportStage.COMPLETED
    assert result.progress.errors == []


def test_repeated_failures_surface_database_error():
    poller, http, _ = _poller(
        [_status("saving_properties", completed=1)] + [_http_status(500)] * 3,
        max_failures=3,
    )

    result = poller.poll()

    assert http.get.call_count == 4
    assert result.progress.stage == ImportStage.FAILED
    assert result.progress.completed_count == 1
    assert result.progress.errors[-1].type == ImportErrorType.DATABASE
    assert result.progress.errors[-1].entry_index == -1


def test_missing_token_counts_as_failure():
    poller, http, _ = _poller([], token=None, max_failures=2)

    result = poller.poll()

    http.get.assert_not_called()
    assert result.progress.stage == ImportStage.FAILED
    assert "token" in result.progress.errors[-1].message
