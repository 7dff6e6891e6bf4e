"""
Client-side poller for the import status endpoint.

Polls at a fixed interval until the job reaches a terminal stage. The poller
always ends with a terminal snapshot: lost jobs, repeated failures and the
attempt ceiling are turned into a synthetic ``database`` error.
"""
import logging
import time
from typing import Callable, Optional

import requests
from pydantic import BaseModel

from app.models.import_schemas import ImportErrorDetail, ImportErrorType, ImportProgress, ImportStage
from app.services.config_service import config_service

logger = logging.getLogger("app.import.poller")

STATUS_PATH = "/api/properties/import/status"
TIMEOUT_MESSAGE = "Import status polling timed out"


class JobNotTracked(Exception):
    """The status endpoint answered 404."""


class PollResult(BaseModel):
    progress: Optional[ImportProgress] = None
    # No job tracked for the tenant: never started or already cleaned up
    not_found: bool = False
    timed_out: bool = False
    attempts: int = 0


class ImportStatusPoller:
    """Bounded polling loop against ``GET /api/properties/import/status``."""

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        max_failures: Optional[int] = None,
        http: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[Callable[[ImportProgress], None]] = None,
        request_timeout: float = 10,
    ):
        self.status_url = base_url.rstrip("/") + STATUS_PATH
        self.token_provider = token_provider
        self.interval = float(interval if interval is not None else config_service.get_setting("IMPORT_POLL_INTERVAL_SECONDS"))
        self.max_attempts = int(max_attempts or config_service.get_setting("IMPORT_POLL_MAX_ATTEMPTS"))
        self.max_failures = int(max_failures or config_service.get_setting("IMPORT_POLL_MAX_FAILURES"))
        self.http = http or requests.Session()
        self.sleep = sleep
        self.on_progress = on_progress
        self.request_timeout = request_timeout

    def poll(self) -> PollResult:
        """
        Poll until a terminal stage, a 404, or the attempt ceiling.

        Returns:
            PollResult; ``progress`` is terminal unless the job was not found
        """
        last: Optional[ImportProgress] = None
        failures = 0

        for attempt in range(1, self.max_attempts + 1):
            try:
                progress = self._fetch()
            except JobNotTracked:
                logger.info(f"No import job tracked (attempt {attempt})")
                return PollResult(progress=last, not_found=True, attempts=attempt)
            except (requests.RequestException, ValueError, KeyError, PermissionError) as e:
                failures += 1
                logger.warning(f"Import status poll failed ({failures}/{self.max_failures}): {e}")
                if failures >= self.max_failures:
                    return PollResult(
                        progress=self._synthetic_failure(last, f"Lost track of import status: {e}"),
                        attempts=attempt,
                    )
            else:
                failures = 0
                last = progress
                if self.on_progress:
                    self.on_progress(progress)
                if progress.is_terminal:
                    logger.info(
                        f"Import finished: stage={progress.stage.value} "
                        f"completed={progress.completed_count} failed={progress.failed_count}"
                    )
                    return PollResult(progress=progress, attempts=attempt)

            if attempt < self.max_attempts:
                self.sleep(self.interval)

        logger.warning(f"Import status polling gave up after {self.max_attempts} attempts")
        return PollResult(
            progress=self._synthetic_failure(last, TIMEOUT_MESSAGE),
            timed_out=True,
            attempts=self.max_attempts,
        )

    def _fetch(self) -> ImportProgress:
        token = self.token_provider()
        if not token:
            raise PermissionError("Authentication token unavailable")

        response = self.http.get(
            self.status_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.request_timeout,
        )
        if response.status_code == 404:
            raise JobNotTracked("Import job not found")
        if response.status_code != 200:
            raise ValueError(f"Unexpected status {response.status_code}")

        data = response.json()
        return ImportProgress.model_validate(data["progress"])

    @staticmethod
    def _synthetic_failure(last: Optional[ImportProgress], message: str) -> ImportProgress:
        progress = last or ImportProgress()
        errors = list(progress.errors)
        errors.append(ImportErrorDetail(entry_index=-1, message=message, type=ImportErrorType.DATABASE))
        return progress.model_copy(update={"stage": ImportStage.FAILED, "errors": errors})
