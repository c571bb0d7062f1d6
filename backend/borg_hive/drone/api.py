"""HTTP client for reporting run outcomes to the vinculum."""

from __future__ import annotations

import time

import requests
from pydantic import BaseModel, ValidationError

from borg_hive.core.logging import get_logger
from borg_hive.drone.types import ReportError
from borg_hive.models.reports import ApiErrorResponse, ErrorReport, StatReport

logger = get_logger(__name__)

API_PREFIX = "/api/drone/v1"
DEFAULT_TIMEOUT = (10, 10)
DEFAULT_DEADLINE = 10.0
_CHUNK_SIZE = 1024


class VinculumApi:
    """Bearer-authenticated client for the drone endpoints of the vinculum.

    ``timeout`` bounds connecting and each socket read. ``deadline`` bounds
    the whole request; it is checked between reads, so a stalled read can
    overrun it by at most the read timeout.
    """

    def __init__(
        self,
        address: str,
        token: str,
        session: requests.Session | None = None,
        timeout: tuple[float, float] = DEFAULT_TIMEOUT,
        deadline: float = DEFAULT_DEADLINE,
    ) -> None:
        self.address = address.rstrip("/")
        self.session = session or requests.Session()
        self.headers = {"Authorization": f"Bearer {token}"}
        self.timeout = timeout
        self.deadline = deadline

    def send_stats(self, report: StatReport) -> ReportError | None:
        """Send the stats of a successful run."""
        return self._post("/stats", report)

    def send_error(self, report: ErrorReport) -> ReportError | None:
        """Send the error of a failed run."""
        return self._post("/error", report)

    def _post(self, path: str, report: BaseModel) -> ReportError | None:
        url = f"{self.address}{API_PREFIX}{path}"
        expires = time.monotonic() + self.deadline
        try:
            resp = self.session.post(
                url,
                data=report.model_dump_json(),
                headers={**self.headers, "Content-Type": "application/json"},
                timeout=self.timeout,
                stream=True,
            )
            with resp:
                body = _read_body(resp, expires)
        except requests.RequestException as exc:
            return ReportError(f"Error while sending request to {url}: {exc}")
        if body is None:
            return ReportError(f"Request to {url} took longer than {self.deadline:g}s")

        if resp.status_code == 200:
            logger.debug("Reported to %s", url)
            return None
        if resp.status_code in (400, 500):
            try:
                error = ApiErrorResponse.model_validate_json(body)
            except ValidationError as exc:
                return ReportError(f"Could not deserialize error response: {exc}")
            return ReportError(f"Error code {error.code}: {error.message}")
        return ReportError(f"Unknown error returned: {body.decode(resp.encoding or 'utf-8', 'replace')}")


def _read_body(resp: requests.Response, expires: float) -> bytes | None:
    """Read the response body; None once the deadline has passed."""
    chunks: list[bytes] = []
    if time.monotonic() > expires:
        return None
    for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
        chunks.append(chunk)
        if time.monotonic() > expires:
            return None
    return b"".join(chunks)


__all__ = ["API_PREFIX", "VinculumApi"]
