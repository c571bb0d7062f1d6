"""Tests for the drone's vinculum client."""

from __future__ import annotations

import itertools

import orjson
import pytest
import requests

from borg_hive.drone import api as api_module
from borg_hive.drone.api import VinculumApi
from borg_hive.models.reports import CreateStats, ErrorReport, Stage, StatReport

STATS = StatReport(
    create_stats=CreateStats(original_size=1, compressed_size=1, deduplicated_size=1, nfiles=1, duration=0.5)
)


def _response(status: int, body: bytes = b"") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp._content_consumed = True
    resp.encoding = "utf-8"
    return resp


class FakeSession:
    def __init__(self, response: requests.Response | None = None, exc: Exception | None = None) -> None:
        self.response = response
        self.exc = exc
        self.calls: list[dict] = []

    def post(self, url: str, **kwargs) -> requests.Response:
        self.calls.append({"url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response


def _api(session: FakeSession, deadline: float = 10.0) -> VinculumApi:
    return VinculumApi("http://vinculum:8080/", "drone-token", session=session, deadline=deadline)


def test_send_stats_success() -> None:
    session = FakeSession(_response(200))
    assert _api(session).send_stats(STATS) is None

    call = session.calls[0]
    assert call["url"] == "http://vinculum:8080/api/drone/v1/stats"
    assert call["headers"]["Authorization"] == "Bearer drone-token"
    assert call["timeout"] == (10, 10)
    assert call["stream"] is True
    payload = orjson.loads(call["data"])
    assert payload["pre_hook_stats"] is None
    assert payload["create_stats"]["nfiles"] == 1


def test_send_error_posts_stage_wire_value() -> None:
    session = FakeSession(_response(200))
    report = ErrorReport(state=Stage.POST_HOOK, custom="boom")
    assert _api(session).send_error(report) is None

    call = session.calls[0]
    assert call["url"].endswith("/api/drone/v1/error")
    assert orjson.loads(call["data"]) == {"state": "PostHook", "custom": "boom", "stdout": None, "stderr": None}


@pytest.mark.parametrize("status", [400, 500])
def test_structured_error_response(status: int) -> None:
    body = orjson.dumps({"code": 1000, "message": "Unauthenticated"})
    error = _api(FakeSession(_response(status, body))).send_stats(STATS)
    assert error is not None
    assert error.message == "Error code 1000: Unauthenticated"


def test_undecodable_error_response() -> None:
    error = _api(FakeSession(_response(500, b"<html>oops</html>"))).send_stats(STATS)
    assert error is not None
    assert error.message.startswith("Could not deserialize error response")


def test_unexpected_status() -> None:
    error = _api(FakeSession(_response(418, b"teapot"))).send_stats(STATS)
    assert error is not None
    assert str(error) == "Unknown error returned: teapot"


def test_transport_failure() -> None:
    session = FakeSession(exc=requests.ConnectionError("connection refused"))
    error = _api(session).send_error(ErrorReport(state=Stage.CREATE))
    assert error is not None
    assert "connection refused" in error.message


def test_overall_deadline_is_enforced() -> None:
    error = _api(FakeSession(_response(200)), deadline=-1).send_stats(STATS)
    assert error is not None
    assert "took longer than" in error.message


def test_slow_body_exceeds_deadline(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = itertools.chain([0.0, 1.0, 2.0], itertools.repeat(30.0))
    monkeypatch.setattr(api_module.time, "monotonic", lambda: next(clock))
    body = b"x" * 4096
    error = _api(FakeSession(_response(418, body))).send_stats(STATS)
    assert error is not None
    assert "took longer than 10s" in error.message
