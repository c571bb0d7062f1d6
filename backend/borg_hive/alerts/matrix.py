"""Minimal Matrix client-server API client: login, join, send."""

from __future__ import annotations

from enum import Enum
from urllib.parse import quote

import httpx

from borg_hive.core.logging import get_logger
from borg_hive.utils.ids import random_alphanumeric

logger = get_logger(__name__)

LOGIN_TIMEOUT = 3.0
HTML_FORMAT = "org.matrix.custom.html"


class ChatErrorKind(str, Enum):
    LOGIN_FAILED = "login_failed"
    BAD_REQUEST = "bad_request"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


_KIND_MESSAGES = {
    ChatErrorKind.LOGIN_FAILED: "Login failed",
    ChatErrorKind.BAD_REQUEST: "Bad request",
    ChatErrorKind.RATE_LIMITED: "Run into rate limit",
    ChatErrorKind.UNKNOWN: "unknown error",
}


class MatrixError(Exception):
    """A request to the homeserver failed; ``kind`` tells how."""

    def __init__(self, kind: ChatErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        message = _KIND_MESSAGES[kind]
        super().__init__(f"{message}: {detail}" if detail else message)


class MatrixClient:
    """Holds the homeserver session of the vinculum's alert account."""

    def __init__(self, homeserver: str, http_client: httpx.AsyncClient | None = None) -> None:
        self.homeserver = homeserver.rstrip("/")
        self.access_token: str | None = None
        self._http = http_client or httpx.AsyncClient()

    async def login(self, username: str, password: str) -> None:
        """Perform a password login and keep the returned access token."""
        payload = {
            "type": "m.login.password",
            "identifier": {"type": "m.id.user", "user": username},
            "password": password,
        }
        res = await self._request("POST", "/_matrix/client/v3/login", json=payload, timeout=LOGIN_TIMEOUT)
        try:
            self.access_token = res.json()["access_token"]
        except (ValueError, KeyError) as exc:
            raise MatrixError(ChatErrorKind.UNKNOWN, f"Invalid login response: {exc}") from exc

    async def join_room(self, room_id: str) -> None:
        await self._request("POST", f"/_matrix/client/v3/join/{_room(room_id)}", headers=self._auth_header())

    async def send_message(self, room_id: str, body: str, formatted_body: str | None = None) -> None:
        """Send an ``m.text`` message, optionally with an HTML variant."""
        txn_id = random_alphanumeric(16)
        payload: dict[str, str] = {"body": body, "msgtype": "m.text"}
        if formatted_body is not None:
            payload["format"] = HTML_FORMAT
            payload["formatted_body"] = formatted_body
        await self._request(
            "PUT",
            f"/_matrix/client/v3/rooms/{_room(room_id)}/send/m.room.message/{txn_id}",
            json=payload,
            headers=self._auth_header(),
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth_header(self) -> dict[str, str]:
        if self.access_token is None:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            res = await self._http.request(method, f"{self.homeserver}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise MatrixError(ChatErrorKind.UNKNOWN, str(exc)) from exc
        _check_response(res)
        return res


def _room(room_id: str) -> str:
    return quote(room_id, safe="")


def _check_response(res: httpx.Response) -> None:
    if res.status_code == 400:
        logger.warning("Received bad request: %s", res.text)
        raise MatrixError(ChatErrorKind.BAD_REQUEST)
    if res.status_code == 403:
        raise MatrixError(ChatErrorKind.LOGIN_FAILED)
    if res.status_code == 429:
        raise MatrixError(ChatErrorKind.RATE_LIMITED)
    if res.status_code != 200:
        logger.warning("Received status code: %s: %s", res.status_code, res.text)
        raise MatrixError(ChatErrorKind.UNKNOWN, f"status {res.status_code}")


__all__ = ["ChatErrorKind", "MatrixClient", "MatrixError"]
