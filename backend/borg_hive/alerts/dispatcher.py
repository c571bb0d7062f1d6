"""Background delivery of drone failures to the operators' chat room."""

from __future__ import annotations

import asyncio
import html
from dataclasses import dataclass

from borg_hive.alerts.matrix import ChatErrorKind, MatrixClient, MatrixError
from borg_hive.core.logging import get_logger
from borg_hive.core.metrics import ALERT_QUEUE_DEPTH, ALERTS_DISPATCHED
from borg_hive.models.entities import Drone
from borg_hive.models.reports import ErrorReport

logger = get_logger(__name__)

QUEUE_SIZE = 16


@dataclass(slots=True, frozen=True)
class AlertMessage:
    body: str
    formatted_body: str


def render_alert(drone: Drone, report: ErrorReport) -> AlertMessage:
    """Build the plain and HTML bodies announcing a failed run."""
    state = str(report.state)
    body = f"🚨 The vinculum reports alarm for drone {drone.name}!\n\n{drone.name} failed in {state}\n\n"
    if report.custom is not None:
        body += f"Custom error:\n{report.custom}\n\n"
    if report.stderr is not None:
        body += f"Stderr:\n{report.stderr}\n\n"
    if report.stdout is not None:
        body += f"Stdout:\n{report.stdout}"

    name = f'<font color="cyan">{html.escape(drone.name)}</font>'
    parts = [
        f"<h4>🚨 The vinculum reports alarm for drone {name}!</h4>",
        f"<p>{name} failed in {state}</p>",
    ]
    if report.custom is not None:
        parts.append(f"<p>Custom error:<br><code>{html.escape(report.custom)}</code></p>")
    if report.stderr is not None:
        parts.append(f"<p>Stderr:<br><pre>{html.escape(report.stderr)}</pre></p>")
    if report.stdout is not None:
        parts.append(f"<p>Stdout:<br><pre>{html.escape(report.stdout)}</pre></p>")
    return AlertMessage(body=body.rstrip("\n"), formatted_body="\n".join(parts))


class AlertDispatcher:
    """Single consumer turning queued (drone, error) pairs into chat messages.

    Producers wait in ``enqueue`` while the queue is full. A send rejected
    because the session expired triggers a new login and room join; that
    message is not resent. Any other failed send is logged and dropped.
    """

    def __init__(
        self,
        matrix: MatrixClient,
        username: str,
        password: str,
        room_id: str,
        maxsize: int = QUEUE_SIZE,
    ) -> None:
        self.matrix = matrix
        self.username = username
        self.password = password
        self.room_id = room_id
        self.queue: asyncio.Queue[tuple[Drone, ErrorReport]] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Log in, join the room and start draining the queue."""
        logger.info("Logging in to matrix")
        await self._login()
        self._task = asyncio.create_task(self._run(), name="alert-dispatcher")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.matrix.aclose()

    async def enqueue(self, drone: Drone, report: ErrorReport) -> None:
        await self.queue.put((drone, report))
        ALERT_QUEUE_DEPTH.set(self.queue.qsize())

    async def _login(self) -> None:
        await self.matrix.login(self.username, self.password)
        await self.matrix.join_room(self.room_id)

    async def _run(self) -> None:
        while True:
            drone, report = await self.queue.get()
            ALERT_QUEUE_DEPTH.set(self.queue.qsize())
            try:
                await self._dispatch(drone, report)
            except Exception:
                logger.exception("Unexpected error while dispatching alert for drone %s", drone.name)
            finally:
                self.queue.task_done()

    async def _dispatch(self, drone: Drone, report: ErrorReport) -> None:
        message = render_alert(drone, report)
        try:
            await self.matrix.send_message(self.room_id, message.body, message.formatted_body)
        except MatrixError as exc:
            ALERTS_DISPATCHED.labels(outcome="dropped").inc()
            if exc.kind is not ChatErrorKind.LOGIN_FAILED:
                logger.warning("Dropping alert for drone %s: %s", drone.name, exc)
                return
            logger.info("Matrix session expired, logging in again")
            try:
                await self._login()
            except MatrixError as login_exc:
                logger.warning("Error while performing re-login: %s", login_exc)
            return
        ALERTS_DISPATCHED.labels(outcome="sent").inc()
        logger.info("Sent alert for drone %s", drone.name)


__all__ = ["AlertDispatcher", "AlertMessage", "QUEUE_SIZE", "render_alert"]
