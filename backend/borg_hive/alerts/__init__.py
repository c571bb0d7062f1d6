"""Operator alerting through Matrix."""

from .dispatcher import AlertDispatcher, AlertMessage, render_alert
from .matrix import ChatErrorKind, MatrixClient, MatrixError

__all__ = [
    "AlertDispatcher",
    "AlertMessage",
    "render_alert",
    "ChatErrorKind",
    "MatrixClient",
    "MatrixError",
]
