"""Exceptions raised by the CleanSpeak client.

Every failure surfaces to the caller exactly once as one of these, except
transport-level problems (DNS, refused connections, timeouts) which propagate
as the original :class:`httpx.RequestError`.
"""

from __future__ import annotations

import json
from typing import Any

AUTHENTICATION_FAILED_MSG = "Authentication failed. Check the CleanSpeak auth token."


class CleanSpeakError(Exception):
    """Base class for all CleanSpeak client errors."""


class ValidationError(CleanSpeakError, ValueError):
    """A required option is missing or invalid. Raised before any I/O."""


class RequestFailed(CleanSpeakError):
    """The CleanSpeak server answered with a non-200 status.

    ``message`` is the decoded JSON body when the server sent JSON, otherwise
    the raw response text.
    """

    def __init__(self, status_code: int, message: Any) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(json.dumps(self.to_dict(), default=str))

    def to_dict(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "message": self.message}


class AuthenticationFailed(RequestFailed):
    """The server rejected the ``Authentication`` header (HTTP 401)."""

    def __init__(self) -> None:
        super().__init__(401, AUTHENTICATION_FAILED_MSG)


class NotificationLinkError(CleanSpeakError):
    """Linking (or unlinking) a notification server in the side-store failed.

    When raised from ``create_application`` the remote application already
    exists; ``application_id`` identifies it so the caller can clean up.
    """

    def __init__(self, message: str, application_id: str | None = None) -> None:
        self.application_id = application_id
        super().__init__(message)
