"""Positional-argument calling convention from earlier releases.

Deprecated: use :class:`cleanspeak.client.CleanSpeakClient` and keyword
options.  Each method here warns and forwards to the client.
"""

from __future__ import annotations

import warnings
from typing import Any, Iterable, Optional

from cleanspeak.client import CleanSpeakClient
from cleanspeak.models import FilterResult


def _deprecated(name: str) -> None:
    warnings.warn(
        f"LegacyCleanSpeak.{name}() is deprecated; call CleanSpeakClient.{name}() with keyword options",
        DeprecationWarning,
        stacklevel=3,
    )


class LegacyCleanSpeak:
    """Adapter exposing the old positional signatures on top of a client."""

    def __init__(self, client: CleanSpeakClient) -> None:
        self.client = client

    def filter(self, content: str) -> FilterResult:
        _deprecated("filter")
        return self.client.filter(content)

    def moderate(
        self,
        content_id: Any,
        content: Iterable[Any],
        sender_id: Any = None,
        sender_display_name: Optional[str] = None,
        application_id: Any = None,
        requires_approval: bool = False,
    ) -> None:
        _deprecated("moderate")
        return self.client.moderate(
            content,
            content_id=content_id,
            sender_id=sender_id,
            sender_display_name=sender_display_name,
            application_id=application_id,
            requires_approval=requires_approval,
        )

    def flag_content(self, content_id: Any, reporter_id: Any, reason: Optional[str] = None) -> None:
        _deprecated("flag_content")
        return self.client.flag_content(content_id, reporter_id, reason=reason)

    def create_application(
        self,
        name: str,
        notification_path: str,
        store_content: bool = True,
        persistent: bool = True,
    ) -> Optional[dict[str, str]]:
        """Create an application.

        Unlike the client, this path sends ``storeContent`` and ``persistent``
        as ``true`` unless told otherwise.
        """
        _deprecated("create_application")
        return self.client.create_application(
            name,
            notification_path=notification_path,
            store_content=store_content,
            persistent=persistent,
        )

    def delete_application(self, id: Any, notification_path: str) -> None:
        _deprecated("delete_application")
        return self.client.delete_application(id, notification_path=notification_path)
