"""Notification server records in the CleanSpeak database.

CleanSpeak reports moderation decisions to a "notification server" linked to
each application.  The API has no endpoint for this, so the rows are written
straight into CleanSpeak's own database.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, create_engine, delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from cleanspeak.config import ClientConfig
from cleanspeak.errors import NotificationLinkError, ValidationError

logger = logging.getLogger(__name__)

metadata = MetaData()

notification_servers = Table(
    "notification_servers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", String(1024), nullable=False),
    Column("http_authentication_username", String(255)),
    Column("http_authentication_password", String(255)),
)

notification_servers_applications = Table(
    "notification_servers_applications",
    metadata,
    Column("notification_servers_id", Integer, ForeignKey("notification_servers.id"), nullable=False),
    Column("applications_id", String(36), nullable=False),
)


class NotificationStore:
    """Creates and removes notification servers linked to applications.

    A connection is checked out of the engine's pool for each call and
    returned on every exit path, including failed queries.
    """

    def __init__(
        self,
        notification_host: Optional[str],
        username: Optional[str] = None,
        password: Optional[str] = None,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
    ) -> None:
        self._notification_host = notification_host
        self._username = username
        self._password = password
        self._database_url = database_url
        self._engine = engine

    @classmethod
    def from_config(cls, config: ClientConfig) -> "NotificationStore":
        return cls(
            notification_host=config.notification_host,
            username=config.notification_username,
            password=config.notification_password,
            database_url=config.database_url,
        )

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if not self._database_url:
                raise ValidationError("database_url is required to manage notification servers")
            self._engine = create_engine(self._database_url, pool_pre_ping=True)
        return self._engine

    def resolve_url(self, path: str) -> str:
        """Join *path* onto the notification host."""
        if not self._notification_host:
            raise ValidationError("notification_host is required to manage notification servers")
        url = urljoin(self._notification_host, path or "")
        if not url:
            raise ValidationError(
                f"Could not build a notification URL from {self._notification_host!r} and {path!r}"
            )
        return url

    def create_notification_link(
        self,
        application_id: str,
        path: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> int:
        """Insert a notification server for *path* and link it to the application.

        *username* and *password* default to the store's credentials.  Returns
        the new notification server id.
        """
        url = self.resolve_url(path)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    insert(notification_servers).values(
                        url=url,
                        http_authentication_username=username or self._username,
                        http_authentication_password=password or self._password,
                    )
                )
                notification_id = result.inserted_primary_key[0]
                conn.execute(
                    insert(notification_servers_applications).values(
                        notification_servers_id=notification_id,
                        applications_id=str(application_id),
                    )
                )
        except SQLAlchemyError as e:
            raise NotificationLinkError(
                f"Failed to link notification server {url} to application {application_id}: {e}",
                application_id=str(application_id),
            ) from e

        logger.info("Linked notification server %s (%s) to application %s", notification_id, url, application_id)
        return notification_id

    def delete_notification_link(self, path: str) -> int:
        """Remove the notification server for *path*.  Returns rows removed."""
        url = self.resolve_url(path)
        server_ids = select(notification_servers.c.id).where(notification_servers.c.url == url)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(notification_servers_applications).where(
                        notification_servers_applications.c.notification_servers_id.in_(server_ids)
                    )
                )
                result = conn.execute(delete(notification_servers).where(notification_servers.c.url == url))
        except SQLAlchemyError as e:
            raise NotificationLinkError(f"Failed to delete notification server {url}: {e}") from e

        logger.info("Deleted %d notification server(s) for %s", result.rowcount, url)
        return result.rowcount
