"""HTTP transport for the CleanSpeak API."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional
from urllib.parse import urljoin

import httpx

from cleanspeak.config import ClientConfig

logger = logging.getLogger(__name__)


class Transport:
    """Sends one request per call to the configured CleanSpeak host.

    Every request carries the ``Authentication`` header.  Network failures
    surface as :class:`httpx.RequestError` and are not caught here.

    Parameters
    ----------
    config : ClientConfig
        Supplies the host, auth token and timeout.
    http_client : httpx.Client | None
        Client to send with.  One is created (and owned) when *None*.
    """

    def __init__(self, config: ClientConfig, http_client: Optional[httpx.Client] = None) -> None:
        self._host = config.host
        self._auth_token = config.auth_token or ""
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=config.timeout)

    def url(self, path: str) -> str:
        return urljoin(self._host, path)

    def send(self, method: str, path: str, body: Any = None) -> httpx.Response:
        """Issue *method* on *path* with an optional JSON *body*."""
        headers = {"Authentication": self._auth_token}
        content = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(body)

        response = self._client.request(method, self.url(path), headers=headers, content=content)
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
