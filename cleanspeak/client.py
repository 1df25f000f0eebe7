"""CleanSpeak client.

Wraps the CleanSpeak content-moderation API: profanity filtering, moderation
queueing, content flagging, user records and application management.

Every operation issues at most one HTTP request.  When the client is disabled
nothing is sent and each operation is a no-op (``filter`` returns the input
unchanged).  When a work queue is configured, ``moderate``, ``flag_content``
and ``add_user`` are enqueued instead of sent, and a worker later runs them
through :meth:`CleanSpeakClient.execute_job`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

import httpx

from cleanspeak import options as opts
from cleanspeak.config import ClientConfig, resolve_config
from cleanspeak.errors import CleanSpeakError, NotificationLinkError, ValidationError
from cleanspeak.jobs import enqueue
from cleanspeak.models import ContentPart, FilterResult, Operation, QueueJob
from cleanspeak.normalizer import application_id_from, error_from_response, parse_filter_result
from cleanspeak.notifications import NotificationStore
from cleanspeak.transport import Transport

logger = logging.getLogger(__name__)


class CleanSpeakClient:
    """Client for one CleanSpeak server.

    Parameters
    ----------
    config : ClientConfig | Mapping
        Resolved configuration, or a mapping passed to
        :func:`~cleanspeak.config.resolve_config`.
    http_client : httpx.Client | None
        HTTP client to send requests with; one is created when *None*.
    notification_store : NotificationStore | None
        Side-store for notification servers; built from the config when
        *None*.
    clock : callable | None
        Returns "now" in epoch milliseconds.
    """

    def __init__(
        self,
        config: ClientConfig | Mapping[str, Any],
        http_client: Optional[httpx.Client] = None,
        notification_store: Optional[NotificationStore] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.config = config if isinstance(config, ClientConfig) else resolve_config(config)
        self._transport = Transport(self.config, http_client=http_client)
        self._notifications = notification_store or NotificationStore.from_config(self.config)
        self._clock = clock or opts.epoch_millis

    # -- properties ----------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def queued(self) -> bool:
        """Return *True* if deferrable operations go to the work queue."""
        return self.config.queue is not None

    # -- plumbing ------------------------------------------------------------

    def _request(self, method: str, path: str, body: Any = None) -> httpx.Response:
        response = self._transport.send(method, path, body)
        if response.status_code != 200:
            raise error_from_response(response.status_code, response.text)
        return response

    def _enqueue(self, operation: Operation, payload: dict[str, Any]) -> None:
        enqueue(self.config.queue, operation.value, payload, self.config.queue_options)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "CleanSpeakClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- filter --------------------------------------------------------------

    def filter(self, content: str, blacklist: Optional[Mapping[str, Any]] = None) -> FilterResult:
        """Run *content* through the profanity filter.

        ``blacklist`` holds blacklist filter settings (``severity``,
        ``locales``, ...) passed through to the server.
        """
        if not self.enabled:
            return FilterResult(filtered=False, replacement=content)

        response = self._request("POST", "/content/item/filter", opts.filter_body(content, blacklist))
        return parse_filter_result(response.content, response.status_code)

    # -- moderate ------------------------------------------------------------

    def moderate(self, content: Iterable[ContentPart | Mapping[str, Any]], **options: Any) -> None:
        """Send a content item for moderation.

        Parameters
        ----------
        content
            Parts making up the item; each has a unique ``name``, the
            ``content`` itself (text, or a URL for media) and a ``type``.
        content_id
            UUID of the item (required).
        sender_id, sender_display_name
            The user who owns the content.
        application_id
            Application the item belongs to (drives notifications).
        requires_approval
            Queue the item for approval even if no filter matches.
        generates_alert
            Send the item to the alert queue.  Wins over *requires_approval*.
        update
            Update an existing item (``PUT``) instead of creating one.
        """
        if not self.enabled:
            return None
        content = list(content)
        options = opts.pick(options, opts.MODERATE_OPTIONS)
        if self.queued:
            opts.require_content_id(options)
            parts = opts.content_parts(content)
            return self._enqueue(Operation.moderate, {"content": parts, "opts": options})
        return self._send_moderate(content, options)

    def _send_moderate(self, content: Iterable[Any], options: Mapping[str, Any]) -> None:
        content_id = opts.require_content_id(options)
        body = opts.moderate_body(opts.content_parts(content), options, self._clock())
        self._request(opts.moderate_method(options), f"/content/item/moderate/{content_id}", body)

    # -- flag_content --------------------------------------------------------

    def flag_content(self, content_id: Any, reporter_id: Any, **options: Any) -> None:
        """Flag a content item on behalf of *reporter_id*.

        ``reason`` (e.g. spam, abusive) and ``comment`` are optional.
        """
        if not self.enabled:
            return None
        options = opts.pick(options, opts.FLAG_OPTIONS)
        if self.queued:
            return self._enqueue(
                Operation.flag_content,
                {"content_id": str(content_id), "reporter_id": str(reporter_id), "opts": options},
            )
        return self._send_flag(content_id, reporter_id, options)

    def _send_flag(self, content_id: Any, reporter_id: Any, options: Mapping[str, Any]) -> None:
        body = opts.flag_body(reporter_id, options, self._clock())
        self._request("POST", f"/content/item/flag/{content_id}", body)

    # -- add_user ------------------------------------------------------------

    def add_user(self, user_id: Any, **options: Any) -> None:
        """Create (or, with ``update=True``, update) a user record.

        Recognized options: ``application_ids``, ``attributes``,
        ``display_names``, ``birth_date`` (YYYY-MM-DD), ``email``,
        ``last_login_instant`` (epoch millis or a date), ``name`` and
        ``image_url``.  Only the options supplied are sent.
        """
        if not self.enabled:
            return None
        options = opts.normalize_user_options(opts.pick(options, opts.USER_OPTIONS))
        if self.queued:
            return self._enqueue(Operation.add_user, {"user_id": str(user_id), "opts": options})
        return self._send_user(user_id, options)

    def _send_user(self, user_id: Any, options: Mapping[str, Any]) -> None:
        body = opts.user_body(options, self._clock())
        method = "PUT" if options.get("update") else "POST"
        self._request(method, f"/content/user/{user_id}", body)

    # -- applications --------------------------------------------------------

    def create_application(self, name: str, **options: Any) -> Optional[dict[str, str]]:
        """Create an application and link a notification server to it.

        Parameters
        ----------
        name
            Application name, as shown in CleanSpeak.
        notification_path
            Path on the notification host that CleanSpeak calls on
            moderation accept/reject (required).
        id
            Create the application with this id instead of a random one.
        content_deletable, content_editable, content_user_actions_enabled,
        default_action_is_queue_for_approval, persistent, store_content
            Moderation settings; those not supplied are left to the server.

        Returns ``{"id": application_id}``.  The two steps are not atomic: if
        linking the notification server fails, :class:`NotificationLinkError`
        is raised and the remote application is left in place.
        """
        if not self.enabled:
            return None
        options = opts.pick(options, opts.APPLICATION_OPTIONS)
        notification_path = opts.require_notification_path(options)

        path = "/system/application"
        if options.get("id"):
            path += f"/{options['id']}"
        response = self._request("POST", path, opts.application_body(name, options))
        application_id = application_id_from(response.content, response.status_code)

        try:
            self._notifications.create_notification_link(
                application_id,
                notification_path,
                self.config.notification_username,
                self.config.notification_password,
            )
        except NotificationLinkError:
            logger.warning("Application %s created but its notification server was not linked", application_id)
            raise
        except CleanSpeakError as e:
            logger.warning("Application %s created but its notification server was not linked", application_id)
            raise NotificationLinkError(str(e), application_id=application_id) from e

        return {"id": application_id}

    def update_application(self, id: Any, **options: Any) -> None:
        """Update an application's name and moderation settings."""
        if not self.enabled:
            return None
        options = opts.pick(options, opts.APPLICATION_OPTIONS)
        body = opts.application_body(options.get("name"), options)
        self._request("PUT", f"/system/application/{id}", body)

    def delete_application(self, id: Any, **options: Any) -> None:
        """Delete an application along with its notification server.

        ``notification_path`` is required.
        """
        if not self.enabled:
            return None
        notification_path = opts.require_notification_path(options)
        self._request("DELETE", f"/system/application/{id}")
        self._notifications.delete_notification_link(notification_path)

    # -- queued jobs ---------------------------------------------------------

    def execute_job(self, job: QueueJob) -> None:
        """Run a job taken from the work queue, bypassing the queue.

        A disabled client drops the job without sending anything.
        """
        if not self.enabled:
            return None
        payload = job.payload
        try:
            operation = Operation(job.operation_name)
        except ValueError as e:
            raise ValidationError(f"Unknown job operation {job.operation_name!r}") from e

        if operation is Operation.moderate:
            self._send_moderate(payload["content"], payload.get("opts") or {})
        elif operation is Operation.flag_content:
            self._send_flag(payload["content_id"], payload["reporter_id"], payload.get("opts") or {})
        else:
            self._send_user(payload["user_id"], payload.get("opts") or {})
