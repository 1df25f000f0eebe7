"""Client configuration.

Configuration is resolved once, when a client is built, into an immutable
:class:`ClientConfig`.  Nothing inside an operation reads the environment.

Keys may be given in snake_case or in the camelCase used by older callers::

    config = resolve_config({"host": "http://cleanspeak:8001", "authToken": "abc"})
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import yaml

from cleanspeak.errors import ValidationError

# Job priorities understood by the queue backend, lowest first.
PRIORITIES = ("low", "normal", "medium", "high", "critical")

DEFAULT_ATTEMPTS = 5
DEFAULT_PRIORITY = "normal"
DEFAULT_TIMEOUT = 10.0

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class QueueOptions:
    """How jobs are configured when they are handed to the work queue."""

    attempts: int = DEFAULT_ATTEMPTS
    priority: str = DEFAULT_PRIORITY

    def __post_init__(self) -> None:
        if not isinstance(self.attempts, int) or self.attempts < 1:
            raise ValidationError(f"queue attempts must be a positive integer, got {self.attempts!r}")
        if self.priority not in PRIORITIES:
            raise ValidationError(
                f"queue priority must be one of {', '.join(PRIORITIES)}, got {self.priority!r}"
            )


@dataclass(frozen=True)
class ClientConfig:
    """Everything a :class:`~cleanspeak.client.CleanSpeakClient` needs.

    Parameters
    ----------
    host : str
        Base URL of the CleanSpeak server, including scheme and port.
    auth_token : str | None
        Sent as the ``Authentication`` header on every request.
    database_url : str | None
        SQLAlchemy URL of the database holding notification servers.
    notification_host, notification_username, notification_password
        Where CleanSpeak reports moderation decisions, and the HTTP
        credentials it uses to do so.
    enabled : bool
        ``False`` turns every operation into a no-op (development mode).
    queue
        Optional work queue; when set, ``moderate``, ``flag_content`` and
        ``add_user`` are enqueued instead of sent.
    queue_options : QueueOptions
        Attempts and priority for enqueued jobs.
    timeout : float | None
        HTTP timeout in seconds, applied by the transport.
    """

    host: str
    auth_token: Optional[str] = None
    database_url: Optional[str] = None
    notification_host: Optional[str] = None
    notification_username: Optional[str] = None
    notification_password: Optional[str] = field(default=None, repr=False)
    enabled: bool = True
    queue: Any = field(default=None, compare=False)
    queue_options: QueueOptions = field(default_factory=QueueOptions)
    timeout: Optional[float] = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.host:
            raise ValidationError("host is required")
        parsed = urlparse(self.host)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"host must be an http(s) URL, got {self.host!r}")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{key} must be a boolean, got {value!r}")


def _queue_options(raw: Any) -> QueueOptions:
    if raw is None:
        return QueueOptions()
    if isinstance(raw, QueueOptions):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError("queue_options must be a mapping")
    opts = {_snake(k): v for k, v in raw.items()}
    attempts = opts.get("attempts", DEFAULT_ATTEMPTS)
    if isinstance(attempts, str) and attempts.isdigit():
        attempts = int(attempts)
    return QueueOptions(attempts=attempts, priority=opts.get("priority", DEFAULT_PRIORITY))


def resolve_config(values: Mapping[str, Any] | None = None, **overrides: Any) -> ClientConfig:
    """Build a :class:`ClientConfig` from a mapping plus keyword overrides.

    Unknown keys are rejected so that typos do not silently fall back to
    defaults.
    """
    merged = {_snake(k): v for k, v in (values or {}).items()}
    merged.update({_snake(k): v for k, v in overrides.items()})

    known = set(ClientConfig.__dataclass_fields__)
    unknown = sorted(set(merged) - known)
    if unknown:
        raise ValidationError(f"Unknown configuration keys: {', '.join(unknown)}")

    if "enabled" in merged and merged["enabled"] is not None:
        merged["enabled"] = _as_bool(merged["enabled"], "enabled")
    else:
        merged.pop("enabled", None)
    merged["queue_options"] = _queue_options(merged.get("queue_options"))
    if merged.get("timeout") is not None:
        merged["timeout"] = float(merged["timeout"])

    if not merged.get("host"):
        raise ValidationError("host is required")
    return ClientConfig(**merged)


def load_config(path: str | Path, **overrides: Any) -> ClientConfig:
    """Read a YAML configuration file.

    The file may either hold the settings at top level or under a
    ``cleanspeak:`` key.
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"Failed to read configuration from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a mapping")
    if isinstance(data.get("cleanspeak"), dict):
        data = data["cleanspeak"]
    return resolve_config(data, **overrides)


def config_from_env(
    prefix: str = "CLEANSPEAK_",
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ClientConfig:
    """Build a config from ``CLEANSPEAK_*`` environment variables.

    ``CLEANSPEAK_QUEUE_ATTEMPTS`` and ``CLEANSPEAK_QUEUE_PRIORITY`` map to the
    queue options.  Used by the CLI; library callers pass values explicitly.
    """
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    queue_options: dict[str, Any] = {}
    for name in ClientConfig.__dataclass_fields__:
        if name in ("queue", "queue_options"):
            continue
        raw = environ.get(f"{prefix}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw
    for name in ("attempts", "priority"):
        raw = environ.get(f"{prefix}QUEUE_{name.upper()}")
        if raw:
            queue_options[name] = raw
    if queue_options:
        values["queue_options"] = queue_options
    return resolve_config(values, **overrides)
