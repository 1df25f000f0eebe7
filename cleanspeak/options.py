"""Build request payloads from caller options.

Each public client operation takes keyword options.  The functions here pick
the recognized ones, apply defaults, and return the exact JSON body CleanSpeak
expects.  Options the caller did not supply (or supplied as ``None``) are left
out of the payload rather than sent as ``null``.
"""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from cleanspeak.errors import ValidationError
from cleanspeak.models import ContentPart, ContentType

# Option name -> wire name for an application's moderation configuration.
MODERATION_CONFIGURATION_KEYS: dict[str, str] = {
    "content_deletable": "contentDeletable",
    "content_editable": "contentEditable",
    "content_user_actions_enabled": "contentUserActionsEnabled",
    "default_action_is_queue_for_approval": "defaultActionIsQueueForApproval",
    "persistent": "persistent",
    "store_content": "storeContent",
}

# Option name -> wire name for a user record.
USER_KEYS: dict[str, str] = {
    "application_ids": "applicationIds",
    "attributes": "attributes",
    "display_names": "displayNames",
    "birth_date": "birthDate",
    "email": "email",
    "last_login_instant": "lastLoginInstant",
    "name": "name",
    "image_url": "imageURL",
}

MODERATE_OPTIONS = frozenset(
    {
        "content_id",
        "sender_id",
        "sender_display_name",
        "application_id",
        "requires_approval",
        "generates_alert",
        "update",
    }
)
FLAG_OPTIONS = frozenset({"reason", "comment"})
USER_OPTIONS = frozenset(USER_KEYS) | {"update"}
APPLICATION_OPTIONS = frozenset(MODERATION_CONFIGURATION_KEYS) | {"id", "name", "notification_path"}


def epoch_millis() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def to_epoch_millis(value: int | float | datetime | date) -> int:
    """Normalize a timestamp to epoch milliseconds.

    Numbers pass through unchanged.  A naive ``datetime`` is taken as local
    time; a bare ``date`` as midnight UTC.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return int(round(value.timestamp() * 1000))
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp() * 1000)
    raise ValidationError(f"Not a timestamp: {value!r}")


def pick(options: Mapping[str, Any], allowed: Iterable[str]) -> dict[str, Any]:
    """Keep the supplied, non-None options whose names are in *allowed*."""
    allowed = set(allowed)
    return {k: v for k, v in options.items() if k in allowed and v is not None}


def _id(value: Any) -> Any:
    return str(value) if value is not None else None


# ---------------------------------------------------------------------------
# filter
# ---------------------------------------------------------------------------


def filter_body(content: str, blacklist: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"content": content}
    if blacklist is not None:
        body["filter"] = {"blacklist": dict(blacklist)}
    return body


# ---------------------------------------------------------------------------
# moderate
# ---------------------------------------------------------------------------


def moderation_tag(options: Mapping[str, Any]) -> Optional[str]:
    """Pick the moderation queue for a content item.

    ``generatesAlert`` wins over ``requiresApproval``; with neither the item is
    only queued if a filter rule flags it.
    """
    if options.get("generates_alert"):
        return "generatesAlert"
    if options.get("requires_approval"):
        return "requiresApproval"
    return None


def content_parts(content: Iterable[ContentPart | Mapping[str, Any]]) -> list[dict[str, str]]:
    """Validate content parts and convert them to their wire form."""
    parts: list[dict[str, str]] = []
    seen: set[str] = set()
    for part in content:
        if isinstance(part, ContentPart):
            wire = part.to_wire()
        elif isinstance(part, Mapping):
            try:
                wire = {
                    "name": part["name"],
                    "content": part["content"],
                    "type": ContentType(part.get("type", ContentType.text)).value,
                }
            except KeyError as e:
                raise ValidationError(f"Content part is missing {e.args[0]!r}") from e
            except ValueError as e:
                raise ValidationError(str(e)) from e
        else:
            raise ValidationError(f"Unsupported content part: {part!r}")
        if wire["name"] in seen:
            raise ValidationError(f"Duplicate content part name: {wire['name']!r}")
        seen.add(wire["name"])
        parts.append(wire)
    if not parts:
        raise ValidationError("content must have at least one part")
    return parts


def moderate_method(options: Mapping[str, Any]) -> str:
    return "PUT" if options.get("update") else "POST"


def moderate_body(parts: list[dict[str, str]], options: Mapping[str, Any], now: int) -> dict[str, Any]:
    item: dict[str, Any] = {
        "applicationId": _id(options.get("application_id")),
        "createInstant": now,
        "parts": parts,
        "senderId": _id(options.get("sender_id")),
        "senderDisplayName": options.get("sender_display_name"),
    }
    return {
        "content": {k: v for k, v in item.items() if v is not None},
        "moderation": moderation_tag(options),
    }


def require_content_id(options: Mapping[str, Any]) -> str:
    content_id = options.get("content_id")
    if not content_id:
        raise ValidationError("content_id is required")
    return str(content_id)


# ---------------------------------------------------------------------------
# flag_content
# ---------------------------------------------------------------------------


def flag_body(reporter_id: Any, options: Mapping[str, Any], now: int) -> dict[str, Any]:
    flag: dict[str, Any] = {"reporterId": _id(reporter_id), "createInstant": now}
    if options.get("reason"):
        flag["reason"] = options["reason"]
    if options.get("comment"):
        flag["comment"] = options["comment"]
    return {"flag": flag}


# ---------------------------------------------------------------------------
# add_user
# ---------------------------------------------------------------------------


def normalize_user_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *options* with ``last_login_instant`` in epoch millis."""
    normalized = dict(options)
    if normalized.get("last_login_instant") is not None:
        normalized["last_login_instant"] = to_epoch_millis(normalized["last_login_instant"])
    return normalized


def user_body(options: Mapping[str, Any], now: int) -> dict[str, Any]:
    supplied = pick(normalize_user_options(options), USER_KEYS)
    user = {USER_KEYS[k]: v for k, v in supplied.items()}
    if "applicationIds" in user:
        user["applicationIds"] = [str(a) for a in user["applicationIds"]]
    user["createInstant"] = now
    return {"user": user}


# ---------------------------------------------------------------------------
# applications
# ---------------------------------------------------------------------------


def moderation_configuration(options: Mapping[str, Any]) -> dict[str, bool]:
    """Project the recognized moderation flags, omitting those not supplied."""
    return {
        wire: bool(options[key])
        for key, wire in MODERATION_CONFIGURATION_KEYS.items()
        if options.get(key) is not None
    }


def application_body(name: Optional[str], options: Mapping[str, Any]) -> dict[str, Any]:
    application: dict[str, Any] = {}
    if name is not None:
        application["name"] = name
    application["moderationConfiguration"] = moderation_configuration(options)
    return {"application": application}


def require_notification_path(options: Mapping[str, Any]) -> str:
    path = options.get("notification_path")
    if not path:
        raise ValidationError("notification_path is required")
    return path
