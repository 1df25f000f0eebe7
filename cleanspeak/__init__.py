"""Client for the CleanSpeak content-moderation API."""

__version__ = "2.0.0"

from cleanspeak.client import CleanSpeakClient
from cleanspeak.config import ClientConfig, QueueOptions, config_from_env, load_config, resolve_config
from cleanspeak.errors import (
    AuthenticationFailed,
    CleanSpeakError,
    NotificationLinkError,
    RequestFailed,
    ValidationError,
)
from cleanspeak.models import ContentPart, ContentType, FilterResult, QueueJob

__all__ = [
    "CleanSpeakClient",
    "ClientConfig",
    "QueueOptions",
    "config_from_env",
    "load_config",
    "resolve_config",
    "AuthenticationFailed",
    "CleanSpeakError",
    "NotificationLinkError",
    "RequestFailed",
    "ValidationError",
    "ContentPart",
    "ContentType",
    "FilterResult",
    "QueueJob",
]
