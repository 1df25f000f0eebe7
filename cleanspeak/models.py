"""Data models shared by the client, the option resolver and the queue."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Valid types for a moderated content part."""

    text = "text"
    attribute = "attribute"
    hyperlink = "hyperlink"
    image = "image"
    video = "video"
    audio = "audio"


class Operation(str, Enum):
    """Operations that may be deferred to the work queue."""

    moderate = "moderate"
    flag_content = "flagContent"
    add_user = "addUser"


@dataclass
class FilterResult:
    """Outcome of a filter call."""

    filtered: bool
    replacement: str


@dataclass
class ContentPart:
    """One named part of a content item (a username, a body, an image URL...)."""

    name: str
    content: str
    type: ContentType = ContentType.text

    def to_wire(self) -> dict[str, str]:
        return {"name": self.name, "content": self.content, "type": ContentType(self.type).value}


@dataclass
class QueueJob:
    """A deferred client operation, as handed to the work queue."""

    operation_name: str
    payload: dict[str, Any] = field(default_factory=dict)
    attempts: int = 5
    priority: str = "normal"

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "QueueJob":
        data = json.loads(raw)
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
