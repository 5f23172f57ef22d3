"""Thought records and the value types built from them."""

from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone

MODES = ("linear", "creative", "critical", "strategic", "empathetic")
DEFAULT_MODE = "linear"

RELATIONSHIP_TYPES = ("builds_on", "supports", "contradicts", "refines", "synthesizes")
BUILDS_ON = "builds_on"

_BASE36 = string.ascii_lowercase + string.digits

_KNOWN_FIELDS = {
    "id",
    "content",
    "mode",
    "tags",
    "timestamp",
    "relates_to",
    "relationship_type",
    "relationships_in",
    "relationships_out",
}


def random_token(length: int) -> str:
    return "".join(random.choices(_BASE36, k=length))


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_thought_id(moment: datetime) -> str:
    """``thought_<epoch-ms>_<random>``; sorts by creation time."""
    return f"thought_{int(moment.timestamp() * 1000)}_{random_token(5)}"


def preview(text: str, length: int) -> str:
    """First ``length`` characters, with ``...`` appended when cut."""
    if len(text) > length:
        return text[:length] + "..."
    return text


@dataclass
class Relationship:
    thought_id: str
    relationship_type: str

    def to_dict(self) -> dict:
        return {"thought_id": self.thought_id, "relationship_type": self.relationship_type}

    @classmethod
    def from_dict(cls, data: dict) -> Relationship:
        return cls(thought_id=data["thought_id"], relationship_type=data["relationship_type"])


@dataclass
class Thought:
    """One reasoning record. ``content`` is never altered after creation."""

    id: str
    content: str
    timestamp: str
    mode: str = DEFAULT_MODE
    tags: list[str] = field(default_factory=list)
    relates_to: str | None = None
    relationship_type: str | None = None
    relationships_in: list[Relationship] = field(default_factory=list)
    relationships_out: list[Relationship] = field(default_factory=list)
    extra: dict = field(default_factory=dict)

    @property
    def created(self) -> datetime:
        return parse_timestamp(self.timestamp)

    @property
    def has_relationship(self) -> bool:
        return bool(
            self.relates_to
            or self.relationship_type
            or self.relationships_in
            or self.relationships_out
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "content": self.content,
                "mode": self.mode,
                "tags": list(self.tags),
                "timestamp": self.timestamp,
                "relates_to": self.relates_to,
                "relationship_type": self.relationship_type,
                "relationships_in": [r.to_dict() for r in self.relationships_in],
                "relationships_out": [r.to_dict() for r in self.relationships_out],
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Thought:
        return cls(
            id=data["id"],
            content=data["content"],
            timestamp=data["timestamp"],
            mode=data.get("mode") or DEFAULT_MODE,
            tags=list(data.get("tags") or []),
            relates_to=data.get("relates_to"),
            relationship_type=data.get("relationship_type"),
            relationships_in=[Relationship.from_dict(r) for r in data.get("relationships_in") or []],
            relationships_out=[
                Relationship.from_dict(r) for r in data.get("relationships_out") or []
            ],
            extra={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )


@dataclass
class ChainEntry:
    id: str
    content_preview: str
    mode: str
    timestamp: str
    relationship_type: str | None
    truncated: bool = False
    note: str | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "content_preview": self.content_preview,
            "mode": self.mode,
            "timestamp": self.timestamp,
            "relationship_type": self.relationship_type,
        }
        if self.truncated:
            data["truncated"] = True
            data["note"] = self.note
        return data


@dataclass
class ReasoningChain:
    chain: list[ChainEntry]
    total_length: int
    truncated: bool

    def to_dict(self) -> dict:
        return {
            "chain": [entry.to_dict() for entry in self.chain],
            "total_length": self.total_length,
            "truncated": self.truncated,
        }


@dataclass
class SessionStats:
    """Storage-medium metadata for one session file."""

    exists: bool
    created_at: datetime | None = None
    last_modified_at: datetime | None = None
