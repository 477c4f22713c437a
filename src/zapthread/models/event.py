"""
Immutable Nostr event records.

[Event][zapthread.models.event.Event] is the canonical, read-only view of a
signed protocol event as produced by the event source. It is a plain frozen
dataclass rather than a wrapper around ``nostr_sdk.Event`` so that the
thread assembler can index events from any source (relays, JSON dumps,
tests) without touching the SDK. Conversions to and from the SDK types are
provided at the edges.

[UnsignedEvent][zapthread.models.event.UnsignedEvent] holds the fields a
builder produces before the signing capability attaches an author, id and
signature.

See Also:
    [zapthread.services.thread][]: Indexes events into a reply tree.
    [zapthread.nips.event_builders][]: Produces unsigned events.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from time import time
from typing import TYPE_CHECKING, Any

from nostr_sdk import EventBuilder, Kind, Tag, Timestamp

from ._validation import (
    freeze_tags,
    validate_kind,
    validate_str_no_null,
    validate_str_not_empty,
    validate_timestamp,
)


if TYPE_CHECKING:
    from collections.abc import Iterator

    from nostr_sdk import Event as NostrEvent


Tags = tuple[tuple[str, ...], ...]


def _tags_named(tags: Tags, name: str) -> Iterator[tuple[str, ...]]:
    return (tag for tag in tags if tag[0] == name)


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable Nostr event.

    Events are append-only facts: once observed they are never mutated.
    Validation runs eagerly in ``__post_init__`` so malformed records from
    a relay fail at the boundary instead of deep inside the assembler.

    Attributes:
        id: Content-addressed event hash (hex).
        pubkey: Author public key (hex).
        kind: Integer event kind (see
            [EventKind][zapthread.models.constants.EventKind]).
        created_at: Unix timestamp in seconds.
        content: Event text.
        tags: Ordered tags, each a tuple whose first element is the tag name.
        sig: Schnorr signature (hex). Carried through but never verified.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a string contains null bytes, ``id``/``pubkey`` are
            empty, or ``kind`` is out of range.

    Examples:
        ```python
        event = Event.from_dict({
            "id": "c1", "pubkey": "bob", "kind": 1, "created_at": 1700000000,
            "content": "hi", "tags": [["e", "r1", "", "root"]],
        })
        event.first_tag_value("e")   # 'r1'
        ```
    """

    id: str
    pubkey: str
    kind: int
    created_at: int
    content: str = ""
    tags: Tags = ()
    sig: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        validate_str_not_empty(self.id, "id")
        validate_str_not_empty(self.pubkey, "pubkey")
        validate_kind(self.kind)
        validate_timestamp(self.created_at, "created_at")
        validate_str_no_null(self.content, "content")
        validate_str_no_null(self.sig, "sig")
        # Bypass frozen restriction to normalize list-based tags
        object.__setattr__(self, "tags", freeze_tags(self.tags))

    def tags_named(self, name: str) -> list[tuple[str, ...]]:
        """Return every tag whose name equals *name*, in order."""
        return list(_tags_named(self.tags, name))

    def first_tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag named *name*, if any."""
        for tag in _tags_named(self.tags, name):
            if len(tag) > 1:
                return tag[1]
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a NIP-01 JSON-compatible dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
        }
        if self.sig:
            data["sig"] = self.sig
        return data

    def to_json(self) -> str:
        """Serialize to a compact NIP-01 JSON string."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an event from a NIP-01 JSON dictionary.

        Raises:
            KeyError: If a required field is missing.
            TypeError: If a field has the wrong type.
            ValueError: If a field fails validation.
        """
        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            kind=data["kind"],
            created_at=data["created_at"],
            content=data.get("content", ""),
            tags=data.get("tags", []),
            sig=data.get("sig", ""),
        )

    @classmethod
    def from_nostr_event(cls, event: NostrEvent) -> Event:
        """Convert a ``nostr_sdk.Event`` into an [Event][zapthread.models.event.Event]."""
        return cls(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            kind=event.kind().as_u16(),
            created_at=event.created_at().as_secs(),
            content=event.content(),
            tags=[list(tag.as_vec()) for tag in event.tags().to_vec()],
            sig=event.signature(),
        )


@dataclass(frozen=True, slots=True)
class UnsignedEvent:
    """Event fields awaiting a signature.

    The author, id and signature are supplied by the signing capability;
    builders only decide ``kind``, ``content`` and ``tags``.

    Attributes:
        kind: Integer event kind.
        content: Event text.
        tags: Ordered tags.
        created_at: Unix timestamp in seconds (defaults to now).
    """

    kind: int
    content: str = ""
    tags: Tags = ()
    created_at: int = field(default_factory=lambda: int(time()))

    def __post_init__(self) -> None:
        validate_kind(self.kind)
        validate_timestamp(self.created_at, "created_at")
        validate_str_no_null(self.content, "content")
        object.__setattr__(self, "tags", freeze_tags(self.tags))

    def tags_named(self, name: str) -> list[tuple[str, ...]]:
        """Return every tag whose name equals *name*, in order."""
        return list(_tags_named(self.tags, name))

    def to_event_builder(self) -> EventBuilder:
        """Return a ``nostr_sdk.EventBuilder`` carrying these exact fields."""
        return (
            EventBuilder(Kind(self.kind), self.content)
            .tags([Tag.parse(list(tag)) for tag in self.tags])
            .custom_created_at(Timestamp.from_secs(self.created_at))
        )
