"""Shared constants for the models layer.

Defines the Nostr event kinds and tag markers that the thread assembler,
the event builders, and the reply state machine all agree on. Placing them
here avoids circular dependencies between the models and nips layers.

See Also:
    [zapthread.nips.references][]: Reads ``e``/``E`` tags and
        [ReplyMarker][zapthread.models.constants.ReplyMarker] values to
        resolve reply parents.
    [zapthread.nips.event_builders][]: Emits tags with these markers.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EventKind(IntEnum):
    """Well-known Nostr event kinds handled by zapthread.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01). Carries the
            ``lud16`` Lightning address used to gate replies.
        TEXT_NOTE: Kind 1 -- short text note (NIP-01). Flat thread roots and
            their NIP-10 replies.
        THREAD: Kind 11 -- structured thread root (NIP-7D).
        ZAP_REQUEST: Kind 9734 -- signed zap request (NIP-57), never
            published to relays, only sent to the LNURL callback.
        ZAP_RECEIPT: Kind 9735 -- zap receipt published by the recipient's
            LNURL server (NIP-57).
        RELAY_LIST: Kind 10002 -- relay list metadata (NIP-65).
        COMMENT: Kind 1111 -- structured comment (NIP-22).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    THREAD = 11
    COMMENT = 1111
    ZAP_REQUEST = 9734
    ZAP_RECEIPT = 9735
    RELAY_LIST = 10_002


class ReplyMarker(StrEnum):
    """NIP-10 markers found in the fourth slot of an ``e`` tag."""

    ROOT = "root"
    REPLY = "reply"
    MENTION = "mention"


class RelayUsage(StrEnum):
    """NIP-65 ``r`` tag markers restricting a relay to one direction."""

    READ = "read"
    WRITE = "write"


EVENT_KIND_MAX = 65_535
