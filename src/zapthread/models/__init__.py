"""Pure frozen dataclasses for Nostr events, relays, and zaps.

The models layer is the foundation of the diamond DAG. It has no
dependencies on any other zapthread package. Every model uses
``@dataclass(frozen=True, slots=True)``, and all validation happens in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    Event: Immutable signed Nostr event as produced by the event source.
    UnsignedEvent: Event fields awaiting the signing capability.
    RelayDescriptor: Relay URL with NIP-65 read/write flags.
    ZapRequest: Unsigned NIP-57 zap request draft.
    Invoice: BOLT11 invoice resolved from an LNURL-pay callback.
    PaymentResult: Outcome of one payment attempt.
    EventKind: Well-known event kinds (1, 11, 1111, 9734, 9735, 10002, ...).

Note:
    Models use ``object.__setattr__`` in ``__post_init__`` to normalize
    fields on frozen dataclasses (tags to tuples, URLs to canonical form).
"""

from .constants import EVENT_KIND_MAX, EventKind, RelayUsage, ReplyMarker
from .event import Event, Tags, UnsignedEvent
from .relay import RelayDescriptor, normalize_relay_url, relay_display_name
from .zap import MSATS_PER_SAT, Invoice, PaymentResult, ZapRequest


__all__ = [
    "EVENT_KIND_MAX",
    "MSATS_PER_SAT",
    "Event",
    "EventKind",
    "Invoice",
    "PaymentResult",
    "RelayDescriptor",
    "RelayUsage",
    "ReplyMarker",
    "Tags",
    "UnsignedEvent",
    "ZapRequest",
    "normalize_relay_url",
    "relay_display_name",
]
