"""Nostr event builders for the reply flow.

Standalone, deterministic functions that turn typed inputs into unsigned
events. None of them touch key material or the network: the results are
handed to a signing capability and then to a publisher.

See Also:
    [zapthread.services.reply.ReplyAttempt][]: Drives the zap request and
        comment builders.
    [zapthread.services.relays.RelayListManager][]: Publishes the relay
        list event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from zapthread.core.exceptions import InvalidAmountError
from zapthread.models.constants import EventKind, ReplyMarker
from zapthread.models.event import UnsignedEvent
from zapthread.models.zap import MSATS_PER_SAT, ZapRequest


if TYPE_CHECKING:
    from collections.abc import Iterable

    from zapthread.models.event import Event
    from zapthread.models.relay import RelayDescriptor


# =============================================================================
# Kind 9734 (NIP-57)
# =============================================================================


def build_zap_request(
    target: Event,
    amount_sats: int,
    relay_urls: Iterable[str],
    comment: str = "",
) -> ZapRequest:
    """Build the zap request draft that pays *target*'s author.

    The caller is expected to have checked that the author can receive
    zaps before calling this.

    Args:
        target: Event being zapped (the reply's parent, or the root).
        amount_sats: Amount in satoshis.
        relay_urls: Relays where the zap receipt should be published.
        comment: Optional zap comment.

    Raises:
        InvalidAmountError: If *amount_sats* is not a positive integer.
    """
    if isinstance(amount_sats, bool) or not isinstance(amount_sats, int) or amount_sats <= 0:
        raise InvalidAmountError(
            f"Zap amount must be a positive number of sats, got {amount_sats!r}"
        )

    return ZapRequest(
        recipient_pubkey=target.pubkey,
        target_event_id=target.id,
        target_kind=target.kind,
        amount_millisats=amount_sats * MSATS_PER_SAT,
        relay_hints=tuple(relay_urls),
        comment=comment,
    )


# =============================================================================
# Kind 1 (NIP-10) / Kind 1111 (NIP-22)
# =============================================================================


def _nip22_tags(root: Event, parent: Event | None) -> list[list[str]]:
    tags = [
        ["K", str(root.kind)],
        ["E", root.id, "", root.pubkey],
    ]
    if parent is not None and parent.id != root.id:
        tags.append(["e", parent.id, "", parent.pubkey])
    return tags


def _nip10_tags(root: Event, parent: Event | None) -> list[list[str]]:
    if parent is not None and parent.id == root.id:
        parent = None
    tags = [["e", root.id, "", ReplyMarker.ROOT.value]]
    if parent is not None:
        tags.append(["e", parent.id, "", ReplyMarker.REPLY.value])
    tags.append(["p", root.pubkey])
    if parent is not None and parent.pubkey != root.pubkey:
        tags.append(["p", parent.pubkey])
    return tags


def build_comment_event(root: Event, parent: Event | None, content: str) -> UnsignedEvent:
    """Build a reply to *parent* (or directly to *root* when ``None``).

    A kind 11 root gets a kind 1111 NIP-22 comment; any other root gets a
    kind 1 NIP-10 reply. Parent tags are only added when the parent is not
    the root itself.

    Examples:
        ```python
        build_comment_event(thread_root, None, "first!").tags
        # (('K', '11'), ('E', '<root id>', '', '<root pubkey>'))
        ```
    """
    if root.kind == EventKind.THREAD:
        return UnsignedEvent(
            kind=EventKind.COMMENT, content=content, tags=_nip22_tags(root, parent)
        )
    return UnsignedEvent(
        kind=EventKind.TEXT_NOTE, content=content, tags=_nip10_tags(root, parent)
    )


# =============================================================================
# Kind 10002 (NIP-65)
# =============================================================================


def build_relay_list_event(relays: Iterable[RelayDescriptor]) -> UnsignedEvent:
    """Build a NIP-65 relay list; relays with neither flag are omitted."""
    tags = [tag for relay in relays if (tag := relay.to_tag()) is not None]
    return UnsignedEvent(kind=EventKind.RELAY_LIST, tags=tags)
