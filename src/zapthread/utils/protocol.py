"""Nostr relay client operations for zapthread.

Thin helpers around ``nostr_sdk.Client`` used by the relay-backed event
source and publisher in [zapthread.services.capabilities][]. They speak in
terms of [Event][zapthread.models.event.Event] and raise plain ``OSError``
/ ``TimeoutError``; the service layer maps those to typed errors.

Attributes:
    create_client: Client factory with an optional signer.
    connect_client: Create a client and connect it to a list of relays.
    send_event: Broadcast an already-signed event.
    fetch_events: Fetch and convert events matching a filter.
    reply_filter: Filter for the replies under a thread root.
    profile_filter: Filter for an author's kind 0 profile.

Examples:
    ```python
    client = await connect_client(["wss://nos.lol"], timeout=10.0)
    try:
        events = await fetch_events(client, reply_filter(root, limit=500), timeout=10.0)
    finally:
        await client.shutdown()
    ```
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from nostr_sdk import (
    Alphabet,
    Client,
    ClientBuilder,
    EventId,
    Filter,
    Kind,
    NostrSigner,
    PublicKey,
    RelayUrl,
    SingleLetterTag,
)
from nostr_sdk import Event as NostrEvent

from zapthread.models.constants import EventKind
from zapthread.models.event import Event


if TYPE_CHECKING:
    from collections.abc import Iterable

    from nostr_sdk import Keys


logger = logging.getLogger(__name__)


def create_client(keys: Keys | None = None) -> Client:
    """Create a Nostr client, read-only unless *keys* are given."""
    builder = ClientBuilder()
    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))
    return builder.build()


async def connect_client(
    relay_urls: Iterable[str],
    keys: Keys | None = None,
    timeout: float = 10.0,  # noqa: ASYNC109
) -> Client:
    """Create a client and connect it to every relay in *relay_urls*.

    Relays that fail to connect are logged and skipped.

    Raises:
        ValueError: If *relay_urls* is empty.
        OSError: If no relay could be connected.
    """
    urls = [RelayUrl.parse(url) for url in relay_urls]
    if not urls:
        raise ValueError("At least one relay URL is required")

    client = create_client(keys)
    for url in urls:
        await client.add_relay(url)
    output = await client.try_connect(timedelta(seconds=timeout))

    for url, error in output.failed.items():
        logger.debug("connect_failed relay=%s error=%s", url, error)
    if not output.success:
        await client.shutdown()
        raise OSError(f"Could not connect to any of {len(urls)} relays")

    logger.debug("relays_connected count=%d", len(output.success))
    return client


async def send_event(client: Client, event: Event) -> int:
    """Broadcast a signed event and return the number of accepting relays.

    Raises:
        OSError: If no relay accepted the event.
    """
    output = await client.send_event(NostrEvent.from_json(event.to_json()))
    for url, error in output.failed.items():
        logger.debug("send_failed relay=%s event=%s error=%s", url, event.id, error)
    if not output.success:
        raise OSError(f"No relay accepted event {event.id}")
    return len(output.success)


async def fetch_events(
    client: Client,
    event_filter: Filter,
    timeout: float = 10.0,  # noqa: ASYNC109
) -> list[Event]:
    """Fetch events matching *event_filter*, skipping any that fail validation."""
    events = await client.fetch_events(event_filter, timedelta(seconds=timeout))
    result: list[Event] = []
    for evt in events.to_vec():
        try:
            result.append(Event.from_nostr_event(evt))
        except (ValueError, TypeError) as e:
            logger.debug("event_skipped id=%s error=%s", evt.id().to_hex(), e)
    return result


def event_filter(event_id: str) -> Filter:
    """Filter matching a single event by id."""
    return Filter().ids([EventId.parse(event_id)]).limit(1)


def reply_filter(root: Event, limit: int) -> Filter:
    """Filter matching the replies under *root*.

    Kind 11 roots collect NIP-22 comments via the uppercase ``E`` tag; any
    other root collects kind 1 notes via the lowercase ``e`` tag.
    """
    if root.kind == EventKind.THREAD:
        kind = EventKind.COMMENT
        tag = SingleLetterTag.uppercase(Alphabet.E)
    else:
        kind = EventKind.TEXT_NOTE
        tag = SingleLetterTag.lowercase(Alphabet.E)
    return Filter().kind(Kind(kind)).custom_tag(tag, root.id).limit(limit)


def profile_filter(pubkey: str) -> Filter:
    """Filter matching the kind 0 profile of *pubkey*."""
    return (
        Filter().kind(Kind(EventKind.SET_METADATA)).author(PublicKey.parse(pubkey)).limit(1)
    )
