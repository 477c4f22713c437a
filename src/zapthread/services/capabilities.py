"""
Capability interfaces for the outside world, and their relay-backed adapters.

The reply flow and thread cache never reach a relay, a key, or a wallet
directly. They are handed objects implementing these protocols:

* [Signer][zapthread.services.capabilities.Signer]: key custody.
* [Publisher][zapthread.services.capabilities.Publisher]: relay broadcast.
* [EventSource][zapthread.services.capabilities.EventSource]: relay fetching.

Wallets live in [zapthread.services.payment][] because they form a closed
set of variants rather than an open protocol.

The concrete classes at the bottom of this module wire the protocols to
``nostr_sdk`` through [zapthread.utils.protocol][]. Tests substitute
``AsyncMock`` objects.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from nostr_sdk import NostrSdkError

from zapthread.core.exceptions import PublishingError, UserRejectedError
from zapthread.core.logger import Logger
from zapthread.models.event import Event
from zapthread.utils.protocol import (
    connect_client,
    event_filter,
    fetch_events,
    profile_filter,
    reply_filter,
    send_event,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from nostr_sdk import Filter, Keys

    from zapthread.models.event import UnsignedEvent


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Signer(Protocol):
    """Holds the user's identity and signs events on request."""

    @property
    def pubkey(self) -> str: ...

    async def sign(self, unsigned: UnsignedEvent) -> Event:
        """Return *unsigned* signed by this identity.

        Raises:
            UserRejectedError: If the identity holder declines.
        """
        ...


@runtime_checkable
class Publisher(Protocol):
    """Broadcasts signed events to the user's write relays."""

    async def publish(self, event: Event) -> None:
        """Raises [PublishingError][zapthread.core.exceptions.PublishingError]
        if no relay accepted the event."""
        ...


@runtime_checkable
class EventSource(Protocol):
    """Fetches thread roots, their replies, and author profiles."""

    async def fetch_thread(self, root_id: str) -> Event | None: ...

    async def fetch_replies(self, root: Event) -> Iterable[Event]: ...

    async def fetch_profile(self, pubkey: str) -> Event | None:
        """Return the newest kind 0 profile of *pubkey*, if any relay has one."""
        ...


# ---------------------------------------------------------------------------
# nostr-sdk adapters
# ---------------------------------------------------------------------------


class KeysSigner:
    """[Signer][zapthread.services.capabilities.Signer] backed by local ``nostr_sdk.Keys``."""

    def __init__(self, keys: Keys) -> None:
        self._keys = keys
        self._pubkey = keys.public_key().to_hex()

    @property
    def pubkey(self) -> str:
        return self._pubkey

    async def sign(self, unsigned: UnsignedEvent) -> Event:
        try:
            signed = unsigned.to_event_builder().sign_with_keys(self._keys)
        except NostrSdkError as e:
            raise UserRejectedError(f"Signing failed: {e}") from e
        return Event.from_nostr_event(signed)


class RelayPublisher:
    """[Publisher][zapthread.services.capabilities.Publisher] that opens a
    short-lived client per event.

    Succeeds when at least one relay accepts the event. *timeout* bounds the
    connect step and the broadcast separately.

    Args:
        relay_urls: Relays to write to, or a callable returning them. A
            callable is read on every publish, so a publisher built from
            ``lambda: settings.write_urls`` follows relay list changes.
        timeout: Seconds allowed for connecting and for broadcasting.
    """

    def __init__(
        self,
        relay_urls: Iterable[str] | Callable[[], Iterable[str]],
        *,
        timeout: float = 15.0,  # noqa: ASYNC109
    ) -> None:
        self._relay_urls = relay_urls if callable(relay_urls) else list(relay_urls)
        self._timeout = timeout
        self._logger = Logger("zapthread.publisher")

    @property
    def relay_urls(self) -> list[str]:
        if callable(self._relay_urls):
            return list(self._relay_urls())
        return self._relay_urls

    async def publish(self, event: Event) -> None:
        client = None
        try:
            client = await connect_client(self.relay_urls, timeout=self._timeout)
            async with asyncio.timeout(self._timeout):
                accepted = await send_event(client, event)
        except (OSError, TimeoutError, ValueError, NostrSdkError) as e:
            self._logger.warning("publish_failed", event=event.id, kind=event.kind, error=str(e))
            raise PublishingError(f"Could not publish event {event.id}: {e}") from e
        finally:
            if client is not None:
                await client.shutdown()
        self._logger.info("event_published", event=event.id, kind=event.kind, relays=accepted)


class RelayEventSource:
    """[EventSource][zapthread.services.capabilities.EventSource] reading
    from the active read relays.

    Args:
        relay_urls: Relays to query.
        timeout: Seconds to wait for each fetch.
        limit: Maximum replies fetched per thread.
    """

    def __init__(
        self,
        relay_urls: Iterable[str],
        *,
        timeout: float = 10.0,  # noqa: ASYNC109
        limit: int = 500,
    ) -> None:
        self._relay_urls = list(relay_urls)
        self._timeout = timeout
        self._limit = limit

    async def _fetch(self, f: Filter) -> list[Event]:
        client = await connect_client(self._relay_urls, timeout=self._timeout)
        try:
            return await fetch_events(client, f, timeout=self._timeout)
        finally:
            await client.shutdown()

    async def fetch_thread(self, root_id: str) -> Event | None:
        events = await self._fetch(event_filter(root_id))
        return next((e for e in events if e.id == root_id), None)

    async def fetch_replies(self, root: Event) -> list[Event]:
        return await self._fetch(reply_filter(root, self._limit))

    async def fetch_profile(self, pubkey: str) -> Event | None:
        profiles = [e for e in await self._fetch(profile_filter(pubkey)) if e.pubkey == pubkey]
        return max(profiles, key=lambda e: e.created_at, default=None)
