"""
Relay list management: local override plus NIP-65 publication.

[RelayListManager][zapthread.services.relays.RelayListManager] wraps the
process-wide [RelaySettings][zapthread.core.config.RelaySettings]. Every
change goes through the same three steps:

1. apply the change atomically (or reject it, leaving the set untouched);
2. persist the new set when a path is configured;
3. when a signer is available, sign and publish a kind 10002 relay list
   so other clients pick up the change.

Step 3 is skipped in read-only mode (no identity). A failure in step 3
does not roll back steps 1-2: the local override stays in effect and the
error is raised so the caller can retry the publication with
[publish()][zapthread.services.relays.RelayListManager.publish].
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from zapthread.core.logger import Logger
from zapthread.nips.event_builders import build_relay_list_event


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from zapthread.core.config import RelaySettings
    from zapthread.models.event import Event
    from zapthread.models.relay import RelayDescriptor

    from .capabilities import Publisher, Signer


class RelayListManager:
    """Apply, persist, and publish relay list changes.

    Args:
        settings: The active relay set.
        path: Where to persist the set after each change (``None`` keeps
            changes in memory only).
        signer: Identity used to sign the relay list; ``None`` disables
            publication.
        publisher: Broadcast capability; required when *signer* is given.
    """

    def __init__(
        self,
        settings: RelaySettings,
        *,
        path: Path | None = None,
        signer: Signer | None = None,
        publisher: Publisher | None = None,
    ) -> None:
        if signer is not None and publisher is None:
            raise ValueError("A publisher is required when a signer is given")
        self._settings = settings
        self._path = path
        self._signer = signer
        self._publisher = publisher
        self._logger = Logger("zapthread.relays")

    @property
    def settings(self) -> RelaySettings:
        return self._settings

    async def add(self, url: str, *, read: bool = True, write: bool = True) -> Event | None:
        return await self._apply(
            "add", url, lambda: self._settings.add(url, read=read, write=write)
        )

    async def remove(self, url: str) -> Event | None:
        return await self._apply("remove", url, lambda: self._settings.remove(url))

    async def toggle(self, url: str) -> Event | None:
        return await self._apply("toggle", url, lambda: self._settings.toggle(url))

    async def replace(self, relays: Iterable[RelayDescriptor]) -> Event | None:
        new = tuple(relays)
        return await self._apply("replace", None, lambda: self._settings.replace(new))

    async def _apply(
        self,
        action: str,
        url: str | None,
        change: Callable[[], tuple[RelayDescriptor, ...]],
    ) -> Event | None:
        relays = change()
        self._logger.info("relay_list_changed", action=action, url=url, count=len(relays))
        if self._path is not None:
            self._settings.save(self._path)
        return await self.publish()

    async def publish(self) -> Event | None:
        """Sign and publish the current set as a kind 10002 event.

        Returns:
            The published event, or ``None`` in read-only mode.

        Raises:
            UserRejectedError: If the signer declines.
            PublishingError: If no relay accepts the event.
        """
        if self._signer is None or self._publisher is None:
            self._logger.debug("relay_list_publish_skipped", reason="no signer")
            return None
        signed = await self._signer.sign(build_relay_list_event(self._settings.relays))
        await self._publisher.publish(signed)
        self._logger.info("relay_list_published", event=signed.id, count=len(self._settings))
        return signed
