"""
Application configuration and the process-wide relay list.

Configuration is split in two:

* [ZapThreadConfig][zapthread.core.config.ZapThreadConfig] is the static,
  read-only configuration loaded once from YAML (reply price, timeouts,
  relay list location). Pydantic validates every field at load time.
* [RelaySettings][zapthread.core.config.RelaySettings] is the one piece of
  mutable state in the system: the active relay set. It is held as an
  immutable tuple that is swapped in a single assignment, so readers never
  observe a half-applied change.

Examples:
    ```python
    config = ZapThreadConfig.from_yaml("config/zapthread.yaml")
    settings = RelaySettings.load(config.relays.path)
    settings.add("relay.damus.io")
    settings.save(config.relays.path)
    ```
"""

from __future__ import annotations

import logging
from pathlib import Path
from time import time
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, Field, ValidationError, field_validator

from zapthread.models.relay import RelayDescriptor, normalize_relay_url

from .exceptions import ConfigurationError, RelayListError
from .yaml import load_yaml, save_yaml


if TYPE_CHECKING:
    from collections.abc import Iterable


logger = logging.getLogger(__name__)


DEFAULT_RELAY_PRESETS: tuple[str, ...] = (
    "wss://bevo.nostr1.com",
    "wss://relay.damus.io",
    "wss://relay.primal.net",
    "wss://relay.nostr.band",
    "wss://nos.lol",
    "wss://relay.snort.social",
    "wss://relay.ditto.pub",
    "wss://purplepag.es",
)


# ---------------------------------------------------------------------------
# Static configuration
# ---------------------------------------------------------------------------


class TimeoutsConfig(BaseModel):
    """Per-operation network timeouts, in seconds.

    Payment has no timeout: once an invoice is handed to a wallet it cannot
    be cancelled safely.
    """

    pay_endpoint: float = Field(default=15.0, gt=0, description="LNURL-pay discovery request")
    invoice: float = Field(default=15.0, gt=0, description="LNURL-pay callback request")
    publish: float = Field(default=15.0, gt=0, description="Signing and relay broadcast")
    fetch: float = Field(default=10.0, gt=0, description="Relay event fetch")


class RelayEntryConfig(BaseModel):
    """One persisted relay entry."""

    url: str
    read: bool = True
    write: bool = True

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, v: str) -> str:
        return normalize_relay_url(v)


class RelayListConfig(BaseModel):
    """Relay list persistence settings.

    Attributes:
        path: YAML file holding the local relay list override.
        presets: Relay URLs offered as one-click choices. The first entry is
            the default active relay when nothing has been persisted.
    """

    path: Path = Field(default=Path("relays.yaml"))
    presets: list[str] = Field(default_factory=lambda: list(DEFAULT_RELAY_PRESETS), min_length=1)

    @field_validator("presets")
    @classmethod
    def _normalize_presets(cls, v: list[str]) -> list[str]:
        return [normalize_relay_url(url) for url in v]


class ZapThreadConfig(BaseModel):
    """Top-level configuration for the reply flow and CLI.

    Attributes:
        reply_amount_sats: Price of one reply, paid as a zap to the target.
        comment_limit: Maximum number of replies fetched per thread.
        max_response_size: Upper bound, in bytes, on LNURL response bodies.
        timeouts: See [TimeoutsConfig][zapthread.core.config.TimeoutsConfig].
        relays: See [RelayListConfig][zapthread.core.config.RelayListConfig].
    """

    reply_amount_sats: int = Field(default=10, ge=1)
    comment_limit: int = Field(default=500, ge=1)
    max_response_size: int = Field(default=65_536, ge=1024)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    relays: RelayListConfig = Field(default_factory=RelayListConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Validate *data* into a config.

        Raises:
            ConfigurationError: If any field fails validation.
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        """Load and validate a YAML configuration file.

        A missing file yields the defaults.
        """
        if not Path(config_path).exists():
            logger.info("config_defaults path=%s", config_path)
            return cls()
        return cls.from_dict(load_yaml(config_path))


class _PersistedRelayList(BaseModel):
    relays: list[RelayEntryConfig] = Field(min_length=1)
    updated_at: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Mutable relay set
# ---------------------------------------------------------------------------


class RelaySettings:
    """The active relay set.

    The set always holds at least one relay and never holds the same URL
    twice. Every mutator builds a complete new tuple, validates it, and
    only then assigns it; a rejected change raises
    [RelayListError][zapthread.core.exceptions.RelayListError] and leaves
    the current set untouched.
    """

    def __init__(self, relays: Iterable[RelayDescriptor], *, updated_at: int = 0) -> None:
        self._relays: tuple[RelayDescriptor, ...] = self._validated(tuple(relays))
        self._updated_at = updated_at

    @classmethod
    def default(cls, presets: Iterable[str] = DEFAULT_RELAY_PRESETS) -> RelaySettings:
        """Return a set holding only the first preset."""
        first = next(iter(presets), None)
        if first is None:
            raise RelayListError("At least one preset relay is required")
        return cls([RelayDescriptor(first)])

    @classmethod
    def load(
        cls, path: str | Path, presets: Iterable[str] = DEFAULT_RELAY_PRESETS
    ) -> RelaySettings:
        """Load the persisted relay list, or the default when none exists.

        Raises:
            ConfigurationError: If the file exists but is malformed.
        """
        if not Path(path).exists():
            return cls.default(presets)
        try:
            persisted = _PersistedRelayList(**load_yaml(path))
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid relay list in {path}: {e}") from e
        try:
            return cls(
                [RelayDescriptor(r.url, read=r.read, write=r.write) for r in persisted.relays],
                updated_at=persisted.updated_at,
            )
        except RelayListError as e:
            raise ConfigurationError(f"Invalid relay list in {path}: {e}") from e

    def save(self, path: str | Path) -> None:
        """Persist the current set as YAML."""
        save_yaml(
            path,
            {
                "relays": [{"url": r.url, "read": r.read, "write": r.write} for r in self._relays],
                "updated_at": self._updated_at,
            },
        )
        logger.debug("relay_list_saved path=%s count=%d", path, len(self._relays))

    @property
    def relays(self) -> tuple[RelayDescriptor, ...]:
        return self._relays

    @property
    def updated_at(self) -> int:
        return self._updated_at

    @property
    def primary(self) -> RelayDescriptor:
        """The first relay, shown as the current relay."""
        return self._relays[0]

    @property
    def read_urls(self) -> list[str]:
        return [r.url for r in self._relays if r.read]

    @property
    def write_urls(self) -> list[str]:
        return [r.url for r in self._relays if r.write]

    def __contains__(self, url: object) -> bool:
        if not isinstance(url, str):
            return False
        try:
            normalized = normalize_relay_url(url)
        except ValueError:
            return False
        return any(r.url == normalized for r in self._relays)

    def __len__(self) -> int:
        return len(self._relays)

    @staticmethod
    def _validated(relays: tuple[RelayDescriptor, ...]) -> tuple[RelayDescriptor, ...]:
        if not relays:
            raise RelayListError("At least one relay is required")
        seen: set[str] = set()
        for relay in relays:
            if relay.url in seen:
                raise RelayListError(f"Duplicate relay: {relay.url}")
            seen.add(relay.url)
        return relays

    def replace(self, relays: Iterable[RelayDescriptor]) -> tuple[RelayDescriptor, ...]:
        """Atomically swap in a complete new relay list.

        Returns:
            The new active set.

        Raises:
            RelayListError: If *relays* is empty or contains duplicates.
        """
        new = self._validated(tuple(relays))
        self._relays = new
        self._updated_at = int(time())
        logger.info("relay_list_replaced count=%d", len(new))
        return new

    def add(
        self, url: str, *, read: bool = True, write: bool = True
    ) -> tuple[RelayDescriptor, ...]:
        """Append a relay.

        Raises:
            RelayListError: If the URL is invalid or already present.
        """
        try:
            relay = RelayDescriptor(url, read=read, write=write)
        except (ValueError, TypeError) as e:
            raise RelayListError(f"Invalid relay URL {url!r}: {e}") from e
        if relay.url in self:
            raise RelayListError(f"Relay already added: {relay.url}")
        return self.replace((*self._relays, relay))

    def remove(self, url: str) -> tuple[RelayDescriptor, ...]:
        """Remove a relay.

        Raises:
            RelayListError: If the relay is not present or is the last one.
        """
        if url not in self:
            raise RelayListError(f"Relay not in list: {url}")
        normalized = normalize_relay_url(url)
        return self.replace(r for r in self._relays if r.url != normalized)

    def toggle(self, url: str) -> tuple[RelayDescriptor, ...]:
        """Remove *url* if active, otherwise add it as read+write."""
        if url in self:
            return self.remove(url)
        return self.add(url)
