"""
Relay URL normalization and relay descriptors.

Parses user-supplied relay URLs (``relay.damus.io``, ``wss://nos.lol/``,
``ws://localhost:7777``) into a canonical form so that the active relay set
can be de-duplicated by URL, and pairs each URL with its NIP-65 read/write
flags in a [RelayDescriptor][zapthread.models.relay.RelayDescriptor].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import RelayUsage


_DEFAULT_PORTS: dict[str, int] = {"ws": 80, "wss": 443}


def normalize_relay_url(raw: str) -> str:
    """Return the canonical form of a relay URL.

    * Surrounding whitespace is stripped.
    * A missing scheme defaults to ``wss://``.
    * Scheme and host are lower-cased, default ports are dropped.
    * Duplicate and trailing slashes in the path are removed.

    Args:
        raw: URL as typed by a user or found in a tag.

    Returns:
        Normalized URL, e.g. ``"wss://relay.damus.io"``.

    Raises:
        ValueError: If the URL is empty, contains null bytes, is not
            ``ws``/``wss``, or carries a query string or fragment.
    """
    if not isinstance(raw, str):
        raise TypeError(f"Relay URL must be a str, got {type(raw).__name__}")
    if "\x00" in raw:
        raise ValueError("Relay URL contains null bytes")

    text = raw.strip()
    if not text:
        raise ValueError("Relay URL must not be empty")
    if "://" not in text:
        text = f"wss://{text}"

    uri = uri_reference(text).normalize()
    validator = (
        Validator()
        .require_presence_of("scheme", "host")
        .allow_schemes("ws", "wss")
        .check_validity_of("scheme", "host", "port", "path")
    )
    try:
        validator.validate(uri)
    except UnpermittedComponentError:
        raise ValueError("Invalid scheme: must be ws or wss") from None
    except ValidationError as e:
        raise ValueError(f"Invalid URL: {e}") from None

    if uri.query:
        raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
    if uri.fragment:
        raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

    path = uri.path or ""
    while "//" in path:
        path = path.replace("//", "/")
    path = path.rstrip("/")

    port = int(uri.port) if uri.port else None
    host = uri.host
    if port and port != _DEFAULT_PORTS[uri.scheme]:
        host = f"{host}:{port}"

    return f"{uri.scheme}://{host}{path}"


def relay_display_name(url: str) -> str:
    """Return a short label for a relay URL (host without ``www.``)."""
    try:
        host = uri_reference(url).host
    except ValueError:
        return url
    if not host:
        return url
    return host.removeprefix("www.")


@dataclass(frozen=True, slots=True)
class RelayDescriptor:
    """One entry of the active relay set.

    Attributes:
        url: Normalized relay URL (normalized again on construction).
        read: Whether events are fetched from this relay.
        write: Whether events are published to this relay.

    Raises:
        ValueError: If the URL is invalid.

    Examples:
        ```python
        RelayDescriptor("relay.damus.io").url          # 'wss://relay.damus.io'
        RelayDescriptor("wss://nos.lol", write=False).to_tag()
        # ('r', 'wss://nos.lol', 'read')
        ```
    """

    url: str
    read: bool = True
    write: bool = True

    _MARKERS: ClassVar[dict[tuple[bool, bool], tuple[str, ...]]] = {
        (True, True): (),
        (True, False): (RelayUsage.READ.value,),
        (False, True): (RelayUsage.WRITE.value,),
    }

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", normalize_relay_url(self.url))

    def to_tag(self) -> tuple[str, ...] | None:
        """Return the NIP-65 ``r`` tag, or ``None`` when neither flag is set."""
        marker = self._MARKERS.get((self.read, self.write))
        if marker is None:
            return None
        return ("r", self.url, *marker)

    @classmethod
    def from_tag(cls, tag: tuple[str, ...] | list[str]) -> RelayDescriptor:
        """Parse a NIP-65 ``r`` tag back into a descriptor.

        Raises:
            ValueError: If the tag is not an ``r`` tag or the URL is invalid.
        """
        if len(tag) < 2 or tag[0] != "r":  # noqa: PLR2004
            raise ValueError(f"Not a relay list tag: {list(tag)}")
        marker = tag[2] if len(tag) > 2 else ""  # noqa: PLR2004
        return cls(
            url=tag[1],
            read=marker != RelayUsage.WRITE,
            write=marker != RelayUsage.READ,
        )
