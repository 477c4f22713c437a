"""NIP-19 event identifiers.

Thread links may carry an event id as raw hex, a ``note1...`` bech32
string, or an ``nevent1...`` string with relay hints; an optional
``nostr:`` URI prefix is accepted for all three.
"""

from __future__ import annotations

from nostr_sdk import EventId, Nip19Event, NostrSdkError


_URI_PREFIX = "nostr:"


def decode_event_id(identifier: str) -> str:
    """Return the hex event id encoded by *identifier*.

    Raises:
        ValueError: If *identifier* is not a hex id, ``note``, or ``nevent``.

    Examples:
        ```python
        decode_event_id("note1...")  # '3bf0c63f...'
        ```
    """
    text = identifier.strip().removeprefix(_URI_PREFIX)
    if not text:
        raise ValueError("Event identifier must not be empty")
    try:
        if text.startswith("nevent1"):
            return Nip19Event.from_bech32(text).event_id().to_hex()
        return EventId.parse(text).to_hex()
    except NostrSdkError as e:
        raise ValueError(f"Invalid event identifier {identifier!r}: {e}") from e
