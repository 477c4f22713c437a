"""Utility layer: HTTP helpers, Nostr keys, and relay client operations.

Sits in the middle of the diamond DAG next to ``core`` and ``nips``. Depends
only on ``zapthread.models`` and third-party libraries.

Attributes:
    read_bounded_json: Size-limited JSON reads for aiohttp responses.
    append_query: Query-string composition that keeps existing parameters.
    load_optional_keys: Load ``nostr_sdk.Keys`` from the environment when set.
    connect_client: Connect a ``nostr_sdk.Client`` to a set of relays.
"""

from .http import DEFAULT_MAX_RESPONSE_SIZE, append_query, read_bounded_json
from .keys import ENV_PRIVATE_KEY, load_keys_from_env, load_optional_keys
from .protocol import (
    connect_client,
    create_client,
    event_filter,
    fetch_events,
    profile_filter,
    reply_filter,
    send_event,
)


__all__ = [
    "DEFAULT_MAX_RESPONSE_SIZE",
    "ENV_PRIVATE_KEY",
    "append_query",
    "connect_client",
    "create_client",
    "event_filter",
    "fetch_events",
    "load_keys_from_env",
    "load_optional_keys",
    "profile_filter",
    "read_bounded_json",
    "reply_filter",
    "send_event",
]
