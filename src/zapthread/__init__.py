r"""zapthread -- Nostr threads where every reply is paid with a zap.

Rebuilds threaded comment trees from unordered Nostr events, and gates
reply submission behind a NIP-57 Lightning zap to the author being
answered.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Thread assembly, reply state machine, relays
             /   |   \
          core  nips  utils    Config, NIP-10/22/57/65 shapes, relay clients
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from zapthread import ReplyAttempt``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("zapthread")

__all__ = [
    "Event",
    "FailureReason",
    "Logger",
    "RelayDescriptor",
    "RelayListManager",
    "RelaySettings",
    "ReplyAttempt",
    "ReplyContext",
    "ReplyState",
    "Thread",
    "ThreadCache",
    "ZapThreadConfig",
    "assemble_thread",
    "prepare_reply",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("zapthread.core", "Logger"),
    "RelaySettings": ("zapthread.core", "RelaySettings"),
    "ZapThreadConfig": ("zapthread.core", "ZapThreadConfig"),
    "Event": ("zapthread.models", "Event"),
    "RelayDescriptor": ("zapthread.models", "RelayDescriptor"),
    "FailureReason": ("zapthread.services", "FailureReason"),
    "RelayListManager": ("zapthread.services", "RelayListManager"),
    "ReplyAttempt": ("zapthread.services", "ReplyAttempt"),
    "ReplyContext": ("zapthread.services", "ReplyContext"),
    "prepare_reply": ("zapthread.services", "prepare_reply"),
    "ReplyState": ("zapthread.services", "ReplyState"),
    "Thread": ("zapthread.services", "Thread"),
    "ThreadCache": ("zapthread.services", "ThreadCache"),
    "assemble_thread": ("zapthread.services", "assemble_thread"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'zapthread' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
