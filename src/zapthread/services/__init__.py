"""Services layer: thread assembly, the reply state machine, and relay lists.

Top of the diamond DAG. Services orchestrate ``core`` (config, logging),
``nips`` (event shapes, LNURL-pay) and ``utils`` (relay clients) through
the capability interfaces in [capabilities][zapthread.services.capabilities].

Attributes:
    assemble_thread: Unordered replies into a [Thread][zapthread.services.thread.Thread].
    ThreadCache: Per-root cache of assembled threads.
    ReplyAttempt: The zap-to-reply state machine.
    prepare_reply: Reply context with the target author's Lightning address.
    PaymentDispatcher: Single-shot invoice payment over a wallet variant.
    RelayListManager: Relay list changes with NIP-65 publication.
"""

from .capabilities import (
    EventSource,
    KeysSigner,
    Publisher,
    RelayEventSource,
    RelayPublisher,
    Signer,
)
from .payment import (
    LndRestWallet,
    LocalWallet,
    NoWallet,
    PaymentDispatcher,
    RemoteConnectWallet,
    Wallet,
)
from .relays import RelayListManager
from .reply import (
    FailureReason,
    ReplyAttempt,
    ReplyContext,
    ReplyState,
    ReplyTransition,
    failure_reason_for,
    prepare_reply,
)
from .thread import Thread, ThreadCache, ThreadNode, ThreadSummary, assemble_thread


__all__ = [
    "EventSource",
    "FailureReason",
    "KeysSigner",
    "LndRestWallet",
    "LocalWallet",
    "NoWallet",
    "PaymentDispatcher",
    "Publisher",
    "RelayEventSource",
    "RelayListManager",
    "RelayPublisher",
    "RemoteConnectWallet",
    "ReplyAttempt",
    "ReplyContext",
    "ReplyState",
    "ReplyTransition",
    "Signer",
    "Thread",
    "ThreadCache",
    "ThreadNode",
    "ThreadSummary",
    "Wallet",
    "assemble_thread",
    "failure_reason_for",
    "prepare_reply",
]
