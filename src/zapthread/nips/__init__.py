"""Nostr Implementation Possibilities -- protocol-specific build and parse logic.

The NIPs layer sits in the middle of the diamond DAG, depending on
[zapthread.models][zapthread.models] and [zapthread.utils][zapthread.utils]
(and on [zapthread.core.exceptions][zapthread.core.exceptions] for its
error types). Only [nip57][zapthread.nips.nip57] performs I/O.

Attributes:
    resolve_parent_id: NIP-10 / NIP-22 reply parent resolution.
    build_zap_request: Kind 9734 zap request drafts.
    build_comment_event: Kind 1 / kind 1111 replies with exact tag shapes.
    build_relay_list_event: Kind 10002 relay lists.
    InvoiceResolver: LNURL-pay callback to BOLT11 invoice.
    fetch_pay_endpoint: Lightning address to LNURL-pay metadata.
    zap_total_sats: Sum of kind 9735 receipts for an event.
    decode_event_id: NIP-19 ``note`` / ``nevent`` / hex decoding.
"""

from zapthread.nips.event_builders import (
    build_comment_event,
    build_relay_list_event,
    build_zap_request,
)
from zapthread.nips.nip19 import decode_event_id
from zapthread.nips.nip57 import (
    InvoiceResolver,
    PayEndpoint,
    fetch_pay_endpoint,
    lightning_address_of,
    lnurlp_url,
    zap_total_sats,
)
from zapthread.nips.references import resolve_parent_id


__all__ = [
    "InvoiceResolver",
    "PayEndpoint",
    "build_comment_event",
    "build_relay_list_event",
    "build_zap_request",
    "decode_event_id",
    "fetch_pay_endpoint",
    "lightning_address_of",
    "lnurlp_url",
    "resolve_parent_id",
    "zap_total_sats",
]
