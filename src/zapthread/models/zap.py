"""
Value types for the zap-to-reply flow (NIP-57).

All three types are ephemeral: a fresh set is created for every reply
attempt and discarded when the attempt ends.

See Also:
    [zapthread.nips.event_builders.build_zap_request][]: Produces
        [ZapRequest][zapthread.models.zap.ZapRequest] drafts.
    [zapthread.nips.nip57.InvoiceResolver][]: Produces
        [Invoice][zapthread.models.zap.Invoice] values.
    [zapthread.services.payment.PaymentDispatcher][]: Produces
        [PaymentResult][zapthread.models.zap.PaymentResult] values.
"""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_positive_int, validate_str_no_null, validate_str_not_empty
from .constants import EventKind
from .event import UnsignedEvent


MSATS_PER_SAT = 1000


@dataclass(frozen=True, slots=True)
class ZapRequest:
    """Unsigned NIP-57 zap request draft.

    Attributes:
        recipient_pubkey: Author of the zapped event.
        target_event_id: Id of the zapped event.
        target_kind: Kind of the zapped event (emitted as a ``k`` tag).
        amount_millisats: Amount to pay, in millisatoshis.
        relay_hints: Relays where the recipient's server should publish the
            zap receipt.
        comment: Free-text zap comment (the request's content).
    """

    recipient_pubkey: str
    target_event_id: str
    target_kind: int
    amount_millisats: int
    relay_hints: tuple[str, ...] = ()
    comment: str = ""

    def __post_init__(self) -> None:
        validate_str_not_empty(self.recipient_pubkey, "recipient_pubkey")
        validate_str_not_empty(self.target_event_id, "target_event_id")
        validate_positive_int(self.amount_millisats, "amount_millisats")
        validate_str_no_null(self.comment, "comment")
        object.__setattr__(self, "relay_hints", tuple(self.relay_hints))

    def to_unsigned(self) -> UnsignedEvent:
        """Return the kind 9734 event fields for this request."""
        tags: list[list[str]] = []
        if self.relay_hints:
            tags.append(["relays", *self.relay_hints])
        tags.append(["amount", str(self.amount_millisats)])
        tags.append(["p", self.recipient_pubkey])
        tags.append(["e", self.target_event_id])
        tags.append(["k", str(self.target_kind)])
        return UnsignedEvent(kind=EventKind.ZAP_REQUEST, content=self.comment, tags=tags)


@dataclass(frozen=True, slots=True)
class Invoice:
    """BOLT11 invoice returned by an LNURL-pay callback."""

    payment_request: str

    def __post_init__(self) -> None:
        validate_str_not_empty(self.payment_request, "payment_request")


@dataclass(frozen=True, slots=True)
class PaymentResult:
    """Outcome of a single payment attempt.

    Attributes:
        success: Whether the wallet reported the invoice as paid.
        reason: Human-readable failure reason (``None`` on success).
        preimage: Payment preimage, when the wallet returns one.
    """

    success: bool
    reason: str | None = None
    preimage: str | None = None

    @classmethod
    def paid(cls, preimage: str | None = None) -> PaymentResult:
        return cls(success=True, preimage=preimage)

    @classmethod
    def failed(cls, reason: str) -> PaymentResult:
        return cls(success=False, reason=reason)
