"""
Zap-to-reply state machine.

A reply is only published after its author has paid the reply target a
zap. One [ReplyAttempt][zapthread.services.reply.ReplyAttempt] drives one
submission through these states:

```text
IDLE --submit()--> VALIDATING --+--> FAILED(NO_LIGHTNING_ADDRESS)
                                +--> AWAITING_WALLET --resume(wallet)--+
                                +--> BUILDING_ZAP <--------------------+
BUILDING_ZAP -> RESOLVING_INVOICE -> PAYING -> PUBLISHING -> SUCCEEDED
      |               |                |            |
      +---------------+----------------+------------+--> FAILED(reason)
```

Rules the machine enforces:

* Validation problems (blank content, no identity) raise
  [ReplyValidationError][zapthread.core.exceptions.ReplyValidationError]
  and leave the attempt in ``IDLE``. Nothing touches the network.
* A target without a Lightning address fails before any network call.
* An invoice is paid at most once per attempt, and a failed payment never
  leads to publication.
* A signer that fails on the zap request for any reason ends the attempt
  with ``USER_REJECTED``.
* If the reply cannot be signed or published after the zap was paid, the
  attempt fails with ``PAID_BUT_NOT_PUBLISHED``;
  [retry_publish()][zapthread.services.reply.ReplyAttempt.retry_publish]
  repeats only the sign-and-publish step.

Every transition is logged as ``reply_state_changed`` and appended to
``attempt.history``. The failure that ended or paused an attempt is kept
in ``attempt.error``.

Examples:
    ```python
    attempt = ReplyAttempt(
        ReplyContext(root=thread.root, lightning_address="bob@example.com"),
        signer=signer,
        publisher=publisher,
        wallet=LocalWallet(provider),
        cache=cache,
    )
    state = await attempt.submit("Great post!")
    if attempt.failure_reason is FailureReason.PAID_BUT_NOT_PUBLISHED:
        await attempt.retry_publish()
    ```
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from zapthread.core.config import ZapThreadConfig
from zapthread.core.exceptions import (
    EndpointUnavailableError,
    InvalidAmountError,
    InvalidResponseError,
    NoLightningAddressError,
    NoPaymentMethodError,
    PaidButNotPublishedError,
    PaymentFailedError,
    ReplyValidationError,
    ResolverTimeoutError,
    UserRejectedError,
    ZapThreadError,
)
from zapthread.core.logger import Logger
from zapthread.nips.event_builders import build_comment_event, build_zap_request
from zapthread.nips.nip57 import InvoiceResolver, fetch_pay_endpoint, lightning_address_of

from .payment import PaymentDispatcher


if TYPE_CHECKING:
    from collections.abc import Iterable

    from zapthread.models.event import Event
    from zapthread.models.zap import Invoice, PaymentResult

    from .capabilities import EventSource, Publisher, Signer
    from .payment import Wallet
    from .thread import ThreadCache


class ReplyState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    AWAITING_WALLET = "awaiting_wallet"
    BUILDING_ZAP = "building_zap"
    RESOLVING_INVOICE = "resolving_invoice"
    PAYING = "paying"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(StrEnum):
    NO_LIGHTNING_ADDRESS = "no_lightning_address"
    INVALID_AMOUNT = "invalid_amount"
    USER_REJECTED = "user_rejected"
    ENDPOINT_UNAVAILABLE = "endpoint_unavailable"
    INVALID_RESPONSE = "invalid_response"
    TIMEOUT = "timeout"
    PAYMENT_FAILED = "payment_failed"
    PAID_BUT_NOT_PUBLISHED = "paid_but_not_published"


# Most specific first: subclasses must precede their bases
_FAILURE_REASONS: tuple[tuple[type[ZapThreadError], FailureReason], ...] = (
    (InvalidAmountError, FailureReason.INVALID_AMOUNT),
    (NoLightningAddressError, FailureReason.NO_LIGHTNING_ADDRESS),
    (UserRejectedError, FailureReason.USER_REJECTED),
    (ResolverTimeoutError, FailureReason.TIMEOUT),
    (EndpointUnavailableError, FailureReason.ENDPOINT_UNAVAILABLE),
    (InvalidResponseError, FailureReason.INVALID_RESPONSE),
    (PaymentFailedError, FailureReason.PAYMENT_FAILED),
    (PaidButNotPublishedError, FailureReason.PAID_BUT_NOT_PUBLISHED),
)


def failure_reason_for(error: ZapThreadError) -> FailureReason | None:
    """Map a typed error to the failure reason it ends an attempt with."""
    for error_type, reason in _FAILURE_REASONS:
        if isinstance(error, error_type):
            return reason
    return None


@dataclass(frozen=True, slots=True)
class ReplyContext:
    """What is being replied to, and what the reply costs.

    Attributes:
        root: Thread root.
        parent: Reply being answered; ``None`` for a top-level reply.
        lightning_address: ``lud16`` of the zap target's author (the
            parent's author, or the root's when there is no parent).
        amount_sats: Reply price; ``None`` uses the configured default.
        relay_urls: Relays where the zap receipt should be published.
    """

    root: Event
    parent: Event | None = None
    lightning_address: str | None = None
    amount_sats: int | None = None
    relay_urls: tuple[str, ...] = ()

    @property
    def target(self) -> Event:
        """The event that receives the zap."""
        return self.parent if self.parent is not None else self.root


async def prepare_reply(
    source: EventSource,
    root: Event,
    parent: Event | None = None,
    *,
    amount_sats: int | None = None,
    relay_urls: Iterable[str] = (),
) -> ReplyContext:
    """Build a [ReplyContext][zapthread.services.reply.ReplyContext] for a
    reply to *parent* (or *root*), looking up the zap target's ``lud16``.

    A target whose author has no profile, or a profile without a usable
    Lightning address, gets ``lightning_address=None``; submitting the
    attempt then fails with ``NO_LIGHTNING_ADDRESS``.
    """
    target = parent if parent is not None else root
    profile = await source.fetch_profile(target.pubkey)
    return ReplyContext(
        root=root,
        parent=parent,
        lightning_address=lightning_address_of(profile),
        amount_sats=amount_sats,
        relay_urls=tuple(relay_urls),
    )


@dataclass(frozen=True, slots=True)
class ReplyTransition:
    """One entry of ``ReplyAttempt.history``."""

    source: ReplyState
    target: ReplyState
    reason: FailureReason | None = None
    at: float = field(default_factory=time.time)


class ReplyAttempt:
    """One zap-gated reply submission.

    Args:
        context: Root, parent, and price of the reply.
        signer: Identity that signs the zap request and the reply.
        publisher: Broadcast capability for the reply.
        wallet: Payment capability; ``None`` pauses in ``AWAITING_WALLET``.
        cache: Thread cache to invalidate once the reply is published.
        config: Timeouts and default price.
        resolver: Invoice resolver (built from *config* when omitted).
        dispatcher: Payment dispatcher.
    """

    def __init__(  # noqa: PLR0913
        self,
        context: ReplyContext,
        *,
        signer: Signer | None = None,
        publisher: Publisher | None = None,
        wallet: Wallet | None = None,
        cache: ThreadCache | None = None,
        config: ZapThreadConfig | None = None,
        resolver: InvoiceResolver | None = None,
        dispatcher: PaymentDispatcher | None = None,
    ) -> None:
        self._config = config or ZapThreadConfig()
        self.context = context
        self._signer = signer
        self._publisher = publisher
        self._wallet = wallet
        self._cache = cache
        self._resolver = resolver or InvoiceResolver(
            timeout=self._config.timeouts.invoice,
            max_size=self._config.max_response_size,
        )
        self._dispatcher = dispatcher or PaymentDispatcher()

        self.id = uuid.uuid4().hex[:12]
        self._logger = Logger("zapthread.reply", attempt=self.id)
        self._state = ReplyState.IDLE
        self.history: list[ReplyTransition] = []
        self.error: ZapThreadError | None = None
        self.failure_reason: FailureReason | None = None
        self.content = ""
        self.invoice: Invoice | None = None
        self.payment: PaymentResult | None = None
        self.published: Event | None = None
        self._payment_attempted = False

    @property
    def state(self) -> ReplyState:
        return self._state

    @property
    def amount_sats(self) -> int:
        if self.context.amount_sats is not None:
            return self.context.amount_sats
        return self._config.reply_amount_sats

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition(self, target: ReplyState, reason: FailureReason | None = None) -> None:
        source = self._state
        self._state = target
        self.history.append(ReplyTransition(source, target, reason))
        self._logger.info(
            "reply_state_changed",
            source=source.value,
            target=target.value,
            **({"reason": reason.value} if reason is not None else {}),
        )

    def _fail(self, error: ZapThreadError) -> ReplyState:
        reason = failure_reason_for(error)
        if reason is None:
            raise error
        self.error = error
        self.failure_reason = reason
        self._transition(ReplyState.FAILED, reason)
        return self._state

    def _await_wallet(self, error: NoPaymentMethodError) -> ReplyState:
        self.error = error
        if self._state is not ReplyState.AWAITING_WALLET:
            self._transition(ReplyState.AWAITING_WALLET)
        else:
            self._logger.info("wallet_still_unusable", error=str(error))
        return self._state

    def _require(self, *states: ReplyState, action: str) -> None:
        if self._state not in states:
            raise RuntimeError(f"Cannot {action} in state {self._state.value}")

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def submit(self, content: str) -> ReplyState:
        """Start the attempt with the reply text *content*.

        Returns:
            The state the attempt stopped in: ``SUCCEEDED``, ``FAILED``, or
            ``AWAITING_WALLET``.

        Raises:
            ReplyValidationError: If *content* is blank or no signer or
                publisher is available. The attempt stays ``IDLE``.
            RuntimeError: If the attempt was already submitted.
        """
        self._require(ReplyState.IDLE, action="submit")

        problem = None
        if not content or not content.strip():
            problem = "Reply content must not be empty"
        elif self._signer is None:
            problem = "Log in to reply"
        elif self._publisher is None:
            problem = "No relay publisher available"
        if problem is not None:
            self.error = ReplyValidationError(problem)
            self._logger.info("reply_rejected", error=problem)
            raise self.error

        self.content = content
        self.error = None
        self._transition(ReplyState.VALIDATING)

        if not self.context.lightning_address:
            return self._fail(
                NoLightningAddressError(
                    f"Author {self.context.target.pubkey} has no Lightning address"
                )
            )
        if self._wallet is None or not self._wallet.can_pay:
            return self._await_wallet(NoPaymentMethodError("Connect a wallet to pay for the reply"))

        self._transition(ReplyState.BUILDING_ZAP)
        return await self._run()

    async def resume(self, wallet: Wallet) -> ReplyState:
        """Continue an attempt paused for lack of a wallet.

        An unusable *wallet* leaves the attempt in ``AWAITING_WALLET`` with
        [NoPaymentMethodError][zapthread.core.exceptions.NoPaymentMethodError]
        recorded.
        """
        self._require(ReplyState.AWAITING_WALLET, action="resume")
        if not wallet.can_pay:
            return self._await_wallet(
                NoPaymentMethodError(f"Wallet {wallet.name!r} cannot pay invoices")
            )
        self._wallet = wallet
        self.error = None
        self._transition(ReplyState.BUILDING_ZAP)
        return await self._run()

    async def retry_publish(self) -> ReplyState:
        """Retry signing and publishing a reply whose zap was already paid."""
        if self.failure_reason is not FailureReason.PAID_BUT_NOT_PUBLISHED:
            raise RuntimeError("Only a paid but unpublished reply can be republished")
        self.error = None
        self.failure_reason = None
        self._transition(ReplyState.PUBLISHING)
        return await self._publish()

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _run(self) -> ReplyState:
        try:
            signed_zap = await self._build_zap()
            self._transition(ReplyState.RESOLVING_INVOICE)
            self.invoice = await self._resolve_invoice(signed_zap)
        except ZapThreadError as e:
            return self._fail(e)

        self._transition(ReplyState.PAYING)
        try:
            self.payment = await self._pay(self.invoice)
        except NoPaymentMethodError as e:
            return self._await_wallet(e)
        if not self.payment.success:
            return self._fail(PaymentFailedError(self.payment.reason or "Payment failed"))

        self._transition(ReplyState.PUBLISHING)
        return await self._publish()

    def _identity(self) -> tuple[Signer, Publisher]:
        if self._signer is None or self._publisher is None:
            raise RuntimeError("Signer and publisher are checked in submit()")
        return self._signer, self._publisher

    async def _build_zap(self) -> Event:
        signer, _ = self._identity()
        zap = build_zap_request(
            self.context.target,
            self.amount_sats,
            self.context.relay_urls,
        )
        try:
            return await signer.sign(zap.to_unsigned())
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except UserRejectedError:
            raise
        except Exception as e:  # noqa: BLE001  # signer boundary
            self._logger.warning("zap_signing_failed", error=str(e), error_type=type(e).__name__)
            raise UserRejectedError(
                f"Zap request not signed: {str(e) or type(e).__name__}"
            ) from e

    async def _resolve_invoice(self, signed_zap: Event) -> Invoice:
        address = self.context.lightning_address or ""
        amount_msats = signed_zap_amount(signed_zap)
        endpoint = await fetch_pay_endpoint(
            address,
            timeout=self._config.timeouts.pay_endpoint,
            max_size=self._config.max_response_size,
        )
        endpoint.check_amount(amount_msats)
        return await self._resolver.resolve(signed_zap, endpoint.callback, amount_msats)

    async def _pay(self, invoice: Invoice) -> PaymentResult:
        if self._payment_attempted:
            raise RuntimeError("Payment already attempted for this reply")
        if self._wallet is None:
            raise RuntimeError("Wallet is checked before BUILDING_ZAP")
        self._payment_attempted = True
        try:
            return await self._dispatcher.pay(invoice, self._wallet)
        except NoPaymentMethodError:
            # Refused before any money moved
            self._payment_attempted = False
            raise

    async def _publish(self) -> ReplyState:
        signer, publisher = self._identity()
        try:
            unsigned = build_comment_event(self.context.root, self.context.parent, self.content)
            async with asyncio.timeout(self._config.timeouts.publish):
                signed = await signer.sign(unsigned)
                await publisher.publish(signed)
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:  # noqa: BLE001  # signer and relay boundary
            reason = str(e) or type(e).__name__
            self._logger.warning("reply_publish_failed", error=reason, error_type=type(e).__name__)
            return self._fail(
                PaidButNotPublishedError(f"Zap paid but reply not published: {reason}")
            )

        self.published = signed
        self.content = ""
        if self._cache is not None:
            self._cache.invalidate(self.context.root.id)
        self._transition(ReplyState.SUCCEEDED)
        self._logger.info("reply_published", event=signed.id, root=self.context.root.id)
        return self._state


def signed_zap_amount(zap_request: Event) -> int:
    """Return the ``amount`` tag of a signed zap request, in millisats.

    Raises:
        InvalidAmountError: If the tag is missing or not a positive integer.
    """
    value = zap_request.first_tag_value("amount")
    try:
        amount = int(value) if value is not None else 0
    except ValueError:
        amount = 0
    if amount <= 0:
        raise InvalidAmountError(f"Zap request {zap_request.id} carries no valid amount")
    return amount
