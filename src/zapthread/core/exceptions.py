"""zapthread exception hierarchy.

Every failure of the reply flow maps to exactly one typed exception, so the
[ReplyAttempt][zapthread.services.reply.ReplyAttempt] state machine can
translate errors into failure reasons without string matching, and callers
can distinguish recoverable from fatal errors.

Exception hierarchy:

```text
ZapThreadError (base -- never raised directly)
├── ConfigurationError          -- config validation, bad YAML
├── RelayListError              -- relay set invariant violated, bad URL
├── ReplyValidationError        -- empty content, no identity (never hits network)
│   └── InvalidAmountError      -- zap amount <= 0
├── NoLightningAddressError     -- target author cannot receive zaps
├── NoPaymentMethodError        -- no usable wallet configured
├── UserRejectedError           -- signer declined to sign
├── InvoiceError                -- LNURL-pay / invoice resolution failures
│   ├── EndpointUnavailableError -- transport error, HTTP error status
│   ├── ResolverTimeoutError     -- endpoint did not answer in time
│   └── InvalidResponseError     -- missing ``pr``, bad LNURL metadata
├── PaymentFailedError          -- wallet failed to pay the invoice
└── PublishingError             -- relay broadcast failures
    └── PaidButNotPublishedError -- payment settled, comment not published
```

See Also:
    [FailureReason][zapthread.services.reply.FailureReason]: The reply
        state machine's mapping of these exceptions.
"""

from __future__ import annotations


class ZapThreadError(Exception):
    """Base exception for all zapthread errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(ZapThreadError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


class RelayListError(ZapThreadError):
    """A relay list change was rejected.

    Raised when a change would leave the active set empty, when a URL is
    invalid, or when a relay is added twice. The active set is left
    unchanged.
    """


# ---------------------------------------------------------------------------
# Reply submission
# ---------------------------------------------------------------------------


class ReplyValidationError(ZapThreadError):
    """Reply rejected before any network activity (empty content, no identity).

    Recovered locally: the attempt stays idle and may be resubmitted.
    """


class InvalidAmountError(ReplyValidationError):
    """Zap amount is not a positive number of sats."""


class NoLightningAddressError(ZapThreadError):
    """The target author has no usable Lightning address.

    Fatal for the submission: the only way forward is a different target.
    """


class NoPaymentMethodError(ZapThreadError):
    """No usable payment capability is configured.

    Recoverable: the attempt waits until a wallet is provided.
    """


class UserRejectedError(ZapThreadError):
    """The identity holder declined to sign an event."""


# ---------------------------------------------------------------------------
# Invoice resolution
# ---------------------------------------------------------------------------


class InvoiceError(ZapThreadError):
    """Base for LNURL-pay and invoice resolution failures.

    Attributes:
        reason: Server-supplied reason string, passed through verbatim when
            the endpoint provided one.
    """

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class EndpointUnavailableError(InvoiceError):
    """The zap endpoint could not be reached or answered with an error status."""


class ResolverTimeoutError(InvoiceError):
    """The zap endpoint did not answer within the configured timeout."""


class InvalidResponseError(InvoiceError):
    """The zap endpoint answered without a usable payment request."""


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


class PaymentFailedError(ZapThreadError):
    """The wallet failed to pay the invoice.

    Never retried automatically: a second attempt risks paying twice.
    """


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishingError(ZapThreadError):
    """Failed to sign or broadcast a Nostr event to relays."""


class PaidButNotPublishedError(PublishingError):
    """The zap was paid but the comment could not be published.

    Callers should offer a publish-only retry that does not pay again.
    """
