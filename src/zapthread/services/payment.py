"""
Payment dispatch: hand an invoice to exactly one wallet, exactly once.

A wallet is one of a closed set of variants:

* [NoWallet][zapthread.services.payment.NoWallet] -- nothing configured.
* [LocalWallet][zapthread.services.payment.LocalWallet] -- wraps any object
  with an async ``send_payment(payment_request)`` (a WebLN-style provider).
* [LndRestWallet][zapthread.services.payment.LndRestWallet] -- pays through
  an LND node's REST API.
* [RemoteConnectWallet][zapthread.services.payment.RemoteConnectWallet] --
  Nostr Wallet Connect. Not implemented; always unusable.

[PaymentDispatcher][zapthread.services.payment.PaymentDispatcher] never
retries: once an invoice has been handed to a wallet, a second attempt
could pay twice.
"""

from __future__ import annotations

import asyncio
import base64
import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp

from zapthread.core.exceptions import ConfigurationError, NoPaymentMethodError
from zapthread.core.logger import Logger
from zapthread.models.zap import PaymentResult
from zapthread.utils.http import DEFAULT_MAX_RESPONSE_SIZE, read_bounded_json


if TYPE_CHECKING:
    from zapthread.models.zap import Invoice


ENV_LND_REST_URL = "LND_REST_URL"
ENV_LND_MACAROON = "LND_MACAROON"


class PaymentProvider(Protocol):
    """Anything that can pay a BOLT11 payment request (WebLN shape)."""

    async def send_payment(self, payment_request: str) -> Any: ...


# ---------------------------------------------------------------------------
# Wallet variants
# ---------------------------------------------------------------------------


class Wallet(ABC):
    """Base class for payment capabilities."""

    name: str = "wallet"

    @property
    def can_pay(self) -> bool:
        return True

    @abstractmethod
    async def send_payment(self, invoice: Invoice) -> PaymentResult:
        """Pay *invoice*. May raise on failure."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NoWallet(Wallet):
    """No payment capability configured."""

    name = "none"

    @property
    def can_pay(self) -> bool:
        return False

    async def send_payment(self, invoice: Invoice) -> PaymentResult:
        raise NoPaymentMethodError("No wallet configured")


class RemoteConnectWallet(Wallet):
    """Nostr Wallet Connect (NIP-47) placeholder.

    Holds the connection URI so that configuration round-trips, but cannot
    pay yet: every attempt reports
    [NoPaymentMethodError][zapthread.core.exceptions.NoPaymentMethodError].
    """

    name = "nwc"

    def __init__(self, connection_uri: str = "") -> None:
        self.connection_uri = connection_uri

    @property
    def can_pay(self) -> bool:
        return False

    async def send_payment(self, invoice: Invoice) -> PaymentResult:
        raise NoPaymentMethodError("Nostr Wallet Connect payments are not supported")

    def __repr__(self) -> str:
        # The URI embeds a secret
        return "RemoteConnectWallet(connection_uri=<redacted>)"


class LocalWallet(Wallet):
    """Wallet delegating to an in-process provider (WebLN shape).

    The provider's return value may be ``None``, a mapping with a
    ``preimage`` key, or an object with a ``preimage`` attribute.
    """

    name = "local"

    def __init__(self, provider: PaymentProvider) -> None:
        self._provider = provider

    async def send_payment(self, invoice: Invoice) -> PaymentResult:
        response = await self._provider.send_payment(invoice.payment_request)
        if isinstance(response, PaymentResult):
            return response
        if isinstance(response, dict):
            preimage = response.get("preimage")
        else:
            preimage = getattr(response, "preimage", None)
        return PaymentResult.paid(preimage=preimage if isinstance(preimage, str) else None)


class LndRestWallet(Wallet):
    """Pays invoices through LND's ``/v1/channels/transactions`` endpoint.

    Args:
        rest_url: Base URL of the LND REST API, e.g. ``https://localhost:8080``.
        macaroon: Hex-encoded admin (or pay-only) macaroon.
        verify_ssl: Verify the node's TLS certificate. LND ships with a
            self-signed certificate, so this is often disabled for local
            nodes.
        timeout: Seconds before aiohttp gives up on the node. The payment
            itself may still settle; the result is then reported as failed.
    """

    name = "lnd"

    def __init__(
        self,
        rest_url: str,
        macaroon: str,
        *,
        verify_ssl: bool = True,
        timeout: float = 60.0,  # noqa: ASYNC109
    ) -> None:
        if not rest_url or not macaroon:
            raise ConfigurationError("LND REST wallet requires a URL and a macaroon")
        self._rest_url = rest_url.rstrip("/")
        self._macaroon = macaroon
        self._verify_ssl = verify_ssl
        self._timeout = timeout

    @classmethod
    def from_env(cls, *, verify_ssl: bool = True) -> LndRestWallet:
        """Build from ``LND_REST_URL`` and ``LND_MACAROON``.

        Raises:
            ConfigurationError: If either variable is missing.
        """
        return cls(
            os.getenv(ENV_LND_REST_URL, ""),
            os.getenv(ENV_LND_MACAROON, ""),
            verify_ssl=verify_ssl,
        )

    async def send_payment(self, invoice: Invoice) -> PaymentResult:
        url = f"{self._rest_url}/v1/channels/transactions"
        headers = {"Grpc-Metadata-macaroon": self._macaroon}
        connector = aiohttp.TCPConnector(ssl=self._verify_ssl)
        async with (
            aiohttp.ClientSession(
                connector=connector, timeout=aiohttp.ClientTimeout(total=self._timeout)
            ) as session,
            session.post(
                url, json={"payment_request": invoice.payment_request}, headers=headers
            ) as response,
        ):
            data = await read_bounded_json(response, DEFAULT_MAX_RESPONSE_SIZE)
            if response.status >= 300:  # noqa: PLR2004
                message = data.get("message") if isinstance(data, dict) else None
                return PaymentResult.failed(
                    f"LND returned HTTP {response.status}: {message or data}"
                )

        if not isinstance(data, dict):
            return PaymentResult.failed("LND returned an unexpected response")
        if data.get("payment_error"):
            return PaymentResult.failed(str(data["payment_error"]))

        preimage = data.get("payment_preimage")
        if isinstance(preimage, str) and preimage:
            preimage = base64.b64decode(preimage).hex()
        else:
            preimage = None
        return PaymentResult.paid(preimage=preimage)

    def __repr__(self) -> str:
        return f"LndRestWallet(rest_url={self._rest_url!r})"


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class PaymentDispatcher:
    """Single-shot invoice payment.

    Wallet exceptions are converted to a failed
    [PaymentResult][zapthread.models.zap.PaymentResult]; only an unusable
    wallet raises.
    """

    def __init__(self) -> None:
        self._logger = Logger("zapthread.payment")

    async def pay(self, invoice: Invoice, wallet: Wallet) -> PaymentResult:
        """Pay *invoice* with *wallet*, once.

        Raises:
            NoPaymentMethodError: If *wallet* cannot pay at all.
        """
        if not wallet.can_pay:
            raise NoPaymentMethodError(f"Wallet {wallet.name!r} cannot pay invoices")

        self._logger.info("payment_started", wallet=wallet.name)
        try:
            result = await wallet.send_payment(invoice)
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except NoPaymentMethodError:
            raise
        except Exception as e:  # noqa: BLE001  # wallet boundary
            self._logger.warning("payment_failed", wallet=wallet.name, error=str(e))
            return PaymentResult.failed(str(e) or type(e).__name__)

        if result.success:
            self._logger.info("payment_succeeded", wallet=wallet.name)
        else:
            self._logger.warning("payment_failed", wallet=wallet.name, error=result.reason)
        return result
