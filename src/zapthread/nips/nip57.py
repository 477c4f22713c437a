"""NIP-57 Lightning zaps: LNURL-pay discovery, invoices, and receipts.

A zap is paid in three HTTP-free steps plus two HTTP requests:

1. The recipient's Lightning address (``lud16``, ``name@domain``) is mapped
   to its LNURL-pay endpoint, ``https://domain/.well-known/lnurlp/name``.
2. [fetch_pay_endpoint][zapthread.nips.nip57.fetch_pay_endpoint] reads the
   endpoint metadata: callback URL, sendable range, and whether it accepts
   Nostr zap requests.
3. [InvoiceResolver][zapthread.nips.nip57.InvoiceResolver] calls the
   callback with the amount and the signed kind 9734 zap request and gets
   back a BOLT11 invoice.

After payment the recipient's server publishes a kind 9735 receipt that
embeds the zap request in its ``description`` tag;
[zap_total_sats][zapthread.nips.nip57.zap_total_sats] sums those.

Note:
    Every request is bounded in time (``asyncio.timeout``) and in size
    ([read_bounded_json][zapthread.utils.http.read_bounded_json]). Failures
    map to the [InvoiceError][zapthread.core.exceptions.InvoiceError]
    family; a reason string supplied by the server is kept verbatim in
    ``error.reason``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import aiohttp

from zapthread.core.exceptions import (
    EndpointUnavailableError,
    InvalidResponseError,
    NoLightningAddressError,
    ResolverTimeoutError,
)
from zapthread.models.constants import EventKind
from zapthread.models.zap import MSATS_PER_SAT, Invoice
from zapthread.utils.http import DEFAULT_MAX_RESPONSE_SIZE, append_query, read_bounded_json


if TYPE_CHECKING:
    from collections.abc import Iterable

    from zapthread.models.event import Event


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


# =============================================================================
# Lightning addresses
# =============================================================================


def lightning_address_of(profile: Event | None) -> str | None:
    """Return the ``lud16`` Lightning address from a kind 0 profile, if any."""
    if profile is None or profile.kind != EventKind.SET_METADATA:
        return None
    try:
        metadata = json.loads(profile.content)
    except ValueError:
        logger.debug("profile_unparseable pubkey=%s", profile.pubkey)
        return None
    if not isinstance(metadata, dict):
        return None
    address = metadata.get("lud16")
    if not isinstance(address, str) or "@" not in address:
        return None
    return address.strip() or None


def lnurlp_url(address: str) -> str:
    """Map ``name@domain`` to its LNURL-pay well-known URL.

    Onion domains are reached over plain ``http``.

    Raises:
        NoLightningAddressError: If *address* is not ``name@domain``.
    """
    name, sep, domain = address.strip().partition("@")
    if not sep or not name or not domain or "@" in domain or "/" in domain:
        raise NoLightningAddressError(f"Malformed Lightning address: {address!r}")
    scheme = "http" if domain.lower().endswith(".onion") else "https"
    return f"{scheme}://{domain.lower()}/.well-known/lnurlp/{name}"


# =============================================================================
# HTTP
# =============================================================================


async def _get_json(url: str, *, timeout: float, max_size: int) -> dict[str, Any]:  # noqa: ASYNC109
    try:
        async with (
            asyncio.timeout(timeout),
            aiohttp.ClientSession() as session,
            session.get(url, allow_redirects=True) as response,
        ):
            if not 200 <= response.status < 300:  # noqa: PLR2004
                reason = None
                with contextlib.suppress(ValueError, aiohttp.ClientError):
                    body = await read_bounded_json(response, max_size)
                    if isinstance(body, dict) and isinstance(body.get("reason"), str):
                        reason = body["reason"]
                raise EndpointUnavailableError(
                    f"Zap endpoint returned HTTP {response.status}", reason=reason
                )
            data = await read_bounded_json(response, max_size)
    except TimeoutError as e:
        raise ResolverTimeoutError(f"Zap endpoint timed out after {timeout}s") from e
    except (aiohttp.ClientError, OSError) as e:
        raise EndpointUnavailableError(f"Zap endpoint unreachable: {e}") from e
    except ValueError as e:
        raise InvalidResponseError(f"Zap endpoint returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidResponseError(f"Zap endpoint returned {type(data).__name__}, expected object")
    if str(data.get("status", "")).upper() == "ERROR":
        reason = data.get("reason")
        raise InvalidResponseError(
            f"Zap endpoint error: {reason}", reason=reason if isinstance(reason, str) else None
        )
    return data


# =============================================================================
# LNURL-pay metadata
# =============================================================================


@dataclass(frozen=True, slots=True)
class PayEndpoint:
    """LNURL-pay endpoint metadata.

    Attributes:
        callback: URL that issues invoices.
        min_sendable: Smallest accepted amount, in millisats.
        max_sendable: Largest accepted amount, in millisats.
        allows_nostr: Whether the endpoint accepts NIP-57 zap requests.
        nostr_pubkey: Key the endpoint signs zap receipts with.
    """

    callback: str
    min_sendable: int
    max_sendable: int
    allows_nostr: bool = False
    nostr_pubkey: str | None = None

    def check_amount(self, amount_msats: int) -> None:
        """Raise [InvalidResponseError][zapthread.core.exceptions.InvalidResponseError]
        if the endpoint cannot accept *amount_msats*."""
        if not self.min_sendable <= amount_msats <= self.max_sendable:
            raise InvalidResponseError(
                f"Amount {amount_msats // MSATS_PER_SAT} sats outside endpoint range "
                f"{self.min_sendable // MSATS_PER_SAT}-{self.max_sendable // MSATS_PER_SAT} sats"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayEndpoint:
        """Validate LNURL-pay metadata.

        Raises:
            InvalidResponseError: If a required field is missing or invalid,
                or the endpoint does not accept zaps.
        """
        callback = data.get("callback")
        if not isinstance(callback, str) or not callback.startswith(("https://", "http://")):
            raise InvalidResponseError(f"LNURL-pay callback missing or invalid: {callback!r}")

        bounds: list[int] = []
        for key in ("minSendable", "maxSendable"):
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidResponseError(f"LNURL-pay {key} missing or invalid: {value!r}")
            bounds.append(value)
        if bounds[0] > bounds[1]:
            raise InvalidResponseError(
                f"LNURL-pay minSendable {bounds[0]} > maxSendable {bounds[1]}"
            )

        if data.get("allowsNostr") is not True:
            raise InvalidResponseError("LNURL-pay endpoint does not accept zaps")
        nostr_pubkey = data.get("nostrPubkey")

        return cls(
            callback=callback,
            min_sendable=bounds[0],
            max_sendable=bounds[1],
            allows_nostr=True,
            nostr_pubkey=nostr_pubkey if isinstance(nostr_pubkey, str) else None,
        )


async def fetch_pay_endpoint(
    address: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    max_size: int = DEFAULT_MAX_RESPONSE_SIZE,
) -> PayEndpoint:
    """Discover the LNURL-pay endpoint behind a Lightning address.

    Raises:
        NoLightningAddressError: If *address* is malformed.
        EndpointUnavailableError: On transport errors or HTTP error status.
        ResolverTimeoutError: If the endpoint does not answer in time.
        InvalidResponseError: If the metadata is unusable.
    """
    url = lnurlp_url(address)
    logger.debug("pay_endpoint_fetching address=%s url=%s", address, url)
    endpoint = PayEndpoint.from_dict(await _get_json(url, timeout=timeout, max_size=max_size))
    logger.debug(
        "pay_endpoint_fetched address=%s min_msats=%d max_msats=%d",
        address,
        endpoint.min_sendable,
        endpoint.max_sendable,
    )
    return endpoint


# =============================================================================
# Invoices
# =============================================================================


class InvoiceResolver:
    """Exchange a signed zap request for a BOLT11 invoice.

    One GET per call, never retried.

    Examples:
        ```python
        resolver = InvoiceResolver(timeout=15.0)
        invoice = await resolver.resolve(signed_zap, endpoint.callback, 10_000)
        ```
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
        max_size: int = DEFAULT_MAX_RESPONSE_SIZE,
    ) -> None:
        self._timeout = timeout
        self._max_size = max_size

    async def resolve(
        self, signed_zap_request: Event, endpoint_url: str, amount_millisats: int
    ) -> Invoice:
        """Request an invoice from the LNURL-pay callback.

        Args:
            signed_zap_request: Signed kind 9734 event.
            endpoint_url: LNURL-pay callback URL; an existing query string
                is kept.
            amount_millisats: Amount to invoice.

        Raises:
            EndpointUnavailableError: On transport errors or HTTP error status.
            ResolverTimeoutError: If the callback does not answer in time.
            InvalidResponseError: If the response carries no ``pr``.
        """
        url = append_query(
            endpoint_url,
            {"amount": amount_millisats, "nostr": signed_zap_request.to_json()},
        )
        data = await _get_json(url, timeout=self._timeout, max_size=self._max_size)

        pr = data.get("pr")
        if not isinstance(pr, str) or not pr:
            reason = data.get("reason")
            raise InvalidResponseError(
                "Zap endpoint response has no payment request",
                reason=reason if isinstance(reason, str) else None,
            )
        logger.debug(
            "invoice_resolved zap_request=%s amount_msats=%d",
            signed_zap_request.id,
            amount_millisats,
        )
        return Invoice(payment_request=pr)


# =============================================================================
# Receipts
# =============================================================================


def _receipt_amount_msats(receipt: Event) -> int | None:
    description = receipt.first_tag_value("description")
    if not description:
        return None
    try:
        zap_request = json.loads(description)
        tags = zap_request["tags"]
    except (ValueError, KeyError, TypeError):
        return None
    if not isinstance(tags, list):
        return None
    for tag in tags:
        if isinstance(tag, list) and len(tag) > 1 and tag[0] == "amount":
            try:
                amount = int(tag[1])
            except (ValueError, TypeError):
                return None
            return amount if amount > 0 else None
    return None


def zap_total_sats(receipts: Iterable[Event], target_id: str) -> int:
    """Sum the zap receipts for *target_id*, in whole sats.

    A receipt counts when it is kind 9735, its ``e`` tag names the target,
    and the zap request embedded in its ``description`` tag carries a
    positive ``amount``. Anything else is skipped. Receipts are deduplicated
    by id.
    """
    seen: set[str] = set()
    total_msats = 0
    for receipt in receipts:
        if receipt.kind != EventKind.ZAP_RECEIPT or receipt.id in seen:
            continue
        if receipt.first_tag_value("e") != target_id:
            continue
        amount = _receipt_amount_msats(receipt)
        if amount is None:
            logger.debug("zap_receipt_skipped id=%s", receipt.id)
            continue
        seen.add(receipt.id)
        total_msats += amount
    return total_msats // MSATS_PER_SAT
