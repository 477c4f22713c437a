"""HTTP utilities for zapthread.

Provides bounded JSON reading for HTTP responses, so that a misbehaving
LNURL-pay server cannot exhaust memory, and query-string composition for
callback URLs that may already carry parameters.

Note:
    This module sits in the ``utils`` layer and depends only on stdlib and
    third-party libraries (``aiohttp``). It is importable from both ``nips``
    and ``services`` without violating the diamond DAG.

See Also:
    [InvoiceResolver][zapthread.nips.nip57.InvoiceResolver]: LNURL-pay
        callback request that uses both helpers.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

import aiohttp


DEFAULT_MAX_RESPONSE_SIZE = 65_536  # 64 KB


def append_query(url: str, params: dict[str, str | int]) -> str:
    """Append URL-encoded *params* to *url*, keeping any existing query.

    Examples:
        ```python
        append_query("https://x/cb", {"amount": 1000})
        # 'https://x/cb?amount=1000'
        append_query("https://x/cb?id=7", {"amount": 1000})
        # 'https://x/cb?id=7&amount=1000'
        ```
    """
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    if url.endswith(("?", "&")):
        separator = ""
    return f"{url}{separator}{urlencode(params)}"


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Accumulates chunks until EOF or the size limit is exceeded, so chunked
    transfer-encoding is handled correctly.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(
    response: aiohttp.ClientResponse, max_size: int = DEFAULT_MAX_RESPONSE_SIZE
) -> Any:
    """Read and parse a JSON response body with size enforcement.

    The size check happens *before* JSON parsing.

    Args:
        response: An aiohttp response whose body has not yet been consumed.
        max_size: Maximum allowed response body size in bytes.

    Returns:
        The parsed JSON value.

    Raises:
        ValueError: If the response body exceeds *max_size*.
        json.JSONDecodeError: If the body is not valid JSON.
    """
    body = await _read_bounded(response, max_size)
    return json.loads(body)
