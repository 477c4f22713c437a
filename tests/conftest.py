"""
Pytest configuration and shared fixtures for zapthread tests.

Provides:
- Event factories for thread roots, replies, profiles, and zap receipts
- Mock capabilities (signer, publisher, event source)
- A relay settings fixture seeded with the first preset
"""

from __future__ import annotations

import json
import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from zapthread.core.config import RelaySettings
from zapthread.models import Event, EventKind, RelayDescriptor, UnsignedEvent


ROOT_AUTHOR = "a" * 64
REPLY_AUTHOR = "b" * 64
USER_PUBKEY = "c" * 64


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Event Factories
# ============================================================================


def make_event(
    event_id: str,
    *,
    kind: int = EventKind.TEXT_NOTE,
    pubkey: str = REPLY_AUTHOR,
    created_at: int = 1_700_000_000,
    content: str = "",
    tags: list[list[str]] | None = None,
) -> Event:
    """Build an [Event] with sensible defaults."""
    return Event(
        id=event_id,
        pubkey=pubkey,
        kind=kind,
        created_at=created_at,
        content=content,
        tags=tags or [],
    )


def make_reply(
    event_id: str,
    root_id: str,
    parent_id: str | None = None,
    *,
    created_at: int = 1_700_000_100,
    content: str = "reply",
) -> Event:
    """Build a NIP-10 kind 1 reply with marked ``e`` tags."""
    tags = [["e", root_id, "", "root"]]
    if parent_id is not None:
        tags.append(["e", parent_id, "", "reply"])
    return make_event(event_id, created_at=created_at, content=content, tags=tags)


def make_comment(
    event_id: str,
    root_id: str,
    parent_id: str | None = None,
    *,
    created_at: int = 1_700_000_100,
    content: str = "comment",
) -> Event:
    """Build a NIP-22 kind 1111 comment."""
    tags = [["K", "11"], ["E", root_id, "", ROOT_AUTHOR]]
    if parent_id is not None:
        tags.append(["e", parent_id, "", REPLY_AUTHOR])
    return make_event(
        event_id, kind=EventKind.COMMENT, created_at=created_at, content=content, tags=tags
    )


def make_profile(pubkey: str, **metadata: Any) -> Event:
    """Build a kind 0 profile with *metadata* as its JSON content."""
    return make_event(
        f"profile-{pubkey[:8]}",
        kind=EventKind.SET_METADATA,
        pubkey=pubkey,
        content=json.dumps(metadata),
    )


def make_receipt(receipt_id: str, target_id: str, amount_msats: int | str) -> Event:
    """Build a kind 9735 zap receipt embedding a zap request for *amount_msats*."""
    zap_request = {
        "kind": EventKind.ZAP_REQUEST,
        "tags": [["amount", str(amount_msats)], ["e", target_id]],
        "content": "",
    }
    return make_event(
        receipt_id,
        kind=EventKind.ZAP_RECEIPT,
        tags=[["e", target_id], ["description", json.dumps(zap_request)]],
    )


@pytest.fixture
def text_root() -> Event:
    """A kind 1 thread root."""
    return make_event("r1", pubkey=ROOT_AUTHOR, content="hello https://example.com/post world")


@pytest.fixture
def thread_root() -> Event:
    """A kind 11 thread root with a title."""
    return make_event(
        "t1",
        kind=EventKind.THREAD,
        pubkey=ROOT_AUTHOR,
        content="Discussion body",
        tags=[["title", "Zaps"]],
    )


# ============================================================================
# Mock Capabilities
# ============================================================================


def sign_unsigned(unsigned: UnsignedEvent) -> Event:
    """Deterministic stand-in for a signer: stamps the user's pubkey."""
    return Event(
        id=f"signed-{unsigned.kind}",
        pubkey=USER_PUBKEY,
        kind=unsigned.kind,
        created_at=unsigned.created_at,
        content=unsigned.content,
        tags=unsigned.tags,
        sig="f" * 128,
    )


@pytest.fixture
def mock_signer() -> MagicMock:
    """Signer whose ``sign`` returns a deterministic signed event."""
    signer = MagicMock()
    signer.pubkey = USER_PUBKEY
    signer.sign = AsyncMock(side_effect=sign_unsigned)
    return signer


@pytest.fixture
def mock_publisher() -> MagicMock:
    """Publisher that accepts every event."""
    publisher = MagicMock()
    publisher.publish = AsyncMock(return_value=None)
    return publisher


@pytest.fixture
def mock_source() -> MagicMock:
    """Event source returning nothing until configured."""
    source = MagicMock()
    source.fetch_thread = AsyncMock(return_value=None)
    source.fetch_replies = AsyncMock(return_value=[])
    source.fetch_profile = AsyncMock(return_value=None)
    return source


# ============================================================================
# Relay Fixtures
# ============================================================================


@pytest.fixture
def relay_settings() -> RelaySettings:
    """Relay set holding only ``wss://bevo.nostr1.com``."""
    return RelaySettings([RelayDescriptor("wss://bevo.nostr1.com")])
