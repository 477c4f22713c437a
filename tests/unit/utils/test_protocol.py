"""
Unit tests for utils.protocol module.

Tests:
- create_client() with and without keys
- connect_client() relay registration, partial and total failures
- send_event() acceptance accounting
- fetch_events() conversion and skipping of invalid events
- reply_filter() tag selection by root kind
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from nostr_sdk import Filter, Keys, NostrSdkError

from tests.conftest import make_event
from zapthread.models import EventKind
from zapthread.utils.protocol import (
    connect_client,
    create_client,
    event_filter,
    fetch_events,
    profile_filter,
    reply_filter,
    send_event,
)


def _output(success, failed=None):
    output = MagicMock()
    output.success = success
    output.failed = failed or {}
    return output


# ============================================================================
# create_client / connect_client
# ============================================================================


class TestCreateClient:
    """Client factory."""

    def test_without_keys(self):
        assert create_client() is not None

    def test_with_keys(self):
        assert create_client(Keys.generate()) is not None


class TestConnectClient:
    """connect_client()."""

    async def test_empty_relay_list(self):
        with pytest.raises(ValueError, match="At least one"):
            await connect_client([])

    async def test_connects(self):
        mock_client = AsyncMock()
        mock_client.try_connect = AsyncMock(return_value=_output({"wss://nos.lol"}))
        with (
            patch("zapthread.utils.protocol.create_client", return_value=mock_client),
            patch("zapthread.utils.protocol.RelayUrl") as mock_relay_url,
        ):
            mock_relay_url.parse.side_effect = lambda url: url
            client = await connect_client(["wss://nos.lol", "wss://relay.damus.io"], timeout=3.0)

        assert client is mock_client
        assert mock_client.add_relay.await_count == 2
        mock_client.shutdown.assert_not_awaited()

    async def test_partial_failure_tolerated(self):
        mock_client = AsyncMock()
        mock_client.try_connect = AsyncMock(
            return_value=_output({"wss://nos.lol"}, {"wss://down.example": "refused"})
        )
        with (
            patch("zapthread.utils.protocol.create_client", return_value=mock_client),
            patch("zapthread.utils.protocol.RelayUrl"),
        ):
            assert await connect_client(["wss://nos.lol", "wss://down.example"]) is mock_client

    async def test_no_relay_connected(self):
        mock_client = AsyncMock()
        mock_client.try_connect = AsyncMock(return_value=_output(set(), {"wss://x": "refused"}))
        with (
            patch("zapthread.utils.protocol.create_client", return_value=mock_client),
            patch("zapthread.utils.protocol.RelayUrl"),
            pytest.raises(OSError, match="Could not connect"),
        ):
            await connect_client(["wss://x"])
        mock_client.shutdown.assert_awaited_once()


# ============================================================================
# send_event / fetch_events
# ============================================================================


class TestSendEvent:
    """send_event()."""

    async def test_returns_accepting_relays(self):
        client = AsyncMock()
        client.send_event = AsyncMock(return_value=_output({"a", "b"}))
        with patch("zapthread.utils.protocol.NostrEvent") as mock_event:
            accepted = await send_event(client, make_event("e1"))
        assert accepted == 2
        mock_event.from_json.assert_called_once()

    async def test_no_relay_accepted(self):
        client = AsyncMock()
        client.send_event = AsyncMock(return_value=_output(set(), {"a": "blocked"}))
        with (
            patch("zapthread.utils.protocol.NostrEvent"),
            pytest.raises(OSError, match="No relay accepted"),
        ):
            await send_event(client, make_event("e1"))


class TestFetchEvents:
    """fetch_events()."""

    async def test_converts_and_skips_invalid(self):
        good, bad = MagicMock(), MagicMock()
        client = AsyncMock()
        client.fetch_events = AsyncMock(
            return_value=MagicMock(to_vec=MagicMock(return_value=[good, bad]))
        )
        converted = make_event("e1")

        def convert(evt):
            if evt is bad:
                raise ValueError("bad tags")
            return converted

        with patch(
            "zapthread.utils.protocol.Event.from_nostr_event", side_effect=convert
        ):
            events = await fetch_events(client, Filter(), timeout=1.0)

        assert events == [converted]


# ============================================================================
# Filters
# ============================================================================


class TestFilters:
    """event_filter(), reply_filter() and profile_filter()."""

    def test_event_filter(self):
        assert event_filter("a" * 64) is not None

    def test_reply_filter_for_thread_root(self):
        root = make_event("f" * 64, kind=EventKind.THREAD)
        with (
            patch("zapthread.utils.protocol.SingleLetterTag") as mock_tag,
            patch("zapthread.utils.protocol.Filter") as mock_filter,
        ):
            reply_filter(root, limit=10)
        chain = mock_filter.return_value.kind.return_value
        chain.custom_tag.assert_called_once_with(mock_tag.uppercase.return_value, root.id)
        mock_tag.uppercase.assert_called_once()
        mock_tag.lowercase.assert_not_called()

    def test_reply_filter_for_note_root(self):
        root = make_event("f" * 64, kind=EventKind.TEXT_NOTE)
        with (
            patch("zapthread.utils.protocol.SingleLetterTag") as mock_tag,
            patch("zapthread.utils.protocol.Filter"),
        ):
            reply_filter(root, limit=10)
        mock_tag.lowercase.assert_called_once()
        mock_tag.uppercase.assert_not_called()

    def test_profile_filter(self):
        pubkey = Keys.generate().public_key().to_hex()
        with patch("zapthread.utils.protocol.Filter") as mock_filter:
            profile_filter(pubkey)
        chain = mock_filter.return_value.kind.return_value
        chain.author.assert_called_once()
        assert chain.author.call_args.args[0].to_hex() == pubkey
        chain.author.return_value.limit.assert_called_once_with(1)

    def test_profile_filter_rejects_bad_pubkey(self):
        with pytest.raises(NostrSdkError):
            profile_filter("not-a-pubkey")
