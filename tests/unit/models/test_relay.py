"""
Unit tests for models.relay module.

Tests:
- normalize_relay_url() scheme defaulting, case folding, ports, and paths
- Rejection of non-websocket schemes, queries, fragments, and empty input
- relay_display_name() labels
- RelayDescriptor normalization and NIP-65 tag conversion
"""

import pytest

from zapthread.models import RelayDescriptor, normalize_relay_url, relay_display_name


# ============================================================================
# normalize_relay_url
# ============================================================================


class TestNormalizeRelayUrl:
    """Canonical relay URLs."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("relay.damus.io", "wss://relay.damus.io"),
            ("  wss://nos.lol/  ", "wss://nos.lol"),
            ("WSS://Relay.Primal.NET", "wss://relay.primal.net"),
            ("wss://relay.example.com:443", "wss://relay.example.com"),
            ("ws://relay.example.com:80", "ws://relay.example.com"),
            ("ws://localhost:7777", "ws://localhost:7777"),
            ("wss://relay.example.com/inbox/", "wss://relay.example.com/inbox"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert normalize_relay_url(raw) == expected

    def test_idempotent(self):
        once = normalize_relay_url("Relay.Damus.io/")
        assert normalize_relay_url(once) == once

    @pytest.mark.parametrize("raw", ["", "   "])
    def test_empty(self, raw):
        with pytest.raises(ValueError, match="empty"):
            normalize_relay_url(raw)

    def test_http_scheme_rejected(self):
        with pytest.raises(ValueError, match="ws or wss"):
            normalize_relay_url("https://relay.damus.io")

    def test_query_rejected(self):
        with pytest.raises(ValueError, match="query"):
            normalize_relay_url("wss://relay.damus.io/?x=1")

    def test_fragment_rejected(self):
        with pytest.raises(ValueError, match="fragment"):
            normalize_relay_url("wss://relay.damus.io/#top")

    def test_null_bytes_rejected(self):
        with pytest.raises(ValueError, match="null"):
            normalize_relay_url("wss://relay\x00.io")

    def test_non_string_rejected(self):
        with pytest.raises(TypeError):
            normalize_relay_url(42)  # type: ignore[arg-type]


# ============================================================================
# relay_display_name
# ============================================================================


class TestRelayDisplayName:
    """Short relay labels."""

    def test_host(self):
        assert relay_display_name("wss://relay.damus.io") == "relay.damus.io"

    def test_strips_www(self):
        assert relay_display_name("wss://www.example.com/path") == "example.com"

    def test_no_host_falls_back(self):
        assert relay_display_name("not a url") == "not a url"


# ============================================================================
# RelayDescriptor
# ============================================================================


class TestRelayDescriptor:
    """Construction and NIP-65 tags."""

    def test_url_normalized(self):
        assert RelayDescriptor("nos.lol/").url == "wss://nos.lol"

    def test_defaults_read_write(self):
        relay = RelayDescriptor("wss://nos.lol")
        assert relay.read is True
        assert relay.write is True

    def test_equality_after_normalization(self):
        assert RelayDescriptor("nos.lol") == RelayDescriptor("wss://NOS.lol/")

    def test_invalid_url(self):
        with pytest.raises(ValueError):
            RelayDescriptor("https://nos.lol")

    def test_to_tag_read_write(self):
        assert RelayDescriptor("wss://nos.lol").to_tag() == ("r", "wss://nos.lol")

    def test_to_tag_read_only(self):
        assert RelayDescriptor("wss://nos.lol", write=False).to_tag() == (
            "r",
            "wss://nos.lol",
            "read",
        )

    def test_to_tag_write_only(self):
        assert RelayDescriptor("wss://nos.lol", read=False).to_tag() == (
            "r",
            "wss://nos.lol",
            "write",
        )

    def test_to_tag_neither(self):
        assert RelayDescriptor("wss://nos.lol", read=False, write=False).to_tag() is None

    @pytest.mark.parametrize(
        ("tag", "read", "write"),
        [
            (["r", "wss://nos.lol"], True, True),
            (["r", "wss://nos.lol", "read"], True, False),
            (["r", "wss://nos.lol", "write"], False, True),
        ],
    )
    def test_from_tag(self, tag, read, write):
        relay = RelayDescriptor.from_tag(tag)
        assert relay.url == "wss://nos.lol"
        assert (relay.read, relay.write) == (read, write)

    @pytest.mark.parametrize("tag", [["p", "wss://nos.lol"], ["r"]])
    def test_from_tag_rejects_other_tags(self, tag):
        with pytest.raises(ValueError, match="Not a relay list tag"):
            RelayDescriptor.from_tag(tag)
