"""
Unit tests for utils.keys module.

Tests:
- load_keys_from_env() with hex keys, missing and empty variables
- load_optional_keys() read-only mode
"""

import pytest
from nostr_sdk import Keys

from zapthread.utils.keys import (
    ENV_PRIVATE_KEY,
    load_keys_from_env,
    load_optional_keys,
)


@pytest.fixture
def secret_hex() -> str:
    return Keys.generate().secret_key().to_hex()


class TestLoadKeysFromEnv:
    """load_keys_from_env()."""

    def test_hex_key(self, monkeypatch, secret_hex):
        monkeypatch.setenv("ZT_TEST_KEY", secret_hex)
        keys = load_keys_from_env("ZT_TEST_KEY")
        assert keys.secret_key().to_hex() == secret_hex

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("ZT_TEST_KEY", raising=False)
        with pytest.raises(ValueError, match="ZT_TEST_KEY"):
            load_keys_from_env("ZT_TEST_KEY")

    def test_empty(self, monkeypatch):
        monkeypatch.setenv("ZT_TEST_KEY", "")
        with pytest.raises(ValueError, match="required"):
            load_keys_from_env("ZT_TEST_KEY")


class TestLoadOptionalKeys:
    """load_optional_keys()."""

    def test_unset_returns_none(self, monkeypatch):
        monkeypatch.delenv(ENV_PRIVATE_KEY, raising=False)
        assert load_optional_keys() is None

    def test_set_returns_keys(self, monkeypatch, secret_hex):
        monkeypatch.setenv(ENV_PRIVATE_KEY, secret_hex)
        keys = load_optional_keys()
        assert keys is not None
        assert keys.secret_key().to_hex() == secret_hex

