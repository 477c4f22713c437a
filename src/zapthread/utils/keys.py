"""Nostr key loading for the signing capability.

The reply flow never touches secret key material directly: keys are loaded
here, wrapped by [KeysSigner][zapthread.services.capabilities.KeysSigner],
and only the signer sees them. Supports nsec1 (bech32) and hex-encoded
private keys.

Warning:
    Private keys must **never** be stored in configuration files or logged.
    Always supply them through an environment variable.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("PRIVATE_KEY")
    print(keys.public_key().to_hex())
    ```
"""

from __future__ import annotations

import os

from nostr_sdk import Keys


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret


def load_keys_from_env(env_var: str) -> Keys:
    """Load Nostr keys from an environment variable.

    Raises:
        ValueError: If the environment variable is not set or is empty.
        nostr_sdk.NostrError: If the key value is malformed.
    """
    value = os.getenv(env_var)
    if not value:
        raise ValueError(f"{env_var} environment variable is required to sign replies")
    return Keys.parse(value)


def load_optional_keys(env_var: str = ENV_PRIVATE_KEY) -> Keys | None:
    """Like [load_keys_from_env][zapthread.utils.keys.load_keys_from_env], but
    returns ``None`` when the variable is unset (read-only mode)."""
    if not os.getenv(env_var):
        return None
    return load_keys_from_env(env_var)
