"""Core layer: configuration, relay list state, exceptions, and logging.

Sits in the middle of the diamond DAG -- depends only on
``zapthread.models`` and is depended upon by ``zapthread.services``.

Attributes:
    ZapThreadConfig: Pydantic model for the YAML configuration file.
        See [ZapThreadConfig][zapthread.core.config.ZapThreadConfig].
    RelaySettings: The process-wide active relay set, mutated only by
        atomic replacement. See [RelaySettings][zapthread.core.config.RelaySettings].
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][zapthread.core.logger.Logger].
    YAML: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][zapthread.core.yaml.load_yaml].

Examples:
    ```python
    from zapthread.core import RelaySettings, ZapThreadConfig

    config = ZapThreadConfig.from_yaml("config/zapthread.yaml")
    settings = RelaySettings.load(config.relays.path, config.relays.presets)
    ```
"""

from .config import (
    DEFAULT_RELAY_PRESETS,
    RelayEntryConfig,
    RelayListConfig,
    RelaySettings,
    TimeoutsConfig,
    ZapThreadConfig,
)
from .exceptions import (
    ConfigurationError,
    EndpointUnavailableError,
    InvalidAmountError,
    InvalidResponseError,
    InvoiceError,
    NoLightningAddressError,
    NoPaymentMethodError,
    PaidButNotPublishedError,
    PaymentFailedError,
    PublishingError,
    RelayListError,
    ReplyValidationError,
    ResolverTimeoutError,
    UserRejectedError,
    ZapThreadError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .yaml import load_yaml, save_yaml


__all__ = [
    "DEFAULT_RELAY_PRESETS",
    "ConfigurationError",
    "EndpointUnavailableError",
    "InvalidAmountError",
    "InvalidResponseError",
    "InvoiceError",
    "Logger",
    "NoLightningAddressError",
    "NoPaymentMethodError",
    "PaidButNotPublishedError",
    "PaymentFailedError",
    "PublishingError",
    "RelayEntryConfig",
    "RelayListConfig",
    "RelayListError",
    "RelaySettings",
    "ReplyValidationError",
    "ResolverTimeoutError",
    "StructuredFormatter",
    "TimeoutsConfig",
    "UserRejectedError",
    "ZapThreadConfig",
    "ZapThreadError",
    "format_kv_pairs",
    "load_yaml",
    "save_yaml",
]
