"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used exclusively by
``__post_init__`` methods in sibling model modules to enforce runtime
type constraints and null-byte safety.
"""

from __future__ import annotations

from typing import Any

from .constants import EVENT_KIND_MAX


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_positive_int(value: Any, name: str) -> None:
    """Raise if *value* is not an ``int`` greater than zero (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_kind(value: Any, name: str = "kind") -> None:
    """Raise if *value* is not an ``int`` within the NIP-01 kind range."""
    validate_timestamp(value, name)
    if value > EVENT_KIND_MAX:
        raise ValueError(f"{name} must be <= {EVENT_KIND_MAX}, got {value}")


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str`` without null bytes."""
    validate_str_no_null(value, name)
    if not value:
        raise ValueError(f"{name} must not be empty")


def freeze_tags(tags: Any, name: str = "tags") -> tuple[tuple[str, ...], ...]:
    """Convert a sequence of tag sequences into nested tuples of strings.

    Accepts lists or tuples at both levels so that JSON-decoded tags and
    hand-built tuples normalize to the same immutable shape. Each tag must
    have at least one element (its name).

    Raises:
        TypeError: If the outer or inner containers are not sequences, or a
            tag value is not a string.
        ValueError: If a tag is empty or a value contains null bytes.
    """
    if isinstance(tags, str) or not isinstance(tags, (list, tuple)):
        raise TypeError(f"{name} must be a list of lists, got {type(tags).__name__}")

    frozen: list[tuple[str, ...]] = []
    for i, tag in enumerate(tags):
        if isinstance(tag, str) or not isinstance(tag, (list, tuple)):
            raise TypeError(f"{name}[{i}] must be a list, got {type(tag).__name__}")
        if not tag:
            raise ValueError(f"{name}[{i}] must not be empty")
        for value in tag:
            validate_str_no_null(value, f"{name}[{i}]")
        frozen.append(tuple(tag))
    return tuple(frozen)
