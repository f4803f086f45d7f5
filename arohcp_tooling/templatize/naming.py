"""Deterministic, length-checked names for Azure resources."""

from __future__ import annotations

import hashlib

__all__ = [
    "NamingError",
    "suffix_digest",
    "suffixed_name",
    "azure_event_grid_name",
    "azure_postgres_name",
    "azure_key_vault_name",
]


class NamingError(ValueError):
    """Raised when a name cannot be built within its constraints."""


def suffix_digest(length: int, *args: str) -> str:
    """Return the first ``length`` hex digits of the SHA-256 of the joined args."""
    digest = hashlib.sha256("".join(args).encode("utf-8")).hexdigest()
    if len(digest) < length:
        raise NamingError(f"suffix digest does not have the required length of {length}")
    return digest[:length]


def suffixed_name(
    prefix: str, suffix_delim: str, max_length: int, suffix_length: int, *args: str
) -> str:
    """Build ``prefix`` plus an optional digest suffix, enforcing ``max_length``."""
    name = prefix
    if args:
        name = prefix + suffix_delim + suffix_digest(suffix_length, *args)
    if len(name) > max_length:
        raise NamingError(f"name '{name}' is too long, max length is {max_length}")
    return name


def azure_event_grid_name(prefix: str, suffix_length: int, *args: str) -> str:
    """Name for an Event Grid namespace (at most 24 characters)."""
    return suffixed_name(prefix, "-", 24, suffix_length, *args)


def azure_postgres_name(prefix: str, suffix_length: int, *args: str) -> str:
    """Name for a PostgreSQL server (at most 60 characters)."""
    return suffixed_name(prefix, "-", 60, suffix_length, *args)


def azure_key_vault_name(prefix: str, suffix_length: int, *args: str) -> str:
    """Name for a Key Vault (at most 24 characters)."""
    return suffixed_name(prefix, "-", 24, suffix_length, *args)