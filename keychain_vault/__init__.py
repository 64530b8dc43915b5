"""Keychain Vault.

A master password protects a small map of name→secret pairs, sealed
with AES-GCM into a portable, checksummed representation.
"""
from .version import __version__
from .entries import VaultEntries
from .exceptions import (
    KeychainError,
    IntegrityError,
    DecryptionError,
    InvalidInput,
)
from .vault import (
    Keychain,
    KeychainConfig,
    KeychainSession,
    create_vault,
    open_vault,
    get_secret,
    set_secret,
    remove_secret,
    list_names,
)

__all__ = (
    "__version__",
    "VaultEntries",
    "KeychainError",
    "IntegrityError",
    "DecryptionError",
    "InvalidInput",
    "Keychain",
    "KeychainConfig",
    "KeychainSession",
    "create_vault",
    "open_vault",
    "get_secret",
    "set_secret",
    "remove_secret",
    "list_names",
)
