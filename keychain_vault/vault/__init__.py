"""Keychain Vault — Password-derived, authenticated-encryption secret store.

Security Note (Threat Model):
    Decrypted entries and the derived key live in process memory while a
    Keychain instance exists. A memory dump of the application process
    could expose them. This is an accepted limitation; protecting against
    a compromised host is out of scope.
"""

from .keychain import Keychain
from .config import KeychainConfig
from .session import (
    KeychainSession,
    create_vault,
    open_vault,
    get_secret,
    set_secret,
    remove_secret,
    list_names,
)

__all__ = [
    "Keychain",
    "KeychainConfig",
    "KeychainSession",
    "create_vault",
    "open_vault",
    "get_secret",
    "set_secret",
    "remove_secret",
    "list_names",
]
