"""Keychain Vault exceptions.

All errors raised by the vault engine derive from ``KeychainError``.
"""


class KeychainError(Exception):
    """Base class for every keychain failure."""


class IntegrityError(KeychainError):
    """The supplied checksum does not match the sealed representation."""


class DecryptionError(KeychainError):
    """The vault could not be opened.

    Raised for a wrong password, a tampered or malformed representation,
    and invalid decrypted content alike; callers cannot tell these apart.
    """

    def __init__(self, message: str = "Failed to decrypt: invalid password or corrupted data"):
        super().__init__(message)


class InvalidInput(KeychainError, ValueError):
    """A password, name or value was rejected before any crypto work."""
