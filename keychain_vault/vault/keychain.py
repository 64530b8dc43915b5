"""
Keychain — Password-derived, authenticated-encryption vault engine.

Provides the core API of the keychain:
- ``Keychain.init(password)`` — fresh salt, derived key, empty entries
- ``Keychain.load(password, representation, checksum)`` — verify, derive, decrypt
- ``dump()`` — seal entries under a fresh nonce → (representation, checksum)
- ``get(name)`` / ``set(name, value)`` / ``remove(name)`` / ``names()``

Security Note:
    The derived key lives only inside the AEAD cipher object held by the
    instance. It is never serialized, logged, or exposed as an attribute.
    Never log passwords, plaintext values or ciphertext; only log entry
    names and counts.
"""
import os
import logging
from typing import Optional

from ..entries import VaultEntries
from ..exceptions import DecryptionError, IntegrityError, InvalidInput
from .config import KeychainConfig, DEFAULT_CONFIG
from .crypto import (
    derive_key,
    get_cipher_cls,
    seal,
    unseal,
    compute_checksum,
    verify_checksum,
    pack_representation,
    unpack_representation,
    serialize_entries,
    deserialize_entries,
)

logger = logging.getLogger("keychain.vault")


def validate_password(password: str, config: KeychainConfig) -> None:
    """Validate a master password.

    Passwords longer than ``config.max_password_length`` are only
    rejected when ``config.enforce_password_length`` is set; otherwise
    a warning is logged and the password is used as-is.

    Raises:
        InvalidInput: If password is empty, not UTF-8 encodable text, or
            too long under enforcement.
    """
    if not isinstance(password, str) or not password:
        raise InvalidInput("Password is required")
    try:
        password.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidInput("Password must be valid UTF-8 text") from None
    if len(password) > config.max_password_length:
        if config.enforce_password_length:
            raise InvalidInput(
                f"Password cannot exceed {config.max_password_length} characters"
            )
        logger.warning(
            "Password longer than the assumed maximum of %d characters",
            config.max_password_length,
        )


class Keychain:
    """Encrypted name→secret store derived from a master password.

    Instances are created through :meth:`init` or :meth:`load`. One
    instance is meant to be owned by a single caller at a time; wrap it
    in a :class:`~keychain_vault.vault.session.KeychainSession` when
    several threads share it.
    """

    __slots__ = ('_salt', '_cipher', '_config', '_entries', '_seal_count')

    def __init__(
        self,
        salt: bytes,
        key: bytes,
        config: KeychainConfig,
        entries: Optional[VaultEntries] = None,
    ):
        self._salt = salt
        self._cipher = get_cipher_cls(config.cipher_backend)(key)
        self._config = config
        self._entries = entries if entries is not None else VaultEntries()
        self._seal_count = 0

    def __repr__(self) -> str:
        return (
            f'<Keychain [cipher:{self._config.cipher_backend}] '
            f'entries={len(self._entries)}>'
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def salt(self) -> bytes:
        return self._salt

    @property
    def config(self) -> KeychainConfig:
        return self._config

    @property
    def changed(self) -> bool:
        """True when entries were mutated since the last :meth:`dump`."""
        return self._entries.is_changed

    @property
    def seal_count(self) -> int:
        """Number of times :meth:`dump` has sealed this instance."""
        return self._seal_count

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def init(
        cls,
        password: str,
        config: Optional[KeychainConfig] = None,
    ) -> "Keychain":
        """Create an empty keychain protected by ``password``.

        Args:
            password: Master password (non-empty).
            config: Optional settings, defaults to :data:`DEFAULT_CONFIG`.

        Returns:
            New Keychain with a fresh random salt and no entries.

        Raises:
            InvalidInput: If the password is rejected.
        """
        config = config or DEFAULT_CONFIG
        validate_password(password, config)
        salt = os.urandom(config.salt_size)
        key = derive_key(password, salt, config.pbkdf2_iterations)
        keychain = cls(salt, key, config, VaultEntries(changed=True))
        logger.info("Keychain created (cipher=%s)", config.cipher_backend)
        return keychain

    @classmethod
    def load(
        cls,
        password: str,
        representation: str,
        checksum: Optional[str] = None,
        config: Optional[KeychainConfig] = None,
    ) -> "Keychain":
        """Reconstruct a keychain from its sealed representation.

        Args:
            password: Master password.
            representation: Sealed representation produced by :meth:`dump`.
            checksum: Optional trusted checksum; verified before any
                decryption attempt when given. An empty checksum counts
                as not given.
            config: Optional settings; must match the ones used to seal.

        Returns:
            Keychain with its entries decrypted.

        Raises:
            InvalidInput: If password or representation are missing.
            IntegrityError: If ``checksum`` does not match.
            DecryptionError: Wrong password, tampered or malformed data.
        """
        config = config or DEFAULT_CONFIG
        validate_password(password, config)
        if not isinstance(representation, str) or not representation:
            raise InvalidInput("Representation is required")

        if checksum and not verify_checksum(representation, checksum):
            logger.warning("Keychain integrity check failed: checksum mismatch")
            raise IntegrityError("Integrity check failed: checksum does not match")

        salt, iv, ciphertext = unpack_representation(representation)
        key = derive_key(password, salt, config.pbkdf2_iterations)
        keychain = cls(salt, key, config)
        try:
            plaintext = unseal(keychain._cipher, iv, ciphertext)
            entries = deserialize_entries(plaintext)
        except DecryptionError:
            logger.warning("Keychain could not be opened")
            raise
        keychain._entries = VaultEntries(entries)
        logger.info("Keychain loaded: %d entries", len(entries))
        return keychain

    # ------------------------------------------------------------------
    # Sealing
    # ------------------------------------------------------------------

    def dump(self) -> tuple[str, str]:
        """Seal the current entries.

        A fresh nonce is drawn on every call, so two dumps of unchanged
        entries differ in both representation and checksum.

        Returns:
            Tuple of (representation, checksum).
        """
        plaintext = serialize_entries(self._entries.to_dict())
        iv, ciphertext = seal(self._cipher, plaintext)
        representation = pack_representation(self._salt, iv, ciphertext)
        checksum = compute_checksum(representation)
        self._entries.is_changed = False
        self._seal_count += 1
        logger.debug("Keychain sealed: %d entries", len(self._entries))
        return representation, checksum

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the secret stored under ``name``, or ``default``."""
        return self._entries.get(name, default)

    def set(self, name: str, value: str) -> None:
        """Insert or overwrite a secret. Call :meth:`dump` to persist it.

        Raises:
            InvalidInput: If name is empty or name/value are not strings.
        """
        self._entries[name] = value
        logger.debug("Keychain set: name=%s", name)

    def remove(self, name: str) -> bool:
        """Delete ``name`` if present.

        Returns:
            True if the entry existed, False otherwise.
        """
        found = self._entries.discard(name)
        logger.debug("Keychain remove: name=%s found=%s", name, found)
        return found

    def names(self) -> list[str]:
        """List entry names currently in the keychain."""
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
