"""
KeychainSession — Single-owner holder that keeps a keychain and its sealed form.

Provides the operations a surrounding application (HTTP handler, CLI,
worker) calls on a keychain:
- ``create_vault(password)`` — new keychain plus its first sealed form
- ``open_vault(password, representation, checksum)`` — reconstruct a keychain
- ``get_secret`` / ``set_secret`` / ``remove_secret`` / ``list_names``

Mutating operations return a fresh ``(representation, checksum)`` pair
for the caller to persist. The keychain itself never performs I/O.

``KeychainSession`` serializes calls on one keychain with a lock, so it
can be shared between request-handling threads. There is no process-wide
"active" keychain: each session owns exactly one instance.

Security Note:
    Never log secret values or sealed representations. Only log entry
    names and operations.
"""
import logging
import threading
from typing import Optional

from .config import KeychainConfig
from .crypto import compute_checksum
from .keychain import Keychain

logger = logging.getLogger("keychain.vault")


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------

def create_vault(
    password: str,
    config: Optional[KeychainConfig] = None,
) -> tuple[Keychain, str, str]:
    """Create an empty keychain and seal it.

    Returns:
        Tuple of (keychain, representation, checksum).

    Raises:
        InvalidInput: If the password is rejected.
    """
    keychain = Keychain.init(password, config=config)
    representation, checksum = keychain.dump()
    return keychain, representation, checksum


def open_vault(
    password: str,
    representation: str,
    checksum: Optional[str] = None,
    config: Optional[KeychainConfig] = None,
) -> Keychain:
    """Open a previously sealed keychain.

    Raises:
        InvalidInput: If password or representation are missing.
        IntegrityError: If ``checksum`` is given and does not match.
        DecryptionError: Wrong password, tampered or malformed data.
    """
    return Keychain.load(password, representation, checksum, config=config)


def get_secret(
    keychain: Keychain,
    name: str,
    default: Optional[str] = None,
) -> Optional[str]:
    """Return the secret stored under ``name``, or ``default``."""
    return keychain.get(name, default)


def set_secret(keychain: Keychain, name: str, value: str) -> tuple[str, str]:
    """Store a secret and return the updated (representation, checksum)."""
    keychain.set(name, value)
    return keychain.dump()


def remove_secret(
    keychain: Keychain,
    name: str,
) -> tuple[bool, Optional[str], Optional[str]]:
    """Remove a secret.

    Returns:
        ``(True, representation, checksum)`` when the name existed, or
        ``(False, None, None)``; nothing changed, so no reseal is needed.
    """
    if not keychain.remove(name):
        return False, None, None
    representation, checksum = keychain.dump()
    return True, representation, checksum


def list_names(keychain: Keychain) -> list[str]:
    """List the names stored in ``keychain`` (order unspecified)."""
    return keychain.names()


# ---------------------------------------------------------------------------
# Session holder
# ---------------------------------------------------------------------------

class KeychainSession:
    """A keychain owned by one logical session.

    Every operation takes the session lock, and the most recent sealed
    form is cached in :attr:`sealed` so callers can persist it at will.
    The cached form is dropped whenever the keychain is mutated or
    sealed behind the session's back through :attr:`keychain`.
    """

    def __init__(self, keychain: Keychain, sealed: Optional[tuple[str, str]] = None):
        self._keychain = keychain
        self._lock = threading.RLock()
        self._sealed = sealed
        self._sealed_at = keychain.seal_count

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        password: str,
        config: Optional[KeychainConfig] = None,
    ) -> "KeychainSession":
        """Start a session on a brand new keychain."""
        keychain, representation, checksum = create_vault(password, config)
        logger.debug("Keychain session started on a new keychain")
        return cls(keychain, (representation, checksum))

    @classmethod
    def open(
        cls,
        password: str,
        representation: str,
        checksum: Optional[str] = None,
        config: Optional[KeychainConfig] = None,
    ) -> "KeychainSession":
        """Start a session on an existing sealed keychain.

        The caller's representation is kept as the current sealed form,
        since it already matches the decrypted entries.
        """
        keychain = open_vault(password, representation, checksum, config)
        if not checksum:
            checksum = compute_checksum(representation)
        logger.debug("Keychain session opened: %d entries", len(keychain))
        return cls(keychain, (representation, checksum))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def keychain(self) -> Keychain:
        return self._keychain

    @property
    def sealed(self) -> tuple[str, str]:
        """Latest (representation, checksum), resealing when stale."""
        with self._lock:
            if self._stale():
                self._store(self._keychain.dump())
            return self._sealed

    def _stale(self) -> bool:
        return (
            self._sealed is None
            or self._keychain.changed
            or self._keychain.seal_count != self._sealed_at
        )

    def _store(self, sealed: tuple[str, str]) -> tuple[str, str]:
        self._sealed = sealed
        self._sealed_at = self._keychain.seal_count
        return sealed

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def seal(self) -> tuple[str, str]:
        """Force a fresh seal under a new nonce."""
        with self._lock:
            return self._store(self._keychain.dump())

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return get_secret(self._keychain, name, default)

    def set(self, name: str, value: str) -> tuple[str, str]:
        """Store a secret and return the new sealed form."""
        with self._lock:
            return self._store(set_secret(self._keychain, name, value))

    def remove(self, name: str) -> tuple[bool, Optional[str], Optional[str]]:
        """Remove a secret; the sealed form is only refreshed when it existed."""
        with self._lock:
            found, representation, checksum = remove_secret(self._keychain, name)
            if found:
                self._store((representation, checksum))
            return found, representation, checksum

    def names(self) -> list[str]:
        with self._lock:
            return list_names(self._keychain)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keychain)
