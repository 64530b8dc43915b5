"""
Keychain Crypto Core — Key derivation, sealing/opening, and serialization.

Implements the password-derived layer of the keychain:
- Key derivation: PBKDF2-HMAC-SHA256(password, salt) → 32-byte key
- Sealing: AES-GCM(key, fresh 96-bit nonce) over the serialized entries
- Representation: {"salt", "iv", "ciphertext"} as compact JSON, base64 fields
- Checksum: base64(SHA-256(representation)), carried out-of-band

Security Note:
    Never log passwords, keys, plaintext or ciphertext values.
    Nonces are random 96-bit; a fresh one is drawn for every seal.
"""
import os
import hmac
import base64
import logging
from typing import Any

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import DecryptionError
from .config import PBKDF2_ITERATIONS

logger = logging.getLogger("keychain.vault")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16

REPR_FIELDS = ("salt", "iv", "ciphertext")

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def get_cipher_cls(backend: str = "aesgcm") -> type:
    """Return the AEAD cipher class for a configured backend name."""
    try:
        return _CIPHERS[backend.lower()]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    password: str,
    salt: bytes,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Derive a 32-byte encryption key from a password using PBKDF2-SHA256.

    The derivation is deliberately slow and fully deterministic: the same
    (password, salt, iterations) always yields the same key.

    Args:
        password: Master password, encoded as UTF-8.
        salt: Random per-vault salt.
        iterations: PBKDF2 iteration count.

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def seal(cipher: Any, plaintext: bytes) -> tuple[bytes, bytes]:
    """Encrypt plaintext under a fresh random nonce.

    Args:
        cipher: AEAD cipher instance (AESGCM or ChaCha20Poly1305).
        plaintext: Data to encrypt.

    Returns:
        Tuple of (nonce, ciphertext + tag).
    """
    nonce = os.urandom(NONCE_SIZE)
    return nonce, cipher.encrypt(nonce, plaintext, None)


def unseal(cipher: Any, nonce: bytes, ciphertext: bytes) -> bytes:
    """Decrypt and authenticate ciphertext.

    Raises:
        DecryptionError: On any authentication failure. The low-level
            cause is not chained, so wrong keys and tampered data look
            the same to the caller.
    """
    try:
        return cipher.decrypt(nonce, ciphertext, None)
    except (InvalidTag, ValueError):
        pass
    raise DecryptionError()


# ---------------------------------------------------------------------------
# Encoding & checksum
# ---------------------------------------------------------------------------

def encode_bytes(data: bytes) -> str:
    """Standard (padded) base64 text for raw bytes."""
    return base64.b64encode(data).decode("ascii")


def decode_bytes(text: str) -> bytes:
    """Decode strict standard base64.

    Raises:
        ValueError: If ``text`` is not valid base64.
    """
    return base64.b64decode(text, validate=True)


def compute_checksum(representation: str) -> str:
    """Return base64(SHA-256) of the representation's UTF-8 bytes."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(representation.encode("utf-8"))
    return encode_bytes(digest.finalize())


def verify_checksum(representation: str, checksum: str) -> bool:
    """Constant-time comparison of a trusted checksum with the recomputed one."""
    try:
        expected = compute_checksum(representation).encode("utf-8")
        given = str(checksum).encode("utf-8")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected, given)


# ---------------------------------------------------------------------------
# Representation
# ---------------------------------------------------------------------------

def pack_representation(salt: bytes, iv: bytes, ciphertext: bytes) -> str:
    """Assemble the sealed representation string.

    Format: {"salt":"<b64>","iv":"<b64>","ciphertext":"<b64>"}
    """
    return orjson.dumps({
        "salt": encode_bytes(salt),
        "iv": encode_bytes(iv),
        "ciphertext": encode_bytes(ciphertext),
    }).decode("utf-8")


def unpack_representation(representation: str) -> tuple[bytes, bytes, bytes]:
    """Split a sealed representation into (salt, iv, ciphertext).

    Raises:
        DecryptionError: If the text is not a well-formed representation.
    """
    try:
        parsed = orjson.loads(representation)
        if not isinstance(parsed, dict):
            raise TypeError("representation is not an object")
        salt, iv, ciphertext = (decode_bytes(parsed[f]) for f in REPR_FIELDS)
    except (KeyError, TypeError, ValueError):
        logger.debug("Rejected malformed keychain representation")
        raise DecryptionError() from None
    if len(ciphertext) < TAG_SIZE:
        raise DecryptionError()
    return salt, iv, ciphertext


# ---------------------------------------------------------------------------
# Entries serialization
# ---------------------------------------------------------------------------

def serialize_entries(entries: dict[str, str]) -> bytes:
    """Serialize the name→secret map deterministically (sorted keys)."""
    return orjson.dumps(dict(entries), option=orjson.OPT_SORT_KEYS)


def deserialize_entries(data: bytes) -> dict[str, str]:
    """Parse decrypted plaintext back into a name→secret map.

    Raises:
        DecryptionError: If the plaintext is not a JSON object of strings.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError:
        raise DecryptionError() from None
    if not isinstance(parsed, dict) or not all(
        name and isinstance(value, str) for name, value in parsed.items()
    ):
        raise DecryptionError()
    return parsed
