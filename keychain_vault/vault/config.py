"""
Keychain Configuration — Validated key-derivation and cipher settings.

Reads optional overrides from environment variables:
    KEYCHAIN_PBKDF2_ITERATIONS = <integer, default 100000>
    KEYCHAIN_SALT_SIZE = <integer bytes, default 16>
    KEYCHAIN_CIPHER_BACKEND = aesgcm | chacha20
    KEYCHAIN_MAX_PASSWORD_LENGTH = <integer, default 64>
    KEYCHAIN_ENFORCE_PASSWORD_LENGTH = true | false

Security Note:
    Never log passwords or derived keys. Only log settings.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("keychain.vault")

PBKDF2_ITERATIONS = 100000
SALT_SIZE = 16
MAX_PASSWORD_LENGTH = 64  # documented assumption, enforced only on demand

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_int(name: str, default: int) -> int:
    """Read an integer env var, falling back to ``default`` when unset.

    Raises:
        ValueError: If the value is not a valid integer.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


class KeychainConfig(BaseModel):
    """Validated keychain configuration."""

    pbkdf2_iterations: int = Field(default=PBKDF2_ITERATIONS, ge=1000)
    salt_size: int = Field(default=SALT_SIZE, ge=16, le=64)
    cipher_backend: str = Field(default="aesgcm")
    max_password_length: int = Field(default=MAX_PASSWORD_LENGTH, ge=1)
    enforce_password_length: bool = Field(default=False)

    model_config = {"frozen": True}

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls) -> "KeychainConfig":
        """Create KeychainConfig by loading values from environment.

        Returns:
            Populated KeychainConfig instance.
        """
        config = cls(
            pbkdf2_iterations=_env_int("KEYCHAIN_PBKDF2_ITERATIONS", PBKDF2_ITERATIONS),
            salt_size=_env_int("KEYCHAIN_SALT_SIZE", SALT_SIZE),
            cipher_backend=os.environ.get("KEYCHAIN_CIPHER_BACKEND", "aesgcm"),
            max_password_length=_env_int(
                "KEYCHAIN_MAX_PASSWORD_LENGTH", MAX_PASSWORD_LENGTH,
            ),
            enforce_password_length=_env_bool(
                "KEYCHAIN_ENFORCE_PASSWORD_LENGTH", False,
            ),
        )
        logger.debug(
            "Keychain config loaded: iterations=%d salt_size=%d cipher=%s",
            config.pbkdf2_iterations, config.salt_size, config.cipher_backend,
        )
        return config


DEFAULT_CONFIG = KeychainConfig()
