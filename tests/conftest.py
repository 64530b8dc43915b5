import base64
import json

import pytest

from keychain_vault import KeychainConfig


@pytest.fixture
def config():
    """Low-cost derivation settings so tests stay fast."""
    return KeychainConfig(pbkdf2_iterations=1000)


@pytest.fixture
def chacha_config():
    return KeychainConfig(pbkdf2_iterations=1000, cipher_backend="chacha20")


def flip_field(representation: str, field: str, index: int = 0) -> str:
    """Return the representation with one byte of ``field`` flipped."""
    parsed = json.loads(representation)
    raw = bytearray(base64.b64decode(parsed[field]))
    raw[index] ^= 0x01
    parsed[field] = base64.b64encode(bytes(raw)).decode("ascii")
    return json.dumps(parsed, separators=(",", ":"))


@pytest.fixture
def tamper():
    return flip_field
