"""
Tests for the Keychain engine.

Tests cover:
- Creation and initial state
- Round-trip through dump/load
- Wrong password rejection and tamper detection
- Checksum verification before decryption
- Nonce freshness
- Read/write/delete semantics and change tracking
- Password validation
"""
import base64
import json
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from keychain_vault import (
    Keychain,
    KeychainConfig,
    IntegrityError,
    DecryptionError,
    InvalidInput,
)
from keychain_vault.vault.crypto import derive_key, compute_checksum

@pytest.fixture
def keychain(config):
    kc = Keychain.init("correct horse", config=config)
    kc.set("github.com", "s3cr3t")
    kc.set("google.com", "hunter2")
    return kc


# --- Creation ---

class TestKeychainInit:
    """Tests for Keychain.init."""

    def test_empty_on_creation(self, config):
        kc = Keychain.init("password", config=config)
        assert len(kc) == 0
        assert kc.names() == []

    def test_salt_is_random_and_sized(self, config):
        a = Keychain.init("password", config=config)
        b = Keychain.init("password", config=config)
        assert len(a.salt) == 16
        assert a.salt != b.salt

    def test_new_keychain_needs_sealing(self, config):
        kc = Keychain.init("password", config=config)
        assert kc.changed is True
        kc.dump()
        assert kc.changed is False

    @pytest.mark.parametrize("password", ["", None, 1234, "pw\ud800"])
    def test_invalid_password(self, config, password):
        with pytest.raises(InvalidInput):
            Keychain.init(password, config=config)

    def test_invalid_input_is_value_error(self, config):
        with pytest.raises(ValueError):
            Keychain.init("", config=config)

    def test_repr_hides_secrets(self, keychain):
        text = repr(keychain)
        assert "s3cr3t" not in text
        assert "entries=2" in text


# --- Round trip ---

class TestRoundTrip:
    """Tests for dump/load cycles."""

    def test_entries_survive(self, keychain, config):
        representation, checksum = keychain.dump()
        loaded = Keychain.load("correct horse", representation, checksum, config=config)
        assert loaded.get("github.com") == "s3cr3t"
        assert loaded.get("google.com") == "hunter2"
        assert sorted(loaded.names()) == ["github.com", "google.com"]

    def test_load_without_checksum(self, keychain, config):
        representation, _ = keychain.dump()
        loaded = Keychain.load("correct horse", representation, config=config)
        assert loaded.get("github.com") == "s3cr3t"

    def test_salt_preserved_across_cycles(self, keychain, config):
        representation, _ = keychain.dump()
        loaded = Keychain.load("correct horse", representation, config=config)
        assert loaded.salt == keychain.salt
        loaded.set("new", "value")
        again, _ = loaded.dump()
        assert json.loads(again)["salt"] == json.loads(representation)["salt"]

    def test_loaded_keychain_is_clean(self, keychain, config):
        representation, _ = keychain.dump()
        loaded = Keychain.load("correct horse", representation, config=config)
        assert loaded.changed is False

    def test_empty_vault_roundtrip(self, config):
        kc = Keychain.init("pw", config=config)
        representation, checksum = kc.dump()
        loaded = Keychain.load("pw", representation, checksum, config=config)
        assert len(loaded) == 0

    def test_chacha_backend_roundtrip(self, chacha_config):
        kc = Keychain.init("pw", config=chacha_config)
        kc.set("a", "b")
        representation, _ = kc.dump()
        assert Keychain.load("pw", representation, config=chacha_config).get("a") == "b"

    def test_backend_mismatch_fails(self, chacha_config, config):
        kc = Keychain.init("pw", config=chacha_config)
        representation, _ = kc.dump()
        with pytest.raises(DecryptionError):
            Keychain.load("pw", representation, config=config)

    def test_default_config_scenario(self):
        """create → set → seal → open with the default derivation cost."""
        kc = Keychain.init("correct horse")
        assert kc.config.pbkdf2_iterations == 100000
        kc.set("github.com", "s3cr3t")
        representation, checksum = kc.dump()
        loaded = Keychain.load("correct horse", representation, checksum)
        assert loaded.get("github.com") == "s3cr3t"

    def test_opens_externally_sealed_vault(self, config):
        """A vault sealed with PBKDF2 + AES-GCM and compact JSON opens."""
        salt, iv = os.urandom(16), os.urandom(12)
        key = derive_key("pw", salt, config.pbkdf2_iterations)
        ct = AESGCM(key).encrypt(iv, b'{"example.com":"pass"}', None)
        representation = json.dumps({
            "salt": base64.b64encode(salt).decode(),
            "iv": base64.b64encode(iv).decode(),
            "ciphertext": base64.b64encode(ct).decode(),
        }, separators=(",", ":"))
        loaded = Keychain.load(
            "pw", representation, compute_checksum(representation), config=config,
        )
        assert loaded.get("example.com") == "pass"


# --- Rejection ---

class TestRejection:
    """Tests for wrong passwords and tampering."""

    def test_wrong_password(self, keychain, config):
        representation, checksum = keychain.dump()
        with pytest.raises(DecryptionError):
            Keychain.load("wrong password", representation, checksum, config=config)

    @pytest.mark.parametrize("field", ["salt", "iv", "ciphertext"])
    def test_single_byte_tamper(self, keychain, config, tamper, field):
        representation, _ = keychain.dump()
        tampered = tamper(representation, field)
        with pytest.raises(DecryptionError):
            Keychain.load("correct horse", tampered, config=config)

    def test_tampered_tag(self, keychain, config, tamper):
        representation, _ = keychain.dump()
        tampered = tamper(representation, "ciphertext", index=-1)
        with pytest.raises(DecryptionError):
            Keychain.load("correct horse", tampered, config=config)

    def test_same_message_for_password_and_tamper(self, keychain, config, tamper):
        representation, _ = keychain.dump()
        with pytest.raises(DecryptionError) as wrong:
            Keychain.load("nope", representation, config=config)
        with pytest.raises(DecryptionError) as tampered:
            Keychain.load(
                "correct horse", tamper(representation, "ciphertext"), config=config,
            )
        assert str(wrong.value) == str(tampered.value)

    def test_malformed_representation(self, config):
        with pytest.raises(DecryptionError):
            Keychain.load("pw", "{not json", config=config)

    def test_surrogate_password_on_load(self, keychain, config):
        representation, _ = keychain.dump()
        with pytest.raises(InvalidInput):
            Keychain.load("\ud800", representation, config=config)

    def test_surrogate_representation(self, config):
        with pytest.raises(DecryptionError):
            Keychain.load("pw", '{"salt":"\ud800"}', config=config)

    @pytest.mark.parametrize("representation", ["", None])
    def test_missing_representation(self, config, representation):
        with pytest.raises(InvalidInput):
            Keychain.load("pw", representation, config=config)


# --- Checksum ---

class TestChecksum:
    """Tests for trusted checksum verification."""

    def test_altered_representation(self, keychain, config, tamper):
        representation, checksum = keychain.dump()
        altered = tamper(representation, "ciphertext")
        with pytest.raises(IntegrityError):
            Keychain.load("correct horse", altered, checksum, config=config)

    def test_whitespace_change_detected(self, keychain, config):
        representation, checksum = keychain.dump()
        with pytest.raises(IntegrityError):
            Keychain.load("correct horse", representation + " ", checksum, config=config)

    def test_checked_before_derivation(self, keychain, config, monkeypatch):
        representation, _ = keychain.dump()

        def _fail(*args, **kwargs):
            raise AssertionError("key derivation must not run")

        monkeypatch.setattr("keychain_vault.vault.keychain.derive_key", _fail)
        with pytest.raises(IntegrityError):
            Keychain.load("correct horse", representation, "bogus", config=config)

    def test_empty_checksum_is_skipped(self, keychain, config):
        representation, _ = keychain.dump()
        loaded = Keychain.load("correct horse", representation, "", config=config)
        assert loaded.get("github.com") == "s3cr3t"

    def test_surrogate_checksum_is_mismatch(self, keychain, config):
        representation, _ = keychain.dump()
        with pytest.raises(IntegrityError):
            Keychain.load("correct horse", representation, "\udc00", config=config)

    def test_checksum_is_not_password_check(self, keychain, config):
        representation, checksum = keychain.dump()
        with pytest.raises(DecryptionError):
            Keychain.load("wrong", representation, checksum, config=config)


# --- Nonce freshness ---

class TestNonceFreshness:

    def test_consecutive_dumps_differ(self, keychain, config):
        r1, c1 = keychain.dump()
        r2, c2 = keychain.dump()
        assert json.loads(r1)["iv"] != json.loads(r2)["iv"]
        assert json.loads(r1)["ciphertext"] != json.loads(r2)["ciphertext"]
        assert c1 != c2
        a = Keychain.load("correct horse", r1, c1, config=config)
        b = Keychain.load("correct horse", r2, c2, config=config)
        assert dict((n, a.get(n)) for n in a.names()) == dict((n, b.get(n)) for n in b.names())


# --- Entries ---

class TestEntries:
    """Tests for get/set/remove."""

    def test_get_missing_returns_none(self, keychain):
        assert keychain.get("missing") is None

    def test_get_missing_with_default(self, keychain):
        assert keychain.get("missing", "fallback") == "fallback"

    def test_set_overwrites(self, keychain):
        keychain.set("github.com", "n3w")
        assert keychain.get("github.com") == "n3w"
        assert len(keychain) == 2

    def test_empty_value_allowed(self, keychain):
        keychain.set("blank", "")
        assert keychain.get("blank") == ""

    @pytest.mark.parametrize("name,value", [("", "v"), (None, "v"), ("n", None), ("n", 5)])
    def test_set_invalid(self, keychain, name, value):
        with pytest.raises(InvalidInput):
            keychain.set(name, value)

    def test_remove_existing(self, keychain):
        assert keychain.remove("github.com") is True
        assert "github.com" not in keychain
        assert keychain.get("github.com") is None

    def test_remove_missing_is_noop(self, keychain):
        keychain.dump()
        assert keychain.remove("absent") is False
        assert keychain.changed is False
        assert len(keychain) == 2

    def test_set_surrogate_value_keeps_vault_sealable(self, keychain, config):
        with pytest.raises(InvalidInput):
            keychain.set("site", "\ud800")
        assert "site" not in keychain
        representation, checksum = keychain.dump()
        loaded = Keychain.load("correct horse", representation, checksum, config=config)
        assert sorted(loaded.names()) == ["github.com", "google.com"]

    def test_set_marks_changed(self, keychain):
        keychain.dump()
        keychain.set("x", "y")
        assert keychain.changed is True


# --- Password length ---

class TestPasswordLength:
    """Tests for the documented maximum password length."""

    def test_long_password_allowed_by_default(self, config, caplog):
        password = "x" * 65
        with caplog.at_level("WARNING", logger="keychain.vault"):
            kc = Keychain.init(password, config=config)
        representation, _ = kc.dump()
        assert Keychain.load(password, representation, config=config) is not None
        assert "assumed maximum" in caplog.text
        assert password not in caplog.text

    def test_long_password_rejected_when_enforced(self):
        config = KeychainConfig(pbkdf2_iterations=1000, enforce_password_length=True)
        with pytest.raises(InvalidInput):
            Keychain.init("x" * 65, config=config)

    def test_max_length_accepted_when_enforced(self):
        config = KeychainConfig(pbkdf2_iterations=1000, enforce_password_length=True)
        assert Keychain.init("x" * 64, config=config) is not None


# --- Logging ---

class TestLogging:

    def test_secrets_never_logged(self, config, caplog):
        with caplog.at_level("DEBUG", logger="keychain.vault"):
            kc = Keychain.init("topsecretpw", config=config)
            kc.set("site", "value-not-logged")
            representation, _ = kc.dump()
            Keychain.load("topsecretpw", representation, config=config)
        assert "topsecretpw" not in caplog.text
        assert "value-not-logged" not in caplog.text
        assert representation not in caplog.text
