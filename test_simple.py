"""
PassVault - Crypto Self-Tests

Run with: python test_simple.py  (same as: pytest test_simple.py -v)

Covers the two crypto building blocks and shows how common attacks fail:
- Master password hashing (salted, slow, constant-time verify)
- Password policy and generator
- Encrypt-then-MAC round trip
- Ciphertext tampering (every single bit flip is rejected)
- Wrong key, truncated blobs, bad key sizes
"""

import base64
import os

import pytest

from passvault import crypto
from passvault.crypto import CryptoManager
from passvault.errors import (
    AuthenticationFailed,
    InternalCryptoError,
    InvalidKeySize,
    MalformedCiphertext,
)


# =============================================================================
# Master password hashing
# =============================================================================

def test_hash_is_salted_and_verifiable():
    """Same password hashes differently each time, yet both verify."""
    h1 = crypto.hash_password("pw1")
    h2 = crypto.hash_password("pw1")

    assert h1 != h2, "Different salts should give different artifacts"
    assert crypto.verify_password("pw1", h1)
    assert crypto.verify_password("pw1", h2)


def test_hash_artifact_layout():
    """Artifact is base64 of salt(16) || hash(32)."""
    raw = base64.b64decode(crypto.hash_password("Valid123!"))
    assert len(raw) == crypto.SALT_SIZE + crypto.HASH_SIZE


def test_wrong_password_rejected():
    artifact = crypto.hash_password("correct")
    assert crypto.verify_password("correct", artifact)
    assert not crypto.verify_password("wrong", artifact)
    assert not crypto.verify_password("", artifact)


def test_verify_fails_closed_on_garbage():
    """Malformed artifacts return False, never raise."""
    good = base64.b64decode(crypto.hash_password("correct"))

    assert not crypto.verify_password("correct", "not base64 !!!")
    assert not crypto.verify_password("correct", "")
    assert not crypto.verify_password("correct", base64.b64encode(good[:-1]).decode())
    assert not crypto.verify_password("correct", base64.b64encode(good + b"x").decode())
    assert not crypto.verify_password("correct", None)


def test_verify_detects_modified_hash():
    raw = bytearray(base64.b64decode(crypto.hash_password("correct")))
    raw[-1] ^= 1
    assert not crypto.verify_password("correct", base64.b64encode(bytes(raw)).decode())


# =============================================================================
# Password policy and generator
# =============================================================================

@pytest.mark.parametrize("password, strong", [
    ("short1!", False),          # length 7
    ("Valid123!", True),
    ("alllowercase1!", False),   # no uppercase
    ("ALLUPPERCASE1!", False),   # no lowercase
    ("NoDigitsHere!", False),
    ("NoSymbols123", False),
    ("Str0ng!Pw", True),
    ("", False),
    ("        ", False),
])
def test_strength_policy(password, strong):
    assert crypto.is_strong_password(password) is strong


def test_generated_passwords_are_strong():
    for length in (8, 16, 32):
        pwd = crypto.generate_password(length)
        assert len(pwd) == length
        assert crypto.is_strong_password(pwd)


def test_generated_password_default_length_and_charset():
    pwd = crypto.generate_password()
    allowed = set(crypto.UPPER_CHARS + crypto.LOWER_CHARS + crypto.DIGIT_CHARS + crypto.SYMBOL_CHARS)
    assert len(pwd) == 16
    assert set(pwd) <= allowed


def test_generated_short_password_covers_all_classes():
    pwd = crypto.generate_password(4)
    assert any(c in crypto.UPPER_CHARS for c in pwd)
    assert any(c in crypto.LOWER_CHARS for c in pwd)
    assert any(c in crypto.DIGIT_CHARS for c in pwd)
    assert any(c in crypto.SYMBOL_CHARS for c in pwd)


def test_generator_rejects_impossible_length():
    with pytest.raises(ValueError):
        crypto.generate_password(3)


# =============================================================================
# Encryption
# =============================================================================

@pytest.mark.parametrize("plaintext", [
    "",
    "This is a secret message!",
    "x" * 16,                                  # exactly one block
    "contraseña ✓ 密码 🔐",
    '[{"name": "Email", "accounts": []}]',
])
def test_round_trip(plaintext):
    cm = CryptoManager(crypto.generate_key())
    assert cm.decrypt(cm.encrypt(plaintext)) == plaintext


def test_encrypt_is_not_deterministic():
    """Fresh IV per call: same plaintext, different blobs."""
    cm = CryptoManager(crypto.generate_key())
    b1 = cm.encrypt("same")
    b2 = cm.encrypt("same")

    assert b1 != b2
    assert b1[crypto.MAC_SIZE:crypto.MIN_BLOB_SIZE] != b2[crypto.MAC_SIZE:crypto.MIN_BLOB_SIZE]


def test_blob_layout():
    """MAC(32) || IV(16) || whole AES blocks."""
    cm = CryptoManager(crypto.generate_key())
    blob = cm.encrypt("hello")
    assert len(blob) == crypto.MIN_BLOB_SIZE + 16
    assert (len(blob) - crypto.MIN_BLOB_SIZE) % 16 == 0


def test_every_bit_flip_is_detected():
    """Flipping any single bit must fail authentication, never return altered text."""
    cm = CryptoManager(crypto.generate_key())
    blob = cm.encrypt("hello")

    for byte_index in range(len(blob)):
        for bit in range(8):
            tampered = bytearray(blob)
            tampered[byte_index] ^= 1 << bit
            with pytest.raises(AuthenticationFailed):
                cm.decrypt(bytes(tampered))


def test_wrong_key_fails_authentication():
    blob = CryptoManager(crypto.generate_key()).encrypt("secret")
    with pytest.raises(AuthenticationFailed):
        CryptoManager(crypto.generate_key()).decrypt(blob)


def test_appended_or_removed_bytes_detected():
    cm = CryptoManager(crypto.generate_key())
    blob = cm.encrypt("secret data that spans blocks" * 3)

    with pytest.raises(AuthenticationFailed):
        cm.decrypt(blob + b"\x00" * 16)
    with pytest.raises(AuthenticationFailed):
        cm.decrypt(blob[:-16])


@pytest.mark.parametrize("size", [0, 1, 47])
def test_short_blob_is_malformed(size):
    cm = CryptoManager(crypto.generate_key())
    with pytest.raises(MalformedCiphertext):
        cm.decrypt(os.urandom(size))


def test_malformed_and_auth_errors_are_distinct():
    assert not issubclass(MalformedCiphertext, AuthenticationFailed)
    assert not issubclass(AuthenticationFailed, MalformedCiphertext)


def test_valid_mac_with_bad_payload_is_internal_error():
    """A blob with a correct MAC but invalid UTF-8 inside signals a bug, not an attack."""
    import hashlib
    import hmac

    from cryptography.hazmat.primitives import padding
    from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

    key = crypto.generate_key()
    iv = os.urandom(16)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(b"\xff\xfe\xfd") + padder.finalize()
    enc = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ct = enc.update(padded) + enc.finalize()
    blob = hmac.new(key, iv + ct, hashlib.sha256).digest() + iv + ct

    with pytest.raises(InternalCryptoError):
        CryptoManager(key).decrypt(blob)


def test_try_decrypt_returns_results():
    cm = CryptoManager(crypto.generate_key())
    blob = cm.encrypt("ok")

    good = cm.try_decrypt(blob)
    assert good.ok and good.value == "ok"

    tampered = bytearray(blob)
    tampered[-1] ^= 1
    bad = cm.try_decrypt(bytes(tampered))
    assert not bad.ok
    assert bad.kind == "AuthenticationFailed"

    short = cm.try_decrypt(b"abc")
    assert short.kind == "MalformedCiphertext"
    with pytest.raises(MalformedCiphertext):
        short.unwrap()


@pytest.mark.parametrize("key", [b"", b"x" * 16, b"x" * 31, b"x" * 33, b"x" * 64])
def test_invalid_key_size(key):
    with pytest.raises(InvalidKeySize):
        CryptoManager(key)


def test_generate_key():
    k1 = crypto.generate_key()
    k2 = crypto.generate_key()
    assert len(k1) == 32
    assert k1 != k2


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
