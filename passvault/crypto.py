"""
PassVault - Cryptography Module

This single file contains ALL cryptographic operations for the vault:
master password hashing (PasswordHasher) and payload encryption
(CryptoManager).

Security Architecture:
    1. Master Password → PBKDF2-HMAC-SHA256 → hash stored in master.key
    2. Random Vault Key (32 bytes) stored in secret.key
    3. Snapshot JSON → AES-256-CBC + HMAC-SHA256 → passwords.enc

Blob layout written by CryptoManager.encrypt():

    +-----------+----------+----------------------+
    | MAC (32B) | IV (16B) | ciphertext (n * 16B) |
    +-----------+----------+----------------------+

The MAC covers IV || ciphertext and is checked before any decryption, so a
tampered blob never reaches the padding code (no padding oracle).
"""

import os
import hmac
import base64
import hashlib
import binascii
import logging
import secrets
import string

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import (
    AuthenticationFailed,
    InternalCryptoError,
    InvalidKeySize,
    MalformedCiphertext,
    Result,
)

logger = logging.getLogger("passvault.crypto")


# =============================================================================
# Configuration
# =============================================================================

SALT_SIZE = 16           # 128-bit salt for the master hash
HASH_SIZE = 32           # 256-bit derived key
PBKDF2_ITERATIONS = 100_000

VAULT_KEY_SIZE = 32      # AES-256
IV_SIZE = 16             # AES block size
MAC_SIZE = 32            # HMAC-SHA256 output
MIN_BLOB_SIZE = MAC_SIZE + IV_SIZE

UPPER_CHARS = string.ascii_uppercase
LOWER_CHARS = string.ascii_lowercase
DIGIT_CHARS = string.digits
SYMBOL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
MIN_GENERATED_LENGTH = 4


# =============================================================================
# Master Password Hashing (PasswordHasher)
# =============================================================================

def _derive_master_hash(password: str, salt: bytes) -> bytes:
    """PBKDF2-HMAC-SHA256 over the password with the given salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=HASH_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode('utf-8'))


def hash_password(password: str) -> str:
    """
    Hash the master password with a fresh random salt.

    Two calls with the same password return different artifacts, since each
    uses its own salt. Both still verify.

    Returns:
        base64(salt || derived_key) as ASCII text, suitable for master.key
    """
    salt = os.urandom(SALT_SIZE)
    derived = _derive_master_hash(password, salt)
    return base64.b64encode(salt + derived).decode('ascii')


def verify_password(password: str, artifact: str) -> bool:
    """
    Check a password against a hash_password() artifact.

    Fails closed: malformed base64, wrong artifact length or any error while
    deriving returns False instead of raising.
    """
    try:
        raw = base64.b64decode(artifact.strip(), validate=True)
        if len(raw) != SALT_SIZE + HASH_SIZE:
            return False

        salt = raw[:SALT_SIZE]
        stored = raw[SALT_SIZE:]
        computed = _derive_master_hash(password, salt)

        # Constant-time: no early exit on first differing byte
        return hmac.compare_digest(stored, computed)
    except (binascii.Error, ValueError, TypeError, AttributeError, UnicodeError):
        return False


def is_strong_password(password: str) -> bool:
    """
    Password policy: at least 8 characters with a lowercase letter, an
    uppercase letter, a digit and a non-alphanumeric character.
    """
    if not password or password.isspace() or len(password) < 8:
        return False

    has_lower = any(c.islower() for c in password)
    has_upper = any(c.isupper() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_symbol = any(not c.isalnum() for c in password)

    return has_lower and has_upper and has_digit and has_symbol


def generate_password(length: int = 16) -> str:
    """
    Generate a random password containing every character class.

    Characters are drawn uniformly from upper + lower + digits + symbols with
    secrets.choice(). Candidates missing a class are thrown away and redrawn;
    the chance of a retry drops exponentially with length. From 8 characters
    up every result passes is_strong_password().

    Raises:
        ValueError: length below 4 (cannot hold all four classes)
    """
    if length < MIN_GENERATED_LENGTH:
        raise ValueError(f"length must be at least {MIN_GENERATED_LENGTH}")

    chars = UPPER_CHARS + LOWER_CHARS + DIGIT_CHARS + SYMBOL_CHARS
    while True:
        candidate = ''.join(secrets.choice(chars) for _ in range(length))
        if (any(c in UPPER_CHARS for c in candidate)
                and any(c in LOWER_CHARS for c in candidate)
                and any(c in DIGIT_CHARS for c in candidate)
                and any(c in SYMBOL_CHARS for c in candidate)):
            return candidate


# =============================================================================
# Payload Encryption (CryptoManager)
# =============================================================================

def generate_key() -> bytes:
    """Generate a new 32-byte vault key. Used once, at vault setup."""
    return os.urandom(VAULT_KEY_SIZE)


class CryptoManager:
    """
    Encrypt-then-MAC with AES-256-CBC and HMAC-SHA256 under one 32-byte key.

    Usage:
        cm = CryptoManager(generate_key())
        blob = cm.encrypt("hello")
        assert cm.decrypt(blob) == "hello"
    """

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != VAULT_KEY_SIZE:
            size = len(key) if isinstance(key, (bytes, bytearray)) else type(key).__name__
            raise InvalidKeySize(f"Key must be {VAULT_KEY_SIZE} bytes for AES-256 (got {size})")
        self._key = bytes(key)

    def _mac(self, data: bytes) -> bytes:
        return hmac.new(self._key, data, hashlib.sha256).digest()

    def encrypt(self, plaintext: str) -> bytes:
        """
        Encrypt a string.

        A fresh random IV is generated on every call (never reuse an IV with
        the same key in CBC mode), so encrypting the same text twice gives
        different blobs.

        Returns:
            MAC(32B) || IV(16B) || ciphertext
        """
        iv = os.urandom(IV_SIZE)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        mac = self._mac(iv + ciphertext)
        return mac + iv + ciphertext

    def decrypt(self, blob: bytes) -> str:
        """
        Verify and decrypt an encrypt() blob.

        Raises:
            MalformedCiphertext: blob shorter than MAC + IV
            AuthenticationFailed: MAC mismatch (tampered data or wrong key)
            InternalCryptoError: MAC valid but padding/UTF-8 invalid
        """
        if len(blob) < MIN_BLOB_SIZE:
            raise MalformedCiphertext(
                f"Ciphertext too short: {len(blob)} bytes (minimum {MIN_BLOB_SIZE})"
            )

        mac = blob[:MAC_SIZE]
        iv = blob[MAC_SIZE:MIN_BLOB_SIZE]
        ciphertext = blob[MIN_BLOB_SIZE:]

        if not hmac.compare_digest(mac, self._mac(iv + ciphertext)):
            raise AuthenticationFailed("Authentication failed - data may be tampered")

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode('utf-8')
        except (ValueError, UnicodeDecodeError) as e:
            # ValueError covers bad padding and a ciphertext that is not a
            # whole number of blocks; both passed the MAC, so this is our bug.
            logger.error("Authenticated payload failed to decode")
            raise InternalCryptoError(f"Authenticated payload is not valid UTF-8 text: {e}") from e

    def try_decrypt(self, blob: bytes) -> Result:
        """decrypt() returning a Result instead of raising on bad input."""
        try:
            return Result.success(self.decrypt(blob))
        except (MalformedCiphertext, AuthenticationFailed) as e:
            return Result.failure(e)
