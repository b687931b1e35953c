"""
PassVault - Local Password Vault

A single-user password vault that keeps named sections of accounts on disk,
protected by one master password.

Key Features:
- Local only: nothing leaves the vault directory
- Master password: PBKDF2-HMAC-SHA256 (100 000 iterations), salted
- Encryption: AES-256-CBC + HMAC-SHA256 (encrypt-then-MAC)
- Tamper detection: MAC checked in constant time before decrypting
- Crash safety: every save is a temp file + atomic rename
- Recovery: k-of-n Shamir shares of the vault key

Components:
- crypto.py: Password hashing and payload encryption (one file!)
- vault.py: Vault files, setup/unlock and the mutation API
- models.py: Account, Section, Settings
- errors.py: Error taxonomy and Result type
- recovery.py: Shamir Secret Sharing for secret.key backup
- csv_io.py: CSV import/export
- config.py: File names, default locations, logging

Usage:
    python passvault_main.py                      # Interactive menu
"""

__version__ = "2.0.0"
__author__ = "PassVault Team"

from .errors import (  # noqa: E402
    AlreadyInitialized,
    AuthenticationFailed,
    DuplicateSection,
    IntegrityError,
    InternalCryptoError,
    InvalidCredentials,
    InvalidKeySize,
    MalformedCiphertext,
    MissingKeyMaterial,
    NotInitialized,
    RecordNotFound,
    RecoveryError,
    Result,
    SnapshotFormatError,
    StorageIOFailure,
    VaultError,
    VaultLocked,
    WeakPassword,
)
from .models import Account, PasswordHistory, Section, Settings  # noqa: E402
from .vault import Vault, VaultState  # noqa: E402

__all__ = [
    "Vault",
    "VaultState",
    "Account",
    "PasswordHistory",
    "Section",
    "Settings",
    "Result",
    "VaultError",
    "WeakPassword",
    "InvalidCredentials",
    "DuplicateSection",
    "VaultLocked",
    "AlreadyInitialized",
    "RecordNotFound",
    "InvalidKeySize",
    "MissingKeyMaterial",
    "NotInitialized",
    "StorageIOFailure",
    "IntegrityError",
    "MalformedCiphertext",
    "AuthenticationFailed",
    "SnapshotFormatError",
    "InternalCryptoError",
    "RecoveryError",
]
