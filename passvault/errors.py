"""
PassVault - Errors

Every failure the vault reports derives from VaultError, so callers can
catch one type at a command boundary and still branch on the specific kind.

Integrity errors (MalformedCiphertext, AuthenticationFailed,
SnapshotFormatError) mean the file is damaged or was tampered with. They are
never turned into "wrong password" and never retried.
"""

from dataclasses import dataclass
from typing import Any, Optional


class VaultError(Exception):
    """Base class for all vault errors."""


class WeakPassword(VaultError, ValueError):
    """Master password does not meet the strength policy."""


class InvalidCredentials(VaultError):
    """Master password did not verify."""


class DuplicateSection(VaultError):
    """A section with the same name (case-insensitive) already exists."""


class VaultLocked(VaultError):
    """Operation needs an unlocked vault."""


class AlreadyInitialized(VaultError):
    """Setup was called on a directory that already holds a vault."""


class RecordNotFound(VaultError):
    """Section or account is not part of this vault."""


class InvalidKeySize(VaultError, ValueError):
    """Vault key is not exactly 32 bytes."""


class NotInitialized(VaultError):
    """The directory holds no vault files at all."""


class MissingKeyMaterial(VaultError):
    """Some vault files exist but master.key or secret.key is gone."""


class StorageIOFailure(VaultError):
    """Reading or writing a vault file failed."""


class IntegrityError(VaultError):
    """Stored data is corrupted or has been tampered with."""


class MalformedCiphertext(IntegrityError):
    """Ciphertext is too short to hold MAC and IV."""


class AuthenticationFailed(IntegrityError):
    """MAC check failed: tampered data or wrong key."""


class SnapshotFormatError(IntegrityError):
    """Decrypted snapshot is not a valid section list."""


class InternalCryptoError(VaultError):
    """Authenticated data failed to unpad or decode. Indicates a bug."""


class RecoveryError(VaultError):
    """Recovery shares are invalid, mismatched or insufficient."""


# =============================================================================
# Result
# =============================================================================

@dataclass(frozen=True)
class Result:
    """
    Explicit outcome for expected failures (wrong password, damaged file).

    Usage:
        result = vault.try_unlock(password)
        if not result.ok:
            print(result.kind)   # "InvalidCredentials", "AuthenticationFailed", ...
    """

    value: Any = None
    error: Optional[VaultError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        """Name of the error class, or None on success."""
        return type(self.error).__name__ if self.error is not None else None

    def unwrap(self) -> Any:
        """Return the value, or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: VaultError) -> "Result":
        return cls(error=error)
