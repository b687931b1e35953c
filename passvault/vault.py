"""
PassVault - Vault Module

This file handles:
- The on-disk layout (master.key, secret.key, passwords.enc, settings.json)
- Vault setup and unlock
- Adding/updating/removing sections and accounts
- Settings persistence

Every mutation re-serializes the whole section list, re-encrypts it and
replaces passwords.enc before returning. Writes go to a temp file in the same
directory followed by os.replace(), so a crash mid-save leaves the previous
file intact.
"""

import os
import json
import logging
import tempfile
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from . import __version__, config, crypto
from .crypto import CryptoManager
from .errors import (
    AlreadyInitialized,
    DuplicateSection,
    IntegrityError,
    InvalidCredentials,
    InvalidKeySize,
    MissingKeyMaterial,
    NotInitialized,
    RecordNotFound,
    Result,
    SnapshotFormatError,
    StorageIOFailure,
    VaultLocked,
    WeakPassword,
)
from .models import Account, Section, Settings
from .recovery import combine_recovery_shares, generate_recovery_shares

logger = logging.getLogger("passvault.vault")


class VaultState(Enum):
    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


# =============================================================================
# FILE HELPERS
# =============================================================================

def _write_atomic(path: Path, data: bytes) -> None:
    """Write bytes to a temp file beside path, fsync, then rename over path."""
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, str(path))
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageIOFailure(f"Failed to read {path.name}: {e}") from e


# =============================================================================
# VAULT CLASS
# =============================================================================

class Vault:
    """
    The vault store: owns the vault files and the unlocked section list.

    Usage:
        # Create new vault
        vault = Vault("~/.passvault")
        vault.setup_master_password("Str0ng!Pw")

        # Later: unlock vault
        vault = Vault("~/.passvault")
        if not vault.unlock("Str0ng!Pw"):
            print("Wrong password")

        # Mutate (each call is persisted before it returns)
        email = vault.add_section("Email")
        vault.add_account(email, "Gmail", "a@b.com", "Secr3t!1")

        # Lock when done
        vault.lock()
    """

    def __init__(self, data_dir: Union[str, Path, None] = None):
        """
        Args:
            data_dir: Directory holding the vault files (created on setup).
                Defaults to config.DEFAULT_VAULT_DIR.
        """
        self.data_dir = Path(data_dir).expanduser() if data_dir else config.DEFAULT_VAULT_DIR
        self.master_key_path = self.data_dir / config.MASTER_KEY_FILE
        self.secret_key_path = self.data_dir / config.SECRET_KEY_FILE
        self.passwords_path = self.data_dir / config.PASSWORDS_FILE
        self.settings_path = self.data_dir / config.SETTINGS_FILE
        self.version_path = self.data_dir / config.VERSION_FILE

        self._lock = threading.RLock()

        # Only present when unlocked
        self._crypto: Optional[CryptoManager] = None
        self._vault_key: Optional[bytes] = None
        self._sections: List[Section] = []

        self._settings = Settings()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> VaultState:
        if self._crypto is not None:
            return VaultState.UNLOCKED
        if self.master_password_exists():
            return VaultState.LOCKED
        return VaultState.UNINITIALIZED

    @property
    def is_unlocked(self) -> bool:
        return self._crypto is not None

    @property
    def sections(self) -> Tuple[Section, ...]:
        """Read-only view of the sections, in order."""
        return tuple(self._sections)

    @property
    def settings(self) -> Settings:
        return self._settings

    def master_password_exists(self) -> bool:
        return self.master_key_path.is_file()

    def has_vault_files(self) -> bool:
        """True if any of master.key, secret.key or passwords.enc is present."""
        return any(
            p.exists() for p in (self.master_key_path, self.secret_key_path, self.passwords_path)
        )

    # =========================================================================
    # SETUP / UNLOCK / LOCK
    # =========================================================================

    def setup_master_password(self, password: str) -> None:
        """
        Create a new vault and leave it unlocked.

        This:
        1. Checks the password policy
        2. Refuses to touch an existing vault
        3. Writes master.key and a fresh random secret.key
        4. Writes an empty encrypted snapshot, default settings and version.txt

        Raises:
            WeakPassword: password fails is_strong_password()
            AlreadyInitialized: master.key, secret.key or passwords.enc already
                exists (a damaged vault is never replaced by a new one)
            StorageIOFailure: files could not be written
        """
        with self._lock:
            if not crypto.is_strong_password(password):
                raise WeakPassword(
                    "Password must be at least 8 characters and contain uppercase, "
                    "lowercase, digit and symbol characters"
                )
            if self.master_password_exists():
                raise AlreadyInitialized(f"A vault already exists in {self.data_dir}")
            if self.has_vault_files():
                raise AlreadyInitialized(
                    f"{self.data_dir} holds vault data but no master.key; "
                    "restore master.key or move the files away before setting up"
                )

            vault_key = crypto.generate_key()
            cm = CryptoManager(vault_key)
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                # secret.key first: master.key marks the vault as initialized
                _write_atomic(self.secret_key_path, vault_key)
                _write_atomic(self.passwords_path, cm.encrypt(self._serialize([])))
                _write_atomic(self.master_key_path, crypto.hash_password(password).encode("utf-8"))
            except OSError as e:
                raise StorageIOFailure(f"Failed to create vault: {e}") from e

            self._vault_key = vault_key
            self._crypto = cm
            self._sections = []
            self._settings = Settings()
            self.save_settings()
            self._write_version()
            logger.info("Vault created in %s", self.data_dir)

    setup = setup_master_password

    def unlock(self, password: str) -> bool:
        """
        Verify the master password and load the vault.

        Returns:
            False if no vault exists or the password is wrong (state unchanged),
            True once the vault is unlocked.

        Raises:
            MissingKeyMaterial: secret.key is gone
            InvalidKeySize: secret.key is not 32 bytes
            MalformedCiphertext, AuthenticationFailed, SnapshotFormatError:
                passwords.enc is damaged or tampered with
            StorageIOFailure: a vault file could not be read
        """
        with self._lock:
            if not self.master_password_exists():
                logger.info("Unlock attempted on uninitialized vault %s", self.data_dir)
                return False

            artifact = _read_bytes(self.master_key_path).decode("utf-8", errors="replace")
            if not crypto.verify_password(password, artifact):
                logger.warning("Master password rejected for %s", self.data_dir)
                return False

            vault_key = self._read_vault_key()
            cm = CryptoManager(vault_key)
            sections = self._load_sections(cm)

            self._vault_key = vault_key
            self._crypto = cm
            self._sections = sections
            self._settings = self._load_settings()
            logger.info("Vault unlocked (%d sections)", len(sections))
            return True

    verify_master_password = unlock

    def try_unlock(self, password: str) -> Result:
        """
        unlock() with an explicit outcome.

        Result.ok is True on success. Otherwise result.error is one of
        NotInitialized (empty directory), InvalidCredentials,
        MissingKeyMaterial (master.key or secret.key gone from an existing
        vault), InvalidKeySize, an IntegrityError or StorageIOFailure, so the
        caller can tell "first run", "wrong password" and "damaged vault" apart.
        """
        try:
            if self.unlock(password):
                return Result.success(True)
        except (MissingKeyMaterial, InvalidKeySize, IntegrityError, StorageIOFailure) as e:
            return Result.failure(e)
        if self.master_password_exists():
            return Result.failure(InvalidCredentials("Wrong master password"))
        if self.has_vault_files():
            return Result.failure(MissingKeyMaterial(f"master.key is missing from {self.data_dir}"))
        return Result.failure(NotInitialized(f"No vault in {self.data_dir}"))

    def lock(self) -> None:
        """Drop the vault key and the decrypted sections."""
        with self._lock:
            self._vault_key = None
            self._crypto = None
            self._sections = []
            logger.info("Vault locked")

    # =========================================================================
    # SECTIONS
    # =========================================================================

    def find_section(self, name: str) -> Optional[Section]:
        """Case-insensitive lookup by name."""
        wanted = name.strip().casefold()
        for section in self._sections:
            if section.name.casefold() == wanted:
                return section
        return None

    def add_section(self, name: str) -> Section:
        """
        Create an empty section.

        Raises:
            ValueError: blank name
            DuplicateSection: a section with this name exists (any case)
        """
        with self._lock:
            self._require_unlocked()
            name = name.strip()
            if not name:
                raise ValueError("Section name is required")
            if self.find_section(name) is not None:
                raise DuplicateSection(f"Section '{name}' already exists")

            section = Section(name)
            self._sections.append(section)
            self._commit(lambda: self._sections.remove(section))
            logger.info("Section added")
            return section

    def remove_section(self, section: Section) -> None:
        """Delete a section and every account in it."""
        with self._lock:
            self._require_unlocked()
            index = self._index_of(section)
            del self._sections[index]
            self._commit(lambda: self._sections.insert(index, section))
            logger.info("Section removed (%d accounts)", len(section.accounts))

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, section: Section, type: str, identifier: str, secret: str) -> Account:
        """Add an account; its history starts with the initial secret."""
        with self._lock:
            self._require_unlocked()
            self._index_of(section)

            account = Account.create(type, identifier, secret)
            section.accounts.append(account)
            self._commit(lambda: section.accounts.remove(account))
            logger.info("Account added")
            return account

    def update_account(self, account: Account, type: str, identifier: str, secret: str) -> None:
        """
        Edit an account.

        A history entry is appended only when the secret actually changes;
        editing type or identifier alone leaves history untouched.
        """
        with self._lock:
            self._require_unlocked()
            if not any(s.has_account(account) for s in self._sections):
                raise RecordNotFound("Account is not part of this vault")

            old = (account.type, account.identifier, account.secret, len(account.history))

            def undo():
                account.type, account.identifier, account.secret = old[:3]
                del account.history[old[3]:]

            account.type = type
            account.identifier = identifier
            if account.secret != secret:
                account.update_secret(secret)
            self._commit(undo)
            logger.info("Account updated")

    def remove_account(self, section: Section, account: Account) -> None:
        with self._lock:
            self._require_unlocked()
            self._index_of(section)
            for index, candidate in enumerate(section.accounts):
                if candidate is account:
                    break
            else:
                raise RecordNotFound("Account is not in this section")

            del section.accounts[index]
            self._commit(lambda: section.accounts.insert(index, account))
            logger.info("Account removed")

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def save_settings(self) -> None:
        """Write settings.json. Works whether or not the vault is unlocked."""
        with self._lock:
            data = json.dumps(self._settings.to_dict(), indent=2).encode("utf-8")
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                _write_atomic(self.settings_path, data)
            except OSError as e:
                raise StorageIOFailure(f"Failed to save settings: {e}") from e

    def update_settings(self, **changes) -> Settings:
        """
        Change some settings and save them.

        Unknown names raise TypeError. Volume is clamped to 0-100. If the
        save fails the previous settings are kept.
        """
        with self._lock:
            merged = self._settings.to_dict()
            for name in changes:
                if name not in merged:
                    raise TypeError(f"Unknown setting: {name}")
            merged.update(changes)
            previous = self._settings
            self._settings = Settings.from_dict(merged)
            try:
                self.save_settings()
            except StorageIOFailure:
                self._settings = previous
                raise
            return self._settings

    # =========================================================================
    # RECOVERY
    # =========================================================================

    def create_recovery_kit(self, threshold: int, shares: int) -> List[str]:
        """Split the vault key into `shares` mnemonics, any `threshold` of which restore it."""
        with self._lock:
            self._require_unlocked()
            return generate_recovery_shares(self._vault_key, threshold, shares)

    def restore_vault_key(self, password: str, shares: Sequence[str]) -> None:
        """
        Rebuild secret.key from recovery shares and unlock.

        The reconstructed key is only written if it authenticates the existing
        passwords.enc, so a kit from another vault cannot overwrite anything.

        Raises:
            InvalidCredentials: wrong master password (or no vault)
            RecoveryError: shares could not be combined
            AuthenticationFailed: shares belong to another vault key
        """
        with self._lock:
            if not self.master_password_exists():
                raise InvalidCredentials(f"No vault in {self.data_dir}")
            artifact = _read_bytes(self.master_key_path).decode("utf-8", errors="replace")
            if not crypto.verify_password(password, artifact):
                raise InvalidCredentials("Wrong master password")

            vault_key = combine_recovery_shares(shares)
            cm = CryptoManager(vault_key)
            if self.passwords_path.exists():
                sections = self._load_sections(cm)
            else:
                sections = []

            try:
                _write_atomic(self.secret_key_path, vault_key)
            except OSError as e:
                raise StorageIOFailure(f"Failed to write {self.secret_key_path.name}: {e}") from e

            self._vault_key = vault_key
            self._crypto = cm
            self._sections = sections
            self._settings = self._load_settings()
            logger.warning("Vault key restored from recovery shares")

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _require_unlocked(self) -> None:
        if self._crypto is None:
            raise VaultLocked("Vault is locked. Call unlock() first.")

    def _index_of(self, section: Section) -> int:
        for index, candidate in enumerate(self._sections):
            if candidate is section:
                return index
        raise RecordNotFound(f"Section '{section.name}' is not part of this vault")

    def _commit(self, undo: Callable[[], None]) -> None:
        """Persist the current sections; on failure run undo and re-raise."""
        try:
            self._save_sections()
        except StorageIOFailure:
            undo()
            raise

    def _save_sections(self) -> None:
        blob = self._crypto.encrypt(self._serialize(self._sections))
        try:
            _write_atomic(self.passwords_path, blob)
        except OSError as e:
            logger.error("Saving %s failed: %s", self.passwords_path.name, e)
            raise StorageIOFailure(f"Failed to save passwords: {e}") from e

    @staticmethod
    def _serialize(sections: Sequence[Section]) -> str:
        return json.dumps([s.to_dict() for s in sections], indent=2, ensure_ascii=False)

    def _read_vault_key(self) -> bytes:
        if not self.secret_key_path.exists():
            logger.error("%s missing for initialized vault", self.secret_key_path.name)
            raise MissingKeyMaterial(
                f"{self.secret_key_path.name} is missing; the vault cannot be decrypted "
                "without it (restore it from a recovery kit)"
            )
        return _read_bytes(self.secret_key_path)

    def _load_sections(self, cm: CryptoManager) -> List[Section]:
        """Decrypt passwords.enc; a missing file is an empty vault."""
        if not self.passwords_path.exists():
            return []

        blob = _read_bytes(self.passwords_path)
        try:
            text = cm.decrypt(blob)
        except IntegrityError as e:
            logger.error("%s failed integrity check: %s", self.passwords_path.name, e)
            raise

        try:
            raw = json.loads(text)
            if raw is None:
                return []
            if not isinstance(raw, list):
                raise TypeError("snapshot is not a list")
            return [Section.from_dict(item) for item in raw]
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise SnapshotFormatError(f"Failed to load passwords: {e}") from e

    def _load_settings(self) -> Settings:
        """Read settings.json; missing or unreadable files give defaults."""
        if not self.settings_path.exists():
            return Settings()
        try:
            raw = json.loads(self.settings_path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("settings is not an object")
            return Settings.from_dict(raw)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", self.settings_path.name, e)
            return Settings()

    def _write_version(self) -> None:
        try:
            _write_atomic(self.version_path, __version__.encode("utf-8"))
        except OSError as e:
            raise StorageIOFailure(f"Failed to write {self.version_path.name}: {e}") from e
