"""
PassVault - Configuration

File layout, default locations and logging setup.

Environment:
    PASSVAULT_HOME       vault directory (default: ~/.passvault)
    PASSVAULT_LOG_LEVEL  logging level name (default: WARNING)

Security Note:
    Never log key material, master passwords or decrypted secrets.
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

# Files inside the vault directory
MASTER_KEY_FILE = "master.key"
SECRET_KEY_FILE = "secret.key"
PASSWORDS_FILE = "passwords.enc"
SETTINGS_FILE = "settings.json"
VERSION_FILE = "version.txt"

# Wrong-password attempts the menu allows before exiting
MAX_UNLOCK_ATTEMPTS = 3

DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_vault_dir() -> Path:
    """Vault directory from PASSVAULT_HOME, falling back to ~/.passvault."""
    env = os.environ.get("PASSVAULT_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".passvault"


DEFAULT_VAULT_DIR = default_vault_dir()


def configure_logging(level: Optional[Union[str, int]] = None) -> None:
    """
    Set up root logging for the terminal front end.

    The library itself only creates loggers under "passvault"; it never
    configures handlers.
    """
    if level is None:
        level = os.environ.get("PASSVAULT_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("passvault").setLevel(level)
