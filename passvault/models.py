"""
PassVault - Record Model

In-memory entities. Only the Vault mutates them; everything else should treat
them as read-only and go through Vault methods, which persist every change.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_THEME = "default"
DEFAULT_VOLUME = 3
MIN_VOLUME = 0
MAX_VOLUME = 100


def now_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


@dataclass
class PasswordHistory:
    """One secret an account has held, and when it was set."""

    secret: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"secret": self.secret, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PasswordHistory":
        return cls(secret=data["secret"], timestamp=data["timestamp"])


@dataclass(eq=False)
class Account:
    """
    A stored credential.

    history is an append-only audit trail: it starts with the initial secret
    and gains one entry per secret change, oldest first.
    """

    type: str
    identifier: str
    secret: str
    history: List[PasswordHistory] = field(default_factory=list)

    @classmethod
    def create(cls, type: str, identifier: str, secret: str) -> "Account":
        account = cls(type=type, identifier=identifier, secret=secret)
        account.history.append(PasswordHistory(secret, now_timestamp()))
        return account

    def update_secret(self, secret: str) -> None:
        self.secret = secret
        self.history.append(PasswordHistory(secret, now_timestamp()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "identifier": self.identifier,
            "secret": self.secret,
            "history": [h.to_dict() for h in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            type=data["type"],
            identifier=data["identifier"],
            secret=data["secret"],
            history=[PasswordHistory.from_dict(h) for h in data.get("history", [])],
        )


@dataclass(eq=False)
class Section:
    """Named, ordered group of accounts."""

    name: str
    accounts: List[Account] = field(default_factory=list)

    def has_account(self, account: Account) -> bool:
        return any(a is account for a in self.accounts)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "accounts": [a.to_dict() for a in self.accounts]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(
            name=data["name"],
            accounts=[Account.from_dict(a) for a in data.get("accounts", [])],
        )


def clamp_volume(value: Any) -> int:
    try:
        volume = int(value)
    except (TypeError, ValueError):
        return DEFAULT_VOLUME
    return max(MIN_VOLUME, min(MAX_VOLUME, volume))


@dataclass
class Settings:
    """User preferences, stored unencrypted in settings.json."""

    theme: str = DEFAULT_THEME
    music_enabled: bool = True
    volume: int = DEFAULT_VOLUME
    music_playing: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "music_enabled": self.music_enabled,
            "volume": self.volume,
            "music_playing": self.music_playing,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a parsed JSON object; missing keys get defaults."""
        defaults = cls()
        theme = data.get("theme", defaults.theme)
        return cls(
            theme=theme if isinstance(theme, str) and theme else defaults.theme,
            music_enabled=bool(data.get("music_enabled", defaults.music_enabled)),
            volume=clamp_volume(data.get("volume", defaults.volume)),
            music_playing=bool(data.get("music_playing", defaults.music_playing)),
        )
