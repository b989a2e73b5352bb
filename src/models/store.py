"""
Wallet Store - JSON key-value persistence.

Holds exactly one sealed signing key under a fixed key name, plus the
user's token list and display preferences. Nothing in here is secret in
cleartext.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from wallet import set_secure_permissions
from .asset import AssetDescriptor
from .preferences import Preferences

logger = logging.getLogger(__name__)

# Well-known key names
SECRET_KEY = "pocki_wallet_key"
TOKENS_KEY = "pocki_user_tokens"
PREFERENCES_KEY = "pocki_preferences"


class WalletStore:
    """Manages the wallet.json key-value file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict = {}
        self._load()

    def _load(self) -> None:
        """Load the store from disk."""
        if not self.path.exists():
            return
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            if isinstance(data, dict):
                self._data = data
            else:
                logger.warning("Ignoring wallet store with unexpected layout")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load wallet store: {e}")

    def _save(self) -> None:
        """Write atomically and restrict permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix('.tmp')
        with open(temp_path, 'w') as f:
            json.dump(self._data, f, indent=2)
        temp_path.replace(self.path)
        set_secure_permissions(self.path)

    # Raw key-value access

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    # Sealed secret

    def get_encrypted_secret(self) -> Optional[str]:
        """The persisted EncryptedSecret string, or None before setup."""
        return self._data.get(SECRET_KEY)

    def set_encrypted_secret(self, blob: str) -> None:
        self.set(SECRET_KEY, blob)

    @property
    def has_wallet(self) -> bool:
        return bool(self._data.get(SECRET_KEY))

    # User tokens

    def get_user_tokens(self) -> list[AssetDescriptor]:
        """All tokens the user added, skipping unreadable entries."""
        tokens = []
        for item in self._data.get(TOKENS_KEY, []):
            try:
                tokens.append(AssetDescriptor.from_dict(item))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping stored token: {e}")
        return tokens

    def add_user_token(self, token: AssetDescriptor) -> bool:
        """Add a token. Returns False if its address is already stored."""
        if token.is_native:
            raise ValueError("Only contract tokens can be added")
        existing = {t.address.lower() for t in self.get_user_tokens()}
        if token.address.lower() in existing:
            return False
        items = list(self._data.get(TOKENS_KEY, []))
        items.append(token.to_dict())
        self.set(TOKENS_KEY, items)
        return True

    # Preferences

    def get_preferences(self) -> Preferences:
        return Preferences.from_dict(self._data.get(PREFERENCES_KEY, {}))

    def set_preferences(self, preferences: Preferences) -> None:
        self.set(PREFERENCES_KEY, preferences.to_dict())
