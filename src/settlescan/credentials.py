"""Encrypted local storage of provider API keys."""

import json
import logging
import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from settlescan.catalog import LOCAL_PROVIDERS, Provider
from settlescan.config import api_key_from_env

logger = logging.getLogger(__name__)

CREDENTIALS_FILE = "credentials.enc"
SECRET_KEY_FILE = "secret.key"
SECRET_KEY_ENV = "SETTLESCAN_SECRET_KEY"

# Template values shipped in example .env files
PLACEHOLDER_MARKER = "input_your_api_key"


def is_usable_key(key: str | None) -> bool:
    if not key:
        return False
    return PLACEHOLDER_MARKER not in key


class CredentialStore:
    """Provider API keys encrypted with Fernet under the data directory.

    The Fernet key comes from ``SETTLESCAN_SECRET_KEY`` or, when unset, from a
    ``secret.key`` file created on first use with owner-only permissions.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self._cipher: Fernet | None = None

    @property
    def path(self) -> Path:
        return self.data_dir / CREDENTIALS_FILE

    @property
    def cipher(self) -> Fernet:
        """Lazily load or create the Fernet key."""
        if self._cipher is None:
            self._cipher = Fernet(self._load_or_create_secret())
        return self._cipher

    def _load_or_create_secret(self) -> bytes:
        env_key = os.getenv(SECRET_KEY_ENV)
        if env_key:
            return env_key.encode()

        key_path = self.data_dir / SECRET_KEY_FILE
        if key_path.is_file():
            return key_path.read_bytes().strip()

        key = Fernet.generate_key()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        key_path.write_bytes(key)
        key_path.chmod(0o600)
        logger.info("Created new credential encryption key at %s", key_path)
        return key

    def load(self) -> dict[Provider, str]:
        """Decrypt the stored keys; unreadable entries are skipped."""
        if not self.path.is_file():
            return {}
        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return {}

        keys: dict[Provider, str] = {}
        for name, token in stored.items():
            try:
                provider = Provider(name)
                keys[provider] = self.cipher.decrypt(token.encode()).decode()
            except (ValueError, InvalidToken) as e:
                logger.warning("Skipping stored key for %s: %s", name, e)
        return keys

    def save(self, keys: dict[Provider, str]) -> None:
        encrypted = {
            provider.value: self.cipher.encrypt(key.encode()).decode()
            for provider, key in keys.items()
            if key
        }
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(encrypted, indent=2), encoding="utf-8")
        self.path.chmod(0o600)

    def set(self, provider: Provider, key: str) -> None:
        keys = self.load()
        keys[provider] = key
        self.save(keys)

    def clear(self, provider: Provider | None = None) -> None:
        if provider is None:
            self.save({})
            return
        keys = self.load()
        keys.pop(provider, None)
        self.save(keys)

    def get(self, provider: Provider) -> str | None:
        """Resolve the key for ``provider``: environment first, then this store."""
        env_key = api_key_from_env(provider)
        if is_usable_key(env_key):
            return env_key
        key = self.load().get(provider)
        return key if is_usable_key(key) else None

    def has_credential(self, provider: Provider) -> bool:
        """Local providers need no key; every other provider needs a usable one."""
        if provider in LOCAL_PROVIDERS:
            return True
        return self.get(provider) is not None
