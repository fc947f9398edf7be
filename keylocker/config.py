"""
config.py - Settings from the environment and the read path for host processes

A process that needs an API key at runtime (for example a web server that
calls a paid API) builds a ConfigLoader once and asks it for secrets by
name. The master password comes from the MASTER_PASSWORD environment
variable and is never written anywhere.
"""
import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from .crypto import Crypto
from .exceptions import ConfigurationError, DecryptionError, FormatError
from .storage import DEFAULT_VAULT, BaseStore, FileStore

logger = logging.getLogger(__name__)

MASTER_PASSWORD_ENV = "MASTER_PASSWORD"
VAULT_PATH_ENV = "KEYLOCKER_VAULT"
LOG_LEVEL_ENV = "KEYLOCKER_LOG_LEVEL"


@dataclass
class Settings:
    """Process-wide settings"""

    master_password: Optional[str] = None
    vault_path: str = DEFAULT_VAULT
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            # An empty variable counts as not configured
            master_password=env.get(MASTER_PASSWORD_ENV) or None,
            vault_path=os.path.expanduser(env.get(VAULT_PATH_ENV) or DEFAULT_VAULT),
            log_level=(env.get(LOG_LEVEL_ENV) or "WARNING").upper(),
        )

    def __repr__(self) -> str:
        masked = "***" if self.master_password else None
        return (f"Settings(master_password={masked!r}, vault_path={self.vault_path!r}, "
                f"log_level={self.log_level!r})")


class ConfigLoader:
    """
    Decrypts secrets on demand for a host process.

    Every call re-reads the vault and re-derives the key. Nothing is
    cached, so changes on disk are picked up immediately at the cost of
    one key derivation per call.
    """

    def __init__(self, store: BaseStore, master_password: Optional[str] = None):
        self.store = store
        self.master_password = master_password

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConfigLoader":
        settings = Settings.from_env(environ)
        return cls(FileStore(settings.vault_path), settings.master_password)

    @property
    def master_password_provided(self) -> bool:
        return bool(self.master_password)

    def get_secret(self, name: str) -> str:
        """
        Return the decrypted secret stored under a name.

        Raises:
            ConfigurationError: If no master password is configured. The
                vault is not read in that case.
            NotFoundError: If the vault or the key does not exist
            FormatError: If the vault file is unreadable
            DecryptionError: If decryption fails, most likely a wrong password
        """
        if not self.master_password:
            raise ConfigurationError(
                f"{MASTER_PASSWORD_ENV} environment variable is required to decrypt API keys"
            )

        entry = self.store.get(name)
        try:
            return Crypto(entry.cipher, entry.kdf).decrypt(entry.data, self.master_password)
        except DecryptionError as e:
            raise DecryptionError(
                f"Failed to decrypt '{name}': check your master password"
            ) from e

    def has_encrypted_keys(self) -> bool:
        return self.store.exists()

    def list_encrypted_keys(self) -> List[str]:
        """Names of stored keys; an unreadable vault is logged and reported as empty."""
        try:
            return self.store.names()
        except FormatError as e:
            logger.error("Error reading encrypted keys: %s", e)
            return []
