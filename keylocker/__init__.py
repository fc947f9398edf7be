"""
KeyLocker - Encrypted storage for API keys behind a single master password.

Features:
- PBKDF2-SHA256 or Argon2id key derivation, parameters stored per key
- AES-256-GCM authenticated encryption with a fresh salt and IV per key
- Read support for the older unauthenticated AES-256-CBC format
- Atomic vault file writes
- Environment-driven read path for servers (ConfigLoader)
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Security feature flags; defined before the submodule imports so the CLI can
# read them while the package is still initializing
FEATURES = {
    "argon2_kdf": True,
    "stored_kdf_params": True,
    "authenticated_encryption": True,
    "legacy_cbc_read": True,
    "atomic_writes": True,
}


def get_version():
    """Get the current version string."""
    return __version__


def get_security_features():
    """Get list of enabled security features."""
    return [feature for feature, enabled in FEATURES.items() if enabled]


from .config import ConfigLoader, Settings
from .crypto import Crypto, KdfParams, decrypt_secret, derive_key, encrypt_secret, validate_blob
from .exceptions import (
    ConfigurationError,
    DecryptionError,
    FormatError,
    NotFoundError,
    ValidationError,
    VaultError,
)
from .generator import generate_password
from .manager import KeyManager
from .storage import FileStore, MemoryStore, VaultEntry
from .cli import cli

__all__ = [
    "ConfigLoader",
    "Settings",
    "Crypto",
    "KdfParams",
    "derive_key",
    "encrypt_secret",
    "decrypt_secret",
    "validate_blob",
    "VaultError",
    "ConfigurationError",
    "NotFoundError",
    "FormatError",
    "DecryptionError",
    "ValidationError",
    "generate_password",
    "KeyManager",
    "FileStore",
    "MemoryStore",
    "VaultEntry",
    "cli",
    "get_version",
    "get_security_features",
]
