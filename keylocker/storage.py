'''
storage.py - Persistence of encrypted keys
This is the data core of KeyLocker

The vault is one JSON object mapping each key name to its entry:

    {
      "openrouter": {
        "data": "<base64(salt || iv || ciphertext)>",
        "created": "2026-10-18T09:12:44.120593+00:00",
        "updated": "2026-10-18T09:12:44.120593+00:00",
        "cipher": "aes-256-gcm",
        "kdf": {"algorithm": "pbkdf2-sha256", "iterations": 100000}
      }
    }

Entries without "cipher" and "kdf" were written by older tools and
are read as aes-256-cbc with PBKDF2-SHA256 at 100,000 iterations.
'''
import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .crypto import DEFAULT_CIPHER, LEGACY_CIPHER, SUPPORTED_CIPHERS, KdfParams
from .exceptions import FormatError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_VAULT = os.path.expanduser("~/.keylocker/encrypted_keys.json")


def utc_now() -> str:
    """Current time as an ISO-8601 string with microseconds and UTC offset"""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class VaultEntry:
    """One stored secret: the encrypted blob plus its metadata"""

    name: str
    data: str
    created: str
    updated: str
    cipher: str = LEGACY_CIPHER
    kdf: KdfParams = field(default_factory=KdfParams)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "created": self.created,
            "updated": self.updated,
            "cipher": self.cipher,
            "kdf": self.kdf.to_dict(),
        }

    @classmethod
    def from_dict(cls, name: str, raw: Any) -> "VaultEntry":
        """
        Build an entry from its JSON form.

        Raises:
            ValueError: If a required field is missing or has the wrong type
        """
        if not isinstance(raw, dict):
            raise ValueError("entry must be an object")

        for key in ("data", "created", "updated"):
            if not isinstance(raw.get(key), str):
                raise ValueError(f"missing or invalid '{key}'")

        cipher = raw.get("cipher", LEGACY_CIPHER)
        if cipher not in SUPPORTED_CIPHERS:
            raise ValueError(f"unsupported cipher '{cipher}'")

        return cls(
            name=name,
            data=raw["data"],
            created=raw["created"],
            updated=raw["updated"],
            cipher=cipher,
            kdf=KdfParams.from_dict(raw.get("kdf")),
        )


class BaseStore:
    """
    Key-value store of vault entries.

    Subclasses only provide _read() and _write(); every operation reads the
    whole vault fresh and put() rewrites it whole. Nothing is cached.
    """

    location = "<vault>"

    def _read(self) -> Optional[str]:
        """Return the serialized vault, or None if it does not exist yet"""
        raise NotImplementedError

    def _write(self, text: str) -> None:
        raise NotImplementedError

    def exists(self) -> bool:
        return self._read() is not None

    def _parse(self, text: str) -> Dict[str, VaultEntry]:
        try:
            raw = json.loads(text)
        except ValueError as e:
            raise FormatError(f"Vault {self.location} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise FormatError(f"Vault {self.location} must contain a JSON object")

        entries = {}
        for name, item in raw.items():
            try:
                entries[name] = VaultEntry.from_dict(name, item)
            except (TypeError, ValueError) as e:
                raise FormatError(f"Entry '{name}' in {self.location} is malformed: {e}") from e
        return entries

    def load(self) -> Dict[str, VaultEntry]:
        """
        Read the whole vault.

        Returns:
            Mapping of name to entry; empty if the vault does not exist

        Raises:
            FormatError: If the vault exists but cannot be parsed
        """
        text = self._read()
        if text is None:
            return {}
        return self._parse(text)

    def save(self, entries: Dict[str, VaultEntry]) -> None:
        """Overwrite the whole vault with the given entries."""
        payload = {name: entry.to_dict() for name, entry in entries.items()}
        self._write(json.dumps(payload, indent=2) + "\n")

    def put(self, name: str, blob: str, cipher: str = DEFAULT_CIPHER,
            kdf: Optional[KdfParams] = None) -> VaultEntry:
        """
        Insert or replace the blob stored under a name.

        A new entry gets created == updated == now. Replacing an entry keeps
        its original created timestamp and refreshes updated.

        Raises:
            FormatError: If the existing vault is unreadable. It is left as is.
        """
        entries = self.load()
        now = utc_now()
        existing = entries.get(name)

        entry = VaultEntry(
            name=name,
            data=blob,
            created=existing.created if existing else now,
            updated=now,
            cipher=cipher,
            kdf=kdf or KdfParams(),
        )
        entries[name] = entry
        self.save(entries)

        logger.info("%s key '%s' in %s", "Updated" if existing else "Stored", name, self.location)
        return entry

    def get(self, name: str) -> VaultEntry:
        """
        Look up a single entry.

        Raises:
            NotFoundError: If the vault or the entry does not exist
            FormatError: If the vault cannot be parsed
        """
        text = self._read()
        if text is None:
            raise NotFoundError(
                f"Encrypted keys file not found at {self.location}. "
                "Encrypt a key first with 'keylocker encrypt'"
            )

        entry = self._parse(text).get(name)
        if entry is None:
            raise NotFoundError(f"No encrypted key found for '{name}'")
        return entry

    def names(self) -> List[str]:
        return sorted(self.load())

    def entries(self) -> List[VaultEntry]:
        """All entries sorted by name"""
        vault = self.load()
        return [vault[name] for name in sorted(vault)]


class FileStore(BaseStore):
    """Vault kept in a single JSON file on disk"""

    def __init__(self, path: str = DEFAULT_VAULT):
        """
        Args:
            path: Location of the vault file (~ is expanded)
        """
        self.path = os.path.expanduser(path)

    @property
    def location(self) -> str:
        return self.path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def _read(self) -> Optional[str]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _write(self, text: str) -> None:
        """
        Replace the vault file atomically.

        The new content goes to a temporary file next to the vault, which
        is then renamed over it, so readers see either the old or the new
        vault and never a partial one. Two concurrent writers still race:
        the last rename wins.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        if not os.path.exists(directory):
            os.makedirs(directory, mode=0o700)

        # mkstemp creates the file readable/writable by owner only (600)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".keylocker-", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.remove(tmp_path)
            raise


class MemoryStore(BaseStore):
    """Vault held in memory, for tests and embedding"""

    location = "<memory>"

    def __init__(self, initial: Optional[str] = None):
        """
        Args:
            initial: Serialized vault to start from, or None for no vault
        """
        self._text = initial

    def _read(self) -> Optional[str]:
        return self._text

    def _write(self, text: str) -> None:
        self._text = text
