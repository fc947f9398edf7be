"""
manager.py - Administrative operations that tie crypto and storage together
"""
import logging
from typing import List, NamedTuple, Optional

from .crypto import DEFAULT_CIPHER, Crypto, KdfParams, validate_blob
from .exceptions import ValidationError
from .generator import DEFAULT_LENGTH, generate_password
from .storage import BaseStore, VaultEntry

logger = logging.getLogger(__name__)


class EncryptResult(NamedTuple):
    entry: VaultEntry
    # Set only when the caller gave no password and one was generated
    generated_password: Optional[str]


class KeyManager:
    """Encrypt, decrypt, list and validate the keys held in a store"""

    def __init__(self, store: BaseStore, kdf: Optional[KdfParams] = None,
                 cipher: str = DEFAULT_CIPHER):
        """
        Args:
            store: Where entries are persisted
            kdf: Key derivation parameters for newly encrypted keys
            cipher: Cipher for newly encrypted keys
        """
        self.store = store
        self.crypto = Crypto(cipher, kdf)

    def encrypt(self, name: str, secret: str, password: Optional[str] = None) -> EncryptResult:
        """
        Encrypt a secret and store it under a name.

        If no password is given a new one is generated. It is returned in
        the result and saved nowhere, so the caller must show it to the
        operator.

        Raises:
            ValidationError: If name or secret is empty
        """
        if not name or not secret:
            raise ValidationError("Key name and secret are required")

        generated = None
        if not password:
            generated = password = generate_password()

        blob = self.crypto.encrypt(secret, password)
        entry = self.store.put(name, blob, cipher=self.crypto.cipher, kdf=self.crypto.kdf)
        return EncryptResult(entry, generated)

    def decrypt(self, name: str, password: str) -> str:
        """
        Decrypt the key stored under a name.

        The entry's own cipher and KDF parameters are used, so keys written
        with older settings keep working.

        Raises:
            ValidationError: If name or password is empty
            NotFoundError: If there is no such key
            DecryptionError: If the password is wrong or the blob is damaged
        """
        if not name or not password:
            raise ValidationError("Key name and master password are required")

        entry = self.store.get(name)
        logger.debug("Decrypting '%s' (%s, %s)", name, entry.cipher, entry.kdf.algorithm)
        return Crypto(entry.cipher, entry.kdf).decrypt(entry.data, password)

    def list_keys(self) -> List[VaultEntry]:
        return self.store.entries()

    def validate(self, name: str) -> bool:
        """
        Check that the stored blob for a name is structurally sound.

        This is not a password check.
        """
        if not name:
            raise ValidationError("Key name is required")
        return validate_blob(self.store.get(name).data)

    @staticmethod
    def generate_password(length: int = DEFAULT_LENGTH) -> str:
        """Generate a master password; does not touch the vault."""
        if length < 1:
            raise ValidationError("Password length must be at least 1")
        return generate_password(length)
