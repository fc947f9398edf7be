"""
crypto.py - Key derivation, encryption and decryption of stored secrets
This is the security core of KeyLocker

A blob is the base64 text of ``salt (16) || iv (16) || ciphertext``.
Every call to encrypt draws a fresh salt and a fresh IV, so the same
secret under the same password never produces the same blob twice.
"""
import base64
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import DecryptionError, ValidationError

logger = logging.getLogger(__name__)

SALT_LENGTH = 16
IV_LENGTH = 16
KEY_LENGTH = 32  # 256 bits
MIN_BLOB_LENGTH = SALT_LENGTH + IV_LENGTH + 1

PBKDF2_SHA256 = "pbkdf2-sha256"
ARGON2ID = "argon2id"
SUPPORTED_KDFS = (PBKDF2_SHA256, ARGON2ID)
PBKDF2_ITERATIONS = 100000

CIPHER_CBC = "aes-256-cbc"
CIPHER_GCM = "aes-256-gcm"
SUPPORTED_CIPHERS = (CIPHER_CBC, CIPHER_GCM)
DEFAULT_CIPHER = CIPHER_GCM
# Entries written before ciphers were recorded per entry
LEGACY_CIPHER = CIPHER_CBC

DECRYPT_FAILED = "Failed to decrypt: invalid password or corrupted data"

# Accepted ranges for stored KDF records; anything outside is a corrupt vault
KDF_LIMITS = {
    "iterations": (1, 10000000),
    "time_cost": (1, 100),
    "memory_cost": (8, 4 * 1024 * 1024),  # KiB, up to 4GB
    "parallelism": (1, 64),
}


def _bounded(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"KDF field '{key}' must be an integer")
    low, high = KDF_LIMITS[key]
    if not low <= value <= high:
        raise ValueError(f"KDF field '{key}' must be between {low} and {high}")
    return value


@dataclass(frozen=True)
class KdfParams:
    """Key derivation algorithm and work factor, stored alongside each entry"""

    algorithm: str = PBKDF2_SHA256
    iterations: int = PBKDF2_ITERATIONS
    # Argon2id only
    time_cost: int = 3
    memory_cost: int = 65536  # KiB, 64MB
    parallelism: int = 4

    @classmethod
    def argon2id(cls, time_cost: int = 3, memory_cost: int = 65536,
                 parallelism: int = 4) -> "KdfParams":
        return cls(algorithm=ARGON2ID, time_cost=time_cost,
                   memory_cost=memory_cost, parallelism=parallelism)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize only the fields that matter for this algorithm."""
        if self.algorithm == ARGON2ID:
            return {
                "algorithm": self.algorithm,
                "time_cost": self.time_cost,
                "memory_cost": self.memory_cost,
                "parallelism": self.parallelism,
            }
        return {"algorithm": self.algorithm, "iterations": self.iterations}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "KdfParams":
        """
        Rebuild parameters from a stored record.

        A missing record means the entry predates stored parameters and
        was derived with PBKDF2-SHA256 at 100,000 iterations.

        Raises:
            ValueError: If the record is malformed, out of range or names an
                unknown algorithm
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("KDF record must be an object")

        algorithm = data.get("algorithm", PBKDF2_SHA256)
        if algorithm == PBKDF2_SHA256:
            return cls(iterations=_bounded(data, "iterations", PBKDF2_ITERATIONS))
        if algorithm == ARGON2ID:
            parallelism = _bounded(data, "parallelism", 4)
            memory_cost = _bounded(data, "memory_cost", 65536)
            if memory_cost < 8 * parallelism:
                raise ValueError("KDF field 'memory_cost' must be at least 8 KiB per lane")
            return cls.argon2id(
                time_cost=_bounded(data, "time_cost", 3),
                memory_cost=memory_cost,
                parallelism=parallelism,
            )
        raise ValueError(f"Unsupported key derivation algorithm: {algorithm}")


def derive_key(password: str, salt: bytes, params: Optional[KdfParams] = None) -> bytes:
    """
    Derive a 256-bit key from a password and a 16-byte salt.

    Deterministic: the same password, salt and parameters always give the
    same key. Deliberately slow to make offline guessing expensive.

    Args:
        password: Master password
        salt: Random per-entry salt
        params: Algorithm and work factor (defaults to PBKDF2-SHA256, 100k)

    Returns:
        32-byte key
    """
    params = params or KdfParams()
    if len(salt) != SALT_LENGTH:
        raise ValueError(f"Salt must be {SALT_LENGTH} bytes")

    secret = password.encode("utf-8")

    if params.algorithm == PBKDF2_SHA256:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=params.iterations,
        )
        return kdf.derive(secret)

    if params.algorithm == ARGON2ID:
        return hash_secret_raw(
            secret=secret,
            salt=salt,
            time_cost=params.time_cost,
            memory_cost=params.memory_cost,
            parallelism=params.parallelism,
            hash_len=KEY_LENGTH,
            type=Type.ID,
        )

    raise ValueError(f"Unsupported key derivation algorithm: {params.algorithm}")


def _decode(blob: Union[str, bytes]) -> bytes:
    # Line-wrapped or hand-edited values may carry whitespace
    if isinstance(blob, str):
        blob = "".join(blob.split())
    elif isinstance(blob, bytes):
        blob = b"".join(blob.split())
    return base64.b64decode(blob, validate=True)


class Crypto:
    """
    Encrypts secrets into blobs and back.

    Two ciphers are understood:
    - aes-256-gcm: authenticated, a wrong password or any tampering fails
      the tag check. Used for every new entry.
    - aes-256-cbc: PKCS7-padded, no integrity tag. Only padding errors give
      away a wrong key, so a wrong password can occasionally "succeed" and
      return garbage. Kept so older vault files stay readable.
    """

    def __init__(self, cipher: str = DEFAULT_CIPHER, kdf: Optional[KdfParams] = None):
        if cipher not in SUPPORTED_CIPHERS:
            raise ValueError(f"Unsupported cipher: {cipher}")
        self.cipher = cipher
        self.kdf = kdf or KdfParams()

    def encrypt(self, plaintext: str, password: str) -> str:
        """
        Encrypt a secret with a key derived from the password.

        Returns:
            base64 text of salt || iv || ciphertext

        Raises:
            ValidationError: If the secret or password is empty
        """
        if not plaintext or not password:
            raise ValidationError("Secret and master password are required")

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = derive_key(password, salt, self.kdf)
        data = plaintext.encode("utf-8")

        if self.cipher == CIPHER_GCM:
            # The 16-byte IV doubles as the GCM nonce; the tag is appended
            ciphertext = AESGCM(key).encrypt(iv, data, None)
        else:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(data) + padder.finalize()
            encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()

        return base64.b64encode(salt + iv + ciphertext).decode("ascii")

    def decrypt(self, blob: Union[str, bytes], password: str) -> str:
        """
        Decrypt a blob produced by encrypt().

        Raises:
            ValidationError: If no password is given
            DecryptionError: For any decode, key, padding, tag or text failure.
                The cause is chained but never described in the message.
        """
        if not password:
            raise ValidationError("Master password is required")

        try:
            raw = _decode(blob)
            if len(raw) < MIN_BLOB_LENGTH:
                raise ValueError("Blob is too short")

            salt = raw[:SALT_LENGTH]
            iv = raw[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
            ciphertext = raw[SALT_LENGTH + IV_LENGTH:]
            key = derive_key(password, salt, self.kdf)

            if self.cipher == CIPHER_GCM:
                data = AESGCM(key).decrypt(iv, ciphertext, None)
            else:
                decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
                padded = decryptor.update(ciphertext) + decryptor.finalize()
                unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
                data = unpadder.update(padded) + unpadder.finalize()

            return data.decode("utf-8")
        except (ValueError, TypeError, OverflowError, InvalidTag, HashingError) as exc:
            logger.debug("Decryption with %s failed", self.cipher)
            raise DecryptionError(DECRYPT_FAILED) from exc


def encrypt_secret(plaintext: str, password: str, cipher: str = DEFAULT_CIPHER,
                   kdf: Optional[KdfParams] = None) -> str:
    """Encrypt a secret in one call (see Crypto.encrypt)."""
    return Crypto(cipher, kdf).encrypt(plaintext, password)


def decrypt_secret(blob: Union[str, bytes], password: str, cipher: str = DEFAULT_CIPHER,
                   kdf: Optional[KdfParams] = None) -> str:
    """Decrypt a blob in one call (see Crypto.decrypt)."""
    return Crypto(cipher, kdf).decrypt(blob, password)


def validate_blob(blob: Union[str, bytes]) -> bool:
    """
    Structural check only: the blob decodes and is at least 33 bytes long.

    This proves nothing about whether any password can decrypt it.
    """
    try:
        raw = _decode(blob)
    except (ValueError, TypeError):
        return False
    return len(raw) >= MIN_BLOB_LENGTH
