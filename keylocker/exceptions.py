"""
exceptions.py - Error types raised by KeyLocker
"""


class VaultError(Exception):
    """Base class for every error KeyLocker reports to its callers"""


class ConfigurationError(VaultError):
    """The master password (or other required setting) is not configured"""


class NotFoundError(VaultError):
    """The vault file or the requested entry does not exist"""


class FormatError(VaultError):
    """The vault file exists but does not have the expected structure"""


class DecryptionError(VaultError):
    """
    A blob could not be decrypted.

    Wrong password, truncation, corruption and tampering all end up here
    with the same message, so callers cannot tell which one happened.
    """


class ValidationError(VaultError):
    """Required input is missing or malformed"""
