"""
generator.py - Master password generation using cryptographically secure randomness
"""
import secrets
import string

SYMBOLS = "!@#$%^&*"
PASSWORD_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + SYMBOLS
DEFAULT_LENGTH = 32


def generate_password(length: int = DEFAULT_LENGTH) -> str:
    """
    Generate a cryptographically secure random password.

    Every character is drawn independently and uniformly from
    PASSWORD_ALPHABET (letters, digits and eight symbols, 70 in all).

    Args:
        length: Length of the password (default: 32)

    Returns:
        A secure random password

    Raises:
        ValueError: If length < 1
    """
    if length < 1:
        raise ValueError("Password length must be at least 1")

    # secrets.choice uses randbelow, which rejects out-of-range draws
    # instead of reducing modulo the alphabet size
    return ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
