"""
Password hashing utilities.

Admin credentials are stored only as salted bcrypt hashes.
"""

import bcrypt
from backend.app.core.config import settings


def get_password_hash(password: str) -> str:
    """Hash a plaintext password with a fresh salt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plaintext password against a stored bcrypt hash.

    Returns False for a missing or malformed hash instead of raising.
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False
