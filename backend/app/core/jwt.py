"""
Access token encoding and decoding.

Tokens carry the caller's phone number (sub), account id and role.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings

REQUIRED_CLAIMS = ("sub", "account_id", "role")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token for an account.

    Args:
        data: Claims to embed; must include sub, account_id and role
        expires_delta: Lifetime override, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Raises:
        ValueError: a required claim is missing
    """
    missing = [claim for claim in REQUIRED_CLAIMS if not data.get(claim)]
    if missing:
        raise ValueError(f"Token claims missing: {', '.join(missing)}")

    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify signature and expiry.

    Returns:
        The claims, or None when the token is invalid, expired or lacks a required claim
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
        return None
    return payload


def seconds_until_expiry(payload: Dict[str, Any]) -> int:
    """Remaining lifetime of a decoded token, at least one second."""
    remaining = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)
