"""
Token Revocation using Redis.

Logout blacklists the presented JWT until it would have expired anyway.
"""

import logging
from typing import Optional
from redis.exceptions import RedisError
from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


async def revoke_token(token: str, account_id: str, ttl_seconds: Optional[int] = None) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        account_id: Account that owns the token
        ttl_seconds: How long to remember the revocation; defaults to a full token lifetime

    Returns:
        True if successfully revoked, False otherwise
    """
    if ttl_seconds is None:
        ttl_seconds = settings.access_token_expire_minutes * 60
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await redis_module.redis_client.set(key, account_id, ex=ttl_seconds)
        return True
    except RedisError as e:
        logger.error("Error revoking token for account %s: %s", account_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable: revocation is a logout convenience,
    token expiry still bounds the session.
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except RedisError as e:
        logger.warning("Error checking token revocation: %s", e)
        return False
