"""
Caller identity resolution.

Turns request headers into the stable identity string that keys rate-limit and
usage counters. Token and key issuance live elsewhere; this module only verifies
what it is handed.

Resolution order:
1. `Authorization: Bearer <jwt>`: HS256 token verified with JWT_SECRET; identity is the `userId` claim.
   A token that fails verification makes the caller anonymous without trying the API key
2. `X-API-Key: <key>`: active, unexpired `api_key:{key}` record; identity is its owner
3. Anonymous: `anon:{ip}` from CF-Connecting-IP, X-Forwarded-For, then the socket peer

Usage:
    from risklens.services.auth import resolve_caller

    caller = await resolve_caller(request.headers, request.client.host, store)
"""

import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from risklens.config import get_settings
from risklens.errors import AuthenticationError
from risklens.kv_store import KeyValueStore
from risklens.models import ApiKeyRecord, AuthType, CallerIdentity, api_key_key

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def client_ip(headers: Mapping[str, str], peer_host: Optional[str]) -> str:
    """Best-known client IP for anonymous callers."""
    connecting_ip = headers.get("cf-connecting-ip")
    if connecting_ip:
        return connecting_ip.strip()

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return peer_host or "unknown"


def verify_jwt(token: str) -> CallerIdentity:
    """
    Verify an HS256 Bearer token and return the caller it identifies.

    Raises:
        AuthenticationError: If no secret is configured or the token is invalid, expired or lacks userId
    """
    settings = get_settings()
    if not settings.jwt_secret:
        logger.error("Bearer token presented but JWT_SECRET is not configured")
        raise AuthenticationError("Token authentication is not available")

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        logger.info(f"JWT verification failed: {e}")
        raise AuthenticationError("JWT verification failed: Token expired") from e
    except jwt.InvalidTokenError as e:
        logger.info(f"JWT verification failed: {e}")
        raise AuthenticationError("JWT verification failed: Invalid token") from e

    user_id = payload.get("userId")
    if not user_id:
        raise AuthenticationError("JWT verification failed: Missing userId claim")

    return CallerIdentity(identity=str(user_id), auth_type=AuthType.JWT, email=payload.get("email"))


async def validate_api_key(api_key: str, store: KeyValueStore) -> Optional[CallerIdentity]:
    """
    Look up an API key and return its owner, refreshing lastUsed.

    Returns:
        CallerIdentity, or None for unknown, revoked, expired or unreadable keys
    """
    raw = await store.get(api_key_key(api_key))
    if not raw:
        return None

    try:
        record = ApiKeyRecord.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error(f"Corrupt API key record: {e}")
        return None

    if not record.active:
        return None

    now = datetime.now(timezone.utc)
    if record.expires_at:
        expires_at = datetime.fromisoformat(record.expires_at.replace("Z", "+00:00"))
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < now:
            return None

    updated = record.model_copy(update={"last_used": now.isoformat()})
    try:
        await store.put(api_key_key(api_key), updated.model_dump_json(by_alias=True))
    except Exception as e:
        logger.warning(f"Failed to record API key usage for {record.id}: {e}")

    return CallerIdentity(identity=record.user_id, auth_type=AuthType.API_KEY, email=record.email)


async def resolve_caller(
    headers: Mapping[str, str],
    peer_host: Optional[str],
    store: KeyValueStore
) -> CallerIdentity:
    """
    Resolve the caller of a request.

    Args:
        headers: Request headers (case-insensitive mapping, e.g. starlette Headers)
        peer_host: Socket peer address, if known
        store: Key-value store holding API key records

    Returns:
        CallerIdentity for the JWT user, API key owner or anonymous IP.
        A Bearer token that fails verification yields the anonymous identity.
    """
    auth_header = headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        try:
            return verify_jwt(auth_header[len("Bearer "):].strip())
        except AuthenticationError as e:
            logger.warning(f"{e.message}; treating caller as anonymous")
            return CallerIdentity(identity=f"anon:{client_ip(headers, peer_host)}")

    api_key = headers.get("x-api-key")
    if api_key:
        caller = await validate_api_key(api_key, store)
        if caller:
            return caller
        logger.info("Unrecognized API key; treating caller as anonymous")

    return CallerIdentity(identity=f"anon:{client_ip(headers, peer_host)}")
