"""Signed access and refresh tokens.

Access and refresh tokens are HS256 JWTs signed with two different secrets,
so a leaked access secret cannot mint refresh tokens and the reverse. Both
carry the user id in ``sub``, a ``type`` claim and a random ``jti``. This
module is stateless; revocation of refresh tokens is tracked by the
authentication service.
"""
import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from ..config import settings
from .exceptions import InvalidTokenError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _encode(
    user_id: uuid.UUID,
    token_type: str,
    secret: str,
    expires_delta: timedelta
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=settings.auth.algorithm)


def _decode(token: str, token_type: str, secret: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.auth.algorithm])
    except ExpiredSignatureError as exc:
        raise InvalidTokenError("expired") from exc
    except JWTError as exc:
        raise InvalidTokenError("malformed") from exc

    if payload.get("type") != token_type:
        raise InvalidTokenError("wrong_type")
    if not payload.get("sub"):
        raise InvalidTokenError("malformed")
    return payload


def access_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.auth.access_token_expire_minutes)


def refresh_token_lifetime() -> timedelta:
    return timedelta(days=settings.auth.refresh_token_expire_days)


def issue_access_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived access token for ``user_id``."""
    return _encode(
        user_id,
        ACCESS_TOKEN_TYPE,
        settings.auth.access_token_secret,
        expires_delta if expires_delta is not None else access_token_lifetime(),
    )


def issue_refresh_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Create a long-lived refresh token for ``user_id``."""
    return _encode(
        user_id,
        REFRESH_TOKEN_TYPE,
        settings.auth.refresh_token_secret,
        expires_delta if expires_delta is not None else refresh_token_lifetime(),
    )


def verify_access_token(token: str) -> dict:
    """Return the payload of a valid access token or raise InvalidTokenError."""
    return _decode(token, ACCESS_TOKEN_TYPE, settings.auth.access_token_secret)


def verify_refresh_token(token: str) -> dict:
    """Return the payload of a valid refresh token or raise InvalidTokenError."""
    return _decode(token, REFRESH_TOKEN_TYPE, settings.auth.refresh_token_secret)


def subject_id(payload: dict) -> uuid.UUID:
    """Parse the user id out of a verified payload."""
    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, ValueError) as exc:
        raise InvalidTokenError("malformed") from exc


def hash_token(token: str) -> str:
    """Digest used to store and look up opaque tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
