"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT access token creation/verification via PyJWT
- opaque refresh tokens persisted in the refresh_tokens table (issue, rotate, revoke)
"""
from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from flask import current_app

from models import storage
from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.user import User
from utils.durations import parse_duration

logger = logging.getLogger(__name__)

ph = PasswordHasher()

REFRESH_TOKEN_BYTES = 40


class TokenError(Exception):
    """Base class for access-token failures"""


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    pass


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def generate_refresh_token() -> str:
    """Random opaque refresh token value (hex, 80 chars)."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def access_token_lifetime() -> int:
    return int(parse_duration(current_app.config["JWT_ACCESS_EXPIRES_IN"]).total_seconds())


def create_access_token(user: User, now: datetime | None = None) -> str:
    now = now or utcnow()
    exp = now + parse_duration(current_app.config["JWT_ACCESS_EXPIRES_IN"])
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "authkit-api"),
        "sub": str(user.id),
        "email": user.email,
        "iat": int(_timestamp(now)),
        "exp": int(_timestamp(exp)),
        "type": "access",
        "jti": generate_jti(),
    }
    return jwt.encode(
        payload, current_app.config["JWT_ACCESS_SECRET"], algorithm=current_app.config["JWT_ALGORITHM"]
    )


def decode_token(token: str, expected_type: str = "access") -> Dict[str, Any]:
    """
    Decode and validate an access JWT.
    Raises TokenExpiredError when exp has passed, TokenInvalidError for anything else.
    """
    try:
        decoded = jwt.decode(
            token,
            current_app.config["JWT_ACCESS_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            issuer=current_app.config.get("JWT_ISSUER", "authkit-api"),
            options={"require": ["exp", "sub", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenInvalidError(f"Invalid token: {exc}")

    if decoded.get("type") != expected_type:
        raise TokenInvalidError("Wrong token type")
    return decoded


def issue_refresh_token(user: User, now: datetime | None = None) -> RefreshToken:
    now = now or utcnow()
    rt = RefreshToken(
        token=generate_refresh_token(),
        user_id=user.id,
        expires_at=now + parse_duration(current_app.config["JWT_REFRESH_EXPIRES_IN"]),
    )
    storage.new(rt)
    return rt


def issue_token_pair(user: User) -> Dict[str, Any]:
    """
    Sign an access token and persist a new refresh token for `user`.
    Commits the current session.
    """
    rt = issue_refresh_token(user)
    access_token = create_access_token(user)
    storage.save()
    return {
        "access_token": access_token,
        "refresh_token": rt.token,
        "token_type": "Bearer",
        "expires_in": access_token_lifetime(),
    }


def find_refresh_token(token: str) -> RefreshToken | None:
    session = storage.get_session()
    return session.query(RefreshToken).filter(RefreshToken.token == token).first()


def consume_refresh_token(token_id: str) -> bool:
    """
    Atomically revoke a live refresh token by id; caller commits.
    Returns False when another request revoked it first.
    """
    session = storage.get_session()
    changed = (
        session.query(RefreshToken)
        .filter(RefreshToken.id == token_id, RefreshToken.revoked_at.is_(None))
        .update({RefreshToken.revoked_at: utcnow()}, synchronize_session=False)
    )
    return changed == 1


def revoke_refresh_token(token: str, user_id: str | None = None) -> bool:
    """Revoke an unrevoked refresh token. Returns True when a row changed."""
    session = storage.get_session()
    query = session.query(RefreshToken).filter(
        RefreshToken.token == token, RefreshToken.revoked_at.is_(None)
    )
    if user_id is not None:
        query = query.filter(RefreshToken.user_id == user_id)
    changed = query.update({RefreshToken.revoked_at: utcnow()}, synchronize_session=False)
    storage.save()
    return changed > 0


def revoke_user_tokens(user_id: str) -> int:
    """Revoke every live refresh token of a user; caller commits."""
    session = storage.get_session()
    now = utcnow()
    count = (
        session.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
        .update({RefreshToken.revoked_at: now}, synchronize_session=False)
    )
    logger.info("Revoked %d refresh tokens for user %s", count, user_id)
    return count


def _timestamp(naive_utc: datetime) -> float:
    return naive_utc.replace(tzinfo=timezone.utc).timestamp()
