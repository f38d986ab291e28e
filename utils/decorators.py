from __future__ import annotations

import logging
from functools import wraps
from typing import Iterable

from flask import request, g

from api.errors import api_abort, ErrorCode
from models import storage
from models.user import User
from utils.security import decode_token, TokenExpiredError, TokenInvalidError

logger = logging.getLogger(__name__)


def has_any_role(user_roles: Iterable[str], required: Iterable[str]) -> bool:
    """True when no role is required or the user holds at least one of them."""
    req = set(required or [])
    return not req or bool(set(user_roles) & req)


def has_all_permissions(user_perms: Iterable[str], required: Iterable[str]) -> bool:
    """True when the user holds every required permission."""
    return set(required or []).issubset(set(user_perms))


def check_account_status(user: User, status: int = 403):
    if not user.is_active:
        api_abort(status, ErrorCode.ACCOUNT_INACTIVE, "Account is inactive")
    if user.is_blocked:
        api_abort(status, ErrorCode.ACCOUNT_BLOCKED, "Account is blocked")


def _authenticate():
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        api_abort(401, ErrorCode.TOKEN_INVALID, "Missing or invalid Authorization header")
    token = auth.split(" ", 1)[1].strip()
    try:
        decoded = decode_token(token, expected_type="access")
    except TokenExpiredError:
        api_abort(401, ErrorCode.TOKEN_EXPIRED, "Token expired")
    except TokenInvalidError as e:
        logger.debug("Rejected access token: %s", e)
        api_abort(401, ErrorCode.TOKEN_INVALID, "Invalid token")

    user = storage.get(User, decoded.get("sub"))
    if not user:
        api_abort(401, ErrorCode.TOKEN_INVALID, "Invalid token")
    check_account_status(user)

    g.current_user = user
    g.current_user_roles = user.role_names
    g.current_user_permissions = user.permission_names
    g.current_token_jti = decoded.get("jti")
    return user


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            _authenticate()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*required_roles: str):
    """
    Allow access if the user has ANY of the required roles.
    Deny (403) only if there is NO overlap between user_roles and required_roles.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if not has_any_role(g.current_user_roles, required_roles):
                api_abort(403, ErrorCode.INSUFFICIENT_ROLES, "Insufficient roles")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def permissions_required(*required_perms: str):
    """Allow access only if the user holds ALL of the required permissions."""
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if not has_all_permissions(g.current_user_permissions, required_perms):
                api_abort(403, ErrorCode.INSUFFICIENT_PERMISSIONS, "Insufficient permissions")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def owner_or_permission(*required_perms: str, param: str = "user_id"):
    """
    The owner of the resource (route param equals the caller's id) always passes;
    anyone else needs ALL of the required permissions.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            target_id = kwargs.get(param)
            if target_id is not None and target_id == g.current_user.id:
                return fn(*args, **kwargs)
            if not has_all_permissions(g.current_user_permissions, required_perms):
                api_abort(
                    403,
                    ErrorCode.INSUFFICIENT_PERMISSIONS,
                    "You do not own this resource and lack the required permissions",
                )
            return fn(*args, **kwargs)

        return wrapper

    return decorator
