"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived JWT access tokens and long-lived opaque refresh tokens
- Stores refresh tokens in DB (RefreshToken model) so we can revoke / rotate them
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, current_app

from api import limiter
from api.errors import api_abort, ErrorCode
from models import storage
from models.base_model import utcnow
from models.seed import DEFAULT_ROLE, get_or_create_role
from models.user import User
from models.schemas.user import RegisterSchema, LoginSchema, RefreshSchema, TokenPairSchema
from utils.decorators import jwt_required
from utils.security import (
    hash_password,
    verify_password,
    issue_token_pair,
    find_refresh_token,
    consume_refresh_token,
    revoke_refresh_token,
)

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
token_pair_schema = TokenPairSchema()


def auth_rate_limit():
    return current_app.config["RATELIMIT_AUTH"]


@bp.post("/register")
@limiter.limit(auth_rate_limit)
def register():
    """
    Register a new user and return a token pair.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string, format: email, example: user@example.com }
            password: { type: string, minLength: 8, example: MyP@ssw0rd }
            name: { type: string, example: Jane Doe }
    responses:
      201:
        description: Created (returns tokens)
      400:
        description: Validation error
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = register_schema.load(payload)

    session = storage.get_session()
    if session.query(User).filter(User.email == data["email"]).first():
        api_abort(409, ErrorCode.CONFLICT, "Email already registered")

    user = User(
        email=data["email"],
        password_hash=hash_password(data["password"]),
        name=data.get("name"),
    )
    user.roles.append(get_or_create_role(session, DEFAULT_ROLE))
    storage.new(user)
    storage.save()
    logger.info("Registered user %s", user.id)

    return jsonify(token_pair_schema.dump(issue_token_pair(user))), 201


@bp.post("/login")
@limiter.limit(auth_rate_limit)
def login():
    """
    Login: return access and refresh tokens
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, password]
           properties:
             email: { type: string, example: admin@template.com }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials, inactive or blocked account
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)

    session = storage.get_session()
    user: User = session.query(User).filter(User.email == data["email"]).first()
    if not user or not verify_password(data["password"], user.password_hash):
        logger.warning("Failed login for %s", data["email"])
        api_abort(401, ErrorCode.INVALID_CREDENTIALS, "Invalid credentials")
    # same message for every failure so account state is not disclosed
    if not user.is_active:
        logger.warning("Login refused for inactive user %s", user.id)
        api_abort(401, ErrorCode.ACCOUNT_INACTIVE, "Invalid credentials")
    if user.is_blocked:
        logger.warning("Login refused for blocked user %s", user.id)
        api_abort(401, ErrorCode.ACCOUNT_BLOCKED, "Invalid credentials")

    user.last_login_at = utcnow()
    storage.new(user)

    return jsonify(token_pair_schema.dump(issue_token_pair(user))), 200


@bp.post("/refresh")
@limiter.limit(auth_rate_limit)
def refresh():
    """
    Exchange a refresh token for a new token pair (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Token refreshed
      401:
        description: Invalid, revoked or expired refresh token
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)

    rt = find_refresh_token(data["refresh_token"])
    if rt is None or rt.is_revoked:
        api_abort(401, ErrorCode.TOKEN_INVALID, "Invalid refresh token")
    if rt.is_expired():
        api_abort(401, ErrorCode.TOKEN_EXPIRED, "Refresh token expired")

    user = rt.user
    if not user.is_active:
        api_abort(401, ErrorCode.ACCOUNT_INACTIVE, "Account is inactive")
    if user.is_blocked:
        api_abort(401, ErrorCode.ACCOUNT_BLOCKED, "Account is blocked")

    # conditional UPDATE so concurrent refreshes with one token yield a single winner
    if not consume_refresh_token(rt.id):
        api_abort(401, ErrorCode.TOKEN_INVALID, "Invalid refresh token")
    tokens = issue_token_pair(user)
    logger.info("Rotated refresh token for user %s", user.id)

    return jsonify(token_pair_schema.dump(tokens)), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes the given refresh token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)

    revoked = revoke_refresh_token(data["refresh_token"], user_id=g.current_user.id)
    if revoked:
        logger.info("User %s logged out", g.current_user.id)

    return jsonify({"message": "Logged out"}), 200
