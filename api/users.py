from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g

from api.errors import api_abort, ErrorCode
from models import storage
from models.base_model import utcnow
from models.seed import ADMIN_ROLE
from models.user import User
from models.schemas.user import UserUpdateSchema, UserOutSchema
from utils.decorators import jwt_required, roles_required, owner_or_permission
from utils.pagination import parse_cursor_params, parse_offset_params, cursor_page, offset_page
from utils.security import revoke_user_tokens

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__, url_prefix="/users")

user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


def get_user_or_404(user_id: str) -> User:
    user = storage.get(User, user_id)
    if not user:
        api_abort(404, ErrorCode.NOT_FOUND, "User not found")
    return user


@bp.get("")
@roles_required(ADMIN_ROLE)
def list_users():
    """
    List users (admin). Cursor pagination by default, offset pagination with ?page=
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: query, name: cursor, type: string, required: false, description: id of the last user of the previous page }
      - { in: query, name: take, type: integer, required: false, description: "Items per page (1-100, default 20)" }
      - { in: query, name: page, type: integer, required: false, description: switches to offset pagination }
      - { in: query, name: limit, type: integer, required: false }
    responses:
      200: { description: Paginated user list }
      403: { description: Insufficient roles }
    """
    query = storage.get_session().query(User)

    if "page" in request.args:
        params = parse_offset_params()
        result = offset_page(query, User, params["page"], params["limit"])
        meta = {
            "page": result["page"],
            "limit": result["limit"],
            "total": result["total"],
            "totalPages": result["total_pages"],
        }
    else:
        params = parse_cursor_params()
        result = cursor_page(query, User, params.get("cursor"), params["take"])
        meta = {"nextCursor": result["next_cursor"], "hasNext": result["has_next"]}

    return jsonify({"data": user_list_out_schema.dump(result["items"]), "meta": meta}), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user profile
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify(user_out_schema.dump(g.current_user)), 200


@bp.get("/<user_id>")
@owner_or_permission("user:read")
def get_user(user_id: str):
    """
    Get user by id (owner or user:read permission)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200: { description: User found }
      404: { description: User not found }
    """
    return jsonify(user_out_schema.dump(get_user_or_404(user_id))), 200


@bp.patch("/<user_id>")
@owner_or_permission("user:write")
def update_user(user_id: str):
    """
    Update user (owner or user:write permission)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string, example: New Name }
            email: { type: string, format: email, example: new@example.com }
    responses:
      200: { description: User updated }
      404: { description: User not found }
      409: { description: Email already registered }
    """
    payload = request.get_json(silent=True) or {}
    data = user_update_schema.load(payload)
    user = get_user_or_404(user_id)

    new_email = data.get("email")
    if new_email and new_email != user.email:
        taken = (
            storage.get_session()
            .query(User.id)
            .filter(User.email == new_email, User.id != user.id)
            .first()
        )
        if taken:
            api_abort(409, ErrorCode.CONFLICT, "Email already registered")

    for key, value in data.items():
        setattr(user, key, value)
    storage.new(user)
    storage.save()
    return jsonify(user_out_schema.dump(user)), 200


@bp.delete("/<user_id>")
@roles_required(ADMIN_ROLE)
def delete_user(user_id: str):
    """
    Soft delete a user (admin): blocks the account and revokes its refresh tokens
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200: { description: User soft deleted }
      403: { description: Insufficient roles }
      404: { description: User not found }
    """
    user = get_user_or_404(user_id)
    user.blocked_at = user.blocked_at or utcnow()
    user.is_active = False
    revoke_user_tokens(user.id)
    storage.new(user)
    storage.save()
    logger.info("User %s blocked by %s", user.id, g.current_user.id)
    return jsonify(user_out_schema.dump(user)), 200
