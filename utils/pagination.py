"""
Pagination helpers.

Cursor pagination walks a total order (created_at DESC, id DESC). The cursor
is the id of the last row of the previous page; the next page holds rows
strictly after it in that order, so pages never repeat or skip a row that
existed when the walk started.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List

from flask import request
from sqlalchemy import and_, or_, select

from api.errors import api_abort, ErrorCode
from models.schemas.common import CursorQuerySchema, OffsetQuerySchema

cursor_query_schema = CursorQuerySchema()
offset_query_schema = OffsetQuerySchema()


def parse_cursor_params() -> Dict[str, Any]:
    return cursor_query_schema.load(request.args)


def parse_offset_params() -> Dict[str, Any]:
    return offset_query_schema.load(request.args)


def cursor_page(query, model, cursor: str | None, take: int) -> Dict[str, Any]:
    """Apply keyset ordering/filtering for `model` and return {items, next_cursor, has_next}."""
    if cursor:
        session = query.session
        exists = session.query(model.id).filter(model.id == cursor).first()
        if exists is None:
            api_abort(400, ErrorCode.VALIDATION_ERROR, "Invalid cursor", [{"field": "cursor", "message": "Unknown cursor."}])
        # compare against the stored value in SQL so precision always matches
        cursor_created = select(model.created_at).where(model.id == cursor).scalar_subquery()
        query = query.filter(
            or_(
                model.created_at < cursor_created,
                and_(model.created_at == cursor_created, model.id < cursor),
            )
        )

    rows: List = query.order_by(model.created_at.desc(), model.id.desc()).limit(take + 1).all()
    has_next = len(rows) > take
    items = rows[:take]
    next_cursor = items[-1].id if has_next and items else None
    return {"items": items, "next_cursor": next_cursor, "has_next": has_next}


def offset_page(query, model, page: int, limit: int) -> Dict[str, Any]:
    total = query.count()
    rows = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": rows,
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
