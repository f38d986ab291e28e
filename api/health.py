import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from models import storage

logger = logging.getLogger(__name__)

bp = Blueprint("health", __name__, url_prefix="/health")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@bp.get("")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            timestamp:
              type: string
            uptime:
              type: number
    """
    return {
        "status": "ok",
        "timestamp": _timestamp(),
        "uptime": round(time.monotonic() - current_app.extensions["started_at"], 3),
    }, 200


@bp.get("/db")
def health_db():
    """
    Database health check
    ---
    tags:
      - Health
    responses:
      200:
        description: Database reachable
      503:
        description: Database unreachable
    """
    try:
        storage.ping()
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        return {"status": "error", "database": "disconnected", "timestamp": _timestamp()}, 503
    return {"status": "ok", "database": "connected", "timestamp": _timestamp()}, 200
