"""
Request dependencies shared by the routers.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request

from api.database import APIDatabaseService
from api.errors import BadRequestError, ServerError

logger = structlog.get_logger(__name__)

# Installed by the application lifespan once MongoDB is reachable
db_service: Optional[APIDatabaseService] = None


def get_db_service() -> APIDatabaseService:
    """Return the database service, failing if startup has not installed it."""
    if db_service is None:
        raise ServerError("Database service not available")
    return db_service


async def get_json_body(request: Request) -> Dict[str, Any]:
    """
    Decode the request body as a JSON object.

    An empty body is treated as ``{}`` so schema validation can report
    the missing fields.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Rejected malformed JSON body", path=request.url.path)
        raise BadRequestError("Invalid JSON body")
    if not isinstance(body, dict):
        raise BadRequestError("Request body must be a JSON object")
    return body
