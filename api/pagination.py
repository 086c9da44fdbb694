"""
Pagination policy shared by every list endpoint.
"""

import math
from typing import Dict, NamedTuple, Optional

from api.errors import BadRequestError
from api.models import Pagination

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50


class PageParams(NamedTuple):
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _parse_int(value: Optional[str], default: int) -> int:
    """Parse a query-string integer; blanks and garbage fall back to the default."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_page_params(
    page: Optional[str],
    limit: Optional[str],
    default_limit: int = DEFAULT_LIMIT
) -> PageParams:
    """
    Turn raw ``page``/``limit`` query values into validated page parameters.

    Raises:
        BadRequestError: If page < 1 or limit is outside 1..50
    """
    page_number = _parse_int(page, DEFAULT_PAGE)
    page_size = _parse_int(limit, default_limit)

    if page_number < 1:
        raise BadRequestError("Page must be at least 1")
    if page_size < 1 or page_size > MAX_LIMIT:
        raise BadRequestError(f"Limit must be between 1 and {MAX_LIMIT}")

    return PageParams(page_number, page_size)


def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    """Pagination metadata with ``pages = ceil(total / limit)``."""
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit)
    ).dict()
