"""Shared response shapes and pagination helpers."""

import math
from typing import Optional

from pydantic import BaseModel

# Largest page or limit accepted; offset = (page - 1) * limit stays a BIGINT.
MAX_PAGE_PARAM = 2**31 - 1


class MessageResponse(BaseModel):
    message: str


def parse_page_param(raw: Optional[str], default: int = 1) -> int:
    """Read a page/limit query value.

    Absent, non-numeric, below 1 or above MAX_PAGE_PARAM → default.
    """
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if 1 <= value <= MAX_PAGE_PARAM else default


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size)
