from __future__ import annotations
import math
from typing import Any, Iterable, List, Optional, Sequence

FBI_API_BASE_URL = "https://api.fbi.gov"
FBI_SITE_ORIGIN = "https://www.fbi.gov"
MAX_PAGE_SIZE = 50
UNKNOWN_NAME = "Unknown"

def chunked(seq: Sequence[Any], size: int) -> Iterable[List[Any]]:
    """Yield successive chunks from seq of length <= size."""
    for i in range(0, len(seq), size):
        yield list(seq[i:i + size])

def clamp_page_size(page_size: int) -> int:
    """Upstream refuses pages larger than 50."""
    return max(1, min(MAX_PAGE_SIZE, page_size))

def page_count(total: Optional[int], page_size: int) -> int:
    """Number of pages needed for `total` records; tolerates None/negative totals."""
    if not total or total < 0:
        return 0
    return math.ceil(total / page_size)

def build_detail_url(path: Optional[str], path_id: Optional[str]) -> str:
    """
    Public detail link for a listing entry.
    `path` is relative to the public site; `pathId` is already a full URL.
    Returns "" when neither is usable.
    """
    if isinstance(path, str) and path:
        return FBI_SITE_ORIGIN + path
    return path_id if isinstance(path_id, str) else ""
