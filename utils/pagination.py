import math
from dataclasses import dataclass
from typing import Any, Dict, Sequence

DEFAULT_PAGE_SIZE = 32
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageParams:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def _positive_int(value: Any, fallback: int) -> int:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed) or parsed <= 0:
        return fallback
    return max(int(parsed), 1)


def get_pagination_params(
    page: Any = None,
    page_size: Any = None,
    limit: Any = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> PageParams:
    """Normalise raw query values; ``limit`` takes precedence over ``page_size``."""
    requested = limit if limit is not None else page_size
    size = min(_positive_int(requested, default_page_size), max_page_size)
    return PageParams(page=_positive_int(page, 1), page_size=size)


def build_pagination_response(items: Sequence, params: PageParams, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / params.page_size) if params.page_size > 0 else 0
    return {
        "items": list(items),
        "page": params.page,
        "page_size": params.page_size,
        "total": total,
        "total_pages": total_pages,
        "has_more": params.page * params.page_size < total,
    }
