"""Resident list filtering and pagination."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Sequence

from apps.console.utils.errors import ValidationError
from apps.console.utils.resident_status import (
    STATUS_FILTER_KEYS,
    record_field,
    format_resident_name,
    resident_code,
    resolve_update_status,
    status_key,
)


FOR_REVIEW = 'for_review'
STATUS_FILTERS = (FOR_REVIEW,) + STATUS_FILTER_KEYS
DEFAULT_PAGE_SIZE = 10
PAGE_SIZE_OPTIONS = (10, 20, 50, 100)


def validate_status_filter(value: str | None) -> str:
    """Normalize a status filter, rejecting unknown values."""
    normalized = (value or '').strip().lower()
    if normalized and normalized not in STATUS_FILTERS:
        raise ValidationError(
            f"Invalid status filter. Must be one of: {', '.join(STATUS_FILTERS)}",
            field='status',
        )
    return normalized


def validate_page_size(value, options: Sequence[int] = PAGE_SIZE_OPTIONS) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        size = None
    if size not in options:
        raise ValidationError(
            f"per_page must be one of {', '.join(str(o) for o in options)}",
            field='per_page',
        )
    return size


def _search_haystack(resident: Any) -> str:
    return ' '.join([
        format_resident_name(resident),
        str(record_field(resident, 'email') or ''),
        resident_code(resident),
    ]).lower()


def filter_residents(
    residents: Iterable[Any],
    search: str = '',
    status_filter: str = '',
    now: datetime | None = None,
) -> List[Any]:
    """Apply search text and status filter to a resident list."""
    items = [r for r in (residents or []) if r is not None]

    term = (search or '').strip().lower()
    if term:
        items = [r for r in items if term in _search_haystack(r)]

    status_filter = validate_status_filter(status_filter)
    if status_filter == FOR_REVIEW:
        items = [r for r in items if bool(record_field(r, 'for_review'))]
    elif status_filter:
        items = [
            r for r in items
            if status_key(resolve_update_status(r, now=now)) == status_filter
        ]

    return items


def total_pages_for(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if total > 0 else 0


def clamp_page(page, total_pages: int) -> int:
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    return max(1, min(page, max(total_pages, 1)))


@dataclass
class Page:
    items: List[Any]
    page: int
    per_page: int
    total: int
    total_pages: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self, items_key: str = 'items') -> dict:
        return {
            items_key: list(self.items),
            'pagination': {
                'page': self.page,
                'per_page': self.per_page,
                'total': self.total,
                'pages': self.total_pages,
                'has_next': self.has_next,
                'has_prev': self.has_prev,
            },
        }


def paginate(
    items: Sequence[Any],
    page=1,
    per_page: int = DEFAULT_PAGE_SIZE,
    options: Sequence[int] = PAGE_SIZE_OPTIONS,
) -> Page:
    """Slice a list into a 1-indexed page, clamping out-of-range pages."""
    per_page = validate_page_size(per_page, options)
    items = list(items or [])
    total = len(items)
    pages = total_pages_for(total, per_page)
    current = clamp_page(page, pages)
    start = (current - 1) * per_page
    return Page(
        items=items[start:start + per_page],
        page=current,
        per_page=per_page,
        total=total,
        total_pages=pages,
    )


@dataclass
class ResidentListState:
    """Search/filter/page state of a resident table.

    Any filter or page-size change sends the table back to page 1.
    """
    search: str = ''
    status_filter: str = ''
    per_page: int = DEFAULT_PAGE_SIZE
    page: int = 1
    page_size_options: Sequence[int] = field(default=PAGE_SIZE_OPTIONS)

    def set_search(self, value: str) -> None:
        self.search = value or ''
        self.page = 1

    def set_status_filter(self, value: str) -> None:
        self.status_filter = validate_status_filter(value)
        self.page = 1

    def set_per_page(self, value) -> None:
        self.per_page = validate_page_size(value, self.page_size_options)
        self.page = 1

    def apply(self, residents: Iterable[Any], now: datetime | None = None) -> Page:
        """Filter and paginate, clamping the stored page to what exists."""
        filtered = filter_residents(residents, self.search, self.status_filter, now=now)
        result = paginate(filtered, self.page, self.per_page, self.page_size_options)
        self.page = result.page
        return result

    def go_to(self, page, residents: Iterable[Any], now: datetime | None = None) -> Page:
        self.page = page
        return self.apply(residents, now=now)
