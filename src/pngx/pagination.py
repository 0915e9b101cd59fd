from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from .models import Envelope, Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchPage = Callable[[Optional[str]], Page[T]]


def effective_limit(limit: Optional[int], fetch_all: bool = False) -> Optional[int]:
    """``None`` means unbounded: ``--all`` or a limit of zero or less."""
    if fetch_all or limit is None or limit <= 0:
        return None
    return limit


def paginate(fetch_page: FetchPage[T], limit: Optional[int] = None) -> Envelope[T]:
    """Follow the list cursor until ``limit`` items are collected or pages run out.

    Server order is preserved. Any page error propagates and nothing fetched so
    far is returned.
    """
    limit = effective_limit(limit)
    results: list[T] = []
    cursor: Optional[str] = None
    total = 0
    pages = 0
    while True:
        page = fetch_page(cursor)
        pages += 1
        total = page.total_count
        results.extend(page.items)
        if limit is not None and len(results) >= limit:
            del results[limit:]
            logger.debug("limit %d reached after %d page(s), total=%d", limit, pages, total)
            return Envelope.build(results, total_count=total, exhausted=False)
        cursor = page.next_cursor
        if not cursor:
            logger.debug("pagination exhausted after %d page(s), %d item(s)", pages, len(results))
            return Envelope.build(results, total_count=total, exhausted=True)


def collect(fetch_page: FetchPage[T]) -> list[T]:
    """Every item of a collection, for listings that carry no envelope."""
    return paginate(fetch_page).results
