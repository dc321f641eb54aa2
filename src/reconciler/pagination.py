"""Cursor pagination over Stripe list endpoints."""

import logging
from collections.abc import Callable
from typing import Any

from src.shared.adapters.base import MAX_PAGE_SIZE, Page
from src.shared.logging_utils import log_expected_warning

logger = logging.getLogger(__name__)

ListPage = Callable[[int, str | None], Page]


def collect_all(list_page: ListPage, page_size: int = MAX_PAGE_SIZE) -> list[Any]:
    """Fetch every item of a paginated collection.

    Requests pages of ``page_size`` using the id of the last item as the
    ``starting_after`` cursor until the provider reports no more pages.

    Args:
        list_page: Callable taking (limit, starting_after) and returning a Page
        page_size: Items per request, capped at the provider maximum

    Returns:
        All items, in provider order

    Example:
        >>> products = collect_all(adapter.list_products)
    """
    limit = max(1, min(page_size, MAX_PAGE_SIZE))
    items: list[Any] = []
    starting_after: str | None = None
    pages = 0

    while True:
        page = list_page(limit, starting_after)
        pages += 1
        items.extend(page.data)

        if not page.has_more:
            break

        if not page.data:
            # has_more with an empty page would loop forever on the same cursor
            log_expected_warning(
                logger,
                "Pagination stopped on empty page with has_more set",
                extra={"pages": pages, "items": len(items)},
            )
            break

        starting_after = page.data[-1]["id"]

    logger.debug("Collected paginated items", extra={"pages": pages, "items": len(items)})
    return items
