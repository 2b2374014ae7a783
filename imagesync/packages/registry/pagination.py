"""Cursor-following enumeration of paginated listings."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from .errors import RegistryLookupError
from .types import Deadline, Page

logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")

ListPage = Callable[[Optional[str]], Awaitable[Page[T]]]


async def enumerate_pages(
    list_page: ListPage[T],
    keep: Optional[Callable[[T], bool]] = None,
    deadline: Optional[Deadline] = None,
) -> list[T]:
    """Collect every item reachable from the first page.

    Each call receives the cursor returned by the previous call; the first
    call receives None. Enumeration stops once a page comes back without a
    cursor. Items are returned in arrival order, filtered by `keep`.

    Args:
        list_page: Coroutine function fetching one page for a cursor
        keep: Predicate selecting items to accumulate (default: all)
        deadline: Shared deadline for the whole enumeration

    Raises:
        RegistryLookupError: if any page fetch fails or the deadline expires.
            No partial result is returned in that case.
    """
    deadline = deadline or Deadline(None)
    items: list[T] = []
    cursor: Optional[str] = None
    pages = 0

    while True:
        page = await _fetch_page(list_page, cursor, deadline)
        pages += 1

        items.extend(item for item in page.items if keep is None or keep(item))

        if page.next_cursor is None:
            break
        if page.next_cursor == cursor:
            raise RegistryLookupError(
                f"listing did not advance past cursor after {pages} pages"
            )
        cursor = page.next_cursor

    logger.debug("Enumerated listing", pages=pages, items=len(items))
    return items


async def _fetch_page(
    list_page: ListPage[T], cursor: Optional[str], deadline: Deadline
) -> Page[T]:
    if deadline.expired:
        raise RegistryLookupError("listing timed out")
    try:
        async with asyncio.timeout(deadline.remaining()):
            return await list_page(cursor)
    except TimeoutError as e:
        raise RegistryLookupError("listing timed out") from e
