import asyncio
from typing import Optional

import pytest

from ..errors import RegistryLookupError
from ..pagination import enumerate_pages
from ..types import Deadline, Page


class PagedListing:
    """Serves fixed pages and records the cursor of every call."""

    def __init__(self, pages: list[list[int]], fail_at: Optional[int] = None):
        self.pages = pages
        self.fail_at = fail_at
        self.cursors: list[Optional[str]] = []

    async def __call__(self, cursor: Optional[str]) -> Page[int]:
        self.cursors.append(cursor)
        index = 0 if cursor is None else int(cursor)
        if index == self.fail_at:
            raise RegistryLookupError(f"page {index} unavailable")
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return Page(items=self.pages[index], next_cursor=next_cursor)


async def test_enumerate_pages_collects_in_arrival_order():
    listing = PagedListing([[1, 2], [3], [4, 5, 6]])

    items = await enumerate_pages(listing)

    assert items == [1, 2, 3, 4, 5, 6]


async def test_enumerate_pages_follows_cursors():
    listing = PagedListing([[1], [2], [3]])

    await enumerate_pages(listing)

    # first call without a cursor, each later call with the previous cursor
    assert listing.cursors == [None, "1", "2"]


async def test_enumerate_pages_single_empty_page():
    listing = PagedListing([[]])

    assert await enumerate_pages(listing) == []
    assert listing.cursors == [None]


async def test_enumerate_pages_empty_pages_in_the_middle():
    listing = PagedListing([[1], [], [], [2]])

    assert await enumerate_pages(listing) == [1, 2]
    assert len(listing.cursors) == 4


async def test_enumerate_pages_applies_filter():
    listing = PagedListing([[1, 2, 3], [4, 5, 6]])

    items = await enumerate_pages(listing, keep=lambda item: item % 2 == 0)

    assert items == [2, 4, 6]


async def test_enumerate_pages_fails_closed():
    listing = PagedListing([[1, 2], [3], [4]], fail_at=1)

    with pytest.raises(RegistryLookupError, match="page 1 unavailable"):
        await enumerate_pages(listing)

    assert listing.cursors == [None, "1"]


async def test_enumerate_pages_repeated_cursor():
    async def stuck(cursor: Optional[str]) -> Page[int]:
        return Page(items=[1], next_cursor="same")

    with pytest.raises(RegistryLookupError, match="did not advance"):
        await enumerate_pages(stuck)


async def test_enumerate_pages_deadline():
    async def slow(cursor: Optional[str]) -> Page[int]:
        await asyncio.sleep(1)
        return Page(items=[1])

    with pytest.raises(RegistryLookupError, match="listing timed out"):
        await enumerate_pages(slow, deadline=Deadline(0.01))


async def test_enumerate_pages_unbounded_deadline():
    listing = PagedListing([[1], [2]])

    assert await enumerate_pages(listing, deadline=Deadline(None)) == [1, 2]


def test_deadline_remaining():
    assert Deadline(None).remaining() is None
    assert Deadline(0).remaining() is None
    assert not Deadline(None).expired

    remaining = Deadline(60).remaining()
    assert remaining is not None
    assert 0 < remaining <= 60
