"""
Cursor based paging over listing results
"""

import logging
from typing import AsyncIterator, Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar

from ._constants import DEFAULT_PAGE_SIZE
from .error import ConfigurationException

T = TypeVar("T")

# fetch(page_token, page_size) -> (items, next_page_token). A next token of
# None means the listing is exhausted. Tokens are opaque.
PageFetcher = Callable[[Optional[str], int], Awaitable[Tuple[List[T], Optional[str]]]]

logger = logging.getLogger(__name__)


def _validate_page_size(page_size: int) -> None:
    if page_size < 1:
        raise ValueError(f"Page size must be at least 1, got {page_size}.")


class Page(Generic[T]):
    """
    One page of a listing, plus the cursor for the next one.

    A page must not be advanced by more than one caller at a time; concurrent
    ``next_page`` calls on the same page are not supported.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        items: List[T],
        next_token: Optional[str],
        page_size: int,
    ):
        self._fetcher = fetcher
        self._items = tuple(items)
        self._next_token = next_token
        self._page_size = page_size

    @classmethod
    async def first(cls, fetcher: PageFetcher, page_size: int = DEFAULT_PAGE_SIZE) -> "Page[T]":
        """Fetch the first page."""
        _validate_page_size(page_size)
        return await cls._fetch(fetcher, None, page_size)

    @classmethod
    async def _fetch(cls, fetcher: PageFetcher, token: Optional[str], page_size: int) -> "Page[T]":
        items, next_token = await fetcher(token, page_size)
        logger.debug(
            "[GcStorage][Page] pageSize=%s items=%s hasMore=%s",
            page_size,
            len(items),
            next_token is not None,
        )
        return cls(fetcher, items, next_token, page_size)

    @property
    def items(self) -> Tuple[T, ...]:
        """Items on this page, in server order."""
        return self._items

    @property
    def has_more(self) -> bool:
        return self._next_token is not None

    @property
    def is_last(self) -> bool:
        return self._next_token is None

    async def next_page(self, page_size: Optional[int] = None) -> "Page[T]":
        """
        Fetch the page following this one.

        Raises ConfigurationException when this is the last page.
        """
        if self.is_last:
            raise ConfigurationException("No more pages: the listing is exhausted.")
        if page_size is None:
            page_size = self._page_size
        _validate_page_size(page_size)
        return await self._fetch(self._fetcher, self._next_token, page_size)

    def __repr__(self) -> str:
        return f"Page(items={len(self._items)}, has_more={self.has_more})"


class PagedIterable(Generic[T]):
    """
    Lazy sequence of every item of a listing.

    Pages are fetched one at a time, only when the previous page has been
    consumed. Each ``async for`` starts again from the first page.

    Example:
        async for entry in bucket.list(prefix="photos/"):
            print(entry.name)
    """

    def __init__(self, fetcher: PageFetcher, page_size: int = DEFAULT_PAGE_SIZE):
        _validate_page_size(page_size)
        self._fetcher = fetcher
        self._page_size = page_size

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        page = await Page.first(self._fetcher, self._page_size)
        while True:
            for item in page.items:
                yield item
            if page.is_last:
                return
            page = await page.next_page()
