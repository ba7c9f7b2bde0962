"""
Paging coordinator for the search endpoint.

`SearchPager` and `AsyncSearchPager` turn repeated `startAt`/`maxResults`
calls into one finite, forward-only stream of mapped results:

- page requests never exceed the configured page size, the server's cap, or
  the number of results the caller still wants;
- a `maxResults` lower than requested in a response lowers the page size for
  the rest of the sequence;
- the sequence ends on a short or empty page, when `total` is reached, when
  the caller's limit is reached, or when the cancellation token is set;
- records repeated across page boundaries are yielded once.

Pages are fetched one at a time in increasing offset order. Records are
mapped lazily as they are consumed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from typing import Any, Generic, TypeVar

from .cancellation import CancellationToken, is_cancelled
from .models.pagination import SearchPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchPage = Callable[[int, int], SearchPage]
AsyncFetchPage = Callable[[int, int], Awaitable[SearchPage]]
RecordMapper = Callable[[dict[str, Any]], T]


def _record_identity(record: dict[str, Any]) -> str | None:
    identity = record.get("id") or record.get("key")
    return None if identity is None else str(identity)


class _PagingState:
    """Offset/limit bookkeeping shared by the sync and async pagers."""

    def __init__(self, *, page_size: int, server_page_cap: int, limit: int | None):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        if server_page_cap < 1:
            raise ValueError("server_page_cap must be >= 1")
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")
        self.page_size = min(page_size, server_page_cap)
        self.limit = limit
        self.start_at = 0
        self.yielded = 0
        self.total: int | None = None
        self.pages_fetched = 0
        self.exhausted = limit == 0
        self._seen: set[str] = set()

    @property
    def limit_reached(self) -> bool:
        return self.limit is not None and self.yielded >= self.limit

    def next_request_size(self) -> int | None:
        """Size of the next page request, or None when no further request is due."""
        if self.exhausted or self.limit_reached:
            return None
        size = self.page_size
        if self.limit is not None:
            size = min(size, self.limit - self.yielded)
        return size

    def accept(self, page: SearchPage, requested: int) -> list[dict[str, Any]]:
        """Record a fetched page and return its not-yet-seen records."""
        self.pages_fetched += 1
        if page.total is not None:
            self.total = page.total

        honored = requested
        if page.max_results is not None and 0 < page.max_results < requested:
            honored = page.max_results
            if page.max_results < self.page_size:
                logger.debug(
                    "Server capped page size at %d (requested %d)", page.max_results, requested
                )
                self.page_size = page.max_results

        received = page.received
        self.start_at += received
        if received == 0 or received < honored:
            self.exhausted = True
        if self.total is not None and self.start_at >= self.total:
            self.exhausted = True

        fresh: list[dict[str, Any]] = []
        for record in page.issues:
            identity = _record_identity(record)
            if identity is not None:
                if identity in self._seen:
                    continue
                self._seen.add(identity)
            fresh.append(record)
        return fresh


class _PagerBase(Generic[T]):
    def __init__(
        self,
        mapper: RecordMapper[T],
        *,
        page_size: int,
        server_page_cap: int,
        limit: int | None,
        cancellation: CancellationToken | None,
    ):
        self._mapper = mapper
        self._state = _PagingState(
            page_size=page_size, server_page_cap=server_page_cap, limit=limit
        )
        self._cancellation = cancellation
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """True if iteration stopped because of cancellation."""
        return self._cancelled

    @property
    def pages_fetched(self) -> int:
        return self._state.pages_fetched

    @property
    def total(self) -> int | None:
        """Server-reported total for the query, once the first page arrived."""
        return self._state.total

    @property
    def yielded(self) -> int:
        return self._state.yielded

    def _should_stop_for_cancellation(self) -> bool:
        if is_cancelled(self._cancellation):
            self._cancelled = True
            logger.debug(
                "Search cancelled after %d page(s), %d result(s)",
                self._state.pages_fetched,
                self._state.yielded,
            )
            return True
        return False


class SearchPager(_PagerBase[T], Iterator[T]):
    """Blocking, non-restartable iterator over all results of one search."""

    def __init__(
        self,
        fetch_page: FetchPage,
        mapper: RecordMapper[T],
        *,
        page_size: int,
        server_page_cap: int,
        limit: int | None = None,
        cancellation: CancellationToken | None = None,
    ):
        super().__init__(
            mapper,
            page_size=page_size,
            server_page_cap=server_page_cap,
            limit=limit,
            cancellation=cancellation,
        )
        self._fetch_page = fetch_page
        self._iterator = self._run()

    def __iter__(self) -> SearchPager[T]:
        return self

    def __next__(self) -> T:
        return next(self._iterator)

    def _run(self) -> Iterator[T]:
        state = self._state
        while True:
            size = state.next_request_size()
            if size is None:
                return
            if self._should_stop_for_cancellation():
                return
            page = self._fetch_page(state.start_at, size)
            for record in state.accept(page, size):
                if state.limit_reached:
                    state.exhausted = True
                    break
                state.yielded += 1
                yield self._mapper(record)


class AsyncSearchPager(_PagerBase[T], AsyncIterator[T]):
    """Awaitable, non-restartable iterator over all results of one search."""

    def __init__(
        self,
        fetch_page: AsyncFetchPage,
        mapper: RecordMapper[T],
        *,
        page_size: int,
        server_page_cap: int,
        limit: int | None = None,
        cancellation: CancellationToken | None = None,
    ):
        super().__init__(
            mapper,
            page_size=page_size,
            server_page_cap=server_page_cap,
            limit=limit,
            cancellation=cancellation,
        )
        self._fetch_page = fetch_page
        self._iterator = self._run()

    def __aiter__(self) -> AsyncSearchPager[T]:
        return self

    async def __anext__(self) -> T:
        return await self._iterator.__anext__()

    async def _run(self) -> AsyncIterator[T]:
        state = self._state
        while True:
            size = state.next_request_size()
            if size is None:
                return
            if self._should_stop_for_cancellation():
                return
            try:
                page = await self._fetch_page(state.start_at, size)
            except asyncio.CancelledError:
                self._cancelled = True
                raise
            for record in state.accept(page, size):
                if state.limit_reached:
                    state.exhausted = True
                    break
                state.yielded += 1
                yield self._mapper(record)

    async def collect(self) -> list[T]:
        """Drain the remaining results into a list."""
        return [item async for item in self]
