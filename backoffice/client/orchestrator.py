"""
List/query orchestration for paginated list views.

The orchestrator owns the (search, sort, page, size) tuple of one view and
turns every change into a single fetch. Responses are applied only when
they answer the most recently issued request, so a slow response for an
old search can never overwrite the rows of a newer one.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

import structlog

from backoffice.client.config import client_settings
from backoffice.client.notifications import Notifier
from backoffice.core.exceptions import BackofficeError
from backoffice.schemas.common import Page, PaginationMeta, SortDirection

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ListQuery:
    """Parameters of one list request (pages are 0-based)."""

    page: int = 0
    size: int = 10
    sort_by: str = "idApprenant"
    sort_direction: SortDirection = SortDirection.ASC
    search: str = ""

    def params(self) -> dict:
        """Keyword arguments for the gateway list call."""
        return {
            "page": self.page,
            "size": self.size,
            "sort_by": self.sort_by,
            "sort_direction": self.sort_direction,
            "search": self.search or None,
        }


Fetcher = Callable[[ListQuery], Awaitable[Page[T]]]


class ListOrchestrator(Generic[T]):
    """State machine behind a paginated, searchable, sortable list."""

    def __init__(
        self,
        fetch: Fetcher,
        *,
        notifier: Notifier | None = None,
        query: ListQuery | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self._fetch = fetch
        self.notifier = notifier or Notifier()
        self.query = query or ListQuery(size=client_settings.DEFAULT_PAGE_SIZE)
        self.debounce_seconds = (
            client_settings.SEARCH_DEBOUNCE_SECONDS
            if debounce_seconds is None
            else debounce_seconds
        )

        # Last known good data, kept on failure
        self.rows: list[T] = []
        self.pagination: PaginationMeta | None = None
        self.loading = False
        self.error: BackofficeError | None = None

        self._generation = 0
        self._pending_search: asyncio.Task | None = None

    # ============== Parameter changes ==============

    async def load(self) -> None:
        """Fetch with the current parameters."""
        await self._reload()

    async def set_page(self, page: int) -> None:
        await self._apply(replace(self.query, page=max(0, page)))

    async def set_size(self, size: int) -> None:
        # The current page index means nothing under another page size
        await self._apply(replace(self.query, size=size, page=0))

    async def set_sort(
        self,
        sort_by: str,
        sort_direction: SortDirection | str | None = None,
    ) -> None:
        direction = (
            SortDirection(sort_direction) if sort_direction is not None else self.query.sort_direction
        )
        await self._apply(replace(self.query, sort_by=sort_by, sort_direction=direction))

    async def toggle_sort(self, sort_by: str) -> None:
        """Click on a column header: same column flips direction, a new one sorts ascending."""
        if sort_by == self.query.sort_by:
            direction = (
                SortDirection.DESC
                if self.query.sort_direction == SortDirection.ASC
                else SortDirection.ASC
            )
        else:
            direction = SortDirection.ASC
        await self.set_sort(sort_by, direction)

    def set_search(self, term: str) -> asyncio.Task | None:
        """
        Change the search term.

        The page index goes back to 0 at once; the fetch happens after the
        debounce window, and a newer term typed meanwhile replaces this one.
        """
        term = term.strip()
        if term == self.query.search and self._pending_search is None:
            return None

        self.query = replace(self.query, search=term, page=0)
        if self._pending_search is not None:
            self._pending_search.cancel()
        self._pending_search = asyncio.create_task(self._debounced_reload())
        return self._pending_search

    async def flush(self) -> None:
        """Wait for a pending debounced search, if any."""
        task = self._pending_search
        if task is not None:
            await asyncio.wait({task})

    async def refresh(self) -> None:
        """Re-fetch after a mutation elsewhere in the view."""
        await self._reload()

    # ============== Internals ==============

    async def _apply(self, query: ListQuery) -> None:
        if query == self.query:
            return
        self.query = query
        await self._reload()

    async def _debounced_reload(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._pending_search = None
        await self._reload()

    async def _reload(self) -> None:
        # This fetch already carries the pending search term
        if self._pending_search is not None:
            self._pending_search.cancel()
            self._pending_search = None

        self._generation += 1
        generation = self._generation
        query = self.query
        self.loading = True

        try:
            page = await self._fetch(query)
        except BackofficeError as exc:
            if generation != self._generation:
                logger.info("stale_list_failure_discarded", generation=generation, error=exc.message)
                return
            self.loading = False
            self.error = exc
            self.notifier.error(exc.message)
            return

        if generation != self._generation:
            logger.info(
                "stale_list_response_discarded",
                generation=generation,
                latest=self._generation,
                search=query.search,
                page=query.page,
            )
            return

        self.loading = False
        self.error = None
        self.rows = list(page.data)
        self.pagination = page.pagination
