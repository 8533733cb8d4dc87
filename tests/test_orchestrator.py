"""Tests for the list orchestrator."""

import asyncio

import pytest

from backoffice.client.notifications import NotificationLevel, Notifier
from backoffice.client.orchestrator import ListOrchestrator, ListQuery
from backoffice.core.exceptions import ServerError, TransportError
from backoffice.schemas.common import Page, PaginationMeta, SortDirection


class FakeList:
    """Stand-in for a gateway list call over ``total`` rows."""

    def __init__(self, total: int = 47) -> None:
        self.total = total
        self.calls: list[ListQuery] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.error: Exception | None = None

    async def __call__(self, query: ListQuery) -> Page[str]:
        self.calls.append(query)
        gate = self.gates.get(query.page)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        start = query.page * query.size
        rows = [f"{query.search}{i}" for i in range(start, min(start + query.size, self.total))]
        return Page[str](
            data=rows,
            pagination=PaginationMeta.build(query.page, query.size, self.total),
        )


@pytest.fixture
def fetch() -> FakeList:
    return FakeList()


@pytest.fixture
def orchestrator(fetch: FakeList) -> ListOrchestrator:
    return ListOrchestrator(
        fetch,
        notifier=Notifier(),
        query=ListQuery(size=10),
        debounce_seconds=0.01,
    )


class TestQuery:
    def test_params_drop_empty_search(self):
        assert ListQuery().params()["search"] is None
        assert ListQuery(search="ab").params()["search"] == "ab"


class TestLoad:
    """Tests for plain loads and parameter changes."""

    async def test_pagination_comes_from_response(self, orchestrator, fetch):
        await orchestrator.load()

        assert orchestrator.rows == [str(i) for i in range(10)]
        assert orchestrator.pagination.total_elements == 47
        assert orchestrator.pagination.total_pages == 5
        assert not orchestrator.loading

    async def test_set_page(self, orchestrator, fetch):
        await orchestrator.set_page(4)

        assert orchestrator.rows == [str(i) for i in range(40, 47)]
        assert orchestrator.pagination.last_page

    async def test_same_parameters_do_not_refetch(self, orchestrator, fetch):
        await orchestrator.load()
        await orchestrator.set_page(0)
        assert len(fetch.calls) == 1

    async def test_set_size_resets_page(self, orchestrator, fetch):
        await orchestrator.set_page(3)
        await orchestrator.set_size(25)

        assert fetch.calls[-1].page == 0
        assert fetch.calls[-1].size == 25
        assert orchestrator.pagination.total_pages == 2

    async def test_toggle_sort(self, orchestrator, fetch):
        await orchestrator.toggle_sort("idApprenant")
        assert orchestrator.query.sort_direction == SortDirection.DESC

        await orchestrator.toggle_sort("idApprenant")
        assert orchestrator.query.sort_direction == SortDirection.ASC

        await orchestrator.set_sort("nom", "DESC")
        await orchestrator.toggle_sort("email")
        assert orchestrator.query.sort_by == "email"
        assert orchestrator.query.sort_direction == SortDirection.ASC


class TestSearch:
    """Tests for debounced search."""

    async def test_search_resets_page_immediately(self, orchestrator, fetch):
        await orchestrator.set_page(3)

        orchestrator.set_search("a")
        assert orchestrator.query.page == 0

        orchestrator.set_search("ab")
        assert orchestrator.query.page == 0
        await orchestrator.flush()

        assert fetch.calls[-1].search == "ab"
        assert fetch.calls[-1].page == 0

    async def test_keystrokes_are_coalesced(self, orchestrator, fetch):
        for term in ("j", "je", "jea", "jean"):
            orchestrator.set_search(term)
        await orchestrator.flush()

        assert [call.search for call in fetch.calls] == ["jean"]
        assert orchestrator.rows[0] == "jean0"

    async def test_page_change_absorbs_pending_search(self, orchestrator, fetch):
        pending = orchestrator.set_search("ab")
        await orchestrator.set_page(2)
        await orchestrator.flush()
        await asyncio.sleep(0.05)

        assert pending.cancelled()
        assert [(call.search, call.page) for call in fetch.calls] == [("ab", 2)]
        assert orchestrator.rows[0] == "ab20"

    async def test_unchanged_term_is_ignored(self, orchestrator, fetch):
        assert orchestrator.set_search("  ") is None
        assert fetch.calls == []


class TestLastRequestWins:
    """Responses answering an outdated request are dropped."""

    async def test_stale_response_discarded(self, orchestrator, fetch):
        fetch.gates = {1: asyncio.Event(), 2: asyncio.Event()}

        first = asyncio.create_task(orchestrator.set_page(1))
        await asyncio.sleep(0)
        second = asyncio.create_task(orchestrator.set_page(2))
        await asyncio.sleep(0)

        fetch.gates[2].set()
        await second
        assert orchestrator.rows[0] == "20"

        fetch.gates[1].set()
        await first
        assert orchestrator.rows[0] == "20"
        assert orchestrator.pagination.current_page == 2

    async def test_stale_failure_discarded(self, orchestrator, fetch):
        fetch.gates = {1: asyncio.Event()}

        slow = asyncio.create_task(orchestrator.set_page(1))
        await asyncio.sleep(0)
        await orchestrator.set_page(2)

        fetch.error = TransportError("The server cannot be reached")
        fetch.gates[1].set()
        await slow

        assert orchestrator.error is None
        assert orchestrator.notifier.history == []
        assert orchestrator.rows[0] == "20"


class TestFailure:
    """A failed fetch keeps the last known good data."""

    async def test_keeps_previous_rows(self, orchestrator, fetch):
        await orchestrator.load()
        fetch.error = ServerError("Internal error")

        await orchestrator.set_page(1)

        assert orchestrator.rows == [str(i) for i in range(10)]
        assert orchestrator.pagination.current_page == 0
        assert isinstance(orchestrator.error, ServerError)
        assert not orchestrator.loading
        assert orchestrator.notifier.last.level == NotificationLevel.ERROR

    async def test_error_cleared_on_success(self, orchestrator, fetch):
        fetch.error = ServerError("Internal error")
        await orchestrator.load()
        fetch.error = None

        await orchestrator.refresh()

        assert orchestrator.error is None
        assert len(orchestrator.rows) == 10
