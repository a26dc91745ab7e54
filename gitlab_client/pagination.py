"""Lazy page cursors over list endpoints.

Two addressing modes are supported:

- offset: ``page``/``per_page`` query parameters. When the server sends an
  ``X-Next-Page`` header it decides: an empty value is the last page.
  Otherwise iteration stops on an empty page, on a page shorter than the
  served ``X-Per-Page`` (or the requested size), or once ``X-Total`` items
  have been fetched.
- keyset: the first request asks for ``pagination=keyset``; each following
  request replays the query of the ``Link: rel="next"`` URL. Iteration stops
  when no next link is returned.

Pages are fetched strictly one at a time as the caller consumes them. A
failed fetch propagates and leaves the cursor where it was, so the caller
may call ``fetch_next()`` again.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Generic,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from .ids import escape_id
from .options import RequestOption, with_keyset_pagination_parameters, with_offset_pagination_parameters
from .request import Request
from .response import Response

logger = logging.getLogger(__name__)

T = TypeVar("T")

ListFunc = Callable[..., Tuple[Optional[Sequence[T]], Response]]


class PaginationMode(str, Enum):
    OFFSET = "offset"
    KEYSET = "keyset"


@dataclass
class CursorState:
    """Where an iteration stands; mutated only by a successful fetch."""

    page: int = 1
    per_page: Optional[int] = None
    total: Optional[int] = None
    fetched: int = 0
    next_link: str = ""
    exhausted: bool = False


@dataclass
class Page(Generic[T]):
    items: List[T]
    response: Response
    number: int


def _keyset_start(per_page: Optional[int]) -> RequestOption:
    def option(request: Request) -> None:
        request.set_query_param("pagination", "keyset")
        if per_page:
            request.set_query_param("per_page", per_page)
    return option


class _CursorBase:
    def __init__(
        self,
        list_func: Callable[..., Any],
        options: Any = None,
        *request_options: RequestOption,
        mode: PaginationMode = PaginationMode.OFFSET,
        per_page: Optional[int] = None,
    ):
        self._list_func = list_func
        self._options = options
        self._request_options = tuple(request_options)
        self._per_page = per_page
        self.mode = PaginationMode(mode)
        self.state = CursorState(per_page=per_page)

    @property
    def exhausted(self) -> bool:
        return self.state.exhausted

    def fresh(self):
        """A new cursor over the same listing, starting from the first page."""
        return type(self)(
            self._list_func,
            self._options,
            *self._request_options,
            mode=self.mode,
            per_page=self._per_page,
        )

    def _page_options(self) -> Tuple[RequestOption, ...]:
        state = self.state
        if self.mode is PaginationMode.OFFSET:
            return self._request_options + (
                with_offset_pagination_parameters(state.page, state.per_page),
            )
        if state.page == 1:
            return self._request_options + (_keyset_start(state.per_page),)
        return self._request_options + (with_keyset_pagination_parameters(state.next_link),)

    def _advance(self, items: Optional[Sequence[T]], response: Response) -> Optional[Page[T]]:
        state = self.state
        items = list(items or [])
        if not items:
            state.exhausted = True
            return None

        number = state.page
        state.fetched += len(items)

        if self.mode is PaginationMode.OFFSET:
            if response.total_items is not None:
                state.total = response.total_items
            if response.has_next_page_header:
                # The server's page links win over local heuristics
                state.exhausted = not response.next_page
            else:
                # GitLab caps per_page; X-Per-Page is the size actually served
                per_page = response.items_per_page or state.per_page
                state.exhausted = bool(
                    (per_page and len(items) < per_page)
                    or (state.total is not None and state.fetched >= state.total)
                )
            if not state.exhausted:
                state.page = response.next_page or state.page + 1
        else:
            state.next_link = response.next_link
            state.page += 1
            if not state.next_link:
                state.exhausted = True

        logger.debug(
            "Fetched page %d (%d items, %d total so far)%s",
            number, len(items), state.fetched, ", last page" if state.exhausted else "",
        )
        return Page(items, response, number)


class PageCursor(_CursorBase, Generic[T]):
    """Iterates the pages of a list endpoint.

    ``list_func(options, *request_options)`` must perform one request and
    return ``(items, response)``.
    """

    def fetch_next(self) -> Optional[Page[T]]:
        """Fetch the next page, or return None once the listing is exhausted."""
        if self.state.exhausted:
            return None
        items, response = self._list_func(self._options, *self._page_options())
        return self._advance(items, response)

    def __iter__(self) -> Iterator[Page[T]]:
        while True:
            page = self.fetch_next()
            if page is None:
                return
            yield page

    def iter_items(self) -> Iterator[T]:
        for page in self:
            yield from page.items

    def all_items(self) -> List[T]:
        return list(self.iter_items())


class AsyncPageCursor(_CursorBase, Generic[T]):
    """Asyncio twin of PageCursor for coroutine list functions."""

    async def fetch_next(self) -> Optional[Page[T]]:
        if self.state.exhausted:
            return None
        items, response = await self._list_func(self._options, *self._page_options())
        return self._advance(items, response)

    async def __aiter__(self) -> AsyncIterator[Page[T]]:
        while True:
            page = await self.fetch_next()
            if page is None:
                return
            yield page

    async def aiter_items(self) -> AsyncIterator[T]:
        async for page in self:
            for item in page.items:
                yield item

    async def all_items(self) -> List[T]:
        return [item async for item in self.aiter_items()]


def page_iterator(
    list_func: ListFunc,
    options: Any = None,
    *request_options: RequestOption,
    mode: PaginationMode = PaginationMode.OFFSET,
    per_page: Optional[int] = None,
) -> Iterator[T]:
    """Iterate the items of every page of ``list_func``.

    Example::

        for user in page_iterator(list_users, {"active": True}):
            print(user.username)
    """
    cursor: PageCursor[T] = PageCursor(
        list_func, options, *request_options, mode=mode, per_page=per_page
    )
    return cursor.iter_items()


def all_pages(
    list_func: ListFunc,
    options: Any = None,
    *request_options: RequestOption,
    mode: PaginationMode = PaginationMode.OFFSET,
    per_page: Optional[int] = None,
) -> List[T]:
    """Fetch every page of ``list_func`` and return the items as one list."""
    return list(page_iterator(list_func, options, *request_options, mode=mode, per_page=per_page))


def _bind_id(pid: Any, list_func: Callable[..., Any]) -> ListFunc:
    # Validates pid up front; the list function gets the escaped path segment
    segment = escape_id(pid)

    def bound(options, *request_options):
        return list_func(segment, options, *request_options)

    return bound


def page_iterator_for_id(
    pid: Any,
    list_func: Callable[..., Any],
    options: Any = None,
    *request_options: RequestOption,
    mode: PaginationMode = PaginationMode.OFFSET,
    per_page: Optional[int] = None,
) -> Iterator[T]:
    """Like ``page_iterator`` for listings under a parent, e.g. a project's tags.

    ``list_func(pid, options, *request_options)`` receives ``pid`` already
    escaped for use as one path segment.

    Raises:
        InvalidArgumentError: If ``pid`` is not an int or a string.
    """
    return page_iterator(
        _bind_id(pid, list_func), options, *request_options, mode=mode, per_page=per_page
    )


def all_pages_for_id(
    pid: Any,
    list_func: Callable[..., Any],
    options: Any = None,
    *request_options: RequestOption,
    mode: PaginationMode = PaginationMode.OFFSET,
    per_page: Optional[int] = None,
) -> List[T]:
    return all_pages(
        _bind_id(pid, list_func), options, *request_options, mode=mode, per_page=per_page
    )
