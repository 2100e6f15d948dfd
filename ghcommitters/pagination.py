"""Cursor pagination over GraphQL connections.

A ``Connection`` describes one paginated collection: the query that fetches
a page, the variable the cursor is bound to, where the connection object
sits in the response, and how to turn a node into an item. ``fetch_page``
executes one request; ``walk_pages`` drives a small state machine
(``Start`` -> ``HasMore(cursor)`` ... -> ``Done``) over it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, Optional, Protocol, TypeVar, Union

from ghcommitters.errors import QueryError
from ghcommitters.pacing import Deadline, PagePacer

logger = logging.getLogger("ghcommitters.pagination")

T = TypeVar("T")


class GraphQLExecutor(Protocol):
    def execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a query and return its ``data`` object."""


@dataclass(frozen=True)
class Connection(Generic[T]):
    name: str
    query: str
    cursor_variable: str
    path: tuple[str, ...]
    parse_node: Callable[[dict[str, Any]], T]


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    has_next_page: bool
    end_cursor: Optional[str] = None


@dataclass(frozen=True)
class Absent:
    """The connection was missing from the response.

    A branch with no history by the author, an unknown user or a repository
    that can no longer be read. Terminal for that walk, not an error.
    """

    connection: str


PageOutcome = Union[Page[T], Absent]


# ------------------------------------------------------------------
# Page state machine
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Start:
    cursor: None = None


@dataclass(frozen=True)
class HasMore:
    cursor: str


@dataclass(frozen=True)
class Done:
    cursor: None = None


PageState = Union[Start, HasMore, Done]

START = Start()
DONE = Done()


def next_state(outcome: PageOutcome[Any]) -> PageState:
    """Pure transition from the page just consumed to the next state."""
    if isinstance(outcome, Absent):
        return DONE
    if not outcome.has_next_page:
        return DONE
    if not outcome.end_cursor:
        raise QueryError("Page reported hasNextPage without an endCursor")
    return HasMore(outcome.end_cursor)


# ------------------------------------------------------------------
# Fetching
# ------------------------------------------------------------------

def _dig(data: Any, path: tuple[str, ...]) -> Optional[dict[str, Any]]:
    """Follow ``path`` through nested objects; None if any step is missing."""
    node = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, dict) else None


def fetch_page(
    client: GraphQLExecutor,
    connection: Connection[T],
    variables: dict[str, Any],
    cursor: Optional[str] = None,
) -> PageOutcome[T]:
    """Execute one page request for ``connection``."""
    bound = dict(variables)
    if cursor is not None:
        bound[connection.cursor_variable] = cursor

    data = client.execute(connection.query, bound)

    conn = _dig(data, connection.path)
    if conn is None or conn.get("nodes") is None:
        logger.debug(
            "%s connection absent at %s",
            connection.name,
            ".".join(connection.path),
            extra={"connection": connection.name},
        )
        return Absent(connection.name)

    try:
        items = [connection.parse_node(n) for n in conn["nodes"] if n is not None]
    except (KeyError, TypeError) as exc:
        raise QueryError(f"Malformed {connection.name} node in response: {exc!r}") from exc

    page_info = conn.get("pageInfo") or {}
    return Page(
        items=items,
        has_next_page=bool(page_info.get("hasNextPage", False)),
        end_cursor=page_info.get("endCursor"),
    )


def walk_pages(
    fetch: Callable[[Optional[str]], PageOutcome[T]],
    *,
    pacer: PagePacer,
    deadline: Optional[Deadline] = None,
) -> Iterator[Page[T]]:
    """Yield every page of a collection in order.

    The next state is computed only when the consumer asks for the next page,
    so a cursor never moves past items that have not been processed.
    """
    state: PageState = START
    while not isinstance(state, Done):
        if isinstance(state, HasMore):
            pacer.wait_between_pages()
        if deadline is not None:
            deadline.check()
        outcome = fetch(state.cursor)
        if isinstance(outcome, Absent):
            return
        yield outcome
        state = next_state(outcome)
