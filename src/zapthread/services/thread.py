"""
Thread assembly: an unordered bag of replies into a navigable tree.

Relays return replies in no particular order, may return the same event
twice, and may return replies whose parent they never returned.
[assemble_thread()][zapthread.services.thread.assemble_thread] turns such a
collection into a [Thread][zapthread.services.thread.Thread]:

* each event is resolved to its parent exactly once
  ([resolve_parent_id()][zapthread.nips.references.resolve_parent_id]);
* replies whose parent is unknown, missing, or themselves are promoted
  to top level instead of being dropped;
* siblings are ordered newest first, ties broken by id ascending, so the
  same input always renders the same way.

A thread is read-only once built and can be shared between concurrent
reply attempts. [ThreadCache][zapthread.services.thread.ThreadCache] keeps
the last assembled thread per root and is invalidated when a reply lands.

Note:
    Reply cycles are not detected. Two events that name each other as
    parent (and neither is reachable from the root) remain visible through
    [replies_of()][zapthread.services.thread.Thread.replies_of] but are not
    part of ``top_level`` or ``walk()``.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from zapthread.core.logger import Logger
from zapthread.nips.references import resolve_parent_id


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from zapthread.models.event import Event

    from .capabilities import EventSource


_URL_PATTERN = re.compile(r"https?://\S+")
_DEFAULT_TITLE = "Thread"
_DESCRIPTION_LENGTH = 160


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ThreadNode:
    """Position of one reply in the tree.

    Attributes:
        event: The reply.
        parent_id: Effective parent: the declared parent when it is known,
            otherwise the root id.
        declared_parent_id: Parent named by the event's tags, which may be
            ``None`` or an id that was never fetched.
    """

    event: Event
    parent_id: str
    declared_parent_id: str | None

    @property
    def is_orphan(self) -> bool:
        """Whether the declared parent could not be honoured."""
        return self.parent_id != self.declared_parent_id


def _sibling_key(event: Event) -> tuple[int, str]:
    return (-event.created_at, event.id)


class Thread:
    """Immutable reply tree under a single root.

    Built by [assemble_thread()][zapthread.services.thread.assemble_thread];
    not meant to be constructed directly.
    """

    __slots__ = ("_children", "_nodes", "_root")

    def __init__(
        self,
        root: Event,
        nodes: dict[str, ThreadNode],
        children: dict[str, tuple[Event, ...]],
    ) -> None:
        self._root = root
        self._nodes = nodes
        self._children = children

    @property
    def root(self) -> Event:
        return self._root

    @property
    def top_level(self) -> tuple[Event, ...]:
        """Direct replies to the root, plus every promoted orphan."""
        return self._children.get(self._root.id, ())

    def replies_of(self, event_id: str) -> tuple[Event, ...]:
        """Immediate replies to *event_id*, in sibling order."""
        return self._children.get(event_id, ())

    def node(self, event_id: str) -> ThreadNode | None:
        return self._nodes.get(event_id)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._nodes

    def walk(self) -> Iterator[tuple[int, Event]]:
        """Yield ``(depth, event)`` pairs in display order.

        Depth 0 is a top-level reply. Traversal is iterative, so arbitrarily
        deep threads do not hit the recursion limit.
        """
        stack: list[tuple[int, Event]] = [(0, e) for e in reversed(self.top_level)]
        while stack:
            depth, event = stack.pop()
            yield depth, event
            stack.extend((depth + 1, child) for child in reversed(self.replies_of(event.id)))


def assemble_thread(root: Event, candidates: Iterable[Event]) -> Thread:
    """Build the reply tree under *root* from *candidates*.

    Candidates may arrive in any order. The root itself and repeated ids
    are skipped (the first occurrence wins).

    Examples:
        ```python
        thread = assemble_thread(r1, [c2, c1])
        [e.id for e in thread.top_level]     # ['c1']
        [e.id for e in thread.replies_of("c1")]  # ['c2']
        ```
    """
    events: dict[str, Event] = {}
    for event in candidates:
        if event.id == root.id or event.id in events:
            continue
        events[event.id] = event

    nodes: dict[str, ThreadNode] = {}
    buckets: dict[str, list[Event]] = defaultdict(list)
    for event in events.values():
        declared = resolve_parent_id(event)
        if declared is None or declared == event.id:
            parent = root.id
        elif declared == root.id or declared in events:
            parent = declared
        else:
            parent = root.id
        nodes[event.id] = ThreadNode(event=event, parent_id=parent, declared_parent_id=declared)
        buckets[parent].append(event)

    children = {pid: tuple(sorted(evs, key=_sibling_key)) for pid, evs in buckets.items()}
    return Thread(root, nodes, children)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ThreadSummary:
    """Headline view of a thread root.

    Attributes:
        event_id: Root event id.
        title: First ``title`` tag, or ``"Thread"``.
        url: First http(s) link in the content, if any.
        body: Content with that link removed.
        description: Content truncated for previews.
        author: Root author pubkey.
        created_at: Root timestamp.
        comment_count: Number of top-level replies.
    """

    event_id: str
    title: str
    url: str | None
    body: str
    description: str
    author: str
    created_at: int
    comment_count: int

    @classmethod
    def from_event(cls, root: Event, thread: Thread | None = None) -> ThreadSummary:
        match = _URL_PATTERN.search(root.content)
        url = match.group(0) if match else None
        body = root.content.replace(url, "", 1).strip() if url else root.content
        return cls(
            event_id=root.id,
            title=root.first_tag_value("title") or _DEFAULT_TITLE,
            url=url,
            body=body,
            description=root.content[:_DESCRIPTION_LENGTH],
            author=root.pubkey,
            created_at=root.created_at,
            comment_count=len(thread.top_level) if thread is not None else 0,
        )


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class ThreadCache:
    """Assembled threads keyed by root id.

    The first [get()][zapthread.services.thread.ThreadCache.get] for a root
    fetches the root and its replies from the
    [EventSource][zapthread.services.capabilities.EventSource]; later calls
    return the cached tree until
    [invalidate()][zapthread.services.thread.ThreadCache.invalidate].
    """

    def __init__(self, source: EventSource) -> None:
        self._source = source
        self._threads: dict[str, Thread] = {}
        self._logger = Logger("zapthread.thread_cache")

    def __contains__(self, root_id: object) -> bool:
        return root_id in self._threads

    async def get(self, root_id: str) -> Thread | None:
        """Return the thread under *root_id*, or ``None`` if the root is unknown."""
        cached = self._threads.get(root_id)
        if cached is not None:
            return cached

        root = await self._source.fetch_thread(root_id)
        if root is None:
            self._logger.info("thread_not_found", root=root_id)
            return None
        thread = assemble_thread(root, await self._source.fetch_replies(root))
        self._threads[root_id] = thread
        self._logger.debug("thread_assembled", root=root_id, replies=len(thread))
        return thread

    def invalidate(self, root_id: str) -> None:
        if self._threads.pop(root_id, None) is not None:
            self._logger.debug("thread_invalidated", root=root_id)
