"""
Unit tests for services.thread module.

Tests:
- assemble_thread(): the r1/c1/c2 scenario from both input orders
- Orphan promotion (unknown parent, self-parent, no references)
- Duplicate and root candidates skipped
- Sibling order (newest first, ties by id)
- walk() depth and order, including deep chains
- Cycles stay out of the traversal
- ThreadSummary title, url, body, description, comment count
- ThreadCache fetch, reuse, not-found, and invalidation
"""

import pytest

from tests.conftest import ROOT_AUTHOR, make_comment, make_event, make_reply
from zapthread.models import EventKind
from zapthread.services.thread import ThreadCache, ThreadSummary, assemble_thread


@pytest.fixture
def r1():
    return make_event("r1", pubkey=ROOT_AUTHOR, created_at=1_700_000_000)


@pytest.fixture
def c1():
    return make_reply("c1", "r1", created_at=1_700_000_100)


@pytest.fixture
def c2():
    return make_reply("c2", "r1", "c1", created_at=1_700_000_200)


# ============================================================================
# Assembly
# ============================================================================


class TestAssembleThread:
    """Basic tree shape."""

    @pytest.mark.parametrize("order", [("c1", "c2"), ("c2", "c1")])
    def test_nested_reply(self, r1, c1, c2, order):
        by_id = {"c1": c1, "c2": c2}
        thread = assemble_thread(r1, [by_id[i] for i in order])

        assert thread.root is r1
        assert [e.id for e in thread.top_level] == ["c1"]
        assert [e.id for e in thread.replies_of("c1")] == ["c2"]
        assert thread.replies_of("c2") == ()
        assert len(thread) == 2

    def test_replies_of_is_stable(self, r1, c1, c2):
        thread = assemble_thread(r1, [c2, c1])

        first = thread.replies_of("c1")
        assert thread.replies_of("c1") == first
        assert thread.replies_of("r1") == thread.replies_of("r1") == (c1,)
        assert thread.replies_of("missing") == thread.replies_of("missing") == ()

    def test_empty(self, r1):
        thread = assemble_thread(r1, [])
        assert thread.top_level == ()
        assert len(thread) == 0
        assert list(thread.walk()) == []

    def test_contains(self, r1, c1):
        thread = assemble_thread(r1, [c1])
        assert "c1" in thread
        assert "r1" not in thread

    def test_node_parents(self, r1, c1, c2):
        thread = assemble_thread(r1, [c1, c2])
        assert thread.node("c1").parent_id == "r1"
        assert thread.node("c2").parent_id == "c1"
        assert thread.node("c2").is_orphan is False
        assert thread.node("missing") is None

    def test_nip22_comments(self):
        root = make_event("t1", kind=EventKind.THREAD, pubkey=ROOT_AUTHOR)
        top = make_comment("k1", "t1", created_at=10)
        nested = make_comment("k2", "t1", "k1", created_at=20)

        thread = assemble_thread(root, [nested, top])

        assert [e.id for e in thread.top_level] == ["k1"]
        assert [e.id for e in thread.replies_of("k1")] == ["k2"]


class TestOrphans:
    """Replies whose parent cannot be honoured are promoted, not dropped."""

    def test_unknown_parent(self, r1):
        orphan = make_reply("c3", "r1", "missing")
        thread = assemble_thread(r1, [orphan])

        assert [e.id for e in thread.top_level] == ["c3"]
        node = thread.node("c3")
        assert node.parent_id == "r1"
        assert node.declared_parent_id == "missing"
        assert node.is_orphan is True

    def test_self_parent(self, r1):
        loop = make_event("c4", tags=[["e", "c4", "", "reply"]])
        thread = assemble_thread(r1, [loop])
        assert [e.id for e in thread.top_level] == ["c4"]
        assert thread.replies_of("c4") == ()

    def test_no_reference(self, r1):
        stray = make_event("c5")
        thread = assemble_thread(r1, [stray])
        assert [e.id for e in thread.top_level] == ["c5"]
        assert thread.node("c5").declared_parent_id is None

    def test_every_candidate_placed_once(self, r1, c1, c2):
        candidates = [c1, c2, make_reply("c3", "r1", "missing"), make_event("c4")]
        thread = assemble_thread(r1, candidates)
        walked = [e.id for _, e in thread.walk()]
        assert sorted(walked) == ["c1", "c2", "c3", "c4"]


class TestDeduplication:
    """Repeated ids and the root itself."""

    def test_duplicates_skipped(self, r1, c1):
        thread = assemble_thread(r1, [c1, c1, c1])
        assert len(thread) == 1
        assert thread.top_level == (c1,)

    def test_first_occurrence_wins(self, r1):
        first = make_reply("c1", "r1", content="first")
        second = make_reply("c1", "r1", content="second")
        thread = assemble_thread(r1, [first, second])
        assert thread.top_level[0].content == "first"

    def test_root_in_candidates_skipped(self, r1, c1):
        thread = assemble_thread(r1, [r1, c1])
        assert [e.id for e in thread.top_level] == ["c1"]


class TestSiblingOrder:
    """Newest first, ties broken by id ascending."""

    def test_newest_first(self, r1):
        old = make_reply("a", "r1", created_at=100)
        new = make_reply("b", "r1", created_at=200)
        thread = assemble_thread(r1, [old, new])
        assert [e.id for e in thread.top_level] == ["b", "a"]

    def test_tie_broken_by_id(self, r1):
        replies = [make_reply(i, "r1", created_at=100) for i in ("c", "a", "b")]
        thread = assemble_thread(r1, replies)
        assert [e.id for e in thread.top_level] == ["a", "b", "c"]

    def test_order_independent_of_input(self, r1):
        replies = [make_reply(str(i), "r1", created_at=i % 3) for i in range(9)]
        forward = assemble_thread(r1, replies)
        backward = assemble_thread(r1, list(reversed(replies)))
        assert list(forward.walk()) == list(backward.walk())


class TestWalk:
    """Depth-first traversal."""

    def test_depth_and_order(self, r1):
        a = make_reply("a", "r1", created_at=300)
        b = make_reply("b", "r1", created_at=200)
        a1 = make_reply("a1", "r1", "a", created_at=400)
        a1x = make_reply("a1x", "r1", "a1", created_at=500)

        thread = assemble_thread(r1, [a1x, b, a1, a])

        assert [(d, e.id) for d, e in thread.walk()] == [
            (0, "a"),
            (1, "a1"),
            (2, "a1x"),
            (0, "b"),
        ]

    def test_deep_chain(self, r1):
        depth = 5_000
        chain = [make_reply("n0", "r1", created_at=0)]
        chain += [make_reply(f"n{i}", "r1", f"n{i - 1}", created_at=i) for i in range(1, depth)]

        walked = list(assemble_thread(r1, reversed(chain)).walk())

        assert len(walked) == depth
        assert walked[-1] == (depth - 1, chain[-1])

    def test_cycle_not_traversed(self, r1):
        x = make_reply("x", "r1", "y")
        y = make_reply("y", "r1", "x")
        thread = assemble_thread(r1, [x, y])

        assert thread.top_level == ()
        assert list(thread.walk()) == []
        assert thread.replies_of("x") == (y,)
        assert len(thread) == 2


# ============================================================================
# Summary
# ============================================================================


class TestThreadSummary:
    """Headline view of a root."""

    def test_from_event(self, text_root):
        summary = ThreadSummary.from_event(text_root)
        assert summary.event_id == "r1"
        assert summary.title == "Thread"
        assert summary.url == "https://example.com/post"
        assert summary.body == "hello  world"
        assert summary.author == ROOT_AUTHOR
        assert summary.comment_count == 0

    def test_title_tag(self, thread_root):
        summary = ThreadSummary.from_event(thread_root)
        assert summary.title == "Zaps"
        assert summary.url is None
        assert summary.body == "Discussion body"

    def test_description_truncated(self):
        root = make_event("r1", content="x" * 500)
        assert len(ThreadSummary.from_event(root).description) == 160

    def test_comment_count_is_top_level(self, r1, c1, c2):
        thread = assemble_thread(r1, [c1, c2])
        assert ThreadSummary.from_event(r1, thread).comment_count == 1


# ============================================================================
# Cache
# ============================================================================


class TestThreadCache:
    """Fetch once, reuse until invalidated."""

    async def test_fetches_and_assembles(self, mock_source, r1, c1, c2):
        mock_source.fetch_thread.return_value = r1
        mock_source.fetch_replies.return_value = [c2, c1]
        cache = ThreadCache(mock_source)

        thread = await cache.get("r1")

        assert [e.id for e in thread.top_level] == ["c1"]
        assert "r1" in cache
        mock_source.fetch_thread.assert_awaited_once_with("r1")
        mock_source.fetch_replies.assert_awaited_once_with(r1)

    async def test_reuses_cached_thread(self, mock_source, r1):
        mock_source.fetch_thread.return_value = r1
        cache = ThreadCache(mock_source)

        first = await cache.get("r1")
        second = await cache.get("r1")

        assert first is second
        assert mock_source.fetch_thread.await_count == 1

    async def test_unknown_root(self, mock_source):
        cache = ThreadCache(mock_source)
        assert await cache.get("nope") is None
        assert "nope" not in cache
        mock_source.fetch_replies.assert_not_awaited()

    async def test_invalidate_refetches(self, mock_source, r1, c1):
        mock_source.fetch_thread.return_value = r1
        cache = ThreadCache(mock_source)
        await cache.get("r1")

        cache.invalidate("r1")
        mock_source.fetch_replies.return_value = [c1]
        thread = await cache.get("r1")

        assert "c1" in thread
        assert mock_source.fetch_thread.await_count == 2

    def test_invalidate_unknown_is_noop(self, mock_source):
        ThreadCache(mock_source).invalidate("never-fetched")
