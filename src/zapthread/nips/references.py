"""Reply references: which event a reply answers (NIP-10, NIP-22).

NIP-22 comments (kind 1111) name their parent with a lowercase ``e`` tag
and the thread root with an uppercase ``E`` tag; a top-level comment may
carry only the ``E`` tag.

Everything else follows NIP-10, where ``e`` tags are either *marked*
(fourth element ``root``, ``reply``, or ``mention``) or follow the older
positional convention in which the last ``e`` tag is the one being
replied to. Both conventions appear in the wild, sometimes in one event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from zapthread.models.constants import EventKind, ReplyMarker


if TYPE_CHECKING:
    from zapthread.models.event import Event


_MARKER_INDEX = 3


def _marker(tag: tuple[str, ...]) -> str:
    return tag[_MARKER_INDEX] if len(tag) > _MARKER_INDEX else ""


def _nip22_parent(event: Event) -> str | None:
    return event.first_tag_value("e") or event.first_tag_value("E")


def _nip10_parent(event: Event) -> str | None:
    reply: str | None = None
    root: str | None = None
    last_unmarked: str | None = None

    for tag in event.tags_named("e"):
        if len(tag) < 2 or not tag[1]:  # noqa: PLR2004
            continue
        marker = _marker(tag)
        if marker == ReplyMarker.REPLY:
            reply = reply or tag[1]
        elif marker == ReplyMarker.ROOT:
            root = root or tag[1]
        elif marker == ReplyMarker.MENTION:
            continue
        else:
            last_unmarked = tag[1]

    return reply or last_unmarked or root


def resolve_parent_id(event: Event) -> str | None:
    """Return the id of the event *event* replies to, or ``None``.

    Resolution order:

    * kind 1111: the first ``e`` tag, else the first ``E`` tag;
    * other kinds: the first ``e`` tag marked ``reply``, else the last
      unmarked ``e`` tag, else the first ``e`` tag marked ``root``.
      ``mention`` tags never name a parent.

    The result is not checked against any known set of events; deciding
    what to do with a dangling reference is the caller's concern.
    """
    if event.kind == EventKind.COMMENT:
        return _nip22_parent(event)
    return _nip10_parent(event)
