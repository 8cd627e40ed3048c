"""Keyset/Continuation types"""
from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Optional, Tuple, Union

ASC = 0
DESC = 1

MAX_COLUMNS = 8
"""Directions travel as an 8-bit mask, so a scheme can have at most this many
columns."""

Keyset = Tuple
"""A tuple with as many entries as a scheme has columns, representing a place
in a sorted resultset."""


class Continuation(NamedTuple):
    """A keyset along with the sort scheme and directions it was taken under,
    marking a place you could resume paginating a sorted resultset.

    If ``reverse`` is ``True`` the continuation fetches the rows immediately
    before ``values``; otherwise the rows immediately after. ``include`` makes
    the boundary row itself part of the fetched page."""

    scheme_id: int
    directions: Tuple[int, ...]
    values: Keyset
    reverse: bool = False
    include: bool = False


def pad_directions(directions) -> Tuple[int, ...]:
    """Extend a direction sequence with ASC up to :data:`MAX_COLUMNS` entries."""
    dirs = tuple(directions)[:MAX_COLUMNS]
    return dirs + (ASC,) * (MAX_COLUMNS - len(dirs))


def flip(direction: int) -> int:
    return ASC if direction == DESC else DESC


# Paging requests are either objects with attributes or plain mappings:
RequestLike = Union[Mapping[str, Any], Any]


def request_field(request: RequestLike, name: str) -> Optional[str]:
    if isinstance(request, Mapping):
        return request.get(name)
    return getattr(request, name, None)
