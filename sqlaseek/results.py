"""Page data structure and continuation token handling."""
from __future__ import annotations

import base64
import binascii
from typing import (
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    overload,
)

from .serial import Serial, TokenMalformed
from .types import MAX_COLUMNS, Continuation, pad_directions

FLAG_REVERSE = 1 << 0
FLAG_INCLUDE = 1 << 1

s = Serial()


T = TypeVar("T")


def custom_token_type(
    type: Type[T],
    code: str,
    deserializer: Optional[Callable[[str], T]] = None,
    serializer: Optional[Callable[[T], str]] = None,
):
    """Register (de)serializers for token values of a custom type.

    :param type: Python type to register.
    :paramtype type: type
    :param code: A short alphabetic code to use to identify this type in
        serialized tokens.
    :paramtype code: str
    :param serializer: A function mapping `type` values to strings. Default is
        `str`.
    :param deserializer: Inverse for `serializer`. Default is the `type`
        constructor."""
    s.register_type(type, code, deserializer=deserializer, serializer=serializer)


def direction_mask(directions: Sequence[int]) -> int:
    mask = 0
    for i, d in enumerate(directions[:MAX_COLUMNS]):
        mask |= (d & 0x01) << i
    return mask


def mask_directions(mask: int) -> Tuple[int, ...]:
    return tuple((mask >> i) & 0x01 for i in range(MAX_COLUMNS))


@overload
def serialize_continuation(continuation: Continuation) -> str:
    ...


@overload
def serialize_continuation(continuation: None) -> str:
    ...


def serialize_continuation(continuation: Optional[Continuation]) -> str:
    """Serialize a continuation to an opaque token string.

    :returns: Standard base-64 of a msgpack map with keys ``K`` (scheme id),
        ``D`` (direction bitmask), ``F`` (flags) and ``V`` (values). ``None``
        serializes to the empty string."""
    if continuation is None:
        return ""
    scheme_id, directions, values, reverse, include = continuation
    flags = 0
    if reverse:
        flags |= FLAG_REVERSE
    if include:
        flags |= FLAG_INCLUDE
    raw = {
        "K": scheme_id & 0xFFFFFFFF,
        "D": direction_mask(directions),
        "F": flags,
        "V": list(values),
    }
    return base64.b64encode(s.dumps(raw)).decode("ascii")


def unserialize_continuation(token: str) -> Optional[Continuation]:
    """Deserialize a token string to a continuation.

    :param token: A string in the format produced by
        :func:`serialize_continuation`.
    :returns: A :class:`.types.Continuation` with all eight directions
        expanded, or ``None`` for an empty token.
    """
    if not token:
        return None

    try:
        data = base64.b64decode(token.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, AttributeError) as e:
        raise TokenMalformed("Continuation token is not valid base-64") from e

    raw = s.loads(data)  # might raise TokenMalformed

    if not isinstance(raw, dict):
        raise TokenMalformed("Malformed continuation token: not a map")
    try:
        scheme_id, mask, flags, values = raw["K"], raw["D"], raw["F"], raw["V"]
    except KeyError as e:
        raise TokenMalformed("Malformed continuation token: missing field") from e

    for field in (scheme_id, mask, flags):
        if not isinstance(field, int) or isinstance(field, bool) or field < 0:
            raise TokenMalformed("Malformed continuation token: bad header")
    if scheme_id > 0xFFFFFFFF or mask > 0xFF or flags > 0xFF:
        raise TokenMalformed("Malformed continuation token: header out of range")
    if not isinstance(values, list):
        raise TokenMalformed("Malformed continuation token: values are not a list")

    return Continuation(
        scheme_id,
        mask_directions(mask),
        tuple(values),
        reverse=bool(flags & FLAG_REVERSE),
        include=bool(flags & FLAG_INCLUDE),
    )


def format_continuation(
    scheme_id: int, directions, values, reverse: bool = False, include: bool = False
) -> str:
    """Build and serialize a continuation in one step."""
    return serialize_continuation(
        Continuation(scheme_id, pad_directions(directions), tuple(values), reverse, include)
    )


_Row = TypeVar("_Row", covariant=True)


class Page(list, Sequence[_Row]):  # Can't subclass List[_Row] directly because _Row is covariant
    """A :class:`list` of result rows, in the order the caller asked for,
    carrying the tokens for the surrounding pages.

    ``next`` and ``previous`` are empty strings when there is nothing further
    in that direction."""

    next: str
    previous: str
    per_page: Optional[int]

    def __init__(
        self,
        iterable: Iterable[_Row],
        next: str = "",
        previous: str = "",
        per_page: Optional[int] = None,
    ):
        super().__init__(iterable)
        self.next = next
        self.previous = previous
        self.per_page = per_page

    @property
    def has_next(self) -> bool:
        """Boolean flagging whether a next page can be requested."""
        return bool(self.next)

    @property
    def has_previous(self) -> bool:
        """Boolean flagging whether a previous page can be requested."""
        return bool(self.previous)

    @property
    def is_full(self) -> bool:
        """Boolean flagging whether this page contains as many rows as were
        requested in ``per_page``."""
        return self.per_page is not None and len(self) >= self.per_page

    def as_tuple(self) -> Tuple[List[_Row], str, str]:
        """The page as a plain ``(rows, next, previous)`` triple."""
        return list(self), self.next, self.previous

    def scalar(self):
        """Assuming paging was called with ``per_page=1`` and a single-column
        query, return the single value."""
        return self.one()[0]

    def one(self) -> _Row:
        """Assuming paging was called with ``per_page=1``, return the single
        row on this page."""
        c = len(self)

        if c < 1:
            raise RuntimeError("tried to select one but zero rows returned")
        elif c > 1:
            raise RuntimeError("too many rows returned")
        else:
            return self[0]

    def __repr__(self):
        return "Page({}, next={!r}, previous={!r})".format(
            list.__repr__(self), self.next, self.previous
        )
