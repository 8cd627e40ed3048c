"""Main paging interface and implementation."""

from __future__ import annotations

from typing import Any, Iterable, List, NamedTuple, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.sql.expression import ColumnElement

from .columns import SeekColumn, sort_values_of
from .results import Page, format_continuation, unserialize_continuation
from .schemes import SortRegistry, SortScheme
from .serial import InvalidPage, TokenMalformed
from .sqla import apply_paging
from .types import Continuation, Keyset, RequestLike, request_field

PER_PAGE_DEFAULT = 10


def seek_condition(
    columns: Sequence[SeekColumn],
    values: Keyset,
    reverse: bool = False,
    include: bool = False,
) -> ColumnElement[bool]:
    """Construct the SQL condition selecting the rows past ``values`` in the
    lexicographic order given by ``columns``.

    :param columns: The scheme's columns with their resolved directions.
    :param values: The boundary keyset.
    :param reverse: Walk the order backwards, inverting every inequality.
    :param include: Let the boundary row itself through.
    :returns: An SQLAlchemy expression suitable for use in ``.where()`` or
        ``.filter()``.
    """
    if len(columns) != len(values):
        raise InvalidPage(
            "Continuation has different value count to the sort scheme's columns"
        )

    last = len(columns) - 1

    # Disjunct i: every column before i ties with the boundary and column i
    # is strictly past it.
    return or_(
        *[
            and_(
                *[columns[j].at(values[j]) for j in range(i)],
                columns[i].past(values[i], reverse, inclusive=include and i == last),
            )
            for i in range(len(columns))
        ]
    )


def check_value_types(scheme: SortScheme, values: Keyset) -> None:
    """Fail closed when a token's values don't fit the scheme's declared
    column types."""
    if len(values) != len(scheme.columns):
        raise TokenMalformed(
            "Continuation carries {} values for {} columns".format(
                len(values), len(scheme.columns)
            )
        )
    if scheme.types is None:
        return
    for name, expected, value in zip(scheme.columns, scheme.types, values):
        if expected is None:
            continue
        allowed = expected if isinstance(expected, tuple) else (expected,)
        if isinstance(value, bool) and bool not in allowed:
            ok = False
        else:
            ok = isinstance(value, allowed)
        if not ok:
            raise TokenMalformed(
                "Continuation value for {} has type {}".format(name, type(value).__name__)
            )


class Compiled(NamedTuple):
    condition: Optional[ColumnElement[bool]]
    order_by: List[Any]
    limit: Optional[int]


class Pager:
    """Pages through rows of one type under one sort scheme.

    A pager belongs to a single request: build it with one of the ``for_*``
    or ``from_*`` constructors, :meth:`apply` it to a statement (or
    :meth:`compile` it and attach the clauses yourself), execute, then pass
    the rows to :meth:`map` once.
    """

    def __init__(
        self,
        scheme: SortScheme,
        directions: Optional[Sequence[int]] = None,
        continuation: Optional[Continuation] = None,
        per_page: Optional[int] = PER_PAGE_DEFAULT,
        forward_only: bool = False,
    ):
        if per_page is not None and per_page < 1:
            raise ValueError("per_page must be a positive integer or None")

        n = len(scheme.columns)
        if directions is None:
            directions = scheme.directions
        self.scheme = scheme
        self.directions = tuple(directions)[:n]
        self.continuation = continuation
        self.reverse = bool(continuation and continuation.reverse)
        self.per_page = per_page
        self.forward_only = forward_only
        self._mapped = False

        if len(self.directions) != n:
            raise InvalidPage("Got {} directions for {} columns".format(len(self.directions), n))
        if continuation is not None:
            if len(continuation.values) != n:
                raise InvalidPage(
                    "Continuation has different value count to the sort scheme's columns"
                )
            if forward_only and self.reverse:
                raise InvalidPage("This pager only pages forwards")

    @classmethod
    def for_type(cls, registry: SortRegistry, row_type, **options) -> "Pager":
        """A pager for the first page of ``row_type`` under its default scheme."""
        return cls(registry.resolve_default(row_type), **options)

    @classmethod
    def from_order(cls, registry: SortRegistry, row_type, order: str, **options) -> "Pager":
        """A pager for the first page under the scheme registered on the
        columns of ``order``, in the directions ``order`` asks for."""
        scheme, directions = registry.resolve_by_order(row_type, order)
        return cls(scheme, directions, **options)

    @classmethod
    def from_scheme_id(cls, registry: SortRegistry, scheme_id: int, **options) -> "Pager":
        return cls(registry.resolve_by_id(scheme_id), **options)

    @classmethod
    def from_token(cls, registry: SortRegistry, token: str, **options) -> "Pager":
        """A pager resuming from a continuation token.

        The token's directions override the scheme's. A token whose scheme
        is unknown raises :class:`.schemes.SchemeNotFound`."""
        continuation = unserialize_continuation(token)
        if continuation is None:
            raise TokenMalformed("Empty continuation token")
        scheme = registry.resolve_by_id(continuation.scheme_id)
        check_value_types(scheme, continuation.values)
        n = len(scheme.columns)
        return cls(scheme, continuation.directions[:n], continuation, **options)

    @classmethod
    def from_request(
        cls, registry: SortRegistry, row_type, request: RequestLike, **options
    ) -> "Pager":
        """Pick the constructor from a request carrying ``continue_token``
        and/or ``order``: a token wins over an order, which wins over the
        default scheme."""
        token = request_field(request, "continue_token")
        order = request_field(request, "order")
        if token:
            return cls.from_token(registry, token, **options)
        elif order:
            return cls.from_order(registry, row_type, order, **options)
        return cls.for_type(registry, row_type, **options)

    def columns(self, source=None) -> List[SeekColumn]:
        """The scheme's columns with the resolved (logical) directions."""
        source = source if source is not None else self.scheme.source
        return [
            SeekColumn(name, direction, source)
            for name, direction in zip(self.scheme.columns, self.directions)
        ]

    def compile(self, source=None) -> Compiled:
        """Build the seek condition, ORDER BY clauses and limit for this page.

        :param source: Mapped class, table or alias to resolve unqualified
            column names against. Defaults to the scheme's registered row type.
        :returns: A :class:`Compiled` triple. ``order_by`` is in physical scan
            order, i.e. inverted when paging backwards; ``limit`` asks for one
            extra row to find out whether there is a further page.
        """
        cols = self.columns(source)

        condition = None
        if self.continuation is not None:
            condition = seek_condition(
                cols,
                self.continuation.values,
                reverse=self.reverse,
                include=self.continuation.include,
            )

        physical = [c.reversed for c in cols] if self.reverse else cols
        order_by = [c.ob_clause for c in physical]

        limit = None if self.per_page is None else self.per_page + 1
        return Compiled(condition, order_by, limit)

    def apply(self, q, source=None):
        """Attach :meth:`compile`'s clauses to a ``Select`` or ORM ``Query``."""
        return apply_paging(q, *self.compile(source))

    def _token(self, values, reverse, include=False):
        return format_continuation(self.scheme.id, self.directions, values, reverse, include)

    def map(self, rows: Iterable) -> Page:
        """Turn the rows fetched for the compiled statement into a
        :class:`.results.Page` in logical forward order, with tokens for the
        neighbouring pages."""
        if self._mapped:
            raise RuntimeError("Pager.map() can only be called once")
        self._mapped = True

        rows = list(rows)
        further = False
        if self.per_page is not None:
            further = len(rows) > self.per_page
            rows = rows[: self.per_page]

        if not rows:
            return self._map_empty()

        places = [sort_values_of(rows[0], self.scheme), sort_values_of(rows[-1], self.scheme)]
        if self.reverse:
            places.reverse()
            rows.reverse()
        first, last = places

        # Going back toward the boundary only makes sense if we came from one.
        back = self.continuation is not None

        if self.reverse:
            has_next, has_previous = back, further
        else:
            has_next, has_previous = further, back

        next_token = self._token(last, reverse=False) if has_next else ""
        previous_token = ""
        if has_previous and not self.forward_only:
            previous_token = self._token(first, reverse=True)

        return Page(rows, next_token, previous_token, per_page=self.per_page)

    def _map_empty(self) -> Page:
        cont = self.continuation
        if cont is None:
            return Page([], per_page=self.per_page)

        # The boundary was the last row in the traversal direction: reflect
        # back toward it, including the boundary row itself.
        reflected = self._token(cont.values, reverse=not cont.reverse, include=True)
        if cont.reverse:
            return Page([], next=reflected, per_page=self.per_page)
        if self.forward_only:
            return Page([], per_page=self.per_page)
        return Page([], previous=reflected, per_page=self.per_page)

    def __repr__(self):
        return "<Pager {!r} reverse={} continuation={}>".format(
            self.scheme, self.reverse, self.continuation is not None
        )
