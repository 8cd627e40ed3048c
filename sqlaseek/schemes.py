"""Registered sort schemes and the registry that resolves them."""
from __future__ import annotations

import logging
import threading
import zlib
from contextlib import contextmanager
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .serial import ConfigurationError
from .types import ASC, DESC, MAX_COLUMNS

log = logging.getLogger(__name__)

_DIRECTION_WORDS = {"ASC": ASC, "DESC": DESC}


class SchemeNotFound(LookupError):
    """No scheme is registered under the requested id, column list or type."""


class SchemeInvalid(ConfigurationError):
    """A scheme registration was rejected."""


class SortScheme(NamedTuple):
    """A registered multi-column ordering for one row type."""

    id: int
    tag: str
    columns: Tuple[str, ...]
    directions: Tuple[int, ...]
    types: Optional[Tuple[Any, ...]] = None
    source: Any = None
    default: bool = False

    def __repr__(self):
        cols = ", ".join(
            "{} {}".format(c, "DESC" if d == DESC else "ASC")
            for c, d in zip(self.columns, self.directions)
        )
        return "<SortScheme {:08x} {}: {}>".format(self.id, self.tag, cols)


def normalize_column(name: str) -> str:
    return name.strip().lower()


def type_tag(row_type) -> str:
    """Return the stable tag identifying ``row_type`` in scheme ids.

    Strings are tags already. Classes provide ``__sort_tag__``, or fall back to
    ``__tablename__`` when they are mapped."""
    if isinstance(row_type, str):
        tag = row_type
    else:
        tag = getattr(row_type, "__sort_tag__", None) or getattr(
            row_type, "__tablename__", None
        )
    if not isinstance(tag, str) or not tag:
        raise SchemeInvalid(
            "{!r} has no sort tag; give it __sort_tag__ or register it "
            "under a string tag".format(row_type)
        )
    return tag


def scheme_id(row_type, columns: Sequence[str]) -> int:
    """The content address of a scheme: CRC-32 of ``"<tag>:<col0>,<col1>,..."``."""
    key = type_tag(row_type) + ":" + ",".join(normalize_column(c) for c in columns)
    return zlib.crc32(key.encode("utf-8")) & 0xFFFFFFFF


def parse_order(order: str) -> Tuple[List[str], List[int]]:
    """Parse ``"col1 ASC, col2 DESC"`` into column names and directions.

    Direction words are case-insensitive and default to ASC."""
    cols = []
    dirs = []
    for expr in order.split(","):
        parts = expr.split()
        if not parts or len(parts) > 2:
            raise SchemeInvalid("Bad order expression {!r}".format(order))
        cols.append(normalize_column(parts[0]))
        if len(parts) == 1:
            dirs.append(ASC)
        else:
            try:
                dirs.append(_DIRECTION_WORDS[parts[1].upper()])
            except KeyError:
                raise SchemeInvalid(
                    "Unknown sort direction {!r} in {!r}".format(parts[1], order)
                )
    return cols, dirs


class _RWLock:
    """Many readers or a single writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
        self._waiting_writers = 0

    @contextmanager
    def reading(self):
        with self._cond:
            while self._writing or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def writing(self):
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writing or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class SortRegistry:
    """Catalog of sort schemes keyed by their content-addressed id, plus one
    default scheme per row type.

    Construct one at startup, register schemes on it and hand it to every
    pager. Lookups are safe from many threads at once."""

    def __init__(self):
        self._lock = _RWLock()
        self._schemes: Dict[int, SortScheme] = {}
        self._defaults: Dict[str, int] = {}

    def register(
        self,
        row_type,
        columns: Sequence[str],
        directions: Optional[Sequence[int]] = None,
        default: bool = False,
        types: Optional[Sequence[Any]] = None,
    ) -> int:
        """Register (or replace) a scheme and return its id.

        :param row_type: A tag string, or a class with ``__sort_tag__`` or
            ``__tablename__``.
        :param columns: Column names, most significant first.
        :param directions: ``ASC``/``DESC`` per column; all ASC if omitted.
        :param default: Make this the row type's default scheme.
        :param types: Optional Python type (or tuple of types) per column,
            used to validate values carried by tokens.
        """
        tag = type_tag(row_type)
        cols = tuple(normalize_column(c) for c in columns)
        if directions is None:
            directions = [ASC] * len(cols)
        dirs = tuple(directions)

        if not cols:
            raise SchemeInvalid("A sort scheme needs at least one column")
        if len(cols) > MAX_COLUMNS:
            raise SchemeInvalid(
                "A sort scheme can have at most {} columns, got {}".format(
                    MAX_COLUMNS, len(cols)
                )
            )
        if len(dirs) != len(cols):
            raise SchemeInvalid("Got {} directions for {} columns".format(len(dirs), len(cols)))
        if any(d not in (ASC, DESC) for d in dirs):
            raise SchemeInvalid("Directions must be ASC or DESC")
        if types is not None:
            types = tuple(types)
            if len(types) != len(cols):
                raise SchemeInvalid("Got {} types for {} columns".format(len(types), len(cols)))

        sid = scheme_id(tag, cols)
        scheme = SortScheme(
            sid,
            tag,
            cols,
            dirs,
            types=types,
            source=None if isinstance(row_type, str) else row_type,
        )

        with self._lock.writing():
            current = self._defaults.get(tag)
            if default or current is None or current == sid:
                if current is not None and current != sid:
                    old = self._schemes[current]
                    self._schemes[current] = old._replace(default=False)
                self._defaults[tag] = sid
                scheme = scheme._replace(default=True)
            self._schemes[sid] = scheme

        log.debug("registered %r (default=%s)", scheme, scheme.default)
        return sid

    def register_order(
        self,
        row_type,
        order: str,
        default: bool = False,
        types: Optional[Sequence[Any]] = None,
    ) -> int:
        """Like :meth:`register`, taking an order expression such as
        ``"name ASC, id DESC"``."""
        cols, dirs = parse_order(order)
        return self.register(row_type, cols, dirs, default=default, types=types)

    def resolve_by_id(self, sid: int) -> SortScheme:
        with self._lock.reading():
            try:
                return self._schemes[sid]
            except KeyError:
                raise SchemeNotFound("No sort scheme registered with id {!r}".format(sid))

    def resolve_default(self, row_type) -> SortScheme:
        tag = type_tag(row_type)
        with self._lock.reading():
            try:
                return self._schemes[self._defaults[tag]]
            except KeyError:
                raise SchemeNotFound("No default sort scheme registered for {}".format(tag))

    def resolve_by_columns(self, row_type, columns: Sequence[str]) -> SortScheme:
        sid = scheme_id(row_type, columns)
        try:
            return self.resolve_by_id(sid)
        except SchemeNotFound:
            raise SchemeNotFound(
                "No sort scheme registered for {} on columns {}".format(
                    type_tag(row_type), ", ".join(normalize_column(c) for c in columns)
                )
            )

    def resolve_by_order(self, row_type, order: str) -> Tuple[SortScheme, Tuple[int, ...]]:
        """Resolve an order expression to its scheme and the directions it
        asks for, which may differ from the scheme's own."""
        cols, dirs = parse_order(order)
        return self.resolve_by_columns(row_type, cols), tuple(dirs)

    def schemes(self, row_type=None) -> List[SortScheme]:
        tag = None if row_type is None else type_tag(row_type)
        with self._lock.reading():
            return [sc for sc in self._schemes.values() if tag is None or sc.tag == tag]

    def __contains__(self, sid) -> bool:
        with self._lock.reading():
            return sid in self._schemes

    def __len__(self) -> int:
        with self._lock.reading():
            return len(self._schemes)
