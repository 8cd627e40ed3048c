"""Classes and supporting functions to turn scheme column names into SQL
ordering columns and to extract keyset values from result rows."""
from typing import Mapping
from warnings import warn

import sqlalchemy
from sqlalchemy import asc, column, desc, inspect, table
from sqlalchemy.orm import class_mapper
from sqlalchemy.orm.exc import UnmappedClassError, UnmappedColumnError
from sqlalchemy.orm.state import InstanceState

from .types import ASC, DESC, flip


def resolve_column(name, source=None):
    """Find the SQL column for a scheme column name.

    ``table.column`` names get a lightweight table of their own. Unqualified
    names are looked up on ``source`` (a mapped class, table or alias) when
    given and inspectable, otherwise they are rendered bare."""
    if "." in name:
        table_name, column_name = name.rsplit(".", 1)
        return table(table_name, column(column_name)).c[column_name]
    if source is None:
        return column(name)

    try:
        selectable = inspect(source).selectable
    except (sqlalchemy.exc.NoInspectionAvailable, AttributeError):
        return column(name)

    cols = selectable.c
    if name in cols:
        return cols[name]
    for c in cols:
        if c.name.lower() == name:
            return c
    raise ValueError("{!r} has no column {!r}".format(source, name))


class SeekColumn:
    """A scheme column in a given direction, bound to the SQL element it
    resolves to."""

    def __init__(self, name, direction=ASC, source=None):
        self.name = name
        self.direction = direction
        self.source = source
        self.element = resolve_column(name, source)

    @property
    def is_ascending(self):
        return self.direction == ASC

    @property
    def reversed(self):
        """A :class:`SeekColumn` for the same column in the opposite direction."""
        return SeekColumn(self.name, flip(self.direction), self.source)

    @property
    def ob_clause(self):
        """The ORDER BY clause for this column."""
        return asc(self.element) if self.is_ascending else desc(self.element)

    def past(self, value, reverse=False, inclusive=False):
        """The condition for this column being past ``value`` in the paging
        order (or at it, when ``inclusive``)."""
        ascending = self.is_ascending != bool(reverse)
        if ascending:
            return self.element >= value if inclusive else self.element > value
        return self.element <= value if inclusive else self.element < value

    def at(self, value):
        return self.element == value

    def __str__(self):
        return "{} {}".format(self.name, "DESC" if self.direction == DESC else "ASC")

    def __repr__(self):
        return "<SeekColumn: {}>".format(str(self))


def _warn_if_null(values, scheme):
    if any(v is None for v in values):
        warn(
            "Row has a NULL value in sort scheme {!r}; NULL sort keys can "
            "cause rows to be incorrectly omitted from the results.".format(scheme),
            stacklevel=4,
        )


def _attribute_key(obj, name):
    """Map a column name to the attribute holding it on a mapped instance."""
    try:
        mapper = class_mapper(type(obj))
    except UnmappedClassError:
        return name
    try:
        col = resolve_column(name, type(obj))
        return mapper.get_property_by_column(col).key
    except (ValueError, UnmappedColumnError):
        return name


def row_value(row, name):
    """Extract the value of column ``name`` from a result row: an ORM
    instance, a :class:`sqlalchemy.engine.Row` or a mapping."""
    name = name.rsplit(".", 1)[-1]
    mapping = getattr(row, "_mapping", None)
    if mapping is None and isinstance(row, Mapping):
        mapping = row
    if mapping is not None:
        try:
            return mapping[name]
        except KeyError:
            for key in mapping.keys():
                if isinstance(key, str) and key.lower() == name.lower():
                    return mapping[key]
            raise
    return getattr(row, _attribute_key(row, name))


def _single_entity(row):
    if getattr(row, "_mapping", None) is None or len(row) != 1:
        return row
    (element,) = row
    if callable(getattr(element, "get_sort_values", None)):
        return element
    if isinstance(inspect(element, raiseerr=False), InstanceState):
        return element
    return row


def sort_values_of(row, scheme):
    """The keyset of ``row`` under ``scheme``.

    Rows that define ``get_sort_values(scheme_id)`` supply it themselves.
    Result rows holding a single ORM entity are unwrapped first."""
    row = _single_entity(row)
    getter = getattr(row, "get_sort_values", None)
    if callable(getter):
        values = tuple(getter(scheme.id))
    else:
        values = tuple(row_value(row, c) for c in scheme.columns)
    _warn_if_null(values, scheme)
    return values


class SortableMixin:
    """Give a mapped class ``get_sort_values`` for every scheme registered on
    the :class:`.schemes.SortRegistry` assigned to ``__sort_registry__``."""

    __sort_registry__ = None

    def get_sort_values(self, scheme_id):
        registry = type(self).__sort_registry__
        if registry is None:
            raise RuntimeError(
                "{} has no __sort_registry__".format(type(self).__name__)
            )
        scheme = registry.resolve_by_id(scheme_id)
        return tuple(row_value(self, c) for c in scheme.columns)
