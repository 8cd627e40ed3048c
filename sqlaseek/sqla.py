"""Methods for attaching paging clauses to SQLAlchemy 1.4/2.0 statements."""
from __future__ import annotations

from typing import Optional, Sequence, TypeVar, Union

from sqlalchemy.orm.query import Query
from sqlalchemy.sql.expression import ColumnElement
from sqlalchemy.sql.selectable import Select

_Q = TypeVar("_Q", bound=Union[Query, Select])


def group_by_clauses(selectable):
    """Extract the GROUP BY clause list from a select/query"""
    return selectable._group_by_clauses


def apply_paging(
    q: _Q,
    condition: Optional[ColumnElement[bool]],
    order_by: Sequence,
    limit: Optional[int],
) -> _Q:
    """Replace the ORDER BY of ``q`` and add the seek condition and limit."""
    q = q.order_by(None).order_by(*order_by)

    if condition is not None:
        # For aggregate queries, paging condition is applied *after*
        # aggregation. In SQL this means we need to use HAVING instead of
        # WHERE.
        groupby = group_by_clauses(q)
        if groupby is not None and len(groupby) > 0:
            q = q.having(condition)
        elif isinstance(q, Query):
            q = q.filter(condition)
        else:
            q = q.where(condition)

    if limit is not None:
        q = q.limit(limit)
    return q


__all__ = ["apply_paging", "group_by_clauses"]
