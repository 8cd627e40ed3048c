from .columns import SeekColumn, SortableMixin
from .paging import PER_PAGE_DEFAULT, Compiled, Pager, seek_condition
from .results import (
    Page,
    custom_token_type,
    format_continuation,
    serialize_continuation,
    unserialize_continuation,
)
from .schemes import (
    SchemeInvalid,
    SchemeNotFound,
    SortRegistry,
    SortScheme,
    parse_order,
    scheme_id,
)
from .serial import (
    ConfigurationError,
    InvalidPage,
    PageSerializationError,
    TokenMalformed,
    UnregisteredType,
)
from .types import ASC, DESC, Continuation, Keyset

__all__ = [
    "ASC",
    "DESC",
    "PER_PAGE_DEFAULT",
    "Compiled",
    "Continuation",
    "Keyset",
    "Page",
    "Pager",
    "SeekColumn",
    "SortableMixin",
    "SortRegistry",
    "SortScheme",
    "custom_token_type",
    "format_continuation",
    "parse_order",
    "scheme_id",
    "seek_condition",
    "serialize_continuation",
    "unserialize_continuation",
    "ConfigurationError",
    "InvalidPage",
    "PageSerializationError",
    "SchemeInvalid",
    "SchemeNotFound",
    "TokenMalformed",
    "UnregisteredType",
]
