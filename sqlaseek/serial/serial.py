"""Continuation value (de)serialization logic."""
import decimal
import datetime
import uuid

import dateutil.parser
import msgpack


class InvalidPage(ValueError):
    """An invalid page continuation (in either tuple or token string form) was
    provided to a paging method."""


class TokenMalformed(InvalidPage):
    """A continuation token failed to parse"""


class PageSerializationError(ValueError):
    """Generic serialization error."""


class UnregisteredType(NotImplementedError):
    """An unregistered type was encountered when serializing a continuation."""


class ConfigurationError(Exception):
    """An error to do with configuring custom token value types."""


EXT_TYPED = 1
"""msgpack extension code wrapping a ``[code, text]`` pair for every value that
msgpack can't represent natively."""

# Exact types that msgpack packs without help.
NATIVE = (str, int, float, bool, bytes, type(None))


def parsedate(x):
    return dateutil.parser.parse(x).date()


def parsetime(x):
    return dateutil.parser.parse(x).timetz()


def isoformat(x):
    return x.isoformat()


TYPES = [
    (decimal.Decimal, "n"),
    (uuid.UUID, "uuid"),
    (datetime.datetime, "dt", dateutil.parser.parse, isoformat),
    (datetime.date, "d", parsedate, isoformat),
    (datetime.time, "t", parsetime, isoformat),
]


class Serial(object):
    def __init__(self):
        self.serializers = {}
        self.deserializers = {}
        for definition in TYPES:
            self.register_type(*definition)

    def register_type(self, type, code, deserializer=None, serializer=None):
        if serializer is None:
            serializer = str
        if deserializer is None:
            deserializer = type
        if type in self.serializers or type in NATIVE:
            raise ConfigurationError(f"Type {type} already has a serializer registered.")
        if code in self.deserializers:
            raise ConfigurationError(f"Type code {code} is already in use.")
        self.serializers[type] = lambda x: (code, serializer(x))
        self.deserializers[code] = deserializer

    def dumps(self, obj) -> bytes:
        try:
            return msgpack.packb(
                obj, default=self.serialize_value, use_bin_type=True, strict_types=True
            )
        except (UnregisteredType, PageSerializationError):
            raise
        except (OverflowError, ValueError, TypeError) as e:
            raise PageSerializationError("Could not pack continuation") from e

    def loads(self, data: bytes):
        try:
            return msgpack.unpackb(
                data, raw=False, ext_hook=self.unserialize_value, strict_map_key=False
            )
        except TokenMalformed:
            raise
        except Exception as e:
            raise TokenMalformed("Continuation token payload is not valid") from e

    def serialize_value(self, x):
        """``default`` hook for msgpack: turn a non-native value into an
        extension type."""
        if isinstance(x, tuple):
            return list(x)

        # Walk the MRO so that subclasses (e.g. asyncpg's UUID) pick up the
        # serializer of their nearest registered ancestor.
        for t in type(x).__mro__:
            try:
                serializer = self.serializers[t]
            except KeyError:
                continue
            try:
                c, v = serializer(x)
            except Exception as e:
                raise PageSerializationError(
                    "Custom token serializer encountered error"
                ) from e
            return msgpack.ExtType(EXT_TYPED, msgpack.packb([c, v], use_bin_type=True))

        if type(x) in NATIVE:
            # msgpack only hands natives back to us when they don't fit,
            # e.g. integers beyond 64 bits.
            raise PageSerializationError("Can't pack {!r}".format(x))
        for t in NATIVE:
            if isinstance(x, t):
                return t(x)

        raise UnregisteredType(
            "Don't know how to serialize type of {} ({}). "
            "Use custom_token_type to register it.".format(x, type(x))
        )

    def unserialize_value(self, code, data):
        """``ext_hook`` for msgpack."""
        if code != EXT_TYPED:
            raise TokenMalformed(f"unrecognized extension type {code}")
        try:
            c, v = msgpack.unpackb(data, raw=False)
        except Exception as e:
            raise TokenMalformed("Malformed typed value") from e

        try:
            deserializer = self.deserializers[c]
        except (KeyError, TypeError):
            raise TokenMalformed("unrecognized value type {!r}".format(c))

        try:
            return deserializer(v)
        except Exception as e:
            raise TokenMalformed("Custom token deserializer encountered error") from e
