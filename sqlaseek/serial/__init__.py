from .serial import (
    ConfigurationError,
    InvalidPage,
    PageSerializationError,
    Serial,
    TokenMalformed,
    UnregisteredType,
)

__all__ = [
    "ConfigurationError",
    "InvalidPage",
    "PageSerializationError",
    "Serial",
    "TokenMalformed",
    "UnregisteredType",
]
