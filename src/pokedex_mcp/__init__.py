"""Pokédex MCP server.

A bidirectional MCP server: callers invoke tools and read resources,
and the server asks the caller to generate content mid-call.
"""

from .errors import (
    DuplicateError,
    GenerationError,
    GenerationParseError,
    GenerationTimeoutError,
    InvalidInput,
    PokedexError,
    StorageError,
    UnknownOperation,
    UnknownResource,
    UnsupportedResponseType,
)
from .models import CatchRequest, PokedexEntry
from .store import PokedexStore

__version__ = "1.0.0"

__all__ = [
    "CatchRequest",
    "DuplicateError",
    "GenerationError",
    "GenerationParseError",
    "GenerationTimeoutError",
    "InvalidInput",
    "PokedexEntry",
    "PokedexError",
    "PokedexStore",
    "StorageError",
    "UnknownOperation",
    "UnknownResource",
    "UnsupportedResponseType",
]
