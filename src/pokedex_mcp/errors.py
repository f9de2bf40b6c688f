"""Exception taxonomy for the Pokédex server.

Handlers raise these; the tool registry converts them into failure
results so that callers receive a text response. UnknownOperation and
InvalidInput are the exceptions: they reach the transport as errors.
"""

from __future__ import annotations


class PokedexError(Exception):
    """Base class for all Pokédex errors."""


class UnknownOperation(PokedexError):
    """Raised when a tool name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool not found: {name}")
        self.name = name


class UnknownResource(PokedexError):
    """Raised when no static or templated resource matches an address."""

    def __init__(self, uri: str) -> None:
        super().__init__(f"Resource not found: {uri}")
        self.uri = uri


class InvalidInput(PokedexError):
    """Raised when tool arguments fail validation."""

    def __init__(self, tool_name: str, details: str) -> None:
        super().__init__(f"Invalid arguments for {tool_name}: {details}")
        self.tool_name = tool_name
        self.details = details


class DuplicateError(PokedexError):
    """Raised when a Pokémon with the same name (case-insensitive) exists."""

    def __init__(self, name: str, existing_id: int) -> None:
        super().__init__(f"A Pokémon named {name} already exists in the Pokédex!")
        self.name = name
        self.existing_id = existing_id


class StorageError(PokedexError):
    """Raised when the backing file cannot be read, parsed or written."""


class GenerationError(PokedexError):
    """Raised when a sampling request to the client fails."""


class GenerationTimeoutError(GenerationError):
    """Raised when the client does not answer a sampling request in time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Sampling request timed out after {timeout}s")
        self.timeout = timeout


class UnsupportedResponseType(GenerationError):
    """Raised when a sampling response carries non-text content."""

    def __init__(self, content_type: str) -> None:
        super().__init__(f"Unsupported sampling response type: {content_type}")
        self.content_type = content_type


class GenerationParseError(GenerationError):
    """Raised when generated text is not a valid Pokémon description."""
