"""Tool registration and dispatch.

Architecture:
- ToolDefinition: Describes a tool (name, description, input model, handler)
- ToolResult: Tagged success/failure result returned by handlers
- ToolRegistry: Maps names to definitions, validates input and dispatches

Handlers never report failures through the transport. A failed tool call
still produces a normal result whose text tells the caller what went
wrong; only unknown tool names and invalid arguments are raised.

Usage:
    async def catch(request: CatchRequest) -> ToolResult:
        entry = await store.append(request)
        return ToolResult.ok(f"Pokémon with ID {entry.id} caught successfully!")

    registry = ToolRegistry()
    registry.register(ToolDefinition(
        name="catch-pokemon",
        description="Add a new, caught Pokémon to the Pokédex.",
        input_model=CatchRequest,
        handler=catch,
    ))
    result = await registry.invoke("catch-pokemon", {...})
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import mcp.types as types
from pydantic import BaseModel, ValidationError

from .errors import InvalidInput, PokedexError, UnknownOperation

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], Awaitable["ToolResult"]]


@dataclass(frozen=True)
class ToolResult:
    """Result from a tool execution.

    Attributes:
        success: Whether the tool achieved what it was asked to do
        text: Human-readable outcome (success message or failure reason)
    """

    success: bool
    text: str

    @classmethod
    def ok(cls, text: str) -> ToolResult:
        return cls(success=True, text=text)

    @classmethod
    def fail(cls, text: str) -> ToolResult:
        return cls(success=False, text=text)

    def to_content(self) -> list[types.TextContent]:
        """Serialize to the wire envelope.

        Both arms produce the same shape: a single text item.
        """
        return [types.TextContent(type="text", text=self.text)]


@dataclass
class ToolDefinition:
    """Definition of a tool.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description for the model
        input_model: Pydantic model describing and validating the arguments
        handler: Async function receiving a validated input_model instance
        title: Optional display title
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler
    title: str | None = None

    def __post_init__(self) -> None:
        """Validate the tool definition."""
        if not self.name:
            raise ValueError("Tool name cannot be empty")
        if not self.description:
            raise ValueError("Tool description cannot be empty")
        if not callable(self.handler):
            raise ValueError("Tool handler must be callable")

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for the tool's arguments."""
        return self.input_model.model_json_schema()

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_schema,
        )


class ToolRegistry:
    """Registry of tools keyed by name.

    Tools are listed in registration order.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    async def invoke(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        """Validate arguments and run the named tool.

        Args:
            name: Registered tool name
            arguments: Raw arguments from the caller

        Returns:
            The handler's ToolResult, or a failure result if the handler
            raised

        Raises:
            UnknownOperation: If no tool is registered under name
            InvalidInput: If arguments do not satisfy the input model
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownOperation(name)

        try:
            params = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidInput(name, details) from e

        logger.info(f"Calling tool {name}")
        try:
            result = await tool.handler(params)
        except PokedexError as e:
            logger.error(f"Tool '{name}' failed: {e}")
            return ToolResult.fail(str(e))
        except Exception as e:
            logger.exception(f"Tool '{name}' raised unexpectedly: {e}")
            return ToolResult.fail(f"Tool {name} failed: {e}")

        level = logging.DEBUG if result.success else logging.WARNING
        logger.log(level, f"Tool {name} finished (success={result.success})")
        return result
