"""MCP server binding.

Wires the Pokédex tool and resource registries onto the MCP SDK's
low-level Server and runs it over stdio.

Usage:
    server = PokedexServer(Settings.from_env())
    await server.run_stdio()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from pydantic import AnyUrl

from .config import SERVER_NAME, SERVER_VERSION, Settings
from .generation import GenerationBroker
from .logging_setup import set_mcp_log_level
from .pokedex import Pokedex, build_resource_registry, build_tool_registry
from .store import PokedexStore

if TYPE_CHECKING:
    from mcp.server.session import ServerSession

logger = logging.getLogger(__name__)


class PokedexServer:
    """The Pokédex exposed as an MCP server.

    Tool calls, resource reads and log level changes are delegated to the
    registries; sampling requests go out over the session of the request
    being handled.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.store = PokedexStore(self.settings.data_file)
        self.broker = GenerationBroker(
            self._current_session,
            timeout=self.settings.sampling_timeout,
        )
        self.pokedex = Pokedex(self.store, self.broker)
        self.tools = build_tool_registry(self.pokedex)
        self.resources = build_resource_registry(self.pokedex)
        self.server: Server[Any, Any] = Server(SERVER_NAME, version=SERVER_VERSION)
        self._register_handlers()

    def _current_session(self) -> ServerSession | None:
        try:
            return self.server.request_context.session
        except LookupError:
            return None

    def _register_handlers(self) -> None:
        server = self.server

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return [tool.to_mcp_tool() for tool in self.tools.list_tools()]

        # Input validation is done by the tool registry against the pydantic models
        @server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
            result = await self.tools.invoke(name, arguments)
            return result.to_content()

        @server.list_resources()
        async def list_resources() -> list[types.Resource]:
            return [r.to_mcp_resource() for r in self.resources.list_resources()]

        @server.list_resource_templates()
        async def list_resource_templates() -> list[types.ResourceTemplate]:
            return [t.to_mcp_template() for t in self.resources.list_templates()]

        @server.read_resource()
        async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
            content = await self.resources.resolve(str(uri))
            return [ReadResourceContents(content=content.text, mime_type=content.mime_type)]

        @server.set_logging_level()
        async def set_logging_level(level: types.LoggingLevel) -> None:
            set_mcp_log_level(level)
            logger.info(f"Log level set to {level}")

    async def run_stdio(self) -> None:
        """Serve a single client over stdin/stdout until it disconnects."""
        logger.info(f"Starting {SERVER_NAME} (data file: {self.settings.data_file})")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )
        logger.info("Server connection closed")
