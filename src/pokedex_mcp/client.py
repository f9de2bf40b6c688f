"""Pokédex MCP client.

Spawns a server over stdio, calls its tools, reads its resources and
answers the server's sampling requests with a pluggable Sampler.
query() lets an OpenAI model drive the server's tools from a
natural-language request.

Usage:
    async with PokedexClient(["pokedex", "serve"], sampler=OpenAISampler()) as client:
        print(await client.call_tool("discover-wild-pokemon"))
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AsyncExitStack
from typing import Any

import mcp.types as types
from mcp import ClientSession, StdioServerParameters
from mcp.client.session import SamplingFnT
from mcp.client.stdio import stdio_client
from mcp.shared.context import RequestContext
from openai import AsyncOpenAI
from pydantic import AnyUrl

from .config import DEFAULT_SAMPLING_MODEL

logger = logging.getLogger(__name__)

# (messages, max_tokens, system_prompt) -> generated text
Sampler = Callable[[Sequence[types.SamplingMessage], int, str | None], Awaitable[str]]


def message_text(message: types.SamplingMessage) -> str:
    """Extract the text of a sampling message (empty for non-text content)."""
    content: Any = message.content
    if isinstance(content, types.TextContent):
        return content.text
    if isinstance(content, list):
        return "".join(part.text for part in content if isinstance(part, types.TextContent))
    return ""


class OpenAISampler:
    """Answers sampling requests with the OpenAI chat completions API.

    The OpenAI client reads OPENAI_API_KEY from the environment and is
    created on first use.
    """

    def __init__(self, model: str = DEFAULT_SAMPLING_MODEL, client: AsyncOpenAI | None = None) -> None:
        self.model = model
        self._client = client

    async def __call__(
        self,
        messages: Sequence[types.SamplingMessage],
        max_tokens: int,
        system_prompt: str | None = None,
    ) -> str:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=os.environ.get("OPENAI_API_KEY"))

        chat: list[dict[str, str]] = []
        if system_prompt:
            chat.append({"role": "system", "content": system_prompt})
        chat.extend({"role": m.role, "content": message_text(m)} for m in messages)

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=chat,  # type: ignore[arg-type]
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""


def make_sampling_callback(sampler: Sampler, model_name: str) -> SamplingFnT:
    """Adapt a Sampler to the SDK's sampling callback signature.

    Sampler failures are reported back to the server as ErrorData rather
    than breaking the session.
    """

    async def sampling_callback(
        context: RequestContext[ClientSession, Any],
        params: types.CreateMessageRequestParams,
    ) -> types.CreateMessageResult | types.ErrorData:
        logger.debug(f"Received sampling request ({len(params.messages)} messages)")
        try:
            text = await sampler(params.messages, params.maxTokens, params.systemPrompt)
        except Exception as e:
            logger.error(f"Sampling failed: {e}")
            return types.ErrorData(code=types.INTERNAL_ERROR, message=f"Sampling failed: {e}")

        logger.debug(f"Sampling response: {len(text)} chars")
        return types.CreateMessageResult(
            role="assistant",
            content=types.TextContent(type="text", text=text),
            model=model_name,
        )

    return sampling_callback


def result_text(result: types.CallToolResult) -> str:
    """First text item of a tool result, or the JSON of its content list."""
    for item in result.content:
        if isinstance(item, types.TextContent):
            return item.text
    return json.dumps([item.model_dump(mode="json") for item in result.content])


# Natural-language queries
ASSISTANT_PROMPT = (
    "You are a helpful Pokédex assistant. When users ask questions or make requests "
    "about Pokémon, help them accomplish their goals. Always provide a user-friendly "
    "response based on the tool results."
)
DEFAULT_QUERY_STEPS = 6
NO_RESPONSE = "No response generated."
NO_TEXT_AFTER_TOOLS = "Tool was called but no text response was generated."


def tool_to_function(tool: types.Tool) -> dict[str, Any]:
    """Describe an MCP tool as an OpenAI function tool."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description or "",
            "parameters": tool.inputSchema,
        },
    }


class PokedexClient:
    """Client session against a Pokédex server subprocess."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        env: dict[str, str] | None = None,
        sampler: Sampler | None = None,
        model_name: str = DEFAULT_SAMPLING_MODEL,
        llm: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            command: Server command line, e.g. ["pokedex", "serve"]
            env: Environment for the server process (defaults to ours)
            sampler: Answers sampling requests; without one the client
                does not advertise the sampling capability
            model_name: Model reported in sampling results and used by query()
            llm: OpenAI client for query(); created on first use if omitted
        """
        if not command:
            raise ValueError("Server command cannot be empty")
        self._params = StdioServerParameters(
            command=command[0],
            args=list(command[1:]),
            env=env if env is not None else dict(os.environ),
        )
        self._sampling_callback = (
            make_sampling_callback(sampler, model_name) if sampler is not None else None
        )
        self._model_name = model_name
        self._llm = llm
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    async def __aenter__(self) -> PokedexClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        logger.info(f"Connecting to server: {self._params.command} {' '.join(self._params.args)}")
        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await stack.enter_async_context(stdio_client(self._params))
            session = await stack.enter_async_context(
                ClientSession(read_stream, write_stream, sampling_callback=self._sampling_callback)
            )
            init = await session.initialize()
        except BaseException:
            await stack.aclose()
            raise
        self._stack = stack
        self._session = session
        logger.info(f"Connected to {init.serverInfo.name} {init.serverInfo.version}")

    async def close(self) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._session = None

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError("Client not connected. Call connect() first.")
        return self._session

    async def list_tools(self) -> list[types.Tool]:
        result = await self.session.list_tools()
        return result.tools

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        logger.debug(f"Calling tool {name} with {arguments}")
        result = await self.session.call_tool(name, arguments or {})
        return result_text(result)

    async def read_resource(self, uri: str) -> str:
        result = await self.session.read_resource(AnyUrl(uri))
        for item in result.contents:
            if isinstance(item, types.TextResourceContents):
                return item.text
        raise ValueError(f"Resource {uri} has no text content")

    async def set_log_level(self, level: types.LoggingLevel) -> None:
        await self.session.set_logging_level(level)

    async def list_resources(self) -> list[types.Resource]:
        result = await self.session.list_resources()
        return result.resources

    async def list_resource_templates(self) -> list[types.ResourceTemplate]:
        result = await self.session.list_resource_templates()
        return result.resourceTemplates

    async def query(self, text: str, max_steps: int = DEFAULT_QUERY_STEPS) -> str:
        """Answer a natural-language request using the server's tools.

        The server's tools are offered to the OpenAI model as function
        tools. Each tool call the model makes is executed on the server and
        its text fed back, until the model answers in text or max_steps
        model turns have been used.

        Args:
            text: The user's request
            max_steps: Upper bound on model turns

        Returns:
            The model's final answer
        """
        session = self.session
        if self._llm is None:
            self._llm = AsyncOpenAI(api_key=os.environ.get("OPENAI_API_KEY"))

        tools = await self.list_tools()
        functions = [tool_to_function(tool) for tool in tools]
        logger.info(f"Processing query with tools: {', '.join(t.name for t in tools)}")

        messages: list[dict[str, Any]] = [
            {"role": "system", "content": ASSISTANT_PROMPT},
            {"role": "user", "content": text},
        ]
        called_tools = False

        for step in range(max_steps):
            response = await self._llm.chat.completions.create(
                model=self._model_name,
                messages=messages,  # type: ignore[arg-type]
                tools=functions,  # type: ignore[arg-type]
                tool_choice="auto",
            )
            message = response.choices[0].message
            if not message.tool_calls:
                logger.debug(f"Query answered after {step + 1} model turns")
                if message.content:
                    return message.content
                return NO_TEXT_AFTER_TOOLS if called_tools else NO_RESPONSE

            messages.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.function.name,
                                "arguments": call.function.arguments,
                            },
                        }
                        for call in message.tool_calls
                    ],
                }
            )
            for call in message.tool_calls:
                called_tools = True
                try:
                    arguments = json.loads(call.function.arguments or "{}")
                except json.JSONDecodeError:
                    logger.warning(f"Model sent malformed arguments for {call.function.name}")
                    arguments = {}
                result = await session.call_tool(call.function.name, arguments)
                messages.append(
                    {"role": "tool", "tool_call_id": call.id, "content": result_text(result)}
                )

        logger.warning(f"Query stopped after {max_steps} model turns")
        return NO_TEXT_AFTER_TOOLS if called_tools else NO_RESPONSE
