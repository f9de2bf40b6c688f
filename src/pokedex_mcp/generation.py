"""Generation broker for client-side sampling.

A tool handler that needs generated text asks the connected client to
produce it. The request travels back over the same session while the
original tool call is still in flight.

Flow:
1. Tool handler calls broker.request_generation(prompt)
2. Broker sends sampling/createMessage to the client
3. Client runs its model and replies with a CreateMessageResult
4. Broker returns the text and the tool call resumes

The SDK correlates the reply with the request by JSON-RPC id; the broker
keeps its own pending table for logging and shutdown, and bounds the wait
with a timeout.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import mcp.types as types
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from .errors import (
    GenerationError,
    GenerationParseError,
    GenerationTimeoutError,
    UnsupportedResponseType,
)
from .models import CatchRequest

if TYPE_CHECKING:
    from mcp.server.session import ServerSession

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1024
DEFAULT_TIMEOUT = 120.0


def wild_pokemon_prompt(seed: float | None = None) -> str:
    """The fixed creative-writing prompt used by the discover tool."""
    if seed is None:
        seed = random.random()
    return (
        "Please generate a new, unique, and creative Pokémon. "
        f"Be creative and avoid duplicates. Random seed: {seed}. "
        "The Pokémon should be inspired by different concepts like: animals, plants, "
        "objects, myths, elements, or abstract ideas. Mix different type combinations "
        "creatively. Use various regions including Kanto, Johto, Hoenn, Sinnoh, Unova, "
        "Kalos, Alola, Galar, Paldea, or invent new regions. "
        'Return it in JSON format with exactly these keys: "name" (string, must be '
        'unique and creative), "type" (string, one or two types separated by /), '
        '"region" (string), and "abilities" (string, comma-separated list of 2-3 '
        'abilities). Example: {"name": "Crystafern", "type": "Rock/Grass", '
        '"region": "Mystara", "abilities": "Crystal Guard, Photosynthesis, Rock Polish"}. '
        "Return ONLY the JSON object, no markdown, no code blocks, no additional text."
    )


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json (or ```) fence and a trailing ``` fence."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[len("```json") :]
    elif text.startswith("```"):
        text = text[len("```") :]
    if text.endswith("```"):
        text = text[: -len("```")]
    return text.strip()


def parse_wild_pokemon(text: str) -> CatchRequest:
    """Parse generated text into a catch request.

    Raises:
        GenerationParseError: If the text is not a JSON object with the
            expected fields
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise GenerationParseError(f"Generated text is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationParseError("Generated JSON is not an object")

    try:
        return CatchRequest.model_validate(data)
    except ValidationError as e:
        raise GenerationParseError(f"Generated Pokémon is incomplete: {e}") from e


@dataclass
class PendingGeneration:
    """A sampling request waiting for the client's answer."""

    request_id: str
    prompt: str
    max_tokens: int
    created_at: float = field(default_factory=lambda: asyncio.get_running_loop().time())


class GenerationBroker:
    """Sends sampling requests to the client of the current session.

    Interface:
        request_generation(prompt, max_tokens) -> str
    """

    def __init__(
        self,
        get_session: Callable[[], ServerSession | None],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the broker.

        Args:
            get_session: Callable returning the session of the in-flight
                request (lazy access), or None outside a request
            timeout: Seconds to wait for the client's answer
        """
        self._get_session = get_session
        self.timeout = timeout
        self._pending: dict[str, PendingGeneration] = {}

    async def request_generation(
        self,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Ask the client to generate text for a prompt.

        Args:
            prompt: User message sent to the client's model
            max_tokens: Upper bound on the generated length

        Returns:
            The generated text

        Raises:
            GenerationTimeoutError: If the client does not answer in time
            UnsupportedResponseType: If the answer is not text
            GenerationError: If there is no session or the client failed
        """
        session = self._get_session()
        if session is None:
            raise GenerationError("No client session available for sampling")

        request_id = f"gen_{uuid.uuid4().hex[:12]}"
        self._pending[request_id] = PendingGeneration(
            request_id=request_id,
            prompt=prompt,
            max_tokens=max_tokens,
        )

        try:
            logger.debug(f"Sending sampling request {request_id}")
            result = await asyncio.wait_for(
                session.create_message(
                    messages=[
                        types.SamplingMessage(
                            role="user",
                            content=types.TextContent(type="text", text=prompt),
                        )
                    ],
                    max_tokens=max_tokens,
                ),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            logger.warning(f"Sampling request {request_id} timed out after {self.timeout}s")
            raise GenerationTimeoutError(self.timeout) from e
        except McpError as e:
            logger.warning(f"Sampling request {request_id} was rejected: {e}")
            raise GenerationError(f"Client failed to generate content: {e}") from e
        finally:
            self._pending.pop(request_id, None)

        return self._extract_text(request_id, result)

    def _extract_text(self, request_id: str, result: types.CreateMessageResult) -> str:
        content: Any = result.content
        if not isinstance(content, types.TextContent):
            content_type = getattr(content, "type", type(content).__name__)
            logger.error(f"Sampling request {request_id} returned {content_type} content")
            raise UnsupportedResponseType(str(content_type))

        logger.debug(
            f"Received sampling response for {request_id} "
            f"({len(content.text)} chars, model={result.model})"
        )
        return content.text

    def get_pending_count(self) -> int:
        """Get the number of sampling requests awaiting an answer."""
        return len(self._pending)

    def get_pending_requests(self) -> list[dict[str, Any]]:
        return [
            {
                "request_id": p.request_id,
                "prompt": p.prompt,
                "max_tokens": p.max_tokens,
            }
            for p in self._pending.values()
        ]
