"""Tests for the generation broker and wild-Pokémon parsing."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import mcp.types as types
import pytest
from mcp.shared.exceptions import McpError

from pokedex_mcp.errors import (
    GenerationError,
    GenerationParseError,
    GenerationTimeoutError,
    UnsupportedResponseType,
)
from pokedex_mcp.generation import (
    GenerationBroker,
    parse_wild_pokemon,
    strip_code_fences,
    wild_pokemon_prompt,
)

# =============================================================================
# Test Fixtures
# =============================================================================


def text_result(text: str) -> types.CreateMessageResult:
    return types.CreateMessageResult(
        role="assistant",
        content=types.TextContent(type="text", text=text),
        model="test-model",
    )


def create_mock_session(result: types.CreateMessageResult | None = None) -> MagicMock:
    """Create a mock server session with create_message support."""
    session = MagicMock()
    session.create_message = AsyncMock(return_value=result or text_result("hello"))
    return session


# =============================================================================
# strip_code_fences / parse_wild_pokemon
# =============================================================================


class TestStripCodeFences:
    def test_plain_text_untouched(self) -> None:
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_strips_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_bare_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_surrounding_whitespace(self) -> None:
        assert strip_code_fences('  \n```json{"a": 1}```  \n') == '{"a": 1}'


class TestParseWildPokemon:
    def test_parses_valid_json(self) -> None:
        wild = parse_wild_pokemon(
            '{"name": "Crystafern", "type": "Rock/Grass", "region": "Mystara", '
            '"abilities": "Crystal Guard, Photosynthesis"}'
        )

        assert wild.name == "Crystafern"
        assert wild.type == "Rock/Grass"
        assert wild.region == "Mystara"
        assert wild.abilities == "Crystal Guard, Photosynthesis"

    def test_parses_fenced_json(self) -> None:
        wild = parse_wild_pokemon(
            '```json\n{"name": "Zap", "type": "Electric", "region": "Kanto", "abilities": "Static"}\n```'
        )
        assert wild.name == "Zap"

    def test_ignores_extra_keys(self) -> None:
        wild = parse_wild_pokemon(
            '{"name": "Zap", "type": "Electric", "region": "Kanto", "abilities": "Static", "hp": 40}'
        )
        assert wild.name == "Zap"

    def test_malformed_text_raises(self) -> None:
        with pytest.raises(GenerationParseError, match="not valid JSON"):
            parse_wild_pokemon("A wild Pokémon appears! It is called Zap.")

    def test_non_object_raises(self) -> None:
        with pytest.raises(GenerationParseError, match="not an object"):
            parse_wild_pokemon('["Zap"]')

    def test_missing_fields_raise(self) -> None:
        with pytest.raises(GenerationParseError, match="incomplete"):
            parse_wild_pokemon('{"name": "Zap"}')

    def test_empty_name_raises(self) -> None:
        with pytest.raises(GenerationParseError):
            parse_wild_pokemon('{"name": "", "type": "x", "region": "y", "abilities": "z"}')

    def test_parse_error_is_a_generation_error(self) -> None:
        assert issubclass(GenerationParseError, GenerationError)


class TestWildPokemonPrompt:
    def test_includes_seed_and_keys(self) -> None:
        prompt = wild_pokemon_prompt(seed=0.5)

        assert "Random seed: 0.5" in prompt
        for key in ("name", "type", "region", "abilities"):
            assert f'"{key}"' in prompt

    def test_random_seed_differs(self) -> None:
        assert wild_pokemon_prompt() != wild_pokemon_prompt()


# =============================================================================
# GenerationBroker
# =============================================================================


class TestGenerationBroker:
    @pytest.mark.asyncio
    async def test_returns_generated_text(self) -> None:
        session = create_mock_session(text_result("generated"))
        broker = GenerationBroker(lambda: session)

        text = await broker.request_generation("make something", max_tokens=50)

        assert text == "generated"
        session.create_message.assert_awaited_once()
        kwargs = session.create_message.call_args.kwargs
        assert kwargs["max_tokens"] == 50
        [message] = kwargs["messages"]
        assert message.role == "user"
        assert message.content.text == "make something"

    @pytest.mark.asyncio
    async def test_default_max_tokens(self) -> None:
        session = create_mock_session()
        broker = GenerationBroker(lambda: session)

        await broker.request_generation("x")

        assert session.create_message.call_args.kwargs["max_tokens"] == 1024

    @pytest.mark.asyncio
    async def test_no_session_raises(self) -> None:
        broker = GenerationBroker(lambda: None)

        with pytest.raises(GenerationError, match="No client session"):
            await broker.request_generation("x")

    @pytest.mark.asyncio
    async def test_non_text_content_raises(self) -> None:
        session = create_mock_session(
            types.CreateMessageResult(
                role="assistant",
                content=types.ImageContent(type="image", data="aGk=", mimeType="image/png"),
                model="test-model",
            )
        )
        broker = GenerationBroker(lambda: session)

        with pytest.raises(UnsupportedResponseType) as exc_info:
            await broker.request_generation("x")

        assert exc_info.value.content_type == "image"

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        async def never_answers(**kwargs):
            await asyncio.sleep(10)

        session = MagicMock()
        session.create_message = never_answers
        broker = GenerationBroker(lambda: session, timeout=0.01)

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await broker.request_generation("x")

        assert exc_info.value.timeout == 0.01
        assert broker.get_pending_count() == 0

    @pytest.mark.asyncio
    async def test_client_error_raises_generation_error(self) -> None:
        session = MagicMock()
        session.create_message = AsyncMock(
            side_effect=McpError(types.ErrorData(code=types.INTERNAL_ERROR, message="no model"))
        )
        broker = GenerationBroker(lambda: session)

        with pytest.raises(GenerationError, match="no model"):
            await broker.request_generation("x")

    @pytest.mark.asyncio
    async def test_tracks_pending_requests_while_waiting(self) -> None:
        release = asyncio.Event()

        async def slow_answer(**kwargs):
            await release.wait()
            return text_result("late")

        session = MagicMock()
        session.create_message = slow_answer
        broker = GenerationBroker(lambda: session)

        task = asyncio.create_task(broker.request_generation("pending prompt", max_tokens=10))
        await asyncio.sleep(0)

        assert broker.get_pending_count() == 1
        [pending] = broker.get_pending_requests()
        assert pending["prompt"] == "pending prompt"
        assert pending["request_id"].startswith("gen_")

        release.set()
        assert await task == "late"
        assert broker.get_pending_count() == 0
