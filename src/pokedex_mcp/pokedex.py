"""Pokédex tools and resources.

Tools:
- catch-pokemon: store a Pokémon given by the caller
- list-pokedex: list every stored Pokémon
- discover-wild-pokemon: ask the client to invent a Pokémon, then catch it

Resources:
- pokedex://all: the full collection as JSON
- pokedex://{pokemonId}/entry: one entry as JSON, or a not-found payload
"""

from __future__ import annotations

import json
import logging

from .errors import DuplicateError, GenerationError, GenerationParseError, StorageError
from .generation import DEFAULT_MAX_TOKENS, GenerationBroker, parse_wild_pokemon, wild_pokemon_prompt
from .models import CatchRequest, EmptyInput
from .resources import ResourceRegistry
from .store import PokedexStore
from .tools import ToolDefinition, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

CATCH_TOOL = "catch-pokemon"
LIST_TOOL = "list-pokedex"
DISCOVER_TOOL = "discover-wild-pokemon"

ALL_URI = "pokedex://all"
ENTRY_URI_TEMPLATE = "pokedex://{pokemonId}/entry"

EMPTY_MESSAGE = "The Pokédex is empty. Go catch some Pokémon!"
NOT_FOUND_PAYLOAD = {"error": "Pokémon not found"}


class Pokedex:
    """Implements the Pokédex operations on top of a store and a broker."""

    def __init__(self, store: PokedexStore, broker: GenerationBroker) -> None:
        self.store = store
        self.broker = broker

    async def catch(self, request: CatchRequest) -> ToolResult:
        try:
            entry = await self.store.append(request)
        except DuplicateError as e:
            return ToolResult.fail(str(e))
        except StorageError as e:
            logger.error(f"Failed to catch {request.name}: {e}")
            return ToolResult.fail("Failed to add Pokémon to Pokédex")

        logger.info(f"Successfully caught {entry.name} with ID {entry.id}")
        return ToolResult.ok(f"Pokémon with ID {entry.id} caught successfully!")

    async def list_entries(self, _: EmptyInput | None = None) -> ToolResult:
        try:
            entries = self.store.load_all()
        except StorageError as e:
            logger.error(f"Failed to list Pokédex: {e}")
            return ToolResult.fail(f"Failed to read Pokédex: {e}")

        if not entries:
            logger.info("Pokédex is empty")
            return ToolResult.ok(EMPTY_MESSAGE)

        lines = [entry.summary_line() for entry in sorted(entries, key=lambda e: e.id)]
        logger.info(f"Listed {len(entries)} Pokémon")
        return ToolResult.ok(f"Pokédex entries ({len(entries)} total):\n" + "\n".join(lines))

    async def discover(self, _: EmptyInput | None = None) -> ToolResult:
        logger.info("Requesting AI-generated Pokémon")
        try:
            text = await self.broker.request_generation(
                wild_pokemon_prompt(), max_tokens=DEFAULT_MAX_TOKENS
            )
            wild = parse_wild_pokemon(text)
        except GenerationParseError as e:
            logger.error(f"Failed to parse AI response: {e}")
            return ToolResult.fail("The wild Pokémon data was corrupted and it escaped!")
        except GenerationError as e:
            logger.error(f"Sampling failed: {e}")
            return ToolResult.fail("Failed to discover a wild Pokémon")

        try:
            entry = await self.store.append(wild)
        except DuplicateError:
            return ToolResult.fail(
                f"The wild {wild.name} fled because another one is already in your Pokédex!"
            )
        except StorageError as e:
            logger.error(f"Failed to store wild {wild.name}: {e}")
            return ToolResult.fail("The wild Pokémon got away...")

        logger.info(f"Discovered and caught wild {entry.name}")
        return ToolResult.ok(f"A wild {entry.name} appeared and was caught! ID: {entry.id}")

    async def read_all(self) -> str:
        entries = self.store.load_all()
        logger.info(f"Retrieved {len(entries)} Pokémon")
        return json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)

    async def read_entry(self, pokemonId: str) -> str:  # noqa: N803
        # Plain ASCII digits only; int() would also accept "+2", "2_0" and "٢"
        entry_id = int(pokemonId) if pokemonId.isascii() and pokemonId.isdigit() else None

        entry = self.store.get(entry_id) if entry_id is not None and entry_id > 0 else None
        if entry is None:
            logger.warning(f"Pokémon not found: {pokemonId}")
            return json.dumps(NOT_FOUND_PAYLOAD, ensure_ascii=False)

        logger.info(f"Retrieved Pokémon: {entry.name}")
        return json.dumps(entry.to_dict(), ensure_ascii=False)


def build_tool_registry(pokedex: Pokedex) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name=CATCH_TOOL,
            title="Catch Pokémon",
            description="Add a new, caught Pokémon to the Pokédex.",
            input_model=CatchRequest,
            handler=pokedex.catch,
        )
    )
    registry.register(
        ToolDefinition(
            name=LIST_TOOL,
            title="List Pokédex",
            description="List all Pokémon currently in the Pokédex",
            input_model=EmptyInput,
            handler=pokedex.list_entries,
        )
    )
    registry.register(
        ToolDefinition(
            name=DISCOVER_TOOL,
            title="Discover Wild Pokémon",
            description="Discover and catch a wild Pokémon with AI-generated data",
            input_model=EmptyInput,
            handler=pokedex.discover,
        )
    )
    return registry


def build_resource_registry(pokedex: Pokedex) -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register_static(
        ALL_URI,
        "pokemon-list",
        pokedex.read_all,
        title="All Pokémon",
        description="Get all Pokémon data from the Pokédex",
        mime_type="application/json",
    )
    registry.register_template(
        ENTRY_URI_TEMPLATE,
        "pokedex-entry",
        pokedex.read_entry,
        title="Pokédex Entry",
        description="Get a specific Pokémon's details from the Pokédex",
        mime_type="application/json",
    )
    return registry
