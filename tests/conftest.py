"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pokedex_mcp.store import PokedexStore


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Path of a Pokédex file that does not exist yet."""
    return tmp_path / "data" / "pokedex.json"


@pytest.fixture
def store(data_file: Path) -> PokedexStore:
    return PokedexStore(data_file)


@pytest.fixture
def make_entry() -> Callable[..., dict[str, Any]]:
    """Build a raw Pokédex entry dict."""

    def _make(entry_id: int, name: str, **fields: str) -> dict[str, Any]:
        return {
            "id": entry_id,
            "name": name,
            "type": fields.get("type", "Normal"),
            "region": fields.get("region", "Kanto"),
            "abilities": fields.get("abilities", "Run Away"),
        }

    return _make


@pytest.fixture
def seed(data_file: Path) -> Callable[[list[dict[str, Any]]], None]:
    """Write raw entries to the Pokédex file."""

    def _seed(entries: list[dict[str, Any]]) -> None:
        data_file.parent.mkdir(parents=True, exist_ok=True)
        data_file.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    return _seed


def read_raw(path: Path) -> list[dict[str, Any]]:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def stored(data_file: Path) -> Callable[[], list[dict[str, Any]]]:
    """Read the raw entries currently in the Pokédex file."""
    return lambda: read_raw(data_file) if data_file.exists() else []
