"""Data models for Pokédex entries and tool inputs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CatchRequest(BaseModel):
    """A Pokémon that is about to be caught.

    This is the input contract of the catch tool and the shape the
    discover tool expects back from the client's model. Unknown fields
    are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, description="Name of the Pokémon")
    type: str = Field(description="One or two types separated by /")
    region: str = Field(description="Region where the Pokémon lives")
    abilities: str = Field(description="Comma-separated list of abilities")


class PokedexEntry(BaseModel):
    """A caught Pokémon as persisted in the Pokédex file.

    Extra keys found in the file are kept so that rewriting the file
    never drops data.
    """

    model_config = ConfigDict(extra="allow")

    id: int = Field(gt=0)
    name: str = Field(min_length=1)
    type: str
    region: str
    abilities: str

    @classmethod
    def from_request(cls, entry_id: int, request: CatchRequest) -> PokedexEntry:
        """Build a stored entry from a catch request and its assigned id."""
        return cls(id=entry_id, **request.model_dump())

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSON file and resource payloads."""
        return self.model_dump()

    def summary_line(self) -> str:
        """Format as a single listing line."""
        return f"#{self.id} {self.name} ({self.type}) - {self.region}"


class EmptyInput(BaseModel):
    """Input contract for tools that take no arguments."""

    model_config = ConfigDict(extra="ignore")
