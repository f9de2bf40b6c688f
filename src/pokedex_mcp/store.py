"""
Pokédex persistence.

Storage location: a single JSON file (default ./data/pokedex.json)
holding an array of entries: [{"id", "name", "type", "region", "abilities"}]
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .errors import DuplicateError, StorageError
from .models import CatchRequest, PokedexEntry

logger = logging.getLogger(__name__)


def find_by_name(entries: list[PokedexEntry], name: str) -> PokedexEntry | None:
    """Find an entry by case-insensitive name."""
    wanted = name.lower()
    for entry in entries:
        if entry.name.lower() == wanted:
            return entry
    return None


def next_entry_id(entries: list[PokedexEntry]) -> int:
    """Next id: one past the highest id in the collection (1 when empty)."""
    return max((entry.id for entry in entries), default=0) + 1


def dump_entries(entries: list[PokedexEntry]) -> str:
    """Serialize entries to the on-disk JSON format."""
    return json.dumps([entry.to_dict() for entry in entries], indent=2, ensure_ascii=False)


def parse_entries(content: str) -> list[PokedexEntry]:
    """Parse the on-disk JSON format.

    Raises:
        StorageError: If the content is not a JSON array of valid entries
    """
    if not content.strip():
        return []

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StorageError(f"Pokédex file is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise StorageError("Pokédex file must contain a JSON array")

    try:
        return [PokedexEntry.model_validate(item) for item in data]
    except ValidationError as e:
        raise StorageError(f"Pokédex file contains an invalid entry: {e}") from e


class PokedexStore:
    """
    Manages the Pokédex file.

    Contract:
    - Inputs: CatchRequest candidates, entry ids
    - Outputs: PokedexEntry objects
    - Side Effects: Rewrites the whole file on every successful append
    - Errors: StorageError for unreadable/unwritable files,
      DuplicateError for name collisions

    Every call reloads the file; nothing is cached between operations.
    Appends are serialized through a lock and written atomically
    (temporary file + rename).
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize with the path of the backing file.

        Args:
            path: JSON file holding the collection. It does not need to
                exist yet; a missing file is an empty Pokédex.
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load_all(self) -> list[PokedexEntry]:
        """Load every entry in stored order.

        Raises:
            StorageError: If the file exists but cannot be read or parsed
        """
        if not self.path.exists():
            logger.debug(f"Pokédex file {self.path} does not exist, treating as empty")
            return []

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        entries = parse_entries(content)
        logger.debug(f"Loaded {len(entries)} entries from {self.path}")
        return entries

    def get(self, entry_id: int) -> PokedexEntry | None:
        """Get the first entry with the given id, or None."""
        for entry in self.load_all():
            if entry.id == entry_id:
                return entry
        return None

    async def append(self, candidate: CatchRequest) -> PokedexEntry:
        """Add a new entry and persist the collection.

        Args:
            candidate: The Pokémon to store

        Returns:
            The stored entry with its assigned id

        Raises:
            DuplicateError: If an entry with the same name exists
            StorageError: If the file cannot be read or written
        """
        async with self._lock:
            entries = self.load_all()

            existing = find_by_name(entries, candidate.name)
            if existing is not None:
                logger.warning(
                    f"Pokémon {candidate.name} already exists with ID {existing.id}"
                )
                raise DuplicateError(candidate.name, existing.id)

            entry = PokedexEntry.from_request(next_entry_id(entries), candidate)
            entries.append(entry)
            self.save_all(entries)

        logger.info(f"Saved {entry.name} to Pokédex with ID {entry.id}")
        return entry

    def save_all(self, entries: list[PokedexEntry]) -> None:
        """Replace the file contents atomically.

        Raises:
            StorageError: If the file cannot be written
        """
        content = dump_entries(entries) + "\n"
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
