"""Runtime configuration.

Settings come from environment variables; CLI options override them.

    POKEDEX_DATA_FILE         Path of the Pokédex JSON file
    POKEDEX_SAMPLING_TIMEOUT  Seconds to wait for a sampling answer
    POKEDEX_LOG_LEVEL         Log level name (DEBUG, INFO, ...)
    POKEDEX_SAMPLING_MODEL    OpenAI model used by the client sampler
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .generation import DEFAULT_TIMEOUT

DEFAULT_DATA_FILE = Path("data") / "pokedex.json"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SAMPLING_MODEL = "gpt-4o-mini"

SERVER_NAME = "pokedex-server"
SERVER_VERSION = "1.0.0"


def check_log_level(name: str, source: str = "POKEDEX_LOG_LEVEL") -> str:
    """Normalize a log level name, rejecting names logging does not know.

    Raises:
        ValueError: If name is not a standard logging level
    """
    level = name.upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"{source} must be a logging level name, got {name!r}")
    return level


@dataclass(frozen=True)
class Settings:
    data_file: Path = DEFAULT_DATA_FILE
    sampling_timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    sampling_model: str = DEFAULT_SAMPLING_MODEL

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ValueError: If POKEDEX_SAMPLING_TIMEOUT is not a positive number or
                POKEDEX_LOG_LEVEL is not a logging level name
        """
        env = os.environ if environ is None else environ

        timeout_raw = env.get("POKEDEX_SAMPLING_TIMEOUT")
        sampling_timeout = DEFAULT_TIMEOUT
        if timeout_raw:
            try:
                sampling_timeout = float(timeout_raw)
            except ValueError:
                raise ValueError(
                    f"POKEDEX_SAMPLING_TIMEOUT must be a number, got {timeout_raw!r}"
                ) from None
            if sampling_timeout <= 0:
                raise ValueError("POKEDEX_SAMPLING_TIMEOUT must be positive")

        return cls(
            data_file=Path(env.get("POKEDEX_DATA_FILE") or DEFAULT_DATA_FILE),
            sampling_timeout=sampling_timeout,
            log_level=check_log_level(env.get("POKEDEX_LOG_LEVEL") or DEFAULT_LOG_LEVEL),
            sampling_model=env.get("POKEDEX_SAMPLING_MODEL") or DEFAULT_SAMPLING_MODEL,
        )

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "data_file" in values:
            values["data_file"] = Path(values["data_file"])
        if "log_level" in values:
            values["log_level"] = check_log_level(str(values["log_level"]), "--log-level")
        return replace(self, **values)
