"""Run the Pokédex server over stdio: python -m pokedex_mcp"""

from __future__ import annotations

import asyncio
import logging
import sys

from .config import Settings
from .logging_setup import configure_stdio_safe_logging
from .server import PokedexServer


def main() -> None:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        sys.exit(f"Invalid configuration: {e}")

    configure_stdio_safe_logging(settings.log_level)
    logging.getLogger(__name__).info("Starting Pokédex server (stdio mode)")
    asyncio.run(PokedexServer(settings).run_stdio())


if __name__ == "__main__":
    main()
