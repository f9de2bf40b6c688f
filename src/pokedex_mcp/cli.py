"""Pokédex CLI.

Usage:
    pokedex serve                              # Run the MCP server over stdio
    pokedex serve --data-file ./pokedex.json   # Use a specific Pokédex file

    pokedex entries list                       # List stored Pokémon
    pokedex entries show <id>                  # Show one Pokémon

    pokedex tools                              # List the server's tools
    pokedex resources                          # List resources and templates
    pokedex read pokedex://{pokemonId}/entry --param pokemonId=1
    pokedex call list-pokedex                  # Call a tool on a spawned server
    pokedex call catch-pokemon --arg name=Pika --arg type=Electric ...
    pokedex ask "Catch me a wild Pokémon"      # Let the model use the tools
"""

from __future__ import annotations

import asyncio
import json
import shlex
import sys
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import click

from .config import Settings
from .errors import StorageError
from .logging_setup import configure_stdio_safe_logging

if TYPE_CHECKING:
    from .client import PokedexClient

T = TypeVar("T")

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"


def truncate(text: str | None, max_len: int = 40) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _load_settings(data_file: str | None = None, **overrides: Any) -> Settings:
    try:
        return Settings.from_env().with_overrides(data_file=data_file, **overrides)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


def _parse_pairs(pairs: tuple[str, ...], param_hint: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {pair!r}", param_hint=param_hint)
        values[key] = value
    return values


@click.group()
def main() -> None:
    """Pokédex - MCP server with tools, resources and sampling."""


@main.command()
@click.option("--data-file", type=click.Path(dir_okay=False), help="Pokédex JSON file")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
@click.option("--sampling-timeout", type=float, help="Seconds to wait for sampling answers")
def serve(data_file: str | None, log_level: str | None, sampling_timeout: float | None) -> None:
    """Run the Pokédex MCP server over stdio."""
    settings = _load_settings(data_file, log_level=log_level, sampling_timeout=sampling_timeout)
    if settings.sampling_timeout <= 0:
        raise click.BadParameter("must be positive", param_hint="--sampling-timeout")

    configure_stdio_safe_logging(settings.log_level)

    from .server import PokedexServer

    asyncio.run(PokedexServer(settings).run_stdio())


# =============================================================================
# Entry commands
# =============================================================================


@main.group()
def entries() -> None:
    """Inspect the Pokédex file directly."""


@entries.command("list")
@click.option("--data-file", type=click.Path(dir_okay=False), help="Pokédex JSON file")
@click.option(
    "--format",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
def entries_list(data_file: str | None, output_format: str) -> None:
    """List stored Pokémon sorted by id."""
    from .store import PokedexStore

    settings = _load_settings(data_file)
    try:
        stored = sorted(PokedexStore(settings.data_file).load_all(), key=lambda e: e.id)
    except StorageError as e:
        raise click.ClickException(str(e)) from e

    if output_format == FORMAT_JSON:
        click.echo(json.dumps([e.to_dict() for e in stored], indent=2, ensure_ascii=False))
        return

    if not stored:
        click.echo("The Pokédex is empty.")
        return

    click.echo(f"{'ID':<6} {'NAME':<20} {'TYPE':<18} {'REGION':<12} ABILITIES")
    click.echo("-" * 80)
    for entry in stored:
        click.echo(
            f"{entry.id:<6} {truncate(entry.name, 20):<20} {truncate(entry.type, 18):<18} "
            f"{truncate(entry.region, 12):<12} {truncate(entry.abilities)}"
        )
    click.echo(f"\nTotal: {len(stored)} Pokémon")


@entries.command("show")
@click.argument("entry_id", type=int)
@click.option("--data-file", type=click.Path(dir_okay=False), help="Pokédex JSON file")
@click.option(
    "--format",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
def entries_show(entry_id: int, data_file: str | None, output_format: str) -> None:
    """Show one Pokémon by id."""
    from .store import PokedexStore

    settings = _load_settings(data_file)
    try:
        entry = PokedexStore(settings.data_file).get(entry_id)
    except StorageError as e:
        raise click.ClickException(str(e)) from e

    if entry is None:
        click.echo(f"Pokémon not found: {entry_id}", err=True)
        sys.exit(1)

    if output_format == FORMAT_JSON:
        click.echo(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False))
        return

    click.echo(f"#{entry.id} {entry.name}")
    click.echo(f"  Type:      {entry.type}")
    click.echo(f"  Region:    {entry.region}")
    click.echo(f"  Abilities: {entry.abilities}")




# =============================================================================
# Client commands
# =============================================================================


def server_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by commands that spawn a server."""
    func = click.option("--model", help="OpenAI model used for sampling and queries")(func)
    func = click.option(
        "--server-command",
        default=f"{shlex.quote(sys.executable)} -m pokedex_mcp",
        show_default=True,
        help="Command that starts the server",
    )(func)
    return func


def _with_client(
    server_command: str,
    model: str | None,
    action: Callable[[PokedexClient], Awaitable[T]],
) -> T:
    """Spawn the server, run action against a connected client and return its result.

    Sampling requests from the server are answered with OpenAI.
    """
    from .client import OpenAISampler, PokedexClient

    settings = _load_settings(sampling_model=model)

    async def _run() -> T:
        async with PokedexClient(
            shlex.split(server_command),
            sampler=OpenAISampler(model=settings.sampling_model),
            model_name=settings.sampling_model,
        ) as client:
            return await action(client)

    return asyncio.run(_run())


@main.command()
@server_options
def tools(server_command: str, model: str | None) -> None:
    """List the server's tools."""

    async def _list(client: PokedexClient) -> list[Any]:
        return await client.list_tools()

    for tool in _with_client(server_command, model, _list):
        click.echo(f"{tool.name:<24} {truncate(tool.description, 60)}")


@main.command()
@server_options
def resources(server_command: str, model: str | None) -> None:
    """List the server's resources and resource templates."""

    async def _list(client: PokedexClient) -> tuple[list[Any], list[Any]]:
        return await client.list_resources(), await client.list_resource_templates()

    static, templates = _with_client(server_command, model, _list)
    for resource in static:
        click.echo(f"{str(resource.uri).rstrip('/'):<32} {resource.name}")
    for template in templates:
        click.echo(f"{template.uriTemplate:<32} {template.name} (template)")


@main.command()
@click.argument("uri")
@click.option("--param", "param_pairs", multiple=True, help="Template value as key=value")
@server_options
def read(uri: str, param_pairs: tuple[str, ...], server_command: str, model: str | None) -> None:
    """Read a resource, filling template placeholders from --param."""
    from .resources import expand_template

    try:
        concrete = expand_template(uri, _parse_pairs(param_pairs, "--param"))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--param") from e

    async def _read(client: PokedexClient) -> str:
        return await client.read_resource(concrete)

    click.echo(_with_client(server_command, model, _read))


@main.command()
@click.argument("tool_name")
@click.option("--arg", "arg_pairs", multiple=True, help="Tool argument as key=value")
@server_options
def call(tool_name: str, arg_pairs: tuple[str, ...], server_command: str, model: str | None) -> None:
    """Call a tool on a spawned server and print its result."""
    arguments = _parse_pairs(arg_pairs, "--arg")

    async def _call(client: PokedexClient) -> str:
        return await client.call_tool(tool_name, arguments)

    click.echo(_with_client(server_command, model, _call))


@main.command()
@click.argument("question")
@server_options
def ask(question: str, server_command: str, model: str | None) -> None:
    """Ask a natural-language question; the model may call the server's tools."""

    async def _ask(client: PokedexClient) -> str:
        return await client.query(question)

    click.echo(_with_client(server_command, model, _ask))


if __name__ == "__main__":
    main()
