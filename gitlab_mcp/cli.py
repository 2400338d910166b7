"""Typer CLI for the GitLab MCP bridge."""

from __future__ import annotations

import asyncio
import json

import typer

from gitlab_mcp.config import Settings, configure_logging, load_settings
from gitlab_mcp.errors import ConfigurationError
from gitlab_mcp.gitlab_client import build_gitlab_client
from gitlab_mcp.server import serve, tool_catalog
from gitlab_mcp.tools import build_tool_registry

app = typer.Typer(help="MCP server exposing GitLab merge request review tools.")


def _load_settings_or_exit() -> Settings:
    """Resolve settings once, exiting with status 1 when they are incomplete."""
    try:
        return load_settings()
    except ConfigurationError as error:
        typer.echo(f"Configuration error: {error}", err=True)
        raise typer.Exit(code=1) from error


@app.command("serve")
def serve_command() -> None:
    """Serve the GitLab tools to an MCP host over stdio."""
    settings = _load_settings_or_exit()
    configure_logging(settings.log_level)
    asyncio.run(serve(settings))


async def _catalog_payload(settings: Settings) -> list[dict[str, object]]:
    async with build_gitlab_client(settings) as client:
        registry = build_tool_registry(client)
        return [tool.model_dump(exclude_none=True) for tool in tool_catalog(registry)]


@app.command("tools")
def tools_command() -> None:
    """Print the tool catalog advertised to MCP hosts."""
    settings = _load_settings_or_exit()
    payload = asyncio.run(_catalog_payload(settings))
    typer.echo(json.dumps(payload, indent=2))
