"""MCP server wiring: exposes the tool registry over the stdio transport."""

from __future__ import annotations

import logging

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from gitlab_mcp.config import SERVER_NAME, Settings, get_server_version
from gitlab_mcp.gitlab_client import build_gitlab_client
from gitlab_mcp.tools import Dispatcher, ToolCallResult, ToolRegistry, build_tool_registry

logger = logging.getLogger(__name__)


def tool_catalog(registry: ToolRegistry) -> list[types.Tool]:
    """Describe every registered tool for capability discovery."""
    return [
        types.Tool(
            name=definition.name,
            description=definition.description,
            inputSchema=definition.input_schema(),
        )
        for definition in registry.list()
    ]


def to_text_content(result: ToolCallResult) -> list[types.TextContent]:
    """Convert the dispatcher envelope into MCP text content."""
    return [types.TextContent(type="text", text=block.text) for block in result.content]


def create_server(registry: ToolRegistry, *, version: str) -> Server:
    """Create an MCP server whose handlers delegate to the dispatcher."""
    server: Server = Server(SERVER_NAME, version=version)
    dispatcher = Dispatcher(registry)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_catalog(registry)

    # Registered without the SDK decorator, which validates input against the
    # advertised schema and replaces missing arguments with an empty object.
    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        result = await dispatcher.dispatch(request.params.name, request.params.arguments)
        return types.ServerResult(
            types.CallToolResult(content=to_text_content(result), isError=result.is_error)
        )

    server.request_handlers[types.CallToolRequest] = call_tool
    return server


async def serve(settings: Settings) -> None:
    """Run the MCP server over stdio until the host disconnects."""
    version = get_server_version()
    logger.info("%s v%s", SERVER_NAME, version)
    logger.info("API URL: %s", settings.api_url)

    async with build_gitlab_client(settings) as client:
        server = create_server(build_tool_registry(client), version=version)
        async with stdio_server() as (read_stream, write_stream):
            logger.info("%s running on stdio", SERVER_NAME)
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
