"""MCP server setup and lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from pydantic import AnyUrl

from tmux_pilot import __version__
from tmux_pilot.config import AppConfig
from tmux_pilot.server.resources import RESOURCE_TEMPLATES, ResourceAdapter
from tmux_pilot.server.tools import TOOLS, ToolHandler
from tmux_pilot.services.commands import CommandEngine
from tmux_pilot.services.tmux import TmuxClient
from tmux_pilot.storage.registry import CommandRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "tmux-pilot"


@dataclass
class ServerContext:
    """Objects owned by one server process."""

    config: AppConfig
    tmux: TmuxClient
    registry: CommandRegistry
    engine: CommandEngine
    tools: ToolHandler
    resources: ResourceAdapter


def build_context(config: AppConfig, tmux: TmuxClient | None = None) -> ServerContext:
    tmux = tmux or TmuxClient()
    registry = CommandRegistry()
    engine = CommandEngine(tmux, registry, shell=config.shell.type, config=config.commands)
    return ServerContext(
        config=config,
        tmux=tmux,
        registry=registry,
        engine=engine,
        tools=ToolHandler(tmux, engine, config),
        resources=ResourceAdapter(engine, tmux, config),
    )


def create_server(ctx: ServerContext) -> Server:
    """Build the MCP server and register tools and resources."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
        logger.debug("Tool call: %s", name)
        return await ctx.tools.call(name, arguments)

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return await ctx.resources.list_resources()

    @server.list_resource_templates()
    async def list_resource_templates() -> list[types.ResourceTemplate]:
        return RESOURCE_TEMPLATES

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        text = await ctx.resources.read_resource(str(uri))
        return [ReadResourceContents(content=text, mime_type="text/plain")]

    return server


async def run_server(config: AppConfig) -> None:
    """Serve MCP over stdio until the client disconnects."""
    ctx = build_context(config)
    server = create_server(ctx)
    logger.info("Starting %s v%s (shell: %s)", SERVER_NAME, __version__, config.shell.type)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        logger.info("Server stopped with %d tracked command(s)", len(ctx.registry))
