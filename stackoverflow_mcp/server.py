"""MCP server binding: exposes the tools over stdio."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    ErrorData,
    TextContent,
    Tool,
)

from stackoverflow_mcp import __version__
from stackoverflow_mcp.collector.collector import SearchCollector
from stackoverflow_mcp.collector.error_handler import ThrottledInvoker
from stackoverflow_mcp.collector.rate_limiter import RateLimiter
from stackoverflow_mcp.config import Config
from stackoverflow_mcp.errors import InvalidInput, StackOverflowMCPError, UnknownTool
from stackoverflow_mcp.policy.write_gate import WritePolicyGate
from stackoverflow_mcp.stackexchange_client import StackExchangeClient
from stackoverflow_mcp.tools.dispatcher import ToolDispatcher
from stackoverflow_mcp.tools.schemas import list_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "stackoverflow-mcp"


@dataclass
class Components:
    """The wired object graph behind one server process."""

    rate_limiter: RateLimiter
    invoker: ThrottledInvoker
    client: StackExchangeClient
    collector: SearchCollector
    gate: WritePolicyGate
    dispatcher: ToolDispatcher


def build_components(config: Config, prometheus_exporter=None) -> Components:
    """
    Wire the core around a single shared rate limiter.

    Args:
        config: Application configuration
        prometheus_exporter: Optional Prometheus exporter for metrics
    """
    rate_limiter = RateLimiter(config.rate_limit)
    invoker = ThrottledInvoker(rate_limiter, config.rate_limit, prometheus_exporter)
    client = StackExchangeClient(config, invoker, prometheus_exporter=prometheus_exporter)
    collector = SearchCollector(client)
    gate = WritePolicyGate(client, config.credentials, prometheus_exporter)
    dispatcher = ToolDispatcher(collector, gate, prometheus_exporter)
    return Components(rate_limiter, invoker, client, collector, gate, dispatcher)


def to_error_data(error: StackOverflowMCPError) -> ErrorData:
    """Map a core error onto an MCP error, keeping its class name and message."""
    if isinstance(error, UnknownTool):
        code = METHOD_NOT_FOUND
    elif isinstance(error, InvalidInput):
        code = INVALID_PARAMS
    else:
        code = INTERNAL_ERROR
    return ErrorData(code=code, message=f"{type(error).__name__}: {error}")


def create_server(dispatcher: ToolDispatcher) -> Server:
    """Build the MCP server with list_tools and call_tool bound to ``dispatcher``."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> List[Tool]:
        return list_tools()

    # Arguments are validated by the dispatcher's input models
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        try:
            result = await dispatcher.dispatch(name, arguments)
        except StackOverflowMCPError as e:
            raise McpError(to_error_data(e)) from e
        return [TextContent(type="text", text=block["text"]) for block in result["content"]]

    return server


async def run_server(config: Config, prometheus_exporter=None) -> None:
    """Serve the tools on stdio until the host closes the stream."""
    components = build_components(config, prometheus_exporter)
    server = create_server(components.dispatcher)

    if not config.credentials.can_write:
        logger.info("No write credentials configured; write tools will be refused")

    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Stack Overflow MCP server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await components.client.close()
        logger.info("Stack Overflow MCP server stopped")
