"""Tests for the MCP server binding."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolRequest,
    CallToolRequestParams,
    ListToolsRequest,
)

from stackoverflow_mcp.errors import (
    ConfigurationError,
    InvalidInput,
    PolicyRejected,
    RemoteApiError,
    UnknownTool,
)
from stackoverflow_mcp.server import SERVER_NAME, build_components, create_server, to_error_data
from stackoverflow_mcp.tools.dispatcher import text_result


def test_to_error_data_codes():
    assert to_error_data(UnknownTool("Unknown tool: x")).code == METHOD_NOT_FOUND
    assert to_error_data(InvalidInput("bad")).code == INVALID_PARAMS
    assert to_error_data(PolicyRejected("no")).code == INTERNAL_ERROR
    assert to_error_data(ConfigurationError("no creds")).code == INTERNAL_ERROR


def test_to_error_data_keeps_class_and_message():
    data = to_error_data(PolicyRejected("Evidence is required to post a solution"))
    assert data.message == "PolicyRejected: Evidence is required to post a solution"

    remote = to_error_data(RemoteApiError(code=400, message="pagesize is out of range", name="bad_parameter"))
    assert remote.message.startswith("RemoteApiError:")
    assert "pagesize is out of range" in remote.message


def test_build_components_shares_one_rate_limiter(read_only_config):
    components = build_components(read_only_config)

    assert components.invoker.rate_limiter is components.rate_limiter
    assert components.client.invoker is components.invoker
    assert components.collector.client is components.client
    assert components.gate.client is components.client
    assert components.dispatcher.collector is components.collector
    assert components.dispatcher.gate is components.gate
    assert components.rate_limiter.config is read_only_config.rate_limit


def test_create_server_registers_handlers():
    server = create_server(MagicMock())

    assert server.name == SERVER_NAME
    assert ListToolsRequest in server.request_handlers
    assert CallToolRequest in server.request_handlers


@pytest.mark.asyncio
async def test_list_tools_handler():
    server = create_server(MagicMock())

    response = await server.request_handlers[ListToolsRequest](ListToolsRequest(method="tools/list"))

    assert len(response.root.tools) == 7


@pytest.mark.asyncio
async def test_call_tool_returns_text_block():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=text_result("[]"))
    server = create_server(dispatcher)
    request = CallToolRequest(
        method="tools/call",
        params=CallToolRequestParams(name="search_by_tags", arguments={"tags": ["python"]}),
    )

    response = await server.request_handlers[CallToolRequest](request)

    assert not response.root.isError
    assert response.root.content[0].text == "[]"
    dispatcher.dispatch.assert_awaited_once_with("search_by_tags", {"tags": ["python"]})


@pytest.mark.asyncio
async def test_call_tool_reports_core_errors():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(side_effect=PolicyRejected("A similar question already exists"))
    server = create_server(dispatcher)
    request = CallToolRequest(
        method="tools/call",
        params=CallToolRequestParams(name="post_question", arguments={}),
    )

    response = await server.request_handlers[CallToolRequest](request)

    assert response.root.isError
    assert "PolicyRejected: A similar question already exists" in response.root.content[0].text
