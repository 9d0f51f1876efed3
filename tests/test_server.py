"""Tests for scraper_analytics.server: MCP wiring, status and cleanup."""

from __future__ import annotations

import asyncio
import json
from unittest import mock

import pytest
from mcp import types
from mcp.shared.exceptions import McpError

from conftest import FakeBrowserManager, FakePage, FakeRequest, FakeResponse, no_sleep
from scraper_analytics import config
from scraper_analytics.server import ScraperMCPServer
from scraper_analytics.tools.handlers import REQUEST_TIMEOUT

_TRAFFIC = [
    (FakeRequest("https://example.com/", resource_type="document"), FakeResponse("https://example.com/", body="<html>")),
    (FakeRequest("https://cdn.example.net/lib.js", resource_type="script"), None),
]


@pytest.fixture()
def server() -> ScraperMCPServer:
    instance = ScraperMCPServer(
        config.AnalyzerSettings(),
        browser_manager=FakeBrowserManager(FakePage(traffic=_TRAFFIC)),  # type: ignore[arg-type]
    )
    instance.analyzer._sleep = no_sleep
    return instance


class TestCallTool:
    def test_payload_is_indented_json_text(self, server: ScraperMCPServer) -> None:
        content = asyncio.run(server.call_tool("analyze_website_requests", {"url": "https://example.com"}))
        assert len(content) == 1
        assert content[0].type == "text"
        payload = json.loads(content[0].text)
        assert payload["requestSummary"]["totalRequests"] == 2
        assert payload["websiteInfo"]["url"] == "https://example.com"
        assert content[0].text == json.dumps(payload, indent=2)

    def test_list_payload(self, server: ScraperMCPServer) -> None:
        server.browser_manager.context.page_factory = lambda: FakePage(  # type: ignore[attr-defined]
            evaluate_result=[{"content": "/", "selector": "a", "type": "link", "tag": "a", "attributes": {"href": "/"}}]
        )
        content = asyncio.run(server.call_tool("extract_html_elements", {"url": "https://example.com", "filterType": "link"}))
        assert json.loads(content[0].text) == [
            {"content": "/", "selector": "a", "type": "link", "tag": "a", "attributes": {"href": "/"}}
        ]

    def test_unknown_tool(self, server: ScraperMCPServer) -> None:
        with pytest.raises(McpError) as exc_info:
            asyncio.run(server.call_tool("nope", {}))
        assert exc_info.value.error.code == types.METHOD_NOT_FOUND

    def test_unexpected_exception_is_wrapped(self) -> None:
        tool_handlers = mock.Mock()
        tool_handlers.dispatch = mock.AsyncMock(side_effect=RuntimeError("Network timeout"))
        server = ScraperMCPServer(
            config.AnalyzerSettings(),
            browser_manager=FakeBrowserManager(),  # type: ignore[arg-type]
            tool_handlers=tool_handlers,
        )
        with pytest.raises(McpError) as exc_info:
            asyncio.run(server.call_tool("fetch", {"url": "https://example.com"}))
        assert exc_info.value.error.code == types.INTERNAL_ERROR
        assert exc_info.value.error.message == "Tool execution failed: Network timeout"


def _call_tool_request(server: ScraperMCPServer, name: str, arguments: dict[str, object]) -> types.ServerResult:
    handler = server.mcp_server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return asyncio.run(handler(request))


class TestCallToolRequestHandler:
    """Tests for the tools/call handler registered on the MCP server."""

    def test_success_is_tool_result(self, server: ScraperMCPServer) -> None:
        result = _call_tool_request(server, "analyze_website_requests", {"url": "https://example.com"})
        assert isinstance(result.root, types.CallToolResult)
        assert not result.root.isError
        assert json.loads(result.root.content[0].text)["requestSummary"]["totalRequests"] == 2

    def test_missing_analysis_keeps_invalid_params_code(self, server: ScraperMCPServer) -> None:
        with pytest.raises(McpError) as exc_info:
            _call_tool_request(server, "get_request_summary", {"url": "https://never.example"})
        assert exc_info.value.error.code == types.INVALID_PARAMS
        assert "No analysis found for URL" in exc_info.value.error.message

    def test_timeout_keeps_request_timeout_code(self) -> None:
        server = ScraperMCPServer(
            config.AnalyzerSettings(),
            browser_manager=FakeBrowserManager(FakePage(goto_error=TimeoutError("Timeout 30000ms exceeded."))),  # type: ignore[arg-type]
        )
        server.analyzer._sleep = no_sleep
        with pytest.raises(McpError) as exc_info:
            _call_tool_request(server, "analyze_website_requests", {"url": "https://example.com"})
        assert exc_info.value.error.code == REQUEST_TIMEOUT
        assert "timed out for https://example.com" in exc_info.value.error.message

    def test_unknown_tool_keeps_method_not_found_code(self, server: ScraperMCPServer) -> None:
        with pytest.raises(McpError) as exc_info:
            _call_tool_request(server, "nope", {})
        assert exc_info.value.error.code == types.METHOD_NOT_FOUND


class TestStatus:
    def test_initial_status(self, server: ScraperMCPServer) -> None:
        assert server.get_status() == {
            "browserInitialized": False,
            "storedResults": 0,
            "serverName": "web-scraper-analytics",
            "version": "1.0.0",
            "httpServerRunning": False,
        }

    def test_after_analysis(self, server: ScraperMCPServer) -> None:
        asyncio.run(server.call_tool("analyze_website_requests", {"url": "https://example.com"}))
        status = server.get_status()
        assert status["browserInitialized"] is True
        assert status["storedResults"] == 1


class TestCleanup:
    def test_closes_browser_and_clears_results(self, server: ScraperMCPServer) -> None:
        asyncio.run(server.call_tool("analyze_website_requests", {"url": "https://example.com"}))
        server.http_server_running = True
        asyncio.run(server.cleanup())
        assert server.browser_manager.cleaned_up is True  # type: ignore[attr-defined]
        assert server.store.count() == 0
        assert server.http_server_running is False


class TestMcpServer:
    def test_identity(self, server: ScraperMCPServer) -> None:
        assert server.mcp_server.name == "web-scraper-analytics"
        assert server.mcp_server.version == "1.0.0"
