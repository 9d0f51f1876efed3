"""
MCP server wiring: owns the browser, the analyzer, the result store
and the tool handlers, and exposes them through a low-level
``mcp`` server over stdio (or, via ``app.py``, over HTTP).
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import Any

from mcp import types
from mcp.server import lowlevel
from mcp.server import stdio
from mcp.shared import exceptions

from scraper_analytics import analyzer as analyzer_mod
from scraper_analytics import config
from scraper_analytics.analysis import result_store
from scraper_analytics.browser import manager
from scraper_analytics.tools import handlers
from scraper_analytics.utils import errors, logger, serialization

log = logger.create_logger("Server")


class ScraperMCPServer:
    """
    Composition root for one server process.

    Collaborators can be injected for tests; by default everything is
    built from ``AnalyzerSettings``.
    """

    def __init__(
        self,
        settings: config.AnalyzerSettings | None = None,
        browser_manager: manager.BrowserManager | None = None,
        store: result_store.ResultStore | None = None,
        tool_handlers: handlers.ToolHandlers | None = None,
    ) -> None:
        self.settings = settings or config.get_settings()
        self.browser_manager = browser_manager or manager.BrowserManager(self.settings)
        self.store = store if store is not None else result_store.InMemoryResultStore()
        self.analyzer = analyzer_mod.WebsiteAnalyzer(self.browser_manager, self.settings)
        self.tool_handlers = tool_handlers or handlers.ToolHandlers(self.analyzer, self.store, self.settings)
        self.http_server_running = False
        self._mcp_server = self.create_mcp_server()

    @property
    def mcp_server(self) -> lowlevel.Server:
        return self._mcp_server

    def create_mcp_server(self) -> lowlevel.Server:
        """Build a low-level MCP server with the tool handlers registered."""
        server: lowlevel.Server = lowlevel.Server(config.SERVER_NAME, version=config.SERVER_VERSION)

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return handlers.list_tool_definitions()

        # Registered as a raw request handler: the ``call_tool`` decorator
        # turns McpError into an isError result and drops its code.
        # Arguments are validated by the tool handlers' own models.
        async def handle_call_tool(request: types.CallToolRequest) -> types.ServerResult:
            content = await self.call_tool(request.params.name, request.params.arguments)
            return types.ServerResult(types.CallToolResult(content=content))

        server.request_handlers[types.CallToolRequest] = handle_call_tool

        return server

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        """Run one tool and wrap its payload in a single text block.

        Raises:
            exceptions.McpError: Every failure, with a JSON-RPC error code.
        """
        log.debug("Tool called", {"tool": name})
        try:
            payload = await self.tool_handlers.dispatch(name, arguments)
        except exceptions.McpError:
            raise
        except Exception as exc:
            message = errors.get_error_message(exc)
            log.error(f"Tool execution failed: {message}", {"tool": name})
            raise handlers.tool_error(types.INTERNAL_ERROR, f"Tool execution failed: {message}") from exc
        return [types.TextContent(type="text", text=serialization.to_json_text(payload))]

    def get_status(self) -> dict[str, Any]:
        """Return the health snapshot served at ``/health``."""
        return {
            "browserInitialized": self.browser_manager.is_initialized(),
            "storedResults": self.store.count(),
            "serverName": config.SERVER_NAME,
            "version": config.SERVER_VERSION,
            "httpServerRunning": self.http_server_running,
        }

    async def cleanup(self) -> None:
        """Close the browser and forget stored reports."""
        log.info("Cleaning up server resources")
        await self.browser_manager.cleanup()
        self.store.clear()
        self.http_server_running = False

    async def run_stdio(self) -> None:
        """Serve MCP over stdin/stdout until EOF or SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()
        if task is not None:
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(sig, task.cancel)

        log.section("Web Scraper Analytics MCP Server")
        log.info("Running on stdio", {"version": config.SERVER_VERSION})
        try:
            async with stdio.stdio_server() as (read_stream, write_stream):
                await self._mcp_server.run(
                    read_stream,
                    write_stream,
                    self._mcp_server.create_initialization_options(),
                )
        except asyncio.CancelledError:
            log.info("Shutdown signal received")
        finally:
            await self.cleanup()
