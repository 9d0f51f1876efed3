"""
HTTP binding: FastAPI app serving the MCP streamable-HTTP endpoint
and a health check.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator
from typing import Any

import fastapi
from fastapi.middleware import cors
from mcp.server import streamable_http_manager
from starlette import responses, types

from scraper_analytics import config
from scraper_analytics import server as server_mod
from scraper_analytics.utils import logger

log = logger.create_logger("HTTP")

MCP_PATH = "/mcp"

METHOD_NOT_ALLOWED_BODY = {
    "jsonrpc": "2.0",
    "error": {"code": -32000, "message": "Method not allowed."},
    "id": None,
}


class McpEndpoint:
    """
    Raw ASGI endpoint for ``/mcp``.

    POST goes to the stateless session manager; every other method is
    answered with a JSON-RPC style 405.
    """

    def __init__(self, session_manager: streamable_http_manager.StreamableHTTPSessionManager) -> None:
        self._session_manager = session_manager

    async def __call__(self, scope: types.Scope, receive: types.Receive, send: types.Send) -> None:
        if scope.get("method") != "POST":
            log.debug("Rejected MCP request", {"method": scope.get("method")})
            response = responses.JSONResponse(METHOD_NOT_ALLOWED_BODY, status_code=405)
            await response(scope, receive, send)
            return
        await self._session_manager.handle_request(scope, receive, send)


def create_app(server: server_mod.ScraperMCPServer) -> fastapi.FastAPI:
    """Build the FastAPI app around an existing ``ScraperMCPServer``."""
    session_manager = streamable_http_manager.StreamableHTTPSessionManager(
        app=server.mcp_server,
        stateless=True,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: fastapi.FastAPI) -> AsyncGenerator[None]:
        """Run the session manager for the app's lifetime and clean up after."""
        async with session_manager.run():
            server.http_server_running = True
            log.section("Web Scraper Analytics HTTP Server Started")
            log.info("MCP endpoint ready", {"path": MCP_PATH, "version": config.SERVER_VERSION})
            try:
                yield
            finally:
                await server.cleanup()

    app = fastapi.FastAPI(title="Web Scraper Analytics MCP Server", lifespan=lifespan)

    # ============================================================================
    # Middleware
    # ============================================================================

    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Mcp-Session-Id"],
    )

    # ============================================================================
    # Routes
    # ============================================================================

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Report browser and cache state."""
        return {"status": "ok", **server.get_status()}

    app.add_route(MCP_PATH, McpEndpoint(session_manager), methods=["POST", "GET", "DELETE"])

    return app
