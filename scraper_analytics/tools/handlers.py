"""
Tool handlers: validate arguments, call the analyzer or the result
store, and translate pipeline errors into MCP protocol errors.

Handlers return Pydantic payload models; the server layer renders
them into the JSON text envelope.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
import pydantic
from mcp import types
from mcp.shared import exceptions

from scraper_analytics import analyzer as analyzer_mod
from scraper_analytics import config
from scraper_analytics.analysis import report_generator, result_store
from scraper_analytics.models import report
from scraper_analytics.tools import schemas
from scraper_analytics.utils import errors, logger

log = logger.create_logger("Tools")

# JSON-RPC code used by the MCP SDKs for request timeouts.
REQUEST_TIMEOUT = -32001

ANALYZE_WEBSITE = "analyze_website_requests"
GET_REQUESTS_BY_DOMAIN = "get_requests_by_domain"
GET_REQUEST_DETAILS = "get_request_details"
GET_REQUEST_SUMMARY = "get_request_summary"
EXTRACT_HTML_ELEMENTS = "extract_html_elements"
FETCH = "fetch"

_FETCH_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; WebScraperAnalytics/1.0)"}

SessionFactory = Callable[[], aiohttp.ClientSession]


def tool_error(code: int, message: str) -> exceptions.McpError:
    """Build an ``McpError`` carrying a JSON-RPC error code."""
    return exceptions.McpError(types.ErrorData(code=code, message=message))


def invalid_params(message: str) -> exceptions.McpError:
    """Build a client-side parameter error."""
    return tool_error(types.INVALID_PARAMS, message)


def to_mcp_error(error: errors.ScraperError) -> exceptions.McpError:
    """Translate a pipeline error into the matching protocol error."""
    if isinstance(error, (errors.InvalidArgumentError, errors.ResourceNotFoundError)):
        return invalid_params(str(error))
    if isinstance(error, errors.AnalysisTimeoutError):
        return tool_error(REQUEST_TIMEOUT, str(error))
    return tool_error(types.INTERNAL_ERROR, str(error))


def list_tool_definitions() -> list[types.Tool]:
    """Return the tools advertised by ``list_tools``."""
    return [
        types.Tool(
            name=ANALYZE_WEBSITE,
            description=(
                "Open a website and capture all HTTP requests made by the site. Returns only domain summary."
            ),
            inputSchema=schemas.input_schema(schemas.AnalysisOptions),
        ),
        types.Tool(
            name=GET_REQUESTS_BY_DOMAIN,
            description="Get all requests made to a specific domain from a previous website analysis",
            inputSchema=schemas.input_schema(schemas.RequestFilter, required=["url", "domain"]),
        ),
        types.Tool(
            name=GET_REQUEST_DETAILS,
            description="Get full details of a specific request including headers, body, and response",
            inputSchema=schemas.input_schema(schemas.RequestFilter, required=["url", "requestId"]),
        ),
        types.Tool(
            name=GET_REQUEST_SUMMARY,
            description="Get a summary of requests by domain and type from a previous analysis",
            inputSchema=schemas.input_schema(schemas.UrlArguments),
        ),
        types.Tool(
            name=EXTRACT_HTML_ELEMENTS,
            description=(
                "Extract important HTML elements with their CSS selectors, "
                "filtered by type (text, image, link, script)"
            ),
            inputSchema=schemas.input_schema(schemas.ExtractElementsOptions),
        ),
        types.Tool(
            name=FETCH,
            description=(
                "Makes a direct HTTP request to a specified URL and returns status, headers, and body. "
                "Does not perform browser rendering."
            ),
            inputSchema=schemas.input_schema(schemas.FetchOptions),
        ),
    ]


def _not_analyzed(url: str) -> errors.ResourceNotFoundError:
    return errors.ResourceNotFoundError(
        f"No analysis found for URL: {url}. Please run {ANALYZE_WEBSITE} first."
    )


class ToolHandlers:
    """
    Implements every tool against an analyzer and a result store.
    """

    def __init__(
        self,
        analyzer: analyzer_mod.WebsiteAnalyzer,
        store: result_store.ResultStore,
        settings: config.AnalyzerSettings | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._store = store
        self._settings = settings or config.get_settings()
        self._session_factory = session_factory or self._default_session
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            ANALYZE_WEBSITE: self.handle_analyze_website,
            GET_REQUESTS_BY_DOMAIN: self.handle_get_requests_by_domain,
            GET_REQUEST_DETAILS: self.handle_get_request_details,
            GET_REQUEST_SUMMARY: self.handle_get_request_summary,
            EXTRACT_HTML_ELEMENTS: self.handle_extract_html_elements,
            FETCH: self.handle_fetch,
        }

    @property
    def tool_names(self) -> list[str]:
        """Names of every tool this instance can dispatch."""
        return list(self._handlers)

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> pydantic.BaseModel | list[Any]:
        """Run tool *name* with *arguments*.

        Raises:
            exceptions.McpError: For unknown tools and every classified failure.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise tool_error(types.METHOD_NOT_FOUND, f"Unknown tool: {name}")
        try:
            return await handler(arguments or {})
        except errors.ScraperError as exc:
            raise to_mcp_error(exc) from exc

    def _get_stored_result(self, url: str) -> report.AnalysisReport:
        result = self._store.get(url)
        if result is None:
            raise _not_analyzed(url)
        return result

    # ==========================================================================
    # Analysis tools
    # ==========================================================================

    async def handle_analyze_website(self, arguments: dict[str, Any]) -> report.AnalysisSummary:
        """Analyse a website, store the report and return its summary."""
        options = schemas.parse_arguments(schemas.AnalysisOptions, arguments)
        log.info("Starting analysis", {"url": options.url})

        try:
            result = await self._analyzer.analyze_website(
                options.url,
                wait_time=options.wait_time,
                include_images=options.include_images,
                quick_mode=options.quick_mode,
            )
        except (errors.InvalidArgumentError, errors.AnalysisTimeoutError, errors.ResourceNotFoundError):
            raise
        except errors.ScraperError as exc:
            log.error("Unknown analysis error", {"url": options.url, "error": str(exc)})
            raise errors.AnalysisError("Unknown analysis error") from exc

        self._store.set(options.url, result)
        return report_generator.build_analysis_summary(result)

    async def handle_get_requests_by_domain(self, arguments: dict[str, Any]) -> report.DomainRequests:
        """Return the stored requests whose hostname equals ``domain``."""
        query = schemas.parse_arguments(schemas.RequestFilter, arguments)
        if not query.domain or not query.domain.strip():
            raise errors.InvalidArgumentError("Domain parameter is required")

        result = self._get_stored_result(query.url)
        return report_generator.filter_requests_by_domain(result, query.domain)

    async def handle_get_request_details(self, arguments: dict[str, Any]) -> report.RequestDetails:
        """Return everything captured for one request of a stored analysis."""
        query = schemas.parse_arguments(schemas.RequestFilter, arguments)
        if not query.request_id or not query.request_id.strip():
            raise errors.InvalidArgumentError("Request ID parameter is required")

        result = self._get_stored_result(query.url)
        captured = result.find_request(query.request_id)
        if captured is None:
            raise errors.ResourceNotFoundError(f"No request found with ID: {query.request_id}")
        return report_generator.build_request_details(captured)

    async def handle_get_request_summary(self, arguments: dict[str, Any]) -> report.AnalysisSummary:
        """Re-derive the summary of a stored analysis."""
        query = schemas.parse_arguments(schemas.UrlArguments, arguments)
        return report_generator.build_analysis_summary(self._get_stored_result(query.url))

    async def handle_extract_html_elements(self, arguments: dict[str, Any]) -> list[report.ExtractedElement]:
        """Load a page and return its elements of the requested type."""
        options = schemas.parse_arguments(schemas.ExtractElementsOptions, arguments)
        log.info("Extracting elements", {"url": options.url, "filterType": options.filter_type})
        try:
            return await self._analyzer.extract_html_elements(options.url, options.filter_type)
        except errors.ScraperError as exc:
            log.error("Failed to extract elements", {"url": options.url, "error": str(exc)})
            if isinstance(exc, errors.InvalidArgumentError):
                raise
            raise errors.AnalysisError("Unknown extraction error") from exc

    # ==========================================================================
    # Direct fetch
    # ==========================================================================

    def _default_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(total=self._settings.navigation_timeout_ms / 1000)
        return aiohttp.ClientSession(timeout=timeout, headers=_FETCH_HEADERS)

    async def handle_fetch(self, arguments: dict[str, Any]) -> report.FetchResult:
        """Perform a plain HTTP request without the browser.

        Non-2xx responses are returned, not raised; only transport
        failures become errors.
        """
        options = schemas.parse_arguments(schemas.FetchOptions, arguments)
        log.info(f"Executing {options.method} {options.url}", {"hasBody": options.body is not None})

        started = time.monotonic()
        try:
            async with self._session_factory() as session:
                async with session.request(
                    options.method,
                    options.url,
                    headers=options.headers,
                    data=options.body,
                ) as response:
                    body = await response.text(errors="replace")
                    result = report.FetchResult(
                        status=response.status,
                        status_text=response.reason or "",
                        headers={key: value for key, value in response.headers.items()},
                        body=body,
                        duration=round((time.monotonic() - started) * 1000, 2),
                    )
        except Exception as exc:
            message = errors.get_error_message(exc)
            log.error("Network error", {"url": options.url, "error": message})
            raise errors.AnalysisError(f"Network error: {message}") from exc

        if result.status >= 400:
            log.warn("Non-OK response", {"url": options.url, "status": result.status})
        else:
            log.success("Successful response", {"url": options.url, "status": result.status})
        return result
