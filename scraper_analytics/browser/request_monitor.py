"""
Network capture for a single page.

Listens to the page's ``request`` and ``response`` events, records one
``CapturedExchange`` per request and patches it when its response
arrives. Response bodies are bounded in size and skipped entirely for
binary content.

Playwright dispatches both events on the asyncio event loop, so the
handlers below mutate the shared list without locking. Correlation
happens before the first ``await`` in the response handler, which keeps
find-and-patch atomic with respect to other callbacks.
"""

from __future__ import annotations

import functools
import uuid
from datetime import datetime, timezone

from playwright import async_api

from scraper_analytics import config
from scraper_analytics.models import exchange
from scraper_analytics.utils import errors, logger

log = logger.create_logger("RequestMonitor")

TRUNCATION_SUFFIX = "\n... [Response body truncated - too large]"
BODY_CAPTURE_FAILED = "[Failed to capture response body]"

_SKIPPED_REQUEST_TYPES = frozenset(["image", "media"])
_SKIPPED_BODY_TYPES = frozenset(["image", "media", "font"])
_BINARY_CONTENT_TYPES = ("image/", "video/", "audio/", "application/octet-stream")


def should_capture_response_body(resource_type: str, content_type: str) -> bool:
    """Return whether a response body is worth reading as text."""
    if resource_type in _SKIPPED_BODY_TYPES:
        return False
    return not any(marker in content_type for marker in _BINARY_CONTENT_TYPES)


def truncate_response_body(body: str, max_size: int) -> str:
    """Cut *body* to *max_size* characters, marking the cut when one happens."""
    if len(body) > max_size:
        return body[:max_size] + TRUNCATION_SUFFIX
    return body


def find_pending_exchange(
    exchanges: list[exchange.CapturedExchange], url: str
) -> exchange.CapturedExchange | None:
    """Return the first exchange for *url* that has no response yet.

    Two in-flight requests to the same URL cannot be told apart from
    the response payload, so the earliest unresolved one wins.
    """
    for captured in exchanges:
        if captured.url == url and not captured.is_resolved:
            return captured
    return None


class RequestMonitor:
    """
    Attaches request/response listeners to a page and fills an exchange list.
    """

    def __init__(self, settings: config.AnalyzerSettings | None = None) -> None:
        self._max_body_size = (settings or config.get_settings()).max_response_body_size

    def setup_request_monitoring(
        self,
        page: async_api.Page,
        exchanges: list[exchange.CapturedExchange],
        include_images: bool,
    ) -> None:
        """Install the request and response listeners on *page*.

        Must be called before navigation so the document request
        itself is captured.
        """
        page.on("request", functools.partial(self.handle_request, exchanges, include_images))
        page.on("response", functools.partial(self.handle_response, exchanges))

    def handle_request(
        self,
        exchanges: list[exchange.CapturedExchange],
        include_images: bool,
        request: async_api.Request,
    ) -> None:
        """Record an outgoing request unless it is filtered out."""
        resource_type = request.resource_type
        if not include_images and resource_type in _SKIPPED_REQUEST_TYPES:
            return

        try:
            post_data = request.post_data or None
        except Exception:
            # Binary bodies cannot be decoded as text.
            post_data = None

        exchanges.append(
            exchange.CapturedExchange(
                id=str(uuid.uuid4()),
                url=request.url,
                method=request.method,
                headers=dict(request.headers),
                post_data=post_data,
                timestamp=datetime.now(timezone.utc).isoformat(),
                resource_type=resource_type,
            )
        )
        log.debug(f"{request.method} {request.url}", {"type": resource_type})

    async def handle_response(
        self,
        exchanges: list[exchange.CapturedExchange],
        response: async_api.Response,
    ) -> None:
        """Correlate a response with its request and capture its body."""
        captured = find_pending_exchange(exchanges, response.url)
        if captured is None:
            return

        response_headers = dict(response.headers)
        captured.status = response.status
        captured.response_headers = response_headers

        content_type = response_headers.get("content-type", "")
        if not should_capture_response_body(captured.resource_type, content_type):
            return

        try:
            body = await response.text()
        except Exception as exc:
            log.warn(
                "Failed to capture response body",
                {"url": response.url, "error": errors.get_error_message(exc)},
            )
            captured.response_body = BODY_CAPTURE_FAILED
            return
        captured.response_body = truncate_response_body(body, self._max_body_size)
