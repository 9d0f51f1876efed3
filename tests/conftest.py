"""Shared fixtures and Playwright fakes for the test suite."""

from __future__ import annotations

import inspect
import uuid
from typing import Any

import pytest

from scraper_analytics import config
from scraper_analytics.models import exchange, report

# ── Playwright fakes ────────────────────────────────────────────


class FakeRequest:
    """Stands in for ``playwright.async_api.Request``."""

    def __init__(
        self,
        url: str,
        method: str = "GET",
        resource_type: str = "document",
        headers: dict[str, str] | None = None,
        post_data: str | None = None,
    ) -> None:
        self.url = url
        self.method = method
        self.resource_type = resource_type
        self.headers = headers or {"accept": "*/*"}
        self.post_data = post_data


class FakeResponse:
    """Stands in for ``playwright.async_api.Response``."""

    def __init__(
        self,
        url: str,
        status: int = 200,
        headers: dict[str, str] | None = None,
        body: str = "",
        text_error: Exception | None = None,
    ) -> None:
        self.url = url
        self.status = status
        self.headers = headers if headers is not None else {"content-type": "text/html"}
        self._body = body
        self._text_error = text_error
        self.text_calls = 0

    async def text(self) -> str:
        self.text_calls += 1
        if self._text_error is not None:
            raise self._text_error
        return self._body


class FakeContext:
    """Stands in for ``playwright.async_api.BrowserContext``."""

    def __init__(self, cookies: list[dict[str, Any]] | None = None, cookie_error: Exception | None = None) -> None:
        self._cookies = cookies or []
        self._cookie_error = cookie_error
        self.pages: list[FakePage] = []
        self.page_factory = FakePage

    async def cookies(self) -> list[dict[str, Any]]:
        if self._cookie_error is not None:
            raise self._cookie_error
        return self._cookies

    async def new_page(self) -> FakePage:
        page = self.page_factory()
        page.context = self
        self.pages.append(page)
        return page


class FakePage:
    """Stands in for ``playwright.async_api.Page``.

    ``traffic`` is a list of ``(request, response | None)`` pairs
    replayed through the registered listeners during ``goto``.
    """

    def __init__(
        self,
        title: str = "Example Domain",
        content: str = "<html><body><p>Hello</p></body></html>",
        traffic: list[tuple[FakeRequest, FakeResponse | None]] | None = None,
        goto_error: Exception | None = None,
        idle_error: Exception | None = None,
        evaluate_result: Any = None,
        evaluate_error: Exception | None = None,
    ) -> None:
        self.context: FakeContext = FakeContext()
        self._title = title
        self._content = content
        self.traffic = traffic or []
        self.goto_error = goto_error
        self.idle_error = idle_error
        self.evaluate_result = evaluate_result
        self.evaluate_error = evaluate_error
        self.listeners: dict[str, list[Any]] = {}
        self.goto_calls: list[tuple[str, dict[str, Any]]] = []
        self.evaluate_calls: list[tuple[str, Any]] = []
        self.closed = False

    def on(self, event: str, handler: Any) -> None:
        self.listeners.setdefault(event, []).append(handler)

    async def emit(self, event: str, payload: Any) -> None:
        for handler in self.listeners.get(event, []):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.goto_calls.append((url, kwargs))
        if self.goto_error is not None:
            raise self.goto_error
        for request, _ in self.traffic:
            await self.emit("request", request)
        for _, response in self.traffic:
            if response is not None:
                await self.emit("response", response)

    async def wait_for_load_state(self, state: str, timeout: float | None = None) -> None:
        if self.idle_error is not None:
            raise self.idle_error

    async def title(self) -> str:
        return self._title

    async def content(self) -> str:
        if isinstance(self._content, Exception):
            raise self._content
        return self._content

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluate_calls.append((script, arg))
        if self.evaluate_error is not None:
            raise self.evaluate_error
        if self.evaluate_result is not None:
            return self.evaluate_result
        return [] if arg is not None else {}

    async def close(self) -> None:
        self.closed = True


class FakeBrowserManager:
    """Stands in for ``BrowserManager`` without launching Chromium."""

    def __init__(self, page: FakePage | None = None, init_error: Exception | None = None) -> None:
        self.context = FakeContext()
        if page is not None:
            self.context.page_factory = lambda: page
        self.init_error = init_error
        self.initialize_calls = 0
        self.cleaned_up = False
        self._initialized = False

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.init_error is not None:
            raise self.init_error
        self._initialized = True

    def get_context(self) -> FakeContext:
        if not self._initialized:
            raise RuntimeError("Browser context not initialized. Call initialize() first.")
        return self.context

    async def new_page(self) -> FakePage:
        await self.initialize()
        return await self.context.new_page()

    def is_initialized(self) -> bool:
        return self._initialized

    async def cleanup(self) -> None:
        self.cleaned_up = True
        self._initialized = False


async def no_sleep(seconds: float) -> None:
    """Replacement for ``asyncio.sleep`` that returns immediately."""


# ── Settings ────────────────────────────────────────────────────


@pytest.fixture()
def settings() -> config.AnalyzerSettings:
    """Default analyzer settings, independent of the environment."""
    return config.AnalyzerSettings()


# ── Exchange and report factories ───────────────────────────────


def make_exchange(
    url: str,
    resource_type: str = "document",
    status: int | None = 200,
    response_headers: dict[str, str] | None = None,
    exchange_id: str | None = None,
    **kwargs: Any,
) -> exchange.CapturedExchange:
    """Build a captured exchange with sensible defaults."""
    return exchange.CapturedExchange(
        id=exchange_id or str(uuid.uuid4()),
        url=url,
        method=kwargs.pop("method", "GET"),
        headers=kwargs.pop("headers", {"accept": "*/*"}),
        timestamp=kwargs.pop("timestamp", "2026-01-01T00:00:00+00:00"),
        resource_type=resource_type,
        status=status,
        response_headers=response_headers if response_headers is not None else ({} if status else None),
        **kwargs,
    )


@pytest.fixture()
def example_exchanges() -> list[exchange.CapturedExchange]:
    """Traffic of a typical small site: a document, two scripts and an API call."""
    return [
        make_exchange("https://example.com/", "document", exchange_id="doc"),
        make_exchange("https://example.com/app.js", "script", exchange_id="app"),
        make_exchange("https://example.com/vendor.js", "script", exchange_id="vendor"),
        make_exchange(
            "https://api.example.com/data",
            "xhr",
            exchange_id="api",
            method="POST",
            post_data='{"q": 1}',
            response_body='{"ok": true}',
        ),
    ]


@pytest.fixture()
def example_report(example_exchanges: list[exchange.CapturedExchange]) -> report.AnalysisReport:
    """A finished report built from ``example_exchanges``."""
    return report.AnalysisReport(
        url="https://example.com",
        title="Example Domain",
        requests=example_exchanges,
        total_requests=len(example_exchanges),
        unique_domains=["example.com", "api.example.com"],
        requests_by_type={"document": 1, "script": 2, "xhr": 1},
        analysis_timestamp="2026-01-01T00:00:00+00:00",
        render_method="server",
        anti_bot_detection=report.AntiBotDetection(detected=False),
    )
