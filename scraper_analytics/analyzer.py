"""
Website analysis orchestrator.

Drives one analysis from a fresh page to a finished report:

    IDLE → BROWSER_READY → PAGE_OPEN → NAVIGATING → STABILIZING_NETWORK
         → WAITING_DYNAMIC_CONTENT → EXTRACTING → ASSEMBLING → CLOSED

Any step may end in FAILED. The page is closed on every exit path,
and every failure leaves this module as one of the ``ScraperError``
subclasses in ``utils.errors``.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable

from playwright import async_api

from scraper_analytics import config
from scraper_analytics.analysis import report_generator as report_generator_mod
from scraper_analytics.browser import manager, page_analyzer, request_monitor, storage_capturer
from scraper_analytics.models import exchange, report
from scraper_analytics.utils import errors, logger
from scraper_analytics.utils import url as url_mod

log = logger.create_logger("Analyzer")

INVALID_URL_MESSAGE = "Invalid URL provided. Please include http:// or https://"


class AnalysisState(enum.Enum):
    """Lifecycle states of a single analysis run."""

    IDLE = "idle"
    BROWSER_READY = "browser-ready"
    PAGE_OPEN = "page-open"
    NAVIGATING = "navigating"
    STABILIZING_NETWORK = "stabilizing-network"
    WAITING_DYNAMIC_CONTENT = "waiting-dynamic-content"
    EXTRACTING = "extracting"
    ASSEMBLING = "assembling"
    CLOSED = "closed"
    FAILED = "failed"


StateListener = Callable[[str, AnalysisState], None]


class AnalysisRun:
    """Tracks the state of one analysis and reports each transition."""

    def __init__(self, url: str, listener: StateListener | None = None) -> None:
        self.url = url
        self.state = AnalysisState.IDLE
        self._listener = listener

    def advance(self, state: AnalysisState) -> None:
        """Move to *state*, logging and notifying the listener."""
        log.debug("State transition", {"url": self.url, "from": self.state.value, "to": state.value})
        self.state = state
        if self._listener is not None:
            self._listener(self.url, state)


def resolve_wait_time(
    wait_time: int | None,
    quick_mode: bool,
    settings: config.AnalyzerSettings,
) -> int:
    """Return the dynamic-content wait in milliseconds.

    Quick mode always uses the fixed quick wait. Otherwise the
    requested wait (or the default) is clamped to ``[0, max_wait_ms]``.
    """
    if quick_mode:
        return settings.quick_mode_wait_ms
    requested = settings.default_wait_ms if wait_time is None else wait_time
    return max(0, min(requested, settings.max_wait_ms))


def validate_url(url: object) -> str:
    """Return *url* unchanged if it is absolute, else raise ``InvalidUrlError``."""
    if not url_mod.is_absolute_url(url):
        raise errors.InvalidUrlError(INVALID_URL_MESSAGE)
    return str(url)


def classify_error(url: str, error: Exception) -> errors.ScraperError:
    """Map an unexpected exception onto the pipeline's error taxonomy."""
    if errors.is_timeout_error(error):
        return errors.AnalysisTimeoutError(
            f"Website analysis timed out for {url}. The site may be slow to load or have blocking resources."
        )
    return errors.AnalysisError(f"Failed to analyze website: {errors.get_error_message(error)}")


async def _close_page(page: async_api.Page) -> None:
    try:
        await page.close()
    except Exception as exc:
        log.debug("Page close error (non-fatal)", {"error": str(exc)})


class WebsiteAnalyzer:
    """
    Loads pages in the shared browser and turns their traffic into reports.
    """

    def __init__(
        self,
        browser_manager: manager.BrowserManager,
        settings: config.AnalyzerSettings | None = None,
        report_generator: report_generator_mod.ReportGenerator | None = None,
        on_state_change: StateListener | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._browser_manager = browser_manager
        self._settings = settings or config.get_settings()
        self._request_monitor = request_monitor.RequestMonitor(self._settings)
        self._report_generator = report_generator or report_generator_mod.create_report_generator(
            self._settings.captcha_domains, self._settings.anti_bot_domains
        )
        self._on_state_change = on_state_change
        self._sleep = sleep

    # ==========================================================================
    # Full analysis
    # ==========================================================================

    async def analyze_website(
        self,
        url: str,
        wait_time: int | None = None,
        include_images: bool = False,
        quick_mode: bool = False,
    ) -> report.AnalysisReport:
        """Load *url*, capture its traffic and return the finished report.

        Raises:
            errors.InvalidUrlError: *url* is not absolute (checked before any browser work).
            errors.AnalysisTimeoutError: Navigation timed out.
            errors.AnalysisError: Any other failure.
        """
        url = validate_url(url)
        run = AnalysisRun(url, self._on_state_change)
        exchanges: list[exchange.CapturedExchange] = []
        page: async_api.Page | None = None

        log.info("Starting analysis", {"url": url, "includeImages": include_images, "quickMode": quick_mode})
        log.start_timer(f"analysis:{url}")
        try:
            await self._browser_manager.initialize()
            run.advance(AnalysisState.BROWSER_READY)

            page = await self._browser_manager.get_context().new_page()
            self._request_monitor.setup_request_monitoring(page, exchanges, include_images)
            run.advance(AnalysisState.PAGE_OPEN)

            run.advance(AnalysisState.NAVIGATING)
            await page.goto(url, wait_until="domcontentloaded", timeout=self._settings.navigation_timeout_ms)

            run.advance(AnalysisState.STABILIZING_NETWORK)
            await self._wait_for_network_stability(page)

            run.advance(AnalysisState.WAITING_DYNAMIC_CONTENT)
            await self._wait_for_dynamic_content(resolve_wait_time(wait_time, quick_mode, self._settings))

            run.advance(AnalysisState.EXTRACTING)
            title = await page.title()
            render_method = await page_analyzer.detect_render_method(page)
            storage = await storage_capturer.capture_browser_storage(page)

            run.advance(AnalysisState.ASSEMBLING)
            result = self._report_generator.generate_analysis_result(
                url, title, exchanges, render_method, storage
            )
        except Exception as exc:
            if page is not None:
                await _close_page(page)
                page = None
            run.advance(AnalysisState.FAILED)
            log.error("Analysis failed", {"url": url, "error": errors.get_error_message(exc)})
            log.end_timer(f"analysis:{url}", "Analysis aborted")
            if isinstance(exc, errors.ScraperError):
                raise
            raise classify_error(url, exc) from exc
        finally:
            if page is not None:
                await _close_page(page)

        run.advance(AnalysisState.CLOSED)
        log.end_timer(f"analysis:{url}", "Analysis complete")
        log.success(
            "Captured requests",
            {"url": url, "requests": result.total_requests, "domains": len(result.unique_domains)},
        )
        return result

    async def _wait_for_network_stability(self, page: async_api.Page) -> None:
        """Wait for network idle; a timeout here is logged, not raised."""
        try:
            await page.wait_for_load_state("networkidle", timeout=self._settings.network_idle_timeout_ms)
        except Exception as exc:
            log.warn(
                "Network idle timeout reached, continuing with analysis",
                {"timeoutMs": self._settings.network_idle_timeout_ms, "error": errors.get_error_message(exc)},
            )

    async def _wait_for_dynamic_content(self, wait_ms: int) -> None:
        if wait_ms <= 0:
            return
        log.debug("Waiting for additional requests", {"waitMs": wait_ms})
        await self._sleep(wait_ms / 1000)

    # ==========================================================================
    # Element extraction
    # ==========================================================================

    async def extract_html_elements(
        self,
        url: str,
        filter_type: report.FilterType,
    ) -> list[report.ExtractedElement]:
        """Load *url* and return its elements of *filter_type*.

        Skips stabilisation, waiting, storage and classification; it
        does not need a prior analysis of the same URL.

        Raises:
            errors.InvalidUrlError: *url* is not absolute.
            errors.InvalidArgumentError: *filter_type* is not supported.
            errors.AnalysisTimeoutError: Navigation timed out.
            errors.AnalysisError: Any other failure.
        """
        url = validate_url(url)
        if filter_type not in page_analyzer.FILTER_SELECTORS:
            raise errors.InvalidArgumentError(f"Unsupported filter type: {filter_type}")

        run = AnalysisRun(url, self._on_state_change)
        page: async_api.Page | None = None
        try:
            page = await self._browser_manager.new_page()
            run.advance(AnalysisState.PAGE_OPEN)

            run.advance(AnalysisState.NAVIGATING)
            await page.goto(url, wait_until="domcontentloaded", timeout=self._settings.navigation_timeout_ms)

            run.advance(AnalysisState.EXTRACTING)
            elements = await page_analyzer.extract_elements(page, filter_type)
        except Exception as exc:
            if page is not None:
                await _close_page(page)
                page = None
            run.advance(AnalysisState.FAILED)
            log.error("Element extraction failed", {"url": url, "error": errors.get_error_message(exc)})
            if isinstance(exc, errors.ScraperError):
                raise
            raise classify_error(url, exc) from exc
        finally:
            if page is not None:
                await _close_page(page)

        run.advance(AnalysisState.CLOSED)
        log.info("Extracted elements", {"url": url, "filterType": filter_type, "count": len(elements)})
        return elements
