"""
Shared browser lifecycle management.

A single Chromium instance and browser context are launched lazily on
the first analysis and reused by every later one. Each analysis opens
its own page in that context and closes it when done, so concurrent
analyses never share a page.
"""

from __future__ import annotations

import asyncio

from playwright import async_api

from scraper_analytics import config
from scraper_analytics.utils import errors, logger

log = logger.create_logger("Browser")

_LAUNCH_ARGS = [
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]


class BrowserManager:
    """
    Owns the process-wide Playwright driver, browser and context.
    """

    def __init__(self, settings: config.AnalyzerSettings | None = None) -> None:
        """Create an uninitialised manager; nothing is launched until ``initialize``."""
        self._settings = settings or config.get_settings()
        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None
        self._context: async_api.BrowserContext | None = None
        self._init_lock = asyncio.Lock()

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def initialize(self) -> None:
        """Launch the browser and create the context if not already done.

        Idempotent: concurrent callers wait on the same launch
        instead of starting a second browser.

        Raises:
            errors.AnalysisError: If the browser or context cannot be created.
        """
        if self.is_initialized():
            return
        async with self._init_lock:
            if self.is_initialized():
                return
            try:
                if self._playwright is None:
                    self._playwright = await async_api.async_playwright().start()
                if self._browser is None:
                    log.info("Launching browser...", {"headless": self._settings.headless})
                    self._browser = await self._playwright.chromium.launch(
                        headless=self._settings.headless,
                        args=_LAUNCH_ARGS,
                    )
                if self._context is None:
                    self._context = await self._browser.new_context(
                        viewport={
                            "width": self._settings.viewport_width,
                            "height": self._settings.viewport_height,
                        },
                    )
                log.success("Browser ready")
            except Exception as exc:
                message = errors.get_error_message(exc)
                log.error("Browser initialisation failed", {"error": message})
                await self.cleanup()
                raise errors.AnalysisError(f"Failed to launch browser: {message}") from exc

    def get_context(self) -> async_api.BrowserContext:
        """Return the shared browser context.

        Raises:
            RuntimeError: If ``initialize`` has not completed.
        """
        if self._context is None:
            raise RuntimeError("Browser context not initialized. Call initialize() first.")
        return self._context

    async def new_page(self) -> async_api.Page:
        """Initialise if needed and open a fresh page in the shared context."""
        await self.initialize()
        return await self.get_context().new_page()

    def is_initialized(self) -> bool:
        """Return whether both browser and context are available."""
        return self._browser is not None and self._context is not None

    async def cleanup(self) -> None:
        """Close the context, the browser and the Playwright driver."""
        log.info("Shutting down browser...")
        if self._context is not None:
            try:
                await self._context.close()
            except Exception as exc:
                log.debug("Context close error (non-fatal)", {"error": str(exc)})
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None
