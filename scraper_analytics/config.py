"""
Runtime configuration for the analyzer and the MCP server.

Centralises every timeout, size limit and detection list, plus the
transport and logging options of the server process.

Uses ``pydantic_settings.BaseSettings`` for automatic environment
variable binding, type coercion, and validation. All variables share
the ``SCRAPER_`` prefix, e.g. ``SCRAPER_NAVIGATION_TIMEOUT_MS=45000``.
List values are given as JSON, e.g.
``SCRAPER_ANTI_BOT_DOMAINS='["cloudflare.com"]'``.
"""

from __future__ import annotations

import functools
from typing import Literal

import pydantic
import pydantic_settings

SERVER_NAME = "web-scraper-analytics"
SERVER_VERSION = "1.0.0"

DEFAULT_CAPTCHA_DOMAINS: tuple[str, ...] = (
    "google.com/recaptcha",
    "hcaptcha.com",
    "cloudflare.com/cdn-cgi/challenge-platform",
    "arkoselabs.com",
    "funcaptcha.com",
    "captcha.net",
    "geetest.com",
    "captcha.luosimao.com",
    "aliyuncs.com/captcha",
    "tencent.com/cap",
)

DEFAULT_ANTI_BOT_DOMAINS: tuple[str, ...] = (
    "cloudflare.com",
    "akamai.com",
    "incapsula.com",
    "datadome.co",
    "perimeterx.com",
    "shape.com",
    "imperva.com",
    "sucuri.net",
    "f5.com",
)


class AnalyzerSettings(pydantic_settings.BaseSettings):
    """Timeouts, limits and detection data for website analysis.

    Attributes:
        navigation_timeout_ms: Upper bound for ``page.goto``.
        network_idle_timeout_ms: Upper bound for the network-idle wait.
        default_wait_ms: Dynamic-content wait when the caller gives none.
        quick_mode_wait_ms: Fixed wait used in quick mode.
        max_wait_ms: Ceiling applied to caller-supplied wait times.
        max_response_body_size: Characters of response body kept per request.
        headless: Launch Chromium without a visible window.
        viewport_width: Browser context viewport width.
        viewport_height: Browser context viewport height.
        captcha_domains: URL fragments that identify captcha providers.
        anti_bot_domains: URL fragments that identify anti-bot services.
    """

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="SCRAPER_", extra="ignore")

    navigation_timeout_ms: int = pydantic.Field(default=30000, gt=0)
    network_idle_timeout_ms: int = pydantic.Field(default=10000, gt=0)
    default_wait_ms: int = pydantic.Field(default=3000, ge=0)
    quick_mode_wait_ms: int = pydantic.Field(default=1000, ge=0)
    max_wait_ms: int = pydantic.Field(default=10000, ge=0)
    max_response_body_size: int = pydantic.Field(default=50000, gt=0)
    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    captcha_domains: list[str] = pydantic.Field(default_factory=lambda: list(DEFAULT_CAPTCHA_DOMAINS))
    anti_bot_domains: list[str] = pydantic.Field(default_factory=lambda: list(DEFAULT_ANTI_BOT_DOMAINS))


class ServerSettings(pydantic_settings.BaseSettings):
    """Transport and logging options for the server process.

    Attributes:
        transport: ``stdio`` for a local pipe, ``http`` for the HTTP listener.
        host: Interface the HTTP listener binds to.
        port: Port the HTTP listener binds to.
        log_level: Minimum level written to stderr (and the log file).
        verbose: Also append log lines to ``log_file``.
        log_file: Log file path, relative to the working directory.
    """

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="SCRAPER_", extra="ignore")

    transport: Literal["stdio", "http"] = "stdio"
    host: str = "0.0.0.0"
    port: int = pydantic.Field(default=8080, ge=0, le=65535)
    log_level: str = "INFO"
    verbose: bool = False
    log_file: str = "logs/server.log"


@functools.lru_cache(maxsize=1)
def get_settings() -> AnalyzerSettings:
    """Return the process-wide analyzer settings (read once from the environment)."""
    return AnalyzerSettings()


@functools.lru_cache(maxsize=1)
def get_server_settings() -> ServerSettings:
    """Return the process-wide server settings (read once from the environment)."""
    return ServerSettings()
