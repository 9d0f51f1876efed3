"""
Anti-bot, captcha and rate-limit detection.

Scans the captured exchanges and the page title for known
signatures. The checks are pattern-matching heuristics: they give a
best-effort signal and will misfire on pages that merely mention a
captcha, which is accepted.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from scraper_analytics import config
from scraper_analytics.models import exchange, report
from scraper_analytics.utils import url as url_mod

RATE_LIMIT_STATUS_CODES = frozenset([429])
RATE_LIMIT_HEADER_MARKERS = ("rate-limit", "x-ratelimit", "retry-after")
CAPTCHA_TITLE_MARKERS = ("captcha", "security check", "are you a robot")


def _first_url_match(
    exchanges: Sequence[exchange.CapturedExchange], fragments: Sequence[str]
) -> exchange.CapturedExchange | None:
    for captured in exchanges:
        if any(fragment in captured.url for fragment in fragments):
            return captured
    return None


def _has_rate_limit_header(headers: Iterable[str]) -> bool:
    for name in headers:
        lowered = name.lower()
        if any(marker in lowered for marker in RATE_LIMIT_HEADER_MARKERS):
            return True
    return False


def _first_rate_limited(
    exchanges: Sequence[exchange.CapturedExchange],
) -> exchange.CapturedExchange | None:
    for captured in exchanges:
        if captured.status in RATE_LIMIT_STATUS_CODES:
            return captured
        if captured.response_headers and _has_rate_limit_header(captured.response_headers):
            return captured
    return None


class SecurityAnalyzer:
    """
    Detects bot-mitigation techniques from captured traffic and the page title.

    The provider fragment lists are injected so deployments can
    extend them without touching the detection rules.
    """

    def __init__(
        self,
        captcha_domains: Sequence[str] | None = None,
        anti_bot_domains: Sequence[str] | None = None,
    ) -> None:
        if captcha_domains is None or anti_bot_domains is None:
            settings = config.get_settings()
            if captcha_domains is None:
                captcha_domains = settings.captcha_domains
            if anti_bot_domains is None:
                anti_bot_domains = settings.anti_bot_domains
        self.captcha_domains = tuple(captcha_domains)
        self.anti_bot_domains = tuple(anti_bot_domains)

    def detect_anti_bot_systems(
        self,
        exchanges: Sequence[exchange.CapturedExchange],
        title: str,
    ) -> report.AntiBotDetection:
        """Return the first matching verdict, checked in priority order.

        Request-based evidence (captcha providers, then rate limiting,
        then anti-bot services) always outranks the page title.
        """
        captcha_request = _first_url_match(exchanges, self.captcha_domains)
        if captcha_request is not None:
            return report.AntiBotDetection(
                detected=True,
                type="captcha",
                details=f"Captcha detected from domain: {url_mod.extract_hostname(captcha_request.url)}",
            )

        rate_limited = _first_rate_limited(exchanges)
        if rate_limited is not None:
            status = rate_limited.status if rate_limited.status is not None else "unknown"
            return report.AntiBotDetection(
                detected=True,
                type="rate-limiting",
                details=f"Rate limiting detected with status code: {status}",
            )

        anti_bot_request = _first_url_match(exchanges, self.anti_bot_domains)
        if anti_bot_request is not None:
            return report.AntiBotDetection(
                detected=True,
                type="behavioral-analysis",
                details=f"Anti-bot service detected from domain: {url_mod.extract_hostname(anti_bot_request.url)}",
            )

        title_lower = title.lower()
        if any(marker in title_lower for marker in CAPTCHA_TITLE_MARKERS):
            return report.AntiBotDetection(
                detected=True,
                type="captcha",
                details="Captcha indicated in page title",
            )

        return report.AntiBotDetection(detected=False)
