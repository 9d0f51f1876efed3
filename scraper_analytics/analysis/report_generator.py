"""
Report assembly: folds captured exchanges, classification and storage
into the immutable ``AnalysisReport``, and derives the summary payload
returned to tool callers.

Everything here is pure: no I/O and no failure modes beyond mapping
malformed request URLs to ``"invalid-url"``.
"""

from __future__ import annotations

import collections
from collections.abc import Sequence
from datetime import datetime, timezone

from scraper_analytics.analysis import security
from scraper_analytics.models import exchange, report
from scraper_analytics.utils import logger
from scraper_analytics.utils import url as url_mod

log = logger.create_logger("ReportGenerator")

SECURITY_ANALYZER_UNAVAILABLE = "Security analyzer unavailable"


def unique_domains(exchanges: Sequence[exchange.CapturedExchange]) -> list[str]:
    """Return request hostnames in first-seen order, without duplicates."""
    # dict preserves insertion order, so it doubles as an ordered set.
    return list(dict.fromkeys(url_mod.extract_hostname(captured.url) for captured in exchanges))


def count_by_resource_type(exchanges: Sequence[exchange.CapturedExchange]) -> dict[str, int]:
    """Tally exchanges per resource type, in first-seen order."""
    return dict(collections.Counter(captured.resource_type for captured in exchanges))


class ReportGenerator:
    """
    Builds the final report from already computed inputs.

    The security analyzer is an injection point. When it is ``None``
    (for instance because its detection data failed to load), reports
    carry a negative verdict with an explanatory note instead.
    """

    def __init__(self, security_analyzer: security.SecurityAnalyzer | None) -> None:
        self._security_analyzer = security_analyzer

    def generate_analysis_result(
        self,
        url: str,
        title: str,
        exchanges: Sequence[exchange.CapturedExchange],
        render_method: report.RenderMethod,
        browser_storage: report.BrowserStorage | None = None,
    ) -> report.AnalysisReport:
        """Assemble the immutable report for one analysis run.

        The exchanges are deep-copied: responses that arrive after
        assembly keep patching the live list but never the report.
        """
        snapshot = [captured.model_copy(deep=True) for captured in exchanges]

        if self._security_analyzer is None:
            anti_bot = report.AntiBotDetection.not_detected(SECURITY_ANALYZER_UNAVAILABLE)
        else:
            anti_bot = self._security_analyzer.detect_anti_bot_systems(snapshot, title)

        return report.AnalysisReport(
            url=url,
            title=title,
            requests=snapshot,
            total_requests=len(snapshot),
            unique_domains=unique_domains(snapshot),
            requests_by_type=count_by_resource_type(snapshot),
            analysis_timestamp=datetime.now(timezone.utc).isoformat(),
            render_method=render_method,
            anti_bot_detection=anti_bot,
            browser_storage=browser_storage,
        )


def create_report_generator(
    captcha_domains: Sequence[str] | None = None,
    anti_bot_domains: Sequence[str] | None = None,
) -> ReportGenerator:
    """Build a generator, degrading gracefully if the analyzer cannot be built."""
    try:
        analyzer: security.SecurityAnalyzer | None = security.SecurityAnalyzer(
            captcha_domains, anti_bot_domains
        )
    except Exception as exc:
        log.warn("Security analyzer unavailable, anti-bot detection disabled", {"error": str(exc)})
        analyzer = None
    return ReportGenerator(analyzer)


# ============================================================================
# Summary derivation
# ============================================================================


def build_analysis_summary(result: report.AnalysisReport) -> report.AnalysisSummary:
    """Project a stored report onto the summary returned to callers.

    Derived only from the report, so the same report always yields
    the same summary.
    """
    per_domain = collections.Counter(url_mod.extract_hostname(captured.url) for captured in result.requests)
    domains = [
        report.DomainSummary(
            domain=domain,
            # Requests with malformed URLs never match a hostname.
            request_count=0 if domain == url_mod.INVALID_URL_HOSTNAME else per_domain[domain],
        )
        for domain in result.unique_domains
    ]

    return report.AnalysisSummary(
        website_info=report.WebsiteInfo(
            url=result.url,
            title=result.title,
            analysis_timestamp=result.analysis_timestamp,
            render_method=result.render_method,
        ),
        request_summary=report.RequestSummary(
            total_requests=result.total_requests,
            unique_domains=len(result.unique_domains),
            requests_by_type=dict(result.requests_by_type),
        ),
        domains=domains,
        anti_bot_detection=result.anti_bot_detection,
        browser_storage=result.browser_storage,
    )


def filter_requests_by_domain(result: report.AnalysisReport, domain: str) -> report.DomainRequests:
    """Return lightweight views of the requests whose hostname is exactly *domain*."""
    matching = [captured for captured in result.requests if url_mod.hostname_matches(captured.url, domain)]
    return report.DomainRequests(
        url=result.url,
        domain=domain,
        total_requests=len(matching),
        requests=[
            report.RequestProjection(
                id=captured.id,
                url=captured.url,
                method=captured.method,
                resource_type=captured.resource_type,
                status=captured.status,
                timestamp=captured.timestamp,
            )
            for captured in matching
        ],
    )


def build_request_details(captured: exchange.CapturedExchange) -> report.RequestDetails:
    """Return the full view of one exchange."""
    return report.RequestDetails(
        id=captured.id,
        url=captured.url,
        method=captured.method,
        resource_type=captured.resource_type,
        timestamp=captured.timestamp,
        status=captured.status,
        request_headers=dict(captured.headers),
        post_data=captured.post_data,
        response_headers=captured.response_headers,
        response_body=captured.response_body,
    )
