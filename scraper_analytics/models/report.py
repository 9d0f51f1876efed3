"""Pydantic models for analysis reports, summaries and tool payloads."""

from __future__ import annotations

from typing import Literal

import pydantic

from scraper_analytics.models import exchange
from scraper_analytics.utils.serialization import snake_to_camel

RenderMethod = Literal["client", "server", "unknown"]

FilterType = Literal["text", "image", "link", "script"]

AntiBotType = Literal["captcha", "rate-limiting", "behavioral-analysis", "other", "unknown"]

_CAMEL = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)
_FROZEN_CAMEL = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True, frozen=True)


# ============================================================================
# Report building blocks
# ============================================================================


class AntiBotDetection(pydantic.BaseModel):
    """Verdict of the anti-bot heuristics."""

    model_config = _FROZEN_CAMEL

    detected: bool
    type: AntiBotType | None = None
    details: str | None = None

    @classmethod
    def not_detected(cls, details: str | None = None) -> AntiBotDetection:
        """Create a negative verdict, optionally with an explanatory note."""
        return cls(detected=False, details=details)


class StorageCookie(pydantic.BaseModel):
    """A cookie read from the browser context."""

    model_config = _FROZEN_CAMEL

    name: str
    value: str
    domain: str
    path: str
    expires: float
    http_only: bool
    secure: bool
    same_site: str


class BrowserStorage(pydantic.BaseModel):
    """Snapshot of cookies, localStorage and sessionStorage."""

    model_config = _FROZEN_CAMEL

    cookies: list[StorageCookie] = pydantic.Field(default_factory=list)
    local_storage: dict[str, str] = pydantic.Field(default_factory=dict)
    session_storage: dict[str, str] = pydantic.Field(default_factory=dict)


class AnalysisReport(pydantic.BaseModel):
    """The finished, immutable result of one analysis run."""

    model_config = _FROZEN_CAMEL

    url: str
    title: str
    requests: list[exchange.CapturedExchange]
    total_requests: int
    unique_domains: list[str]
    requests_by_type: dict[str, int]
    analysis_timestamp: str
    render_method: RenderMethod
    anti_bot_detection: AntiBotDetection
    browser_storage: BrowserStorage | None = None

    def find_request(self, request_id: str) -> exchange.CapturedExchange | None:
        """Return the captured exchange with *request_id*, if any."""
        for captured in self.requests:
            if captured.id == request_id:
                return captured
        return None


# ============================================================================
# Summary payloads
# ============================================================================


class WebsiteInfo(pydantic.BaseModel):
    """Page-level metadata of an analysis."""

    model_config = _CAMEL

    url: str
    title: str
    analysis_timestamp: str
    render_method: RenderMethod


class RequestSummary(pydantic.BaseModel):
    """Request totals and the resource-type histogram."""

    model_config = _CAMEL

    total_requests: int
    unique_domains: int
    requests_by_type: dict[str, int]


class DomainSummary(pydantic.BaseModel):
    """Number of requests sent to one hostname."""

    model_config = _CAMEL

    domain: str
    request_count: int


class AnalysisSummary(pydantic.BaseModel):
    """Summary returned by the analyze and get-summary tools."""

    model_config = _CAMEL

    website_info: WebsiteInfo
    request_summary: RequestSummary
    domains: list[DomainSummary]
    anti_bot_detection: AntiBotDetection
    browser_storage: BrowserStorage | None = None


class RequestProjection(pydantic.BaseModel):
    """Lightweight view of an exchange used when listing by domain."""

    model_config = _CAMEL

    id: str
    url: str
    method: str
    resource_type: str
    status: int | None = None
    timestamp: str


class DomainRequests(pydantic.BaseModel):
    """Requests of one analysis filtered to a single hostname."""

    model_config = _CAMEL

    url: str
    domain: str
    total_requests: int
    requests: list[RequestProjection]


class RequestDetails(pydantic.BaseModel):
    """Full view of a single exchange, headers and bodies included."""

    model_config = _CAMEL

    id: str
    url: str
    method: str
    resource_type: str
    timestamp: str
    status: int | None = None
    request_headers: dict[str, str]
    post_data: str | None = None
    response_headers: dict[str, str] | None = None
    response_body: str | None = None


# ============================================================================
# Element extraction and direct fetch
# ============================================================================


class ExtractedElement(pydantic.BaseModel):
    """A DOM element surfaced by element extraction."""

    model_config = _CAMEL

    content: str
    selector: str
    type: FilterType
    tag: str
    attributes: dict[str, str] = pydantic.Field(default_factory=dict)


class FetchResult(pydantic.BaseModel):
    """Outcome of a direct (non-browser) HTTP request."""

    model_config = _CAMEL

    status: int
    status_text: str
    headers: dict[str, str]
    body: str
    duration: float
