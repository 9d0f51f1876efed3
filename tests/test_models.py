"""Tests for scraper_analytics.models: exchange and report models."""

from __future__ import annotations

import pydantic
import pytest

from conftest import make_exchange
from scraper_analytics.models import exchange, report


class TestCapturedExchange:
    def test_accepts_camel_case_keys(self) -> None:
        captured = exchange.CapturedExchange.model_validate(
            {
                "id": "1",
                "url": "https://example.com",
                "method": "GET",
                "timestamp": "2026-01-01T00:00:00Z",
                "resourceType": "document",
                "postData": "a=1",
            }
        )
        assert captured.resource_type == "document"
        assert captured.post_data == "a=1"

    def test_unresolved_until_status_set(self) -> None:
        captured = make_exchange("https://example.com", status=None)
        assert captured.is_resolved is False
        captured.status = 204
        assert captured.is_resolved is True

    def test_dump_by_alias(self) -> None:
        dumped = make_exchange("https://example.com", "xhr").model_dump(by_alias=True)
        assert "resourceType" in dumped
        assert "responseHeaders" in dumped


class TestAnalysisReport:
    def test_is_frozen(self, example_report: report.AnalysisReport) -> None:
        with pytest.raises(pydantic.ValidationError):
            example_report.title = "changed"  # type: ignore[misc]

    def test_find_request(self, example_report: report.AnalysisReport) -> None:
        found = example_report.find_request("api")
        assert found is not None
        assert found.url == "https://api.example.com/data"

    def test_find_missing_request(self, example_report: report.AnalysisReport) -> None:
        assert example_report.find_request("nope") is None


class TestAntiBotDetection:
    def test_not_detected(self) -> None:
        verdict = report.AntiBotDetection.not_detected()
        assert verdict.detected is False
        assert verdict.type is None

    def test_not_detected_with_note(self) -> None:
        verdict = report.AntiBotDetection.not_detected("Security analyzer unavailable")
        assert verdict.details == "Security analyzer unavailable"

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            report.AntiBotDetection(detected=True, type="magic")  # type: ignore[arg-type]


class TestExtractedElement:
    def test_rejects_unknown_filter_type(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            report.ExtractedElement(content="", selector="div", type="video", tag="div")  # type: ignore[arg-type]
