"""
Storage for finished analysis reports, keyed by the analysed URL.

Reports live only for the lifetime of the process. Writing a report
for a URL that is already stored replaces it; when two analyses of
the same URL race, whichever finishes last is kept.
"""

from __future__ import annotations

from typing import Protocol

from scraper_analytics.models import report


class ResultStore(Protocol):
    """Interface the tool handlers use to keep and look up reports."""

    def get(self, url: str) -> report.AnalysisReport | None: ...

    def set(self, url: str, result: report.AnalysisReport) -> None: ...

    def clear(self) -> None: ...

    def count(self) -> int: ...


class InMemoryResultStore:
    """Process-lifetime ``dict`` implementation of ``ResultStore``."""

    def __init__(self) -> None:
        self._results: dict[str, report.AnalysisReport] = {}

    def get(self, url: str) -> report.AnalysisReport | None:
        """Return the report stored for *url*, if any."""
        return self._results.get(url)

    def set(self, url: str, result: report.AnalysisReport) -> None:
        """Store *result* under *url*, replacing any previous report."""
        self._results[url] = result

    def clear(self) -> None:
        """Forget every stored report."""
        self._results.clear()

    def count(self) -> int:
        """Return how many URLs currently have a stored report."""
        return len(self._results)
