"""
Error taxonomy for the analysis pipeline and helpers for
consistent error message extraction.

Every exception raised across the analyzer boundary is one of the
``ScraperError`` subclasses below; the tool handlers translate them
into protocol errors so the transport never sees raw internals.
"""

from __future__ import annotations


class ScraperError(Exception):
    """Base class for all errors raised by the analysis pipeline."""


class InvalidArgumentError(ScraperError):
    """A caller-supplied argument is missing or malformed."""


class InvalidUrlError(InvalidArgumentError):
    """The supplied URL is not an absolute URL."""


class AnalysisTimeoutError(ScraperError):
    """Navigation or analysis exceeded its time budget."""


class ResourceNotFoundError(ScraperError):
    """A referenced analysis or request does not exist."""


class AnalysisError(ScraperError):
    """Any other failure while analysing a website."""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.

    Falls back to the exception class name when the exception
    carries no message.
    """
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return "Unknown error"


def is_timeout_error(error: BaseException) -> bool:
    """Return whether *error* describes a timeout.

    Playwright raises its own ``TimeoutError`` subclass whose
    message contains ``Timeout``; ``asyncio`` timeouts carry no
    message at all, so the class name is checked as well.
    """
    if isinstance(error, TimeoutError):
        return True
    if "timeout" in type(error).__name__.lower():
        return True
    return "timeout" in get_error_message(error).lower()
