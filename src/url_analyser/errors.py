# src/url_analyser/errors.py
from typing import Optional


class AnalyserError(Exception):
    """Base class for every error raised by the page analyser."""


class ParseFailure(AnalyserError):
    """The document does not tokenize to a clean end-of-input."""

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        message = "Document could not be tokenized"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class UnparseableHref(AnalyserError, ValueError):
    """An anchor's href is not a valid URL."""

    def __init__(self, href: str, reason: str = ""):
        self.href = href
        self.reason = reason
        super().__init__(f"Unparseable href {href!r}" + (f": {reason}" if reason else ""))


class ProbeFailure(AnalyserError):
    """A reachability check errored or returned a non-2xx status."""

    def __init__(self, url: str, status_code: Optional[int] = None, error: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        self.error = error
        detail = error if error else f"status {status_code}"
        super().__init__(f"Link {url} is inaccessible ({detail})")


class AnalyserStateError(AnalyserError, RuntimeError):
    """The analyser was used outside its supported lifecycle."""


class PageFetchFailure(AnalyserError):
    """The page to analyse could not be retrieved."""

    def __init__(self, url: str, status_code: Optional[int] = None, error: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        self.error = error
        detail = error if error else f"status {status_code}"
        super().__init__(f"Failed to retrieve data from request to url: {url} ({detail})")
