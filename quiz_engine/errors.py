"""
Errors Module
Exception taxonomy for task resolution, asset fetching and submission.
"""

from typing import Optional


class QuizEngineError(Exception):
    """Base class for all engine errors."""


class MissingAssetError(QuizEngineError):
    """A task needs a file but no URL could be resolved for it."""

    def __init__(self, task: str):
        self.task = task
        super().__init__(f"No file URL for {task} task")


class MissingDataError(QuizEngineError):
    """A chart task arrived without series data."""

    def __init__(self, message: str = "No data for chart task"):
        super().__init__(message)


class AssetNotFoundError(QuizEngineError):
    """Every audio resolution strategy was exhausted."""

    def __init__(self, tried: int):
        self.tried = tried
        super().__init__(f"Could not find audio file. Tried {tried} alternative paths.")


class NetworkError(QuizEngineError):
    """Transport failure while fetching, distinguishing timeouts."""

    def __init__(self, url: str, reason: str, timed_out: bool = False):
        self.url = url
        self.reason = reason
        self.timed_out = timed_out
        super().__init__(f"Network error fetching {url}: {'timeout' if timed_out else reason}")


class HttpStatusError(QuizEngineError):
    """Non-2xx response, with an optional body snippet."""

    def __init__(self, url: str, status: int, reason: str = '', snippet: str = '',
                 message: Optional[str] = None):
        self.url = url
        self.status = status
        self.snippet = snippet
        if message is None:
            if status in (401, 403):
                message = (f"Download failed: {status} {reason}. The resource may be protected "
                           f"(requires cookies/headers/auth).")
            else:
                message = f"Download failed: {status} {reason}."
        if snippet:
            message = f"{message} {snippet}"
        super().__init__(message)


class HtmlInsteadOfAssetError(QuizEngineError):
    """A wrapper page was fetched and no asset URL could be found in it."""

    def __init__(self, url: str, snippet: str = ''):
        self.url = url
        self.snippet = snippet
        super().__init__(
            f"Downloaded HTML from {url} but could not find a direct asset URL. This usually means "
            f"your scraper extracted a page rather than a file. HTML snippet: {snippet}"
        )


class ParseError(QuizEngineError):
    """Malformed JSON where structured data was expected. Logged, never fatal."""

    def __init__(self, message: str, snippet: str = ''):
        self.snippet = snippet
        super().__init__(message)


class FeatureDisabledError(QuizEngineError):
    """A collaborator feature (OCR) is switched off in this deployment."""

    def __init__(self, feature: str, hint: str = ''):
        self.feature = feature
        super().__init__(f"{feature} not enabled{': ' + hint if hint else ''}")


class ChainExhaustedError(QuizEngineError):
    """Every step of a fallback chain failed."""

    def __init__(self, name: str, tried: int, last_error: Optional[BaseException] = None):
        self.name = name
        self.tried = tried
        self.last_error = last_error
        super().__init__(f"{name}: all {tried} attempts failed (last error: {last_error})")
