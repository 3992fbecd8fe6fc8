"""
Error types - Typed exceptions for the comparison pipeline

Fatal errors (AuthFailure, ListingFailure) abort a scan before any progress
is streamed. Per-file errors (ThrottleExhausted, FetchFailure) are recorded
against the file and the scan continues.
"""

from __future__ import annotations


class ThemeDiffError(RuntimeError):
    """Base class for all theme comparison errors."""


class AuthFailure(ThemeDiffError):
    """No usable credentials for the remote store."""


class AssetStoreError(ThemeDiffError):
    """Non-success HTTP response from the remote asset store."""

    def __init__(self, status: int, body: str = "", label: str = ""):
        self.status = status
        self.body = body
        self.label = label
        where = f" for {label}" if label else ""
        super().__init__(f"Asset store error{where} (HTTP {status}): {body[:200]}")


class ThrottledError(AssetStoreError):
    """HTTP 429 from the remote store; the only retryable failure."""

    def __init__(self, body: str = "", label: str = ""):
        super().__init__(429, body, label)


class ThrottleExhausted(ThemeDiffError):
    """A task was still throttled after its retry budget was spent."""

    def __init__(self, label: str, attempts: int):
        self.label = label
        self.attempts = attempts
        super().__init__(f"Rate limit still exceeded for {label or 'request'} after {attempts} attempts")


class ListingFailure(ThemeDiffError):
    """Listing the assets of one theme failed."""

    def __init__(self, theme_id: str, cause: Exception):
        self.theme_id = theme_id
        self.cause = cause
        super().__init__(f"Failed to list assets for theme {theme_id}: {cause}")


class FetchFailure(ThemeDiffError):
    """Fetching one asset body failed for a reason other than throttling."""

    def __init__(self, key: str, theme_id: str, cause: Exception):
        self.key = key
        self.theme_id = theme_id
        self.cause = cause
        super().__init__(f"Failed to fetch {key} from theme {theme_id}: {cause}")


class ParseFailure(ThemeDiffError):
    """A progress stream line could not be parsed by the consumer."""

    def __init__(self, line: str, reason: str = ""):
        self.line = line
        self.reason = reason
        if not line:
            super().__init__(reason or "Empty progress stream")
            return
        suffix = f": {reason}" if reason else ""
        super().__init__(f"Malformed progress line {line[:80]!r}{suffix}")


class ComparisonNotFound(ThemeDiffError):
    """No stored comparison with the given id."""

    def __init__(self, comparison_id: str):
        self.comparison_id = comparison_id
        super().__init__(f"Comparison not found: {comparison_id}")
