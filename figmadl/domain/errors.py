"""Error types raised by the download workflow.

Per-node problems (unexportable nodes, failed downloads) are not raised to the
caller; they are reported as failed ``DownloadOutcome`` records instead.
"""

from typing import Optional


class FigmaDownloadError(Exception):
    """Base class for all figmadl errors."""


class ConfigurationError(FigmaDownloadError):
    """Raised when required settings are missing or invalid."""


class TransportError(FigmaDownloadError):
    """HTTP failure unrelated to throttling (non-2xx other than 429, or network failure)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimitExceededError(FigmaDownloadError):
    """Raised once the retry ceiling is exhausted on repeated 429 responses."""

    def __init__(self, attempts: int, url: Optional[str] = None):
        self.attempts = attempts
        self.url = url
        super().__init__(
            f"Rate limit exceeded after {attempts} attempts. "
            "Please wait a few minutes before trying again."
        )


class VendorApiError(FigmaDownloadError):
    """Application-level error reported in the body of an otherwise successful response."""

    def __init__(self, vendor_message: str):
        self.vendor_message = vendor_message
        super().__init__(f"Figma API error: {vendor_message}")
