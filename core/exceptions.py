"""
Source Error Taxonomy

Errors raised by source adapters when a provider request cannot produce data.
The pipeline surfaces them to callers unmodified for required legs and
absorbs them for optional legs.

    SourceError
    ├── RateLimited    provider signaled throttling (HTTP 429)
    ├── FetchFailed    transport or non-success HTTP status
    └── ProviderError  success status with an error payload

Too-short series for an indicator are not an error: indicator functions
return an empty list instead.
"""

from typing import Optional


class SourceError(Exception):
    """Base class for provider failures."""

    def __init__(self, message: str, provider: str, asset: str):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.asset = asset

    @property
    def kind(self) -> str:
        """Error kind name, preserved for display."""
        return type(self).__name__


class RateLimited(SourceError):
    """Provider answered with HTTP 429."""

    def __init__(self, provider: str, asset: str):
        super().__init__(
            f"Rate limit exceeded on {provider} while fetching {asset}. "
            f"Please wait a moment and try again.",
            provider,
            asset,
        )


class FetchFailed(SourceError):
    """Non-success HTTP response, timeout or connection error."""

    def __init__(self, provider: str, asset: str, status: Optional[int] = None, reason: str = ""):
        detail = f"HTTP {status}" if status is not None else "no response"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(f"Failed to fetch {asset} data from {provider} ({detail})", provider, asset)
        self.status = status
        self.reason = reason


class ProviderError(SourceError):
    """Provider returned a success status but an error payload."""

    def __init__(self, provider: str, asset: str, provider_message: str):
        super().__init__(f"{provider} error for {asset}: {provider_message}", provider, asset)
        self.provider_message = provider_message
