"""lazypulumi exception hierarchy.

Provides a structured exception tree so catch blocks can be specific
and callers can distinguish between different failure modes.
"""

from __future__ import annotations


class LazyPulumiError(Exception):
    """Base for all lazypulumi exceptions."""


class ConfigError(LazyPulumiError):
    """Settings or preferences file failures."""


class ApiError(LazyPulumiError):
    """Any failure talking to the Pulumi Cloud REST API."""


class NoAccessTokenError(ApiError):
    """No access token configured."""

    def __init__(self) -> None:
        super().__init__(
            "No access token configured. "
            "Set PULUMI_ACCESS_TOKEN environment variable."
        )


class TransportError(ApiError):
    """Connection, timeout and other transport-level failures."""


class ApiResponseError(ApiError):
    """Non-2xx response from the API."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"{status} - {body}")
        self.status = status
        self.body = body


class ParseError(ApiError):
    """Response body did not have the expected shape."""
