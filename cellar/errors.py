"""Gateway error taxonomy.

Every terminal failure carries the HTTP status it is reported with, so the
API layer can turn any ``GatewayError`` into a JSON error body.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base class for failures that end a request."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class Unauthorized(GatewayError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class Forbidden(GatewayError):
    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(GatewayError):
    status_code = 404


class InvalidRequest(GatewayError):
    status_code = 400


class UnsupportedProvider(GatewayError):
    status_code = 400

    def __init__(self, provider: str) -> None:
        super().__init__("Unsupported provider")
        self.provider = provider


class ProviderNotConfigured(GatewayError):
    """The service-wide credential for a provider is missing."""

    status_code = 500


class UpstreamError(GatewayError):
    """The AI provider call failed or returned a non-success status."""

    def __init__(self, status_code: int, details: str, message: str = "AI API error") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class ToolExecutionError(Exception):
    """A single tool call failed; contained to that call's result slot."""
