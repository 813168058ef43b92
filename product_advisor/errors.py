from __future__ import annotations


class AdvisorError(Exception):
    """Base exception for the product advisor."""


class ConfigurationError(AdvisorError):
    """Raised when the remote advisor has no credential to call with."""


class RemoteServiceError(AdvisorError):
    """Raised when the generation service answers with a non-success status."""

    def __init__(self, status: int | None, body: str) -> None:
        self.status = status
        self.body = body
        if status is None:
            message = f"Advisor service unreachable: {body}"
        else:
            message = f"Advisor service error: {status} {body}"
        super().__init__(message)


class MalformedResponse(AdvisorError):
    """Model output that cannot be parsed into recommendations. Always recovered."""


class NoUsableRecommendations(AdvisorError):
    """Model output parsed but yielded nothing usable. Always recovered."""


class CatalogError(AdvisorError):
    """Raised when a catalog file cannot be loaded."""
