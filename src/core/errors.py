from __future__ import annotations


class CompanionError(Exception):
    """Base error for the Jellyfin companion service."""


class ValidationError(CompanionError):
    """Raised when user input is invalid."""


class AccessDeniedError(CompanionError):
    """Raised when Jellyfin rejects the configured credentials."""


class ExternalServiceError(CompanionError):
    """Raised when an external service (Jellyfin) fails or is unreachable."""


class NotFoundError(CompanionError):
    """Raised when a requested resource is not found."""
