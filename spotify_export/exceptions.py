"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class SpotifyExportError(Exception):
    """Base exception for all application-specific errors."""


class AuthenticationError(SpotifyExportError):
    """Raised when the authorization code exchange fails or no login is stored."""


class ConfigurationError(SpotifyExportError):
    """Raised for issues related to configuration loading or validation."""


class ExportNotReadyError(SpotifyExportError):
    """Raised when an export file is requested before an export has completed."""
