"""
Custom exceptions for the Drive recipe importer.

Every error carries a human-readable message plus a ``details`` dict
that is appended to its string form.
"""

from typing import Any, Optional


class RecipeImporterError(Exception):
    """Root of the importer's exception hierarchy."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Args:
            message: What went wrong
            details: Identifiers and context for logging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Google Drive Exceptions
# =============================================================================


class GoogleDriveError(RecipeImporterError):
    """A Drive API call failed."""

    pass


class DriveAuthenticationError(GoogleDriveError):
    """Authentication with Google Drive failed."""

    pass


class DriveQuotaExceededError(GoogleDriveError):
    """Drive answered 429 Too Many Requests."""

    def __init__(self, retry_after: Optional[int] = None) -> None:
        """Initialize with retry information."""
        message = "Google Drive API quota exceeded"
        details = {}
        if retry_after:
            message += f". Retry after {retry_after} seconds"
            details["retry_after"] = retry_after
        super().__init__(message, details)


class DriveFileNotFoundError(GoogleDriveError):
    """Drive answered 404 for a file ID."""

    def __init__(self, file_id: str) -> None:
        """Initialize with file ID."""
        message = f"File with ID '{file_id}' not found in Google Drive"
        super().__init__(message, {"file_id": file_id})


class ListingError(GoogleDriveError):
    """Listing the children of a folder failed."""

    def __init__(self, folder_id: str, error: str) -> None:
        """Initialize with folder information."""
        message = f"Failed to list folder '{folder_id}': {error}"
        super().__init__(message, {"folder_id": folder_id, "error": error})
        self.folder_id = folder_id


class NameLookupError(GoogleDriveError):
    """Resolving a folder's display name failed."""

    def __init__(self, folder_id: str, error: str) -> None:
        """Initialize with folder information."""
        message = f"Failed to get name of folder '{folder_id}': {error}"
        super().__init__(message, {"folder_id": folder_id, "error": error})
        self.folder_id = folder_id


# =============================================================================
# Content Extraction Exceptions
# =============================================================================


class UnsupportedTypeError(RecipeImporterError):
    """No extraction strategy is registered for a MIME type."""

    def __init__(self, mime_type: str) -> None:
        """Initialize with MIME type."""
        message = f"Unsupported file type: {mime_type}"
        super().__init__(message, {"mime_type": mime_type})
        self.mime_type = mime_type


class ExtractionError(RecipeImporterError):
    """A registered extraction strategy failed or produced no text."""

    pass


# =============================================================================
# Conversion Exceptions
# =============================================================================


class RecipeConversionError(RecipeImporterError):
    """Error converting recipe text into a structured recipe."""

    pass


# =============================================================================
# Mealie Exceptions
# =============================================================================


class MealieError(RecipeImporterError):
    """Base exception for Mealie operations."""

    pass


class MealieAPIError(MealieError):
    """Mealie answered with a non-success status."""

    def __init__(self, status_code: int, reason: str, url: str) -> None:
        """Initialize with response information."""
        message = f"Mealie API error: {status_code} {reason}"
        super().__init__(message, {"status_code": status_code, "url": url})
        self.status_code = status_code


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(RecipeImporterError):
    """Configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Required configuration missing."""

    def __init__(self, config_name: str) -> None:
        """Initialize with config name."""
        message = f"Required configuration '{config_name}' is missing"
        super().__init__(message, {"config_name": config_name})
