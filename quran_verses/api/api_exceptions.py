"""
Custom exception classes for content source operations.

Provides granular exception hierarchy for precise error handling
and user-friendly error messages.

Author: Kasim Lyee <lyee@codewithlyee.com>
Organization: Softlite Inc.
License: MIT
"""


class APIError(Exception):
    """Base exception for all content source errors."""

    def __init__(self, message: str, status_code: int = None):
        """
        Initialize API error.

        Args:
            message: Human-readable error description
            status_code: HTTP status code if applicable
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class APIConnectionError(APIError):
    """Raised when the content source is unreachable or answers with a non-2xx status."""

    def __init__(self, message: str = "Failed to connect to Quran API", status_code: int = None):
        super().__init__(message, status_code=status_code)


class APITimeoutError(APIConnectionError):
    """Raised when API request times out."""

    def __init__(self, message: str = "Quran API request timed out"):
        super().__init__(message)


class APIServerError(APIConnectionError):
    """Raised when API server returns 5xx error."""

    def __init__(self, message: str = "Quran API server error", status_code: int = 500):
        super().__init__(message, status_code=status_code)


class APIVerseNotFoundError(APIError):
    """Raised when a chapter or verse reference does not exist."""

    def __init__(self, message: str = "Chapter or verse not found"):
        super().__init__(message, status_code=404)


class APIResponseError(APIError):
    """Raised when the content source returns a payload we cannot parse."""

    def __init__(self, message: str = "Malformed response from Quran API"):
        super().__init__(message)


NetworkError = APIConnectionError
NotFoundError = APIVerseNotFoundError
