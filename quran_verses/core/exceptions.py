"""
Exceptions raised by the verse state machinery.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""


class QuranVersesError(Exception):
    """Base exception for verse state errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class StorageError(QuranVersesError):
    """Raised when the persistent state store cannot be read or written."""

    def __init__(self, message: str = "Persistent store operation failed", key: str = None):
        super().__init__(message)
        self.key = key


class VerseLoadError(QuranVersesError):
    """Raised when a verse cannot be materialized from the content source."""

    def __init__(self, message: str = "Failed to load verse"):
        super().__init__(message)


class WidgetUnavailableError(QuranVersesError):
    """Raised by a widget surface that the current platform does not provide."""

    def __init__(self, message: str = "Home-screen widget not supported on this platform"):
        super().__init__(message)
