"""
Custom exceptions for the genrebender package.
"""

from typing import List, Optional


class GenreBenderError(Exception):
    """Base exception for all genrebender errors."""
    pass


class ConfigurationError(GenreBenderError):
    """Raised when configuration values cannot be parsed."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        full_message = message
        if self.errors:
            full_message += f": {', '.join(self.errors)}"
        super().__init__(full_message)


class FetchError(GenreBenderError):
    """Raised when a remote request still fails after all attempts."""

    def __init__(self, url: str, message: str, status: Optional[int] = None,
                 body: Optional[str] = None):
        self.url = url
        self.status = status
        self.body = body
        super().__init__(message)


class DecodeError(FetchError):
    """Raised when a successful response carries malformed or unexpected JSON."""
    pass


class FetchCancelled(FetchError):
    """Raised when a fetch is cancelled or runs past its deadline."""
    pass


class CacheIOError(GenreBenderError):
    """Raised when a cache file cannot be read, parsed, or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cache I/O error for '{path}': {reason}")


class MetadataReadError(GenreBenderError):
    """Raised when tags cannot be read from a local audio file."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Cannot read tags from '{file_path}': {reason}")
