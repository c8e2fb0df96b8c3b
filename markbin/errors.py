"""
Errors raised by the paste store and the gateway.
The message of each error is what the error page shows.
"""
from typing import Optional


class PasteError(Exception):
    """Base class for paste failures."""

    message = "An unknown error occurred"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class PasteNotFoundError(PasteError, LookupError):
    """No paste is stored under the requested url."""

    message = "Paste does not exist"


class StoreError(PasteError):
    """The storage backend failed while reading or writing."""

    message = "Paste storage is unavailable"


class PasteExistsError(PasteError):
    """A paste with the requested url already exists."""

    message = "A paste with this url already exists"


class OtherError(PasteError):
    """Unexpected internal failure."""

    message = "An unexpected error occurred"
