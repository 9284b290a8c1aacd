"""Exceptions raised by the lending library.

Each class also derives from the closest built-in exception so callers that
only know about ``LookupError`` or ``ValueError`` keep working.
"""


class LibraryError(Exception):
    """Base class for all library failures."""


class NotFoundError(LibraryError, LookupError):
    """An isbn, user id or active borrowing record does not exist."""


class ConflictError(LibraryError, ValueError):
    """The entity already exists, or the book is already borrowed."""


class PolicyViolationError(LibraryError):
    """A lending rule (borrowing limit, unpaid fines) blocks the operation."""


class InvalidArgumentError(LibraryError, TypeError):
    """An argument has the wrong type."""


class StorageError(LibraryError):
    """The return history could not be read or written."""
