"""Lending Library - Core Application Package

This package contains the core application modules including:
- Domain objects (book.py, user.py, borrowing.py)
- The Library aggregate (library.py)
- Return history storage (history.py)
- Lend/return workflows (services/management.py)
- Display helpers (ui_helpers.py)
"""

from lending_library.book import Book
from lending_library.borrowing import BorrowingPolicy, BorrowingRecord
from lending_library.errors import (
    ConflictError,
    InvalidArgumentError,
    LibraryError,
    NotFoundError,
    PolicyViolationError,
    StorageError,
)
from lending_library.history import HistoryRepository
from lending_library.library import Library
from lending_library.services import lend_book, pay_fines, return_book
from lending_library.user import User

__all__ = [
    "Book",
    "User",
    "BorrowingPolicy",
    "BorrowingRecord",
    "HistoryRepository",
    "Library",
    "lend_book",
    "return_book",
    "pay_fines",
    "LibraryError",
    "NotFoundError",
    "ConflictError",
    "PolicyViolationError",
    "InvalidArgumentError",
    "StorageError",
]
