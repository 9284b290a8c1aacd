"""Lending Library - Services Package

Workflow functions that coordinate several Library operations:
- lend_book / return_book
- pay_fines
"""

from lending_library.services.management import lend_book, pay_fines, return_book

__all__ = ["lend_book", "return_book", "pay_fines"]
