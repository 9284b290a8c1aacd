"""Lend and return workflows.

These functions are the only place where availability, the borrowing limit
and the fine rules are checked together. Checks run in a fixed order since
later ones assume the earlier ones passed.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from lending_library.book import Book
from lending_library.borrowing import BorrowingRecord, utcnow
from lending_library.errors import ConflictError, NotFoundError, PolicyViolationError
from lending_library.library import Library
from lending_library.user import User

logger = logging.getLogger(__name__)


def _resolve(library: Library, isbn: str, user_id: str) -> Tuple[Book, User]:
    book = library.get_book(isbn)
    if book is None:
        raise NotFoundError(f"Book with ISBN {isbn} not found in library.")

    user = library.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not registered in library.")
    return book, user


def lend_book(
    library: Library,
    isbn: str,
    user_id: str,
    due_days: int = 7,
    now: Optional[datetime] = None,
) -> str:
    """Lend the book ``isbn`` to ``user_id`` for ``due_days`` days."""
    book, user = _resolve(library, isbn, user_id)

    if library.is_book_borrowed(isbn):
        raise ConflictError(f"Book with title: {book.title} is currently marked as borrowed.")

    if library.is_borrowing_limit_reached(user_id):
        raise PolicyViolationError(
            f"User with ID {user_id} has reached the borrowing limit: "
            f"{len(library.get_user_borrowings(user_id))}."
        )

    fines = library.get_overdue_fines(user_id)
    if fines > 0:
        raise PolicyViolationError(
            f"User with ID {user_id} has {fines} overdue fines, please pay them first."
        )

    now = now or utcnow()
    record = BorrowingRecord(user.id, book.isbn, due_date=now + timedelta(days=due_days), borrowed_at=now)
    library.add_to_borrowing_record(record)

    logger.info(f"Book lent: isbn={isbn}, user={user_id}, due_days={due_days}")
    return f"{book.title} has been borrowed by {user.name}."


async def return_book(
    library: Library,
    isbn: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> str:
    """Close the loan of ``isbn``, charging the overdue fine when it applies.

    Anyone registered may hand the book back; the fine is always charged to
    the borrower named on the loan. The fine is only booked once the history
    entry is saved, so a return that fails on storage can be retried as is.
    """
    book, user = _resolve(library, isbn, user_id)

    record = library.get_borrowing_record(isbn)
    if record is None:
        raise ConflictError(f"Book with title: {book.title} is not currently marked as borrowed.")

    now = now or utcnow()
    fine = library.calculate_overdue_fines(isbn, now)

    await library.remove_from_borrowing_record(isbn, now)

    if fine > 0:
        library.add_to_overdue_fines(record.user_id, fine)
        logger.warning(f"Overdue return: isbn={isbn}, borrower={record.user_id}, fine={fine}")

    logger.info(f"Book returned: isbn={isbn}, user={user_id}")
    if fine:
        return f"{book.title} has been returned by {user.name} with a fine of {fine}."
    return f"{book.title} has been returned by {user.name}."


def pay_fines(library: Library, user_id: str) -> str:
    """Settle the whole outstanding fine balance of ``user_id``."""
    user = library.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not registered in library.")

    amount = library.get_overdue_fines(user_id)
    if amount == 0:
        return f"{user.name} has no outstanding fines."

    library.remove_from_overdue_fines(user_id)
    logger.info(f"Fines paid: user={user_id}, amount={amount}")
    return f"{user.name} has paid fines of {amount}."
