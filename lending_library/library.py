import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from lending_library.book import Book
from lending_library.borrowing import BorrowingPolicy, BorrowingRecord, to_millis, utcnow
from lending_library.config import settings
from lending_library.errors import ConflictError, InvalidArgumentError, NotFoundError
from lending_library.history import HistoryRepository
from lending_library.user import User

logger = logging.getLogger(__name__)


class Library:
    """Manages books, users, active loans and overdue fines.

    All state is held in memory. Only returned loans are persisted, through
    the injected ``HistoryRepository``.
    """

    def __init__(
        self,
        borrowing_policy: Optional[BorrowingPolicy] = None,
        history_repository: Optional[HistoryRepository] = None,
        overdue_fine: Optional[int] = None,
    ) -> None:
        self._books: Dict[str, Book] = {}
        self._users: Dict[str, User] = {}
        self._borrowing_record: Dict[str, BorrowingRecord] = {}
        self._user_borrowings: Dict[str, Set[str]] = {}
        self._overdue_fines: Dict[str, int] = {}
        self._borrowing_policy = borrowing_policy or BorrowingPolicy(settings.borrowing_limit)
        self._history_repository = history_repository or HistoryRepository()
        self._overdue_fine = settings.overdue_fine if overdue_fine is None else overdue_fine

    @property
    def borrowing_policy(self) -> BorrowingPolicy:
        return self._borrowing_policy

    @property
    def history_repository(self) -> HistoryRepository:
        return self._history_repository

    # ------------------------- Books ------------------------- #
    def add_book(self, book: Book) -> str:
        """Add a pre-constructed Book. Prevent duplicates by ISBN."""
        if not isinstance(book, Book):
            raise InvalidArgumentError("Book is not an instance of Book class.")
        if book.isbn in self._books:
            raise ConflictError(f"Book with ISBN {book.isbn} already exists in library.")

        self._books[book.isbn] = book
        logger.info(f"Book added: isbn={book.isbn}, title={book.title}")
        return f"Book with ISBN {book.isbn} has been added to the library."

    def remove_book(self, isbn: str) -> str:
        if isbn not in self._books:
            raise NotFoundError(f"Book with ISBN {isbn} does not exist in library.")

        del self._books[isbn]
        logger.info(f"Book removed: isbn={isbn}")
        return f"Book with ISBN {isbn} has been removed from the library."

    def get_book(self, isbn: str) -> Optional[Book]:
        return self._books.get(isbn)

    def get_all_books(self) -> List[Book]:
        return list(self._books.values())

    def search_book(self, keyword: str) -> List[Book]:
        """Search books by title, author (case-insensitive) or publication year."""
        if not isinstance(keyword, str):
            raise InvalidArgumentError("Keyword must be a string.")

        term = keyword.lower()
        return [
            b for b in self._books.values()
            if term in b.title.lower() or term in b.author.lower() or keyword in str(b.year)
        ]

    # ------------------------- Users ------------------------- #
    def register_user(self, user: User) -> str:
        if not isinstance(user, User):
            raise InvalidArgumentError("User is not an instance of User class.")
        if user.id in self._users:
            raise ConflictError("User already registered in library.")

        self._users[user.id] = user
        logger.info(f"User registered: id={user.id}, name={user.name}")
        return f"{user.name} has been registered in library."

    def remove_user(self, user_id: str) -> str:
        if user_id not in self._users:
            raise NotFoundError("User is not registered in library.")

        del self._users[user_id]
        logger.info(f"User removed: id={user_id}")
        return f"User with ID {user_id} has been removed from the library."

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_all_users(self) -> List[User]:
        return list(self._users.values())

    # ------------------------- Borrowing record ------------------------- #
    def add_to_borrowing_record(self, record: BorrowingRecord) -> None:
        """Register an active loan. Callers check that the book is not already borrowed."""
        self._borrowing_record[record.isbn] = record
        self._user_borrowings.setdefault(record.user_id, set()).add(record.isbn)

    async def remove_from_borrowing_record(self, isbn: str, now: Optional[datetime] = None) -> None:
        """Close the active loan for ``isbn`` and append it to the return history.

        The history entry is written before any in-memory state changes, so a
        storage failure leaves the loan active and the call can be retried.
        """
        record = self._get_record(isbn)
        history_entry = {**record.to_dict(), "returned_at": to_millis(now or utcnow())}
        await self._history_repository.save_record(history_entry)

        del self._borrowing_record[isbn]
        borrowings = self._user_borrowings.get(record.user_id)
        if borrowings is not None:
            borrowings.discard(isbn)
            if not borrowings:
                del self._user_borrowings[record.user_id]

    def get_borrowing_record(self, isbn: str) -> Optional[BorrowingRecord]:
        return self._borrowing_record.get(isbn)

    def get_user_borrowings(self, user_id: str) -> Set[str]:
        return set(self._user_borrowings.get(user_id, ()))

    def is_borrowing_limit_reached(self, user_id: str) -> bool:
        active = len(self._user_borrowings.get(user_id, ()))
        return self._borrowing_policy.is_limit_reached(active)

    def is_book_borrowed(self, isbn: str) -> bool:
        return isbn in self._borrowing_record

    def is_overdue(self, isbn: str, now: Optional[datetime] = None) -> bool:
        return self._get_record(isbn).is_overdue(now)

    def list_borrowing_record(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self._borrowing_record.values()]

    def list_overdue_books(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or utcnow()
        return [r.to_dict() for r in self._borrowing_record.values() if r.is_overdue(now)]

    # ------------------------- Fines ------------------------- #
    def calculate_overdue_fines(self, isbn: str, now: Optional[datetime] = None) -> int:
        """Flat fine if the loan for ``isbn`` is overdue, otherwise 0."""
        return self._overdue_fine if self._get_record(isbn).is_overdue(now) else 0

    def add_to_overdue_fines(self, user_id: str, amount: int) -> None:
        self._overdue_fines[user_id] = self._overdue_fines.get(user_id, 0) + amount

    def remove_from_overdue_fines(self, user_id: str) -> None:
        self._overdue_fines.pop(user_id, None)

    def get_overdue_fines(self, user_id: str) -> int:
        return self._overdue_fines.get(user_id, 0)

    def list_overdue_fines(self) -> List[Dict[str, Any]]:
        return [{"user_id": user_id, "fine": fine} for user_id, fine in self._overdue_fines.items()]

    # ------------------------- Statistics ------------------------- #
    @property
    def status_summary(self) -> Dict[str, int]:
        return {
            "books": len(self._books),
            "users": len(self._users),
            "borrowed_books": len(self._borrowing_record),
        }

    # ------------------------- Utilities ------------------------- #
    def _get_record(self, isbn: str) -> BorrowingRecord:
        record = self._borrowing_record.get(isbn)
        if record is None:
            raise NotFoundError(f"No borrowing record found for ISBN {isbn}.")
        return record
