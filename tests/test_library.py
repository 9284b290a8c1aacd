import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from lending_library import (
    Book,
    BorrowingPolicy,
    BorrowingRecord,
    ConflictError,
    HistoryRepository,
    InvalidArgumentError,
    Library,
    NotFoundError,
    StorageError,
    User,
)
from lending_library.borrowing import to_millis

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FailingRepository(HistoryRepository):
    async def save_record(self, record):
        raise StorageError("disk full")


def _record(user_id, isbn, due_days=7):
    return BorrowingRecord(user_id, isbn, due_date=T0 + timedelta(days=due_days), borrowed_at=T0)


def test_add_list_and_get(lib):
    assert lib.get_all_books() == []

    book = Book("Ulysses", "James Joyce", 1922, "9780199535675")
    message = lib.add_book(book)

    assert message == "Book with ISBN 9780199535675 has been added to the library."
    assert lib.get_book(book.isbn) is book
    assert lib.get_all_books() == [book]


def test_add_duplicate_isbn(lib):
    book = Book("Test Book", "Test Author", 2001, "1234567890")
    lib.add_book(book)

    with pytest.raises(ConflictError, match="Book with ISBN 1234567890 already exists"):
        lib.add_book(Book("Other", "Someone", 2002, "1234567890"))

    assert len(lib.get_all_books()) == 1


def test_add_book_rejects_non_book(lib):
    with pytest.raises(InvalidArgumentError):
        lib.add_book({"title": "Not a book", "isbn": "1"})


def test_isbn_is_read_only():
    book = Book("Test", "Author", 2000, "123")
    with pytest.raises(AttributeError):
        book.isbn = "456"


def test_remove_book(lib):
    lib.add_book(Book("Test", "Author", 2000, "123"))

    assert lib.remove_book("123") == "Book with ISBN 123 has been removed from the library."
    assert lib.get_book("123") is None
    with pytest.raises(NotFoundError):
        lib.remove_book("123")


def test_register_and_remove_user(lib):
    user = User("Ada", "ada@example.com")

    assert lib.register_user(user) == "Ada has been registered in library."
    assert lib.get_user(user.id) is user
    assert lib.get_all_users() == [user]

    lib.remove_user(user.id)
    assert lib.get_user(user.id) is None
    with pytest.raises(NotFoundError):
        lib.remove_user(user.id)


def test_register_user_twice(lib):
    user = User("Ada", "ada@example.com")
    lib.register_user(user)

    with pytest.raises(ConflictError, match="already registered"):
        lib.register_user(user)


def test_register_rejects_non_user(lib):
    with pytest.raises(InvalidArgumentError):
        lib.register_user("ada")


def test_user_ids_are_unique_and_read_only():
    first, second = User("A", "a@example.com"), User("A", "a@example.com")
    assert first.id != second.id
    with pytest.raises(AttributeError):
        first.id = second.id


def test_search_book(lib):
    mockingbird = Book("To Kill a Mockingbird", "Harper Lee", 1960, "9780061120084")
    orwell = Book("1984", "George Orwell", 1949, "9780451524935")
    lib.add_book(mockingbird)
    lib.add_book(orwell)

    assert lib.search_book("mockingbird") == [mockingbird]
    assert lib.search_book("MOCKINGBIRD") == [mockingbird]
    assert lib.search_book("orwell") == [orwell]
    assert lib.search_book("196") == [mockingbird]
    assert lib.search_book("19") == [mockingbird, orwell]
    assert lib.search_book("tolkien") == []


def test_search_book_requires_string(lib):
    with pytest.raises(InvalidArgumentError, match="Keyword must be a string"):
        lib.search_book(1960)


def test_borrowing_record_keeps_user_index_in_sync(lib):
    lib.add_to_borrowing_record(_record("u1", "a"))
    lib.add_to_borrowing_record(_record("u1", "b"))
    lib.add_to_borrowing_record(_record("u2", "c"))

    assert lib.get_user_borrowings("u1") == {"a", "b"}
    assert lib.get_user_borrowings("u2") == {"c"}
    assert lib.get_user_borrowings("u3") == set()
    assert lib.is_book_borrowed("a") is True
    assert lib.is_book_borrowed("z") is False
    assert [r["isbn"] for r in lib.list_borrowing_record()] == ["a", "b", "c"]


def test_user_borrowings_returns_a_copy(lib):
    lib.add_to_borrowing_record(_record("u1", "a"))
    lib.get_user_borrowings("u1").add("x")
    assert lib.get_user_borrowings("u1") == {"a"}


def test_remove_from_borrowing_record(lib, repo):
    lib.add_to_borrowing_record(_record("u1", "a"))
    lib.add_to_borrowing_record(_record("u1", "b"))
    returned = T0 + timedelta(days=2)

    asyncio.run(lib.remove_from_borrowing_record("a", now=returned))

    assert lib.is_book_borrowed("a") is False
    assert lib.get_user_borrowings("u1") == {"b"}
    history = asyncio.run(repo.get_history())
    assert history == [{**_record("u1", "a").to_dict(), "returned_at": to_millis(returned)}]


def test_last_return_prunes_user_entry(lib):
    lib.add_to_borrowing_record(_record("u1", "a"))
    asyncio.run(lib.remove_from_borrowing_record("a"))

    assert "u1" not in lib._user_borrowings
    assert lib.is_borrowing_limit_reached("u1") is False


def test_remove_missing_record(lib):
    with pytest.raises(NotFoundError, match="No borrowing record found for ISBN 404"):
        asyncio.run(lib.remove_from_borrowing_record("404"))


def test_history_failure_leaves_loan_active(history_file):
    lib = Library(history_repository=FailingRepository(history_file))
    lib.add_to_borrowing_record(_record("u1", "a"))

    with pytest.raises(StorageError):
        asyncio.run(lib.remove_from_borrowing_record("a"))

    assert lib.is_book_borrowed("a") is True
    assert lib.get_user_borrowings("u1") == {"a"}


def test_borrowing_limit(repo):
    lib = Library(borrowing_policy=BorrowingPolicy(2), history_repository=repo)
    lib.add_to_borrowing_record(_record("u1", "a"))
    assert lib.is_borrowing_limit_reached("u1") is False
    lib.add_to_borrowing_record(_record("u1", "b"))
    assert lib.is_borrowing_limit_reached("u1") is True


def test_overdue_checks(lib):
    lib.add_to_borrowing_record(_record("u1", "late", due_days=1))
    lib.add_to_borrowing_record(_record("u1", "fine", due_days=10))
    later = T0 + timedelta(days=3)

    assert lib.is_overdue("late", now=later) is True
    assert lib.is_overdue("fine", now=later) is False
    assert [r["isbn"] for r in lib.list_overdue_books(now=later)] == ["late"]
    with pytest.raises(NotFoundError):
        lib.is_overdue("missing")


def test_calculate_overdue_fines(lib):
    lib.add_to_borrowing_record(_record("u1", "a", due_days=1))

    assert lib.calculate_overdue_fines("a", now=T0) == 0
    assert lib.calculate_overdue_fines("a", now=T0 + timedelta(days=2)) == 100
    with pytest.raises(NotFoundError):
        lib.calculate_overdue_fines("missing")


def test_custom_fine_amount(repo):
    lib = Library(history_repository=repo, overdue_fine=25)
    lib.add_to_borrowing_record(_record("u1", "a", due_days=1))
    assert lib.calculate_overdue_fines("a", now=T0 + timedelta(days=2)) == 25


def test_overdue_fines_accumulate(lib):
    assert lib.get_overdue_fines("u1") == 0

    lib.add_to_overdue_fines("u1", 100)
    lib.add_to_overdue_fines("u1", 100)
    lib.add_to_overdue_fines("u2", 50)

    assert lib.get_overdue_fines("u1") == 200
    assert lib.list_overdue_fines() == [{"user_id": "u1", "fine": 200}, {"user_id": "u2", "fine": 50}]

    lib.remove_from_overdue_fines("u1")
    lib.remove_from_overdue_fines("unknown")  # no-op
    assert lib.get_overdue_fines("u1") == 0
    assert lib.list_overdue_fines() == [{"user_id": "u2", "fine": 50}]


def test_status_summary(lib):
    lib.add_book(Book("A", "Author", 2000, "1"))
    lib.add_book(Book("B", "Author", 2001, "2"))
    lib.register_user(User("Ada", "ada@example.com"))
    lib.add_to_borrowing_record(_record("u1", "1"))

    assert lib.status_summary == {"books": 2, "users": 1, "borrowed_books": 1}


def test_book_rejects_wrong_types():
    with pytest.raises(InvalidArgumentError, match="isbn must be a string"):
        Book("Title", "Author", 2000, 9780061120084)
    with pytest.raises(InvalidArgumentError, match="year must be an integer"):
        Book("Title", "Author", "2000", "123")


def test_user_rejects_wrong_types():
    with pytest.raises(InvalidArgumentError):
        User(None, "ada@example.com")


def test_get_borrowing_record(lib):
    record = _record("u1", "a")
    lib.add_to_borrowing_record(record)

    assert lib.get_borrowing_record("a") is record
    assert lib.get_borrowing_record("b") is None
