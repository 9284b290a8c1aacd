from __future__ import annotations

from lending_library.errors import InvalidArgumentError


class Book:
    """Represents a single book item in the library."""

    def __init__(self, title: str, author: str, year: int, isbn: str) -> None:
        for field, value in (("title", title), ("author", author), ("isbn", isbn)):
            if not isinstance(value, str):
                raise InvalidArgumentError(f"Book {field} must be a string.")
        if not isinstance(year, int) or isinstance(year, bool):
            raise InvalidArgumentError("Book year must be an integer.")

        self.title = title.strip()
        self.author = author.strip()
        self.year = year
        self._isbn = isbn.strip()

    @property
    def isbn(self) -> str:
        return self._isbn

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"Title: {self.title}, Author: {self.author}, Year: {self.year}, ISBN: {self._isbn}"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(title={self.title!r}, author={self.author!r}, year={self.year!r}, isbn={self._isbn!r})"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "year": self.year,
            "isbn": self._isbn,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            title=data["title"],
            author=data["author"],
            year=int(data["year"]),
            isbn=data["isbn"],
        )
