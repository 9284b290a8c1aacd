from __future__ import annotations

import uuid

from lending_library.errors import InvalidArgumentError


class User:
    """A library member. The id is generated once and cannot be reassigned."""

    def __init__(self, name: str, email: str) -> None:
        if not isinstance(name, str) or not isinstance(email, str):
            raise InvalidArgumentError("User name and email must be strings.")
        self._id = str(uuid.uuid4())
        self.name = name.strip()
        self.email = email.strip()

    @property
    def id(self) -> str:
        return self._id

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"User: {self.name}, Email: {self.email}, ID: {self._id}"

    def __repr__(self) -> str:  # pragma: no cover
        return f"User(name={self.name!r}, email={self.email!r}, id={self._id!r})"

    def to_dict(self) -> dict:
        return {"id": self._id, "name": self.name, "email": self.email}
