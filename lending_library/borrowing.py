"""Lending rules and the active-loan record.

Timestamps are kept as timezone-aware UTC datetimes and serialized as epoch
milliseconds, which is also the shape written to the return history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from lending_library.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(moment: datetime) -> int:
    return (moment - EPOCH) // timedelta(milliseconds=1)


def from_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


@dataclass(frozen=True)
class BorrowingPolicy:
    """Maximum number of simultaneous active loans per user."""
    limit: int = 3

    def is_limit_reached(self, active_count: int) -> bool:
        return active_count >= self.limit


@dataclass
class BorrowingRecord:
    """One active loan of a book to a user."""
    user_id: str
    isbn: str
    due_date: Optional[datetime] = None
    borrowed_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.due_date is None:
            self.due_date = self.borrowed_at + timedelta(days=settings.default_loan_days)

    def is_overdue(self, at_time: Optional[datetime] = None) -> bool:
        """Return True if ``at_time`` (default: now) is strictly past the due date."""
        at_time = at_time or utcnow()
        return self.due_date is not None and at_time > self.due_date

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "isbn": self.isbn,
            "due_date": to_millis(self.due_date) if self.due_date is not None else None,
            "borrowed_at": to_millis(self.borrowed_at),
        }

    @staticmethod
    def from_dict(data: dict) -> "BorrowingRecord":
        due = data.get("due_date")
        return BorrowingRecord(
            user_id=data["user_id"],
            isbn=data["isbn"],
            due_date=from_millis(due) if due is not None else None,
            borrowed_at=from_millis(data["borrowed_at"]),
        )
