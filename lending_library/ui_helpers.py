import os
import json
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from lending_library.book import Book
from lending_library.user import User

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def display_book_data(book: Optional[Book]) -> Optional[Dict[str, Any]]:
    if not book:
        return None
    return book.to_dict()


def display_user_data(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    return user.to_dict()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_message(message: str) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"message": message}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(f"[green]✓[/] {message}", highlight=False)
    else:
        print(message)


def print_error(message: str) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"error": message}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(f"[bold red]Error:[/] {message}", highlight=False)
    else:
        print(f"Error: {message}")


def print_book_list(books: List[Book], title: str = "Books") -> None:
    """Print books according to the current output mode.
    - plain: 'ISBN - Title by Author (Year)' lines, or 'No books in library.'
    - json: JSON array of book dicts
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([display_book_data(b) for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=f"📚 {title}", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Year", style="white", justify="right")
        for b in books:
            table.add_row(b.isbn, b.title, b.author, str(b.year))
        _console.print(table)
    else:
        for b in books:
            print(f"{b.isbn} - {b.title} by {b.author} ({b.year})")


def print_user_list(users: List[User]) -> None:
    mode = get_output_mode()

    if not users:
        print("No users registered.")
        return

    if mode == "json":
        print(json.dumps([display_user_data(u) for u in users], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="👤 Users", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Email", style="white")
        for u in users:
            table.add_row(u.id, u.name, u.email)
        _console.print(table)
    else:
        for u in users:
            print(f"{u.id} - {u.name} <{u.email}>")


def print_history_result(entries: List[Dict[str, Any]]) -> None:
    mode = get_output_mode()

    if not entries:
        print("No history entries.")
        return

    if mode == "json":
        print(json.dumps(entries, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="🕘 Return History", header_style="bold cyan")
        for column in ("user_id", "isbn", "borrowed_at", "due_date", "returned_at"):
            table.add_column(column)
        for e in entries:
            table.add_row(*(str(e.get(c, "")) for c in ("user_id", "isbn", "borrowed_at", "due_date", "returned_at")))
        _console.print(table)
    else:
        for e in entries:
            print(f"{e.get('isbn', '')} - user {e.get('user_id', '')} returned at {e.get('returned_at', '')}")


def print_summary_result(summary: Dict[str, int]) -> None:
    """Print the library status summary.
    - plain: one 'Label: value' line per counter
    - json: JSON object
    - rich: Panel with the counters
    """
    mode = get_output_mode()

    books = summary.get("books", 0)
    users = summary.get("users", 0)
    borrowed = summary.get("borrowed_books", 0)

    if mode == "json":
        print(json.dumps({"books": books, "users": users, "borrowed_books": borrowed}, ensure_ascii=False))
    elif mode == "rich":
        content = f"[bold]Books:[/] {books}\n[bold]Users:[/] {users}\n[bold]Borrowed Books:[/] {borrowed}"
        _console.print(Panel.fit(content, title="📊 Status", border_style="blue"))
    else:
        print(f"Books: {books}")
        print(f"Users: {users}")
        print(f"Borrowed Books: {borrowed}")
