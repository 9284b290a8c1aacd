import asyncio
import logging
import os
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich.console import Console

from lending_library import Book, HistoryRepository, Library, LibraryError, User
from lending_library import lend_book, return_book
from lending_library.config import settings
from lending_library.ui_helpers import (
    display_book_data,
    print_book_list,
    print_error,
    print_history_result,
    print_message,
    print_summary_result,
    print_user_list,
    set_output_mode,
)

APP_NAME = "Lending Library CLI"

console = Console()

app = typer.Typer(help=APP_NAME)


def _history_repository() -> HistoryRepository:
    return HistoryRepository(settings.history_file)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    history_file: Optional[str] = typer.Option(
        None,
        "--history-file",
        help="Path of the return history JSON file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log messages"),
):
    """Global CLI options (output mode, history location, logging)."""
    if output:
        set_output_mode(output)
    if history_file:
        settings.history_file = history_file
    level = getattr(logging, settings.log_level, logging.INFO) if verbose else logging.WARNING
    logging.basicConfig(level=level)


async def _run_demo(library: Library) -> None:
    mockingbird = Book("To Kill a Mockingbird", "Harper Lee", 1960, "9780061120084")
    nineteen_84 = Book("1984", "George Orwell", 1949, "9780451524935")
    mohamed = User("Mohamed", "mohamed@example.com")
    baraka = User("Baraka", "baraka@example.com")

    print_message(library.register_user(mohamed))
    print_message(library.register_user(baraka))
    print_user_list(library.get_all_users())

    print_message(library.add_book(mockingbird))
    print_message(library.add_book(nineteen_84))

    print_message(lend_book(library, mockingbird.isbn, mohamed.id, 3))
    print_message(lend_book(library, nineteen_84.isbn, mohamed.id, 3))

    print_message(await return_book(library, mockingbird.isbn, mohamed.id))
    print_message(await return_book(library, nineteen_84.isbn, mohamed.id))

    print_book_list(library.get_all_books())
    print_book_list(library.search_book("mockingbird"), title="Search: mockingbird")
    found = display_book_data(library.get_book(mockingbird.isbn))
    print_message(f"Found: {found['title']} ({found['year']})")

    print_message(library.remove_user(baraka.id))
    print_message(library.remove_book(nineteen_84.isbn))
    print_summary_result(library.status_summary)


@app.command("demo")
def cli_demo():
    """Run a sample lend/return session against an in-memory library."""
    library = Library(history_repository=_history_repository())
    try:
        asyncio.run(_run_demo(library))
    except LibraryError as e:
        print_error(str(e))
        raise typer.Exit(code=1)


@app.command("history")
def cli_history(
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Only show entries for this user"),
):
    """Show returned loans from the history file."""
    repo = _history_repository()
    try:
        entries = asyncio.run(repo.get_history(user_id=user_id))
    except LibraryError as e:
        print_error(str(e))
        raise typer.Exit(code=1)
    print_history_result(entries)


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Restart the server on code changes"),
):
    """Start the HTTP API with Uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/docs"
    print(f"Starting API on {url}")
    try:
        webbrowser.open(url)
    except Exception:
        console.print("[yellow]Could not open a web browser automatically.[/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    env = {**os.environ, "LIBRARY_HISTORY_FILE": settings.history_file}
    try:
        subprocess.run(args, env=env)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
