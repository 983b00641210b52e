import asyncio
import os
import subprocess
import sys
from typing import Any, Awaitable, Callable, Dict, Optional

import typer
from rich.console import Console

from catalog import SORT_FIELDS, Catalog
from client import LibraryClient
from config import settings
from ui_helpers import (
    print_book_list,
    print_notification,
    print_reader_list,
    print_stats_result,
    set_output_mode,
)

console = Console()

app = typer.Typer(help="Library CLI: catalog, readers, borrow and return.")

_options: Dict[str, Any] = {"base_url": None}


def _run(action: Callable[[Catalog], Awaitable[Any]]) -> Any:
    """Open a client, load the catalog and run one action against it."""
    async def runner() -> Any:
        async with LibraryClient(base_url=_options["base_url"]) as client:
            catalog = Catalog(client, on_notify=print_notification)
            if not await catalog.refresh():
                raise typer.Exit(code=1)
            return await action(catalog)

    return asyncio.run(runner())


def _finish(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    url: Optional[str] = typer.Option(None, "--url", help="API base URL (default from API_BASE_URL)"),
):
    """Global options for the CLI (output mode, API location)."""
    if output:
        set_output_mode(output)
    _options["base_url"] = url


@app.command("books")
def cli_books(
    query: str = typer.Option("", "--query", "-q", help="Match title, author or borrower phone"),
    sort: str = typer.Option("title", "--sort", "-s", help=f"Sort field: {' | '.join(SORT_FIELDS)}"),
    desc: bool = typer.Option(False, "--desc", help="Sort descending"),
):
    """List the catalog, filtered and sorted."""
    if sort not in SORT_FIELDS:
        print(f"Error: invalid sort field {sort!r}. Allowed: {', '.join(SORT_FIELDS)}")
        raise typer.Exit(code=2)

    async def action(catalog: Catalog) -> None:
        catalog.set_query(query)
        catalog.set_sort(sort, "desc" if desc else "asc")
        print_book_list(catalog.visible_books)

    _run(action)


@app.command("readers")
def cli_readers():
    """List registered readers by last name."""
    async def action(catalog: Catalog) -> None:
        print_reader_list(catalog.readers)

    _run(action)


@app.command("stats")
def cli_stats():
    """Show total, borrowed and reader counts."""
    async def action(catalog: Catalog) -> None:
        print_stats_result(catalog.stats)

    _run(action)


@app.command("add-book")
def cli_add_book(
    title: str,
    author: str,
    cover: str = typer.Option("hard", "--cover", help="hard | soft"),
    year: Optional[int] = typer.Option(None, "--year", help="Publication year"),
    genre: str = typer.Option("", "--genre"),
    pages: Optional[int] = typer.Option(None, "--pages", help="Page count"),
    condition: str = typer.Option("new", "--condition", help="new | good | used | worn"),
):
    """Add a book to the catalog as available."""
    form = {
        "title": title,
        "author": author,
        "coverType": cover,
        "publicationYear": year,
        "genre": genre,
        "pageCount": pages,
        "conditionState": condition,
        "status": "available",
    }
    _finish(_run(lambda catalog: catalog.add_book(form)))


@app.command("delete-book")
def cli_delete_book(
    book_id: int,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Permanently delete a book."""
    if not yes and not typer.confirm(f"Delete book #{book_id}? This cannot be undone."):
        print("Cancelled.")
        return
    _finish(_run(lambda catalog: catalog.delete_book(book_id)))


@app.command("register")
def cli_register(phone: str, first_name: str, last_name: str, dob: str):
    """Register a reader (phone 7XXXXXXXXXX, dob YYYY-MM-DD)."""
    form = {"phone": phone, "firstName": first_name, "lastName": last_name, "dob": dob}
    _finish(_run(lambda catalog: catalog.register_reader(form)))


@app.command("borrow")
def cli_borrow(book_id: int, phone: str):
    """Lend a book to a registered reader."""
    _finish(_run(lambda catalog: catalog.borrow_book(book_id, phone)))


@app.command("return")
def cli_return(book_id: int):
    """Return a book to the shelf."""
    _finish(_run(lambda catalog: catalog.return_book(book_id)))


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Start the API with Uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    console.print(f"[green]Starting API on http://{host}:{port}/[/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:create_app",
        "--factory",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args, cwd=os.path.dirname(os.path.abspath(__file__)))
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
