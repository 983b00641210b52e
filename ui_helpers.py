import os
import json
from typing import Any, List
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_notification(notification: Any) -> None:
    if notification.kind == "error":
        if get_output_mode() == "rich":
            _console.print(f"[bold red]✗ {notification.message}[/]")
        else:
            print(f"Error: {notification.message}")
    elif get_output_mode() == "rich":
        _console.print(f"[green]✓ {notification.message}[/]")
    else:
        print(notification.message)


def print_book_list(books: List[Any]) -> None:
    """Print books in the current output mode.
    - plain: '#id Title by Author [status]' lines, or 'No books found.'
    - json: array of book dicts
    - rich: table with borrower column
    """
    mode = get_output_mode()

    if not books:
        print("No books found.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Year", justify="right")
        table.add_column("Status")
        table.add_column("Borrower")
        for b in books:
            status = "[red]borrowed[/]" if b.is_borrowed else "[green]available[/]"
            borrower = f"{b.borrower_name or ''} {b.borrower_phone} ({b.borrowed_date})" if b.is_borrowed else ""
            table.add_row(str(b.id), b.title, b.author, str(b.publication_year or ""), status, borrower.strip())
        _console.print(table)
    else:
        for b in books:
            line = f"#{b.id} {b.title} by {b.author} [{b.status}]"
            if b.is_borrowed:
                line += f" -> {b.borrower_phone} since {b.borrowed_date}"
            print(line)


def print_reader_list(readers: List[Any]) -> None:
    mode = get_output_mode()

    if not readers:
        print("No readers registered.")
        return

    if mode == "json":
        print(json.dumps([r.to_dict() for r in readers], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="👥 Readers", header_style="bold cyan")
        table.add_column("Phone", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Born")
        table.add_column("Registered")
        for r in readers:
            table.add_row(r.phone, f"{r.last_name} {r.first_name}", r.birth_date or "", r.registration_date or "")
        _console.print(table)
    else:
        for r in readers:
            print(f"{r.phone} - {r.last_name} {r.first_name} (registered {r.registration_date})")


def print_stats_result(stats: Any) -> None:
    """Print the catalog counters in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps({"total": stats.total, "borrowed": stats.borrowed, "readers": stats.readers}))
    elif mode == "rich":
        content = (
            f"[bold]Total Books:[/] {stats.total}\n"
            f"[bold]Borrowed:[/] {stats.borrowed}\n"
            f"[bold]Readers:[/] {stats.readers}"
        )
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(f"Total Books: {stats.total}")
        print(f"Borrowed: {stats.borrowed}")
        print(f"Readers: {stats.readers}")
