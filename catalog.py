"""Client-side mirror of the lending API.

``Catalog`` keeps the last fetched books and readers, re-fetches both after
every successful change, and reports each outcome as a ``Notification``.
The filtered/sorted view and the counters are plain functions of that state.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from book import Book
from client import LibraryAPIError, LibraryClient
from reader import Reader
from validators import BookFormValidator, PhoneValidator

logger = logging.getLogger(__name__)

SORT_FIELDS = ("title", "author", "publication_year")
SORT_DIRECTIONS = ("asc", "desc")

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class SortConfig:
    field: str = "title"
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Invalid sort field {self.field!r}. Allowed: {', '.join(SORT_FIELDS)}")
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Invalid sort direction {self.direction!r}. Allowed: asc, desc")


@dataclass(frozen=True)
class Notification:
    message: str
    kind: str = SUCCESS


@dataclass(frozen=True)
class CatalogStats:
    total: int
    borrowed: int
    readers: int


# ------------------------- Derived view ------------------------- #
def filter_books(books: Sequence[Book], query: str) -> List[Book]:
    """Books whose title or author contains the query (any case), or whose borrower phone does."""
    if not query:
        return list(books)
    needle = query.casefold()
    return [
        b for b in books
        if needle in b.title.casefold()
        or needle in b.author.casefold()
        or (b.borrower_phone is not None and query in b.borrower_phone)
    ]


def _sort_value(book: Book, field: str) -> Any:
    value = getattr(book, field)
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_books(books: Sequence[Book], field: str = "title", direction: str = "asc") -> List[Book]:
    """Stable sort by one field; books missing the field go last in either direction."""
    config = SortConfig(field, direction)
    present = [b for b in books if getattr(b, config.field) is not None]
    missing = [b for b in books if getattr(b, config.field) is None]
    ordered = sorted(present, key=lambda b: _sort_value(b, config.field), reverse=config.direction == "desc")
    return ordered + missing


def process_books(books: Sequence[Book], query: str = "", sort_config: Optional[SortConfig] = None) -> List[Book]:
    sort_config = sort_config or SortConfig()
    return sort_books(filter_books(books, query), sort_config.field, sort_config.direction)


def compute_stats(books: Sequence[Book], readers: Sequence[Reader]) -> CatalogStats:
    return CatalogStats(
        total=len(books),
        borrowed=sum(1 for b in books if b.is_borrowed),
        readers=len(readers),
    )


# ------------------------- State ------------------------- #
class Catalog:
    """Local copy of books and readers plus the actions that change them.

    Only one changing action runs at a time: while ``loading`` is set, a
    second one is refused without contacting the server. Local state is
    only touched after the server confirms.
    """

    def __init__(self, client: LibraryClient,
                 on_notify: Optional[Callable[[Notification], None]] = None) -> None:
        self.client = client
        self.books: List[Book] = []
        self.readers: List[Reader] = []
        self.loading = False
        self.query = ""
        self.sort_config = SortConfig()
        self.notification: Optional[Notification] = None
        self._on_notify = on_notify

    @property
    def visible_books(self) -> List[Book]:
        return process_books(self.books, self.query, self.sort_config)

    @property
    def stats(self) -> CatalogStats:
        return compute_stats(self.books, self.readers)

    def notify(self, message: str, kind: str = SUCCESS) -> None:
        self.notification = Notification(message, kind)
        if self._on_notify is not None:
            self._on_notify(self.notification)

    def set_query(self, query: str) -> None:
        self.query = query or ""

    def set_sort(self, field: str, direction: Optional[str] = None) -> None:
        self.sort_config = SortConfig(field, direction or self.sort_config.direction)

    async def refresh(self) -> bool:
        """Re-fetch books and readers together; keeps the old state if either fails."""
        books, readers = await asyncio.gather(
            self.client.list_books(), self.client.list_readers(), return_exceptions=True,
        )
        for result in (books, readers):
            if isinstance(result, LibraryAPIError):
                self.notify(result.message or "Connection error", ERROR)
                return False
            if isinstance(result, BaseException):
                raise result
        self.books = books
        self.readers = readers
        return True

    async def _mutate(self, request: Callable[[], Awaitable[Dict[str, Any]]], success_message: str,
                      on_success: Optional[Callable[[], None]] = None, refetch: bool = True) -> bool:
        if self.loading:
            self.notify("Another operation is still in progress.", ERROR)
            return False
        self.loading = True
        try:
            try:
                await request()
            except LibraryAPIError as exc:
                logger.info("Request rejected: %s", exc.message)
                self.notify(exc.message, ERROR)
                return False
            if on_success is not None:
                on_success()
            self.notify(success_message, SUCCESS)
            if refetch:
                await self.refresh()
            return True
        finally:
            self.loading = False

    # ------------------------- Actions ------------------------- #
    async def add_book(self, form: Dict[str, Any]) -> bool:
        """Submit the add-book form (camelCase keys, as sent to the API)."""
        error = _book_form_error(form)
        if error:
            self.notify(error, ERROR)
            return False
        return await self._mutate(
            lambda: self.client.add_book(form),
            f'Book "{form["title"].strip()}" added',
        )

    async def delete_book(self, book_id: int) -> bool:
        def drop_local() -> None:
            self.books = [b for b in self.books if b.id != book_id]

        return await self._mutate(
            lambda: self.client.delete_book(book_id),
            "Book deleted",
            on_success=drop_local,
            refetch=False,
        )

    async def register_reader(self, form: Dict[str, Any]) -> bool:
        if not PhoneValidator.is_valid_phone(form.get("phone")):
            self.notify("Phone number must start with 7 and contain 11 digits.", ERROR)
            return False
        return await self._mutate(
            lambda: self.client.register_reader(form),
            f"Reader {form.get('lastName', '')} registered".strip(),
        )

    async def borrow_book(self, book_id: int, phone: str) -> bool:
        if not PhoneValidator.is_valid_phone(phone):
            self.notify("Phone number must start with 7 and contain 11 digits.", ERROR)
            return False
        return await self._mutate(
            lambda: self.client.borrow_book(book_id, PhoneValidator.normalize_phone(phone)),
            "Book borrowed",
        )

    async def return_book(self, book_id: int) -> bool:
        return await self._mutate(lambda: self.client.return_book(book_id), "Book returned")


def _book_form_error(form: Dict[str, Any]) -> Optional[str]:
    if not BookFormValidator.validate_title(form.get("title")) or not BookFormValidator.validate_author(form.get("author")):
        return "Title and author are required."
    year = form.get("publicationYear")
    if year is not None and not BookFormValidator.validate_publication_year(year):
        return "Publication year is out of range."
    pages = form.get("pageCount")
    if pages is not None and not BookFormValidator.validate_page_count(pages):
        return "Page count must be at least 1."
    return None
