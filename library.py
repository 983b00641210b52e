import logging
import sqlite3
from typing import Any, Dict, List, Optional

from book import Book, BookStatus
from database import MAX_ROW_ID, MIN_ROW_ID, Database
from errors import BookUnavailableError, ConflictError, NotFoundError, ValidationError
from reader import Reader
from validators import DateValidator, PhoneValidator

logger = logging.getLogger(__name__)

BOOK_SELECT = """
    SELECT
        b.id, b.title, b.author, b.cover_type, b.publication_year,
        b.genre, b.page_count, b.condition_state, b.status,
        b.borrowed_date, b.borrower_phone,
        r.first_name, r.last_name
    FROM books b
    LEFT JOIN readers r ON b.borrower_phone = r.phone
"""


class Library:
    """Catalog and lending operations over an injected Database.

    Holds no state between calls; the books and readers tables are the only
    shared state, and borrow relies on a single conditional UPDATE for
    mutual exclusion.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------- Books ------------------------- #
    def list_books(self) -> List[Book]:
        """All books with the borrower's name resolved, ordered by title."""
        with self.db.connection() as conn:
            rows = conn.execute(BOOK_SELECT + " ORDER BY b.title ASC, b.id ASC").fetchall()
        return [self._book_from_row(row) for row in rows]

    def get_book(self, book_id: int) -> Book:
        if not _is_row_id(book_id):
            raise NotFoundError(f"Book {book_id} not found.")
        with self.db.connection() as conn:
            row = conn.execute(BOOK_SELECT + " WHERE b.id = ?", (book_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Book {book_id} not found.")
        return self._book_from_row(row)

    def add_book(self, book: Book) -> int:
        """Insert a new book and return its id. Borrow fields are never taken from the caller."""
        if not book.title or not book.author:
            raise ValidationError("Title and author are required.")
        if book.status != BookStatus.AVAILABLE.value:
            raise ValidationError("A new book cannot be added as borrowed; add it as available and borrow it.")

        with self.db.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO books
                (title, author, cover_type, publication_year, genre, page_count, condition_state, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (book.title, book.author, book.cover_type, book.publication_year,
                 book.genre, book.page_count, book.condition_state, book.status),
            )
            book.id = cursor.lastrowid
        logger.info("Added book %s: %r by %r", book.id, book.title, book.author)
        return book.id

    def delete_book(self, book_id: int) -> None:
        """Permanently remove a book. Raises NotFoundError when no row matches."""
        if not _is_row_id(book_id):
            logger.warning("Delete requested for missing book %s", book_id)
            raise NotFoundError("Book not found.")
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        if cursor.rowcount == 0:
            logger.warning("Delete requested for missing book %s", book_id)
            raise NotFoundError("Book not found.")
        logger.info("Deleted book %s", book_id)

    # ------------------------- Readers ------------------------- #
    def list_readers(self) -> List[Reader]:
        with self.db.connection() as conn:
            rows = conn.execute(
                """
                SELECT phone, first_name, last_name, birth_date, registration_date
                FROM readers
                ORDER BY last_name ASC, first_name ASC
                """
            ).fetchall()
        return [
            Reader(
                phone=row["phone"],
                first_name=row["first_name"],
                last_name=row["last_name"],
                birth_date=_plain_date(row["birth_date"]),
                registration_date=_plain_date(row["registration_date"]),
            )
            for row in rows
        ]

    def register_reader(self, phone: Optional[str], first_name: Optional[str],
                        last_name: Optional[str], dob: Optional[str]) -> str:
        """Register a reader; the registration date is stamped by the store.

        Returns the phone, which is the reader's identifier.
        """
        fields = [phone, first_name, last_name, dob]
        if any(value is None or not str(value).strip() for value in fields):
            raise ValidationError("All fields are required.")

        phone = PhoneValidator.normalize_phone(phone)
        if not PhoneValidator.is_valid_phone(phone):
            raise ValidationError("Phone number must start with 7 and contain 11 digits.")
        birth_date = DateValidator.parse_date(dob)
        if birth_date is None:
            raise ValidationError("Date of birth must be a YYYY-MM-DD date.")

        with self.db.connection() as conn:
            try:
                conn.execute(
                    "INSERT INTO readers (phone, first_name, last_name, birth_date) VALUES (?, ?, ?, ?)",
                    (phone, first_name.strip(), last_name.strip(), birth_date.isoformat()),
                )
            except sqlite3.IntegrityError as exc:
                logger.warning("Rejected duplicate reader %s", phone)
                raise ConflictError("A reader with this phone already exists.") from exc
        logger.info("Registered reader %s", phone)
        return phone

    # ------------------------- Lending ------------------------- #
    def borrow_book(self, book_id: Optional[int], phone: Optional[str]) -> None:
        """Lend an available book to a registered reader.

        The availability check and the write happen in one UPDATE, so of
        several concurrent requests for the same book only one can match.
        """
        if not book_id or not phone:
            raise ValidationError("Book id and reader phone are required.")
        phone = PhoneValidator.normalize_phone(phone)
        if not PhoneValidator.is_valid_phone(phone):
            raise ValidationError("Phone number must start with 7 and contain 11 digits.")

        with self.db.connection() as conn:
            reader = conn.execute("SELECT phone FROM readers WHERE phone = ?", (phone,)).fetchone()
            if reader is None:
                logger.warning("Borrow of book %s refused: reader %s is not registered", book_id, phone)
                raise NotFoundError("Reader not found. Register the reader first.")
            if not _is_row_id(book_id):
                logger.warning("Borrow refused: book %s does not exist", book_id)
                raise NotFoundError("Book not found.")

            cursor = conn.execute(
                """
                UPDATE books
                SET status = ?, borrower_phone = ?, borrowed_date = date('now', 'localtime')
                WHERE id = ? AND status = ?
                """,
                (BookStatus.BORROWED.value, phone, book_id, BookStatus.AVAILABLE.value),
            )
            if cursor.rowcount == 1:
                logger.info("Book %s borrowed by %s", book_id, phone)
                return

            # Nothing matched; only now look at why, for the error message.
            exists = conn.execute("SELECT 1 FROM books WHERE id = ?", (book_id,)).fetchone()

        if exists is None:
            logger.warning("Borrow refused: book %s does not exist", book_id)
            raise NotFoundError("Book not found.")
        logger.warning("Borrow refused: book %s is already borrowed", book_id)
        raise BookUnavailableError("Book is not available (already borrowed).")

    def return_book(self, book_id: Optional[int]) -> None:
        """Put a book back on the shelf.

        Unconditional: returning a book that is not borrowed, or does not
        exist, succeeds without changing anything.
        """
        if book_id is None:
            raise ValidationError("Book id is required.")
        if not _is_row_id(book_id):
            logger.debug("Return of book %s matched no row", book_id)
            return
        with self.db.connection() as conn:
            cursor = conn.execute(
                "UPDATE books SET status = ?, borrower_phone = NULL, borrowed_date = NULL WHERE id = ?",
                (BookStatus.AVAILABLE.value, book_id),
            )
        if cursor.rowcount == 0:
            logger.debug("Return of book %s matched no row", book_id)
        else:
            logger.info("Book %s returned", book_id)

    # ------------------------- Statistics ------------------------- #
    def get_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        with self.db.connection() as conn:
            total_books = conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]
            borrowed_books = conn.execute(
                "SELECT COUNT(*) FROM books WHERE status = ?", (BookStatus.BORROWED.value,)
            ).fetchone()[0]
            readers = conn.execute("SELECT COUNT(*) FROM readers").fetchone()[0]
        return {
            "total_books": total_books,
            "borrowed_books": borrowed_books,
            "readers": readers,
        }

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _book_from_row(row: sqlite3.Row) -> Book:
        data = dict(row)
        data["borrowed_date"] = _plain_date(data.get("borrowed_date"))
        return Book.from_dict(data)

    def close(self) -> None:
        self.db.close()


def _is_row_id(value: int) -> bool:
    """Whether value fits in an SQLite INTEGER; anything outside cannot name a row."""
    return MIN_ROW_ID <= value <= MAX_ROW_ID


def _plain_date(value: Any) -> Optional[str]:
    """Normalize a stored date (or timestamp) to YYYY-MM-DD."""
    if value is None:
        return None
    text = str(value)
    parsed = DateValidator.parse_date(text[:10])
    return parsed.isoformat() if parsed else text
