import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from config import settings
from errors import StoreError

logger = logging.getLogger(__name__)

# SQLite INTEGER range; larger Python ints cannot be bound as parameters
MIN_ROW_ID = -(2 ** 63)
MAX_ROW_ID = 2 ** 63 - 1

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS readers (
        phone TEXT PRIMARY KEY,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        birth_date TEXT NOT NULL,
        registration_date TEXT NOT NULL DEFAULT (date('now', 'localtime'))
    )
    """,
    # A book is borrowed exactly when it has both a borrower and a borrow date.
    """
    CREATE TABLE IF NOT EXISTS books (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        author TEXT NOT NULL,
        cover_type TEXT,
        publication_year INTEGER,
        genre TEXT,
        page_count INTEGER,
        condition_state TEXT,
        status TEXT NOT NULL DEFAULT 'available' CHECK (status IN ('available', 'borrowed')),
        borrowed_date TEXT,
        borrower_phone TEXT REFERENCES readers(phone),
        CHECK ((status = 'borrowed') = (borrower_phone IS NOT NULL)),
        CHECK ((borrower_phone IS NOT NULL) = (borrowed_date IS NOT NULL))
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)",
    "CREATE INDEX IF NOT EXISTS idx_books_borrower_phone ON books(borrower_phone)",
    "CREATE INDEX IF NOT EXISTS idx_readers_last_name ON readers(last_name)",
)


class Database:
    """SQLite store handle with a bounded connection pool.

    Constructed once at startup and handed to the service. Every operation
    borrows a connection with ``with db.connection() as conn:`` and gives it
    back when the block exits. Connections run in autocommit mode, so each
    statement is its own transaction.
    """

    def __init__(self, db_file: Optional[str] = None, pool_size: Optional[int] = None,
                 pool_timeout: Optional[float] = None, busy_timeout: Optional[float] = None) -> None:
        self.db_file = db_file or settings.database_file
        self.pool_size = pool_size or settings.database_pool_size
        self.pool_timeout = settings.database_pool_timeout if pool_timeout is None else pool_timeout
        self.busy_timeout = settings.database_busy_timeout if busy_timeout is None else busy_timeout
        self._pool: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=self.pool_size)
        self._lock = threading.Lock()
        self._closed = False

        try:
            for _ in range(self.pool_size):
                self._pool.put(self._connect())
        except sqlite3.Error as exc:
            self.close()
            raise StoreError(str(exc)) from exc
        logger.info("Opened %s with a pool of %d connections", self.db_file, self.pool_size)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_file,
            timeout=self.busy_timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        # WAL lets readers proceed while a borrow is being written
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreError("Database is closed")
        try:
            return self._pool.get(timeout=self.pool_timeout)
        except queue.Empty:
            logger.error("No database connection became free within %.1fs", self.pool_timeout)
            raise StoreError("Database connection pool exhausted") from None

    def _release(self, conn: sqlite3.Connection) -> None:
        if self._closed:
            conn.close()
            return
        if conn.in_transaction:
            conn.rollback()
        self._pool.put_nowait(conn)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Lend a pooled connection for the duration of the block.

        sqlite3 errors, and ints too large to bind, surface as StoreError.
        """
        conn = self._acquire()
        try:
            yield conn
        except (sqlite3.Error, OverflowError) as exc:
            logger.error("Database error: %s", exc)
            raise StoreError(str(exc)) from exc
        finally:
            self._release(conn)

    def create_tables(self) -> None:
        """Creates the tables and indexes if they don't exist."""
        with self.connection() as conn:
            for statement in SCHEMA:
                conn.execute(statement)

    def ping(self) -> bool:
        try:
            with self.connection() as conn:
                conn.execute("SELECT 1")
            return True
        except StoreError:
            return False

    def close(self) -> None:
        """Close every pooled connection. Connections still lent out are closed on return."""
        with self._lock:
            self._closed = True
            while True:
                try:
                    conn = self._pool.get_nowait()
                except queue.Empty:
                    break
                conn.close()


def initialize_database(db_file: Optional[str] = None) -> Database:
    """Opens the store and makes sure the schema exists."""
    db = Database(db_file=db_file)
    db.create_tables()
    return db
