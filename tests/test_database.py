import threading

import pytest

from database import Database, initialize_database
from errors import StoreError


def test_initialize_creates_tables(tmp_path):
    db = initialize_database(str(tmp_path / "schema.db"))
    try:
        with db.connection() as conn:
            tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        assert {"books", "readers"} <= tables
        assert db.ping() is True
    finally:
        db.close()


def test_create_tables_is_idempotent(db):
    db.create_tables()
    db.create_tables()


def test_connection_is_returned_to_pool(tmp_path):
    db = Database(db_file=str(tmp_path / "pool.db"), pool_size=1, pool_timeout=0.1)
    try:
        for _ in range(3):
            with db.connection() as conn:
                conn.execute("SELECT 1")
    finally:
        db.close()


def test_exhausted_pool_raises_store_error(tmp_path):
    db = Database(db_file=str(tmp_path / "pool.db"), pool_size=1, pool_timeout=0.05)
    try:
        with db.connection():
            with pytest.raises(StoreError, match="pool exhausted"):
                with db.connection():
                    pass
    finally:
        db.close()


def test_waiting_caller_gets_connection_once_released(tmp_path):
    db = Database(db_file=str(tmp_path / "pool.db"), pool_size=1, pool_timeout=5)
    held = threading.Event()
    release = threading.Event()

    def holder():
        with db.connection():
            held.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    try:
        held.wait(5)
        release.set()
        with db.connection() as conn:
            assert conn.execute("SELECT 1").fetchone()[0] == 1
    finally:
        t.join()
        db.close()


def test_sqlite_errors_surface_as_store_error(db):
    with pytest.raises(StoreError, match="no such table"):
        with db.connection() as conn:
            conn.execute("SELECT * FROM missing_table")
    # The connection went back to the pool and still works
    assert db.ping() is True


def test_closed_database_refuses_work(tmp_path):
    db = Database(db_file=str(tmp_path / "closed.db"), pool_size=2)
    db.close()
    with pytest.raises(StoreError, match="closed"):
        with db.connection():
            pass
    assert db.ping() is False


def test_unbindable_integer_surfaces_as_store_error(db):
    with pytest.raises(StoreError):
        with db.connection() as conn:
            conn.execute("SELECT ?", (2 ** 70,))
    assert db.ping() is True
