import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from .config import DB_PATH

logger = logging.getLogger(__name__)


class ConnectionPool:
    """
    SQLite connection holder, one connection per thread.

    Tracks transaction nesting so only the outermost get_db() context
    commits or rolls back.
    """

    def __init__(self, db_path):
        self._db_path = db_path
        self._lock = threading.Lock()
        self._connections: dict[int, sqlite3.Connection] = {}
        self._transaction_depth: dict[int, int] = {}

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout = 5000")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection for the current thread, creating if necessary."""
        thread_id = threading.get_ident()
        with self._lock:
            conn = self._connections.get(thread_id)
            if conn is None:
                conn = self._create_connection()
                self._connections[thread_id] = conn
                self._transaction_depth[thread_id] = 0
                logger.debug(f"Created connection for thread {thread_id} ({self._db_path})")
            return conn

    def get_transaction_depth(self) -> int:
        return self._transaction_depth.get(threading.get_ident(), 0)

    def increment_transaction_depth(self):
        thread_id = threading.get_ident()
        with self._lock:
            self._transaction_depth[thread_id] = self._transaction_depth.get(thread_id, 0) + 1

    def decrement_transaction_depth(self):
        thread_id = threading.get_ident()
        with self._lock:
            depth = self._transaction_depth.get(thread_id, 1)
            self._transaction_depth[thread_id] = max(0, depth - 1)

    def close_all(self):
        """Close all connections (call on application shutdown)."""
        with self._lock:
            for thread_id, conn in list(self._connections.items()):
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.warning(f"Error closing connection for thread {thread_id}: {e}")
            self._connections.clear()
            self._transaction_depth.clear()


# Global pool instance
_pool: ConnectionPool | None = None
_pool_lock = threading.Lock()


def _get_pool() -> ConnectionPool:
    """Get or create the global connection pool."""
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                DB_PATH.parent.mkdir(exist_ok=True, parents=True)
                _pool = ConnectionPool(DB_PATH)
    return _pool


@contextmanager
def get_db(read_only: bool = False):
    """
    Get database connection with proper transaction handling.

    Args:
        read_only: If True, skip commit on exit

    Nested calls share the connection; only the outermost context
    commits or rolls back.
    """
    pool = _get_pool()
    conn = pool.get_connection()

    is_outermost = pool.get_transaction_depth() == 0
    pool.increment_transaction_depth()

    try:
        yield conn

        if is_outermost and not read_only:
            conn.commit()

    except Exception:
        if is_outermost:
            conn.rollback()
        raise

    finally:
        pool.decrement_transaction_depth()


def close_pool():
    """Close the connection pool. Call on application shutdown."""
    global _pool
    if _pool is not None:
        _pool.close_all()
        _pool = None


def init_db() -> None:
    DB_PATH.parent.mkdir(exist_ok=True, parents=True)
    with get_db() as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS user_judgments (
                movie_id TEXT PRIMARY KEY,
                watched INTEGER NOT NULL DEFAULT 0,
                rating INTEGER NOT NULL DEFAULT 0,
                wishlist INTEGER NOT NULL DEFAULT 0,
                not_interested INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT
            );
        """)


def _row_to_dict(row: sqlite3.Row) -> dict:
    return {
        'watched': bool(row['watched']),
        'rating': int(row['rating']),
        'wishlist': bool(row['wishlist']),
        'not_interested': bool(row['not_interested']),
    }


def load_judgments() -> dict[str, dict]:
    """Load every stored judgment keyed by movie id."""
    with get_db(read_only=True) as conn:
        rows = conn.execute("""
            SELECT movie_id, watched, rating, wishlist, not_interested
            FROM user_judgments
        """).fetchall()
    return {row['movie_id']: _row_to_dict(row) for row in rows}


def save_judgment(
    movie_id: str,
    watched: bool,
    rating: int,
    wishlist: bool,
    not_interested: bool,
) -> None:
    with get_db() as conn:
        conn.execute("""
            INSERT INTO user_judgments (movie_id, watched, rating, wishlist, not_interested, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(movie_id) DO UPDATE SET
                watched = excluded.watched,
                rating = excluded.rating,
                wishlist = excluded.wishlist,
                not_interested = excluded.not_interested,
                updated_at = excluded.updated_at
        """, (
            movie_id, int(watched), int(rating), int(wishlist), int(not_interested),
            datetime.now().isoformat(),
        ))


def delete_judgment(movie_id: str) -> None:
    with get_db() as conn:
        conn.execute("DELETE FROM user_judgments WHERE movie_id = ?", (movie_id,))


def clear_judgments() -> int:
    """Delete all judgments. Returns number of rows removed."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM user_judgments")
        removed = cursor.rowcount
    logger.info(f"Cleared {removed} stored judgments")
    return removed
