"""Database initialization and connection management."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from quiz_tracker.config import BUSY_TIMEOUT_SECONDS, DEFAULT_DB_PATH
from quiz_tracker.errors import StoreFailure

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    score INTEGER NOT NULL DEFAULT 0 CHECK (score >= 0),
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
    user_id INTEGER PRIMARY KEY REFERENCES users(id),
    font_size INTEGER NOT NULL,
    theme TEXT NOT NULL,
    language TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS courses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    order_number INTEGER NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS tests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    course_id INTEGER NOT NULL REFERENCES courses(id),
    question TEXT NOT NULL,
    options TEXT NOT NULL,
    correct_answer INTEGER NOT NULL,
    points INTEGER NOT NULL DEFAULT 1 CHECK (points > 0)
);

CREATE TABLE IF NOT EXISTS attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    test_id INTEGER NOT NULL REFERENCES tests(id),
    answer INTEGER NOT NULL,
    is_correct INTEGER NOT NULL,
    points INTEGER NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS finished_courses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    course_id INTEGER NOT NULL REFERENCES courses(id),
    finished_at TEXT NOT NULL,
    UNIQUE(user_id, course_id)
);

CREATE INDEX IF NOT EXISTS idx_attempts_user ON attempts(user_id, is_correct);
CREATE INDEX IF NOT EXISTS idx_tests_course ON tests(course_id);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


@contextmanager
def connection(db_path: str = DEFAULT_DB_PATH):
    """Read-only unit of work. SQLite errors surface as StoreFailure."""
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        logger.error("Cannot open database %s: %s", db_path, e)
        raise StoreFailure(str(e)) from e
    try:
        yield conn
    except sqlite3.Error as e:
        logger.error("Database read failed: %s", e)
        raise StoreFailure(str(e)) from e
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str = DEFAULT_DB_PATH):
    """Write unit of work.

    Takes the database write lock up front (BEGIN IMMEDIATE) so every
    statement issued inside the block sees the writes of the ones before it
    and no other writer can interleave. Commits on success; any exception
    rolls the whole block back. SQLite errors are re-raised as StoreFailure.
    """
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        logger.error("Cannot open database %s: %s", db_path, e)
        raise StoreFailure(str(e)) from e
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as e:
        conn.close()
        logger.error("Cannot start transaction on %s: %s", db_path, e)
        raise StoreFailure(str(e)) from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.error("Transaction rolled back: %s", e)
        raise StoreFailure(str(e)) from e
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
