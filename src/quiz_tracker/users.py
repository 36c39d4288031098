"""User registration, settings and progress."""
import logging
import sqlite3
from datetime import datetime

from quiz_tracker.config import DEFAULT_FONT_SIZE, DEFAULT_LANGUAGE, DEFAULT_THEME, THEMES
from quiz_tracker.db import connection, transaction
from quiz_tracker.errors import Conflict, InvalidInput, NotFound
from quiz_tracker.models import User, UserSettings
from quiz_tracker import store

logger = logging.getLogger(__name__)


def _row_to_user(conn: sqlite3.Connection, row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        score=row["score"],
        finished_courses=store.get_finished_courses(conn, row["id"]),
        created_at=row["created_at"],
    )


def register_user(db_path: str, name: str, email: str) -> User:
    """Create a user with default settings. Emails are unique, case-insensitively."""
    if not isinstance(name or "", str) or not isinstance(email or "", str):
        raise InvalidInput("Name and email must be text")
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise InvalidInput("Name and email are required")
    with transaction(db_path) as conn:
        try:
            cur = conn.execute(
                "INSERT INTO users (name, email, created_at) VALUES (?, ?, ?)",
                (name, email, datetime.now().isoformat()),
            )
        except sqlite3.IntegrityError as e:
            raise Conflict(f"Email already exists: {email}") from e
        user_id = cur.lastrowid
        conn.execute(
            "INSERT INTO user_settings (user_id, font_size, theme, language) VALUES (?, ?, ?, ?)",
            (user_id, DEFAULT_FONT_SIZE, DEFAULT_THEME, DEFAULT_LANGUAGE),
        )
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        user = _row_to_user(conn, row)
    logger.info("Registered user %s (%s)", user.id, email)
    return user


def get_user(db_path: str, user_id: int) -> User:
    with connection(db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFound(f"User {user_id} not found")
        return _row_to_user(conn, row)


def find_user_by_email(db_path: str, email: str) -> User:
    with connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE email = ?", ((email or "").strip().lower(),)
        ).fetchone()
        if row is None:
            raise NotFound(f"No user with email {email}")
        return _row_to_user(conn, row)


def get_settings(db_path: str, user_id: int) -> UserSettings:
    with connection(db_path) as conn:
        row = conn.execute("SELECT * FROM user_settings WHERE user_id = ?", (user_id,)).fetchone()
    if row is None:
        raise NotFound(f"User {user_id} not found")
    return UserSettings(**dict(row))


def update_settings(
    db_path: str,
    user_id: int,
    font_size: int | None = None,
    theme: str | None = None,
    language: str | None = None,
) -> UserSettings:
    """Change only the settings that are given."""
    changes = {}
    if font_size is not None:
        if not isinstance(font_size, int) or isinstance(font_size, bool) or font_size < 1:
            raise InvalidInput("Font size must be a positive integer")
        changes["font_size"] = font_size
    if theme is not None:
        if theme not in THEMES:
            raise InvalidInput(f"Theme must be one of {', '.join(THEMES)}")
        changes["theme"] = theme
    if language is not None:
        if not isinstance(language, str) or not language.strip():
            raise InvalidInput("Language must not be empty")
        changes["language"] = language.strip()

    with transaction(db_path) as conn:
        if changes:
            assignments = ", ".join(f"{column} = ?" for column in changes)
            cur = conn.execute(
                f"UPDATE user_settings SET {assignments} WHERE user_id = ?",
                (*changes.values(), user_id),
            )
            if cur.rowcount == 0:
                raise NotFound(f"User {user_id} not found")
        row = conn.execute("SELECT * FROM user_settings WHERE user_id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFound(f"User {user_id} not found")
    return UserSettings(**dict(row))


def get_progress(db_path: str, user_id: int) -> dict:
    user = get_user(db_path, user_id)
    return {"score": user.score, "finished_courses": user.finished_courses}


def get_user_attempts(db_path: str, user_id: int) -> dict:
    """Attempt history for a user, newest first, with summary counters."""
    with connection(db_path) as conn:
        store.require_user(conn, user_id)
        rows = conn.execute(
            """SELECT a.id, a.test_id, a.answer, a.is_correct, a.points, a.created_at,
                t.question, t.correct_answer, c.title as course_title, c.order_number
            FROM attempts a
            JOIN tests t ON a.test_id = t.id
            JOIN courses c ON t.course_id = c.id
            WHERE a.user_id = ?
            ORDER BY a.id DESC""",
            (user_id,),
        ).fetchall()
    attempts = [
        {
            "id": r["id"],
            "test_id": r["test_id"],
            "question": r["question"],
            "your_answer": r["answer"],
            "correct_answer": r["correct_answer"],
            "is_correct": bool(r["is_correct"]),
            "points": r["points"],
            "course": {"title": r["course_title"], "order_number": r["order_number"]},
            "attempted_at": r["created_at"],
        }
        for r in rows
    ]
    return {
        "total": len(attempts),
        "correct_answers": sum(1 for a in attempts if a["is_correct"]),
        "total_points": sum(a["points"] for a in attempts),
        "attempts": attempts,
    }
