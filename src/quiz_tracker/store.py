"""Store operations used by the scoring core.

Every function takes an open connection so a caller can compose several of
them inside a single ``transaction``. Nothing here commits.
"""
import json
import sqlite3
from datetime import datetime

from quiz_tracker.errors import NotFound
from quiz_tracker.models import Attempt, Test, UserAttemptStats


def row_to_test(row: sqlite3.Row) -> Test:
    return Test(
        id=row["id"],
        course_id=row["course_id"],
        question=row["question"],
        options=json.loads(row["options"]),
        correct_answer=row["correct_answer"],
        points=row["points"],
    )


def row_to_attempt(row: sqlite3.Row) -> Attempt:
    return Attempt(
        id=row["id"],
        user_id=row["user_id"],
        test_id=row["test_id"],
        answer=row["answer"],
        is_correct=bool(row["is_correct"]),
        points=row["points"],
        created_at=row["created_at"],
    )


def get_test(conn: sqlite3.Connection, test_id: int) -> Test:
    row = conn.execute("SELECT * FROM tests WHERE id = ?", (test_id,)).fetchone()
    if row is None:
        raise NotFound(f"Test {test_id} not found")
    return row_to_test(row)


def get_course_tests(conn: sqlite3.Connection, course_id: int) -> list[Test]:
    rows = conn.execute(
        "SELECT * FROM tests WHERE course_id = ? ORDER BY id", (course_id,)
    ).fetchall()
    return [row_to_test(r) for r in rows]


def create_attempt(
    conn: sqlite3.Connection,
    user_id: int,
    test_id: int,
    answer: int,
    is_correct: bool,
    points: int,
) -> Attempt:
    """Append one attempt. Ids and timestamps are assigned here, never by the caller."""
    created_at = datetime.now().isoformat()
    cur = conn.execute(
        """INSERT INTO attempts (user_id, test_id, answer, is_correct, points, created_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (user_id, test_id, answer, int(is_correct), points, created_at),
    )
    return Attempt(
        id=cur.lastrowid,
        user_id=user_id,
        test_id=test_id,
        answer=answer,
        is_correct=is_correct,
        points=points,
        created_at=created_at,
    )


def get_correct_attempts(conn: sqlite3.Connection, user_id: int, course_id: int) -> list[Attempt]:
    rows = conn.execute(
        """SELECT a.* FROM attempts a
        JOIN tests t ON a.test_id = t.id
        WHERE a.user_id = ? AND t.course_id = ? AND a.is_correct = 1
        ORDER BY a.id""",
        (user_id, course_id),
    ).fetchall()
    return [row_to_attempt(r) for r in rows]


def increment_score(conn: sqlite3.Connection, user_id: int, amount: int) -> None:
    cur = conn.execute(
        "UPDATE users SET score = score + ? WHERE id = ?", (amount, user_id)
    )
    if cur.rowcount == 0:
        raise NotFound(f"User {user_id} not found")


def append_finished_course_if_absent(conn: sqlite3.Connection, user_id: int, course_id: int) -> bool:
    """Record a finished course unless already recorded. True if a row was added."""
    cur = conn.execute(
        """INSERT OR IGNORE INTO finished_courses (user_id, course_id, finished_at)
        VALUES (?, ?, ?)""",
        (user_id, course_id, datetime.now().isoformat()),
    )
    return cur.rowcount == 1


def get_finished_courses(conn: sqlite3.Connection, user_id: int) -> list[int]:
    rows = conn.execute(
        "SELECT course_id FROM finished_courses WHERE user_id = ? ORDER BY id",
        (user_id,),
    ).fetchall()
    return [r["course_id"] for r in rows]


def list_users_with_attempt_stats(conn: sqlite3.Connection) -> list[UserAttemptStats]:
    rows = conn.execute(
        """SELECT u.id, u.name, u.score,
            (SELECT COUNT(*) FROM finished_courses f WHERE f.user_id = u.id) as completed,
            COUNT(a.id) as total,
            COALESCE(SUM(a.is_correct), 0) as correct
        FROM users u
        LEFT JOIN attempts a ON a.user_id = u.id
        GROUP BY u.id"""
    ).fetchall()
    return [
        UserAttemptStats(
            id=r["id"],
            name=r["name"],
            score=r["score"],
            completed_courses=r["completed"],
            total_attempts=r["total"],
            correct_answers=r["correct"],
        )
        for r in rows
    ]


def require_user(conn: sqlite3.Connection, user_id: int) -> None:
    if conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is None:
        raise NotFound(f"User {user_id} not found")
