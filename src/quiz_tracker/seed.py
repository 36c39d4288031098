"""Seed the database with the demo courses and tests."""
import json
import logging
import sqlite3
from pathlib import Path

from quiz_tracker.courses import insert_course, insert_test
from quiz_tracker.db import get_connection, transaction
from quiz_tracker.models import NewCourse, NewTest

CONTENT_DIR = Path(__file__).parent / "content"

logger = logging.getLogger(__name__)


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has courses."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0]
    conn.close()
    return count > 0


def load_courses() -> list[dict]:
    return json.loads((CONTENT_DIR / "courses.json").read_text())["courses"]


def _insert_courses(conn: sqlite3.Connection) -> None:
    for data in load_courses():
        course = insert_course(
            conn,
            NewCourse(
                title=data["title"],
                order_number=data["order_number"],
                description=data.get("description", ""),
            ),
        )
        for t in data["tests"]:
            insert_test(
                conn,
                course.id,
                NewTest(
                    question=t["question"],
                    options=t["options"],
                    correct_answer=t["correct_answer"],
                    points=t.get("points", 1),
                ),
            )


def seed_courses(db_path: str) -> None:
    """Insert every course from courses.json along with its tests, all or nothing."""
    with transaction(db_path) as conn:
        _insert_courses(conn)


def seed_all(db_path: str) -> None:
    """Seed the demo content. Safe to call more than once."""
    with transaction(db_path) as conn:
        if conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0]:
            return
        _insert_courses(conn)
    logger.info("Seeded demo courses into %s", db_path)
