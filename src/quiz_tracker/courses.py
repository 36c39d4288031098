"""Course and test administration."""
import json
import logging
import sqlite3

from quiz_tracker.db import connection, transaction
from quiz_tracker.errors import Conflict, NotFound
from quiz_tracker.models import Course, NewCourse, NewTest, Test
from quiz_tracker import store

logger = logging.getLogger(__name__)


def _row_to_course(row: sqlite3.Row) -> Course:
    return Course(
        id=row["id"],
        title=row["title"],
        order_number=row["order_number"],
        description=row["description"] or "",
    )


def public_test(test: Test) -> dict:
    """Test as shown to a learner, without the correct answer."""
    return {
        "id": test.id,
        "question": test.question,
        "options": test.options,
        "points": test.points,
    }


def insert_course(conn: sqlite3.Connection, new: NewCourse) -> Course:
    """Add a course on an open connection. Order numbers are unique."""
    existing = conn.execute(
        "SELECT id FROM courses WHERE order_number = ?", (new.order_number,)
    ).fetchone()
    if existing:
        raise Conflict(f"Course with order number {new.order_number} already exists")
    cur = conn.execute(
        "INSERT INTO courses (title, description, order_number) VALUES (?, ?, ?)",
        (new.title.strip(), new.description, new.order_number),
    )
    return Course(
        id=cur.lastrowid,
        title=new.title.strip(),
        order_number=new.order_number,
        description=new.description,
    )


def insert_test(conn: sqlite3.Connection, course_id: int, new: NewTest) -> Test:
    if conn.execute("SELECT 1 FROM courses WHERE id = ?", (course_id,)).fetchone() is None:
        raise NotFound(f"Course {course_id} not found")
    cur = conn.execute(
        """INSERT INTO tests (course_id, question, options, correct_answer, points)
        VALUES (?, ?, ?, ?, ?)""",
        (course_id, new.question, json.dumps(new.options), new.correct_answer, new.points),
    )
    return store.get_test(conn, cur.lastrowid)


def create_course(db_path: str, new: NewCourse) -> Course:
    with transaction(db_path) as conn:
        course = insert_course(conn, new)
    logger.info("Created course %s (order %s)", course.id, course.order_number)
    return course


def get_course(db_path: str, course_id: int) -> Course:
    with connection(db_path) as conn:
        row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    if row is None:
        raise NotFound(f"Course {course_id} not found")
    return _row_to_course(row)


def list_courses(db_path: str) -> list[dict]:
    """All courses by order number, each with its tests (answers hidden)."""
    with connection(db_path) as conn:
        rows = conn.execute("SELECT * FROM courses ORDER BY order_number").fetchall()
        result = []
        for row in rows:
            course = _row_to_course(row)
            tests = store.get_course_tests(conn, course.id)
            result.append({
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "order_number": course.order_number,
                "tests": [public_test(t) for t in tests],
            })
    return result


def get_course_tests(db_path: str, course_id: int) -> list[dict]:
    with connection(db_path) as conn:
        if conn.execute("SELECT 1 FROM courses WHERE id = ?", (course_id,)).fetchone() is None:
            raise NotFound(f"Course {course_id} not found")
        tests = store.get_course_tests(conn, course_id)
    return [public_test(t) for t in tests]


def create_test(db_path: str, course_id: int, new: NewTest) -> Test:
    with transaction(db_path) as conn:
        test = insert_test(conn, course_id, new)
    logger.info("Created test %s in course %s", test.id, course_id)
    return test
