"""Answer evaluation, attempt recording and course progress."""
import logging
import sqlite3

from quiz_tracker.db import transaction
from quiz_tracker.errors import InvalidInput
from quiz_tracker.models import Attempt, SubmissionResult, Test
from quiz_tracker import store

logger = logging.getLogger(__name__)


def evaluate_answer(test: Test, answer: int) -> tuple[bool, int]:
    """Return (is_correct, awarded_points) for an answer index."""
    is_correct = answer == test.correct_answer
    return is_correct, test.points if is_correct else 0


def record_attempt(
    conn: sqlite3.Connection, user_id: int, test_id: int, answer: int, is_correct: bool, points: int
) -> Attempt:
    return store.create_attempt(conn, user_id, test_id, answer, is_correct, points)


def is_course_complete(total: int, done: int) -> bool:
    """A course with no tests is never complete."""
    return total > 0 and done == total


def update_progress(
    conn: sqlite3.Connection, user_id: int, test: Test, is_correct: bool, points: int
) -> bool:
    """Apply a recorded attempt to the user's score and finished courses.

    Must run in the same transaction as the attempt insert, after it.
    Returns True only if this call moved the course into the finished list.
    """
    if is_correct:
        store.increment_score(conn, user_id, points)

    total = len(store.get_course_tests(conn, test.course_id))
    done = len({a.test_id for a in store.get_correct_attempts(conn, user_id, test.course_id)})
    if not is_course_complete(total, done):
        return False
    return store.append_finished_course_if_absent(conn, user_id, test.course_id)


def _check_answer(test: Test, answer) -> None:
    if not isinstance(answer, int) or isinstance(answer, bool):
        raise InvalidInput("Answer must be an option index")
    if not 0 <= answer < len(test.options):
        raise InvalidInput(f"Answer {answer} is out of range for {len(test.options)} options")


def submit_answer(db_path: str, user_id: int, test_id: int, answer: int) -> SubmissionResult:
    """Evaluate, record and apply one submission as a single unit of work."""
    with transaction(db_path) as conn:
        store.require_user(conn, user_id)
        test = store.get_test(conn, test_id)
        _check_answer(test, answer)
        is_correct, points = evaluate_answer(test, answer)
        attempt = record_attempt(conn, user_id, test.id, answer, is_correct, points)
        course_completed = update_progress(conn, user_id, test, is_correct, points)

    logger.info(
        "User %s attempt %s on test %s: correct=%s points=%s",
        user_id, attempt.id, test.id, is_correct, points,
    )
    if course_completed:
        logger.info("User %s finished course %s", user_id, test.course_id)
    return SubmissionResult(is_correct=is_correct, points=points, course_completed=course_completed)
