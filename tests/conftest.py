import pytest

from quiz_tracker.courses import create_course, create_test
from quiz_tracker.models import NewCourse, NewTest


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def make_course():
    """Create a course with the given tests: (options, correct_answer, points) tuples."""
    def _make(db_path, order_number, tests, title=None):
        course = create_course(
            db_path, NewCourse(title=title or f"Course {order_number}", order_number=order_number)
        )
        created = [
            create_test(
                db_path, course.id,
                NewTest(question=f"Q{i}", options=options, correct_answer=correct, points=points),
            )
            for i, (options, correct, points) in enumerate(tests, 1)
        ]
        return course, created
    return _make
