# tests/test_scoring.py
import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from quiz_tracker.db import init_db, get_connection
from quiz_tracker.errors import InvalidInput, NotFound, StoreFailure
from quiz_tracker.models import Test
from quiz_tracker.scoring import evaluate_answer, is_course_complete, submit_answer
from quiz_tracker.users import get_progress, get_user, register_user


def _score_from_attempts(db_path, user_id):
    conn = get_connection(db_path)
    total = conn.execute(
        "SELECT COALESCE(SUM(points), 0) FROM attempts WHERE user_id = ? AND is_correct = 1",
        (user_id,),
    ).fetchone()[0]
    conn.close()
    return total


def test_evaluate_answer_matches_correct_index():
    test = Test(id=1, course_id=1, question="?", options=["a", "b", "c"], correct_answer=2, points=5)
    for i in range(len(test.options)):
        is_correct, points = evaluate_answer(test, i)
        assert is_correct == (i == test.correct_answer)
        assert points == (5 if is_correct else 0)


def test_is_course_complete():
    assert is_course_complete(2, 2)
    assert not is_course_complete(2, 1)
    assert not is_course_complete(0, 0)


def test_course_scenario(tmp_db, make_course):
    """Two-test course: finish it, then a wrong retry changes nothing."""
    init_db(tmp_db)
    course, (t1, t2) = make_course(tmp_db, 1, [(["a", "b"], 0, 1), (["x", "y", "z"], 2, 2)])
    user = register_user(tmp_db, "U", "u@example.com")

    r1 = submit_answer(tmp_db, user.id, t1.id, 0)
    assert (r1.is_correct, r1.points, r1.course_completed) == (True, 1, False)
    assert get_user(tmp_db, user.id).score == 1

    r2 = submit_answer(tmp_db, user.id, t2.id, 2)
    assert (r2.is_correct, r2.points, r2.course_completed) == (True, 2, True)
    assert get_progress(tmp_db, user.id) == {"score": 3, "finished_courses": [course.id]}

    r3 = submit_answer(tmp_db, user.id, t1.id, 1)
    assert (r3.is_correct, r3.points, r3.course_completed) == (False, 0, False)
    assert get_progress(tmp_db, user.id) == {"score": 3, "finished_courses": [course.id]}


def test_every_submission_creates_one_attempt(tmp_db, make_course):
    init_db(tmp_db)
    _, (t1,) = make_course(tmp_db, 1, [(["a", "b"], 0, 1)])
    user = register_user(tmp_db, "U", "u@example.com")
    for answer in (1, 0, 0, 1):
        submit_answer(tmp_db, user.id, t1.id, answer)
    conn = get_connection(tmp_db)
    rows = conn.execute("SELECT * FROM attempts WHERE user_id = ? ORDER BY id", (user.id,)).fetchall()
    conn.close()
    assert [r["answer"] for r in rows] == [1, 0, 0, 1]
    assert [r["is_correct"] for r in rows] == [0, 1, 1, 0]
    assert [r["points"] for r in rows] == [0, 1, 1, 0]
    assert all(r["created_at"] for r in rows)


def test_score_equals_sum_of_correct_attempts(tmp_db, make_course):
    init_db(tmp_db)
    _, tests = make_course(tmp_db, 1, [(["a", "b"], 0, 1), (["a", "b", "c"], 1, 3), (["a", "b"], 1, 2)])
    user = register_user(tmp_db, "U", "u@example.com")
    answers = [(0, 0), (1, 0), (1, 1), (2, 1), (0, 1), (2, 0), (1, 1)]
    for test_index, answer in answers:
        submit_answer(tmp_db, user.id, tests[test_index].id, answer)
        assert get_user(tmp_db, user.id).score == _score_from_attempts(tmp_db, user.id)
    assert get_user(tmp_db, user.id).score == 1 + 3 + 2 + 3


def test_repeated_correct_answers_do_not_complete_course(tmp_db, make_course):
    init_db(tmp_db)
    _, (t1, t2) = make_course(tmp_db, 1, [(["a", "b"], 0, 1), (["a", "b"], 1, 1)])
    user = register_user(tmp_db, "U", "u@example.com")
    submit_answer(tmp_db, user.id, t1.id, 0)
    result = submit_answer(tmp_db, user.id, t1.id, 0)
    assert result.course_completed is False
    assert get_user(tmp_db, user.id).finished_courses == []


def test_wrong_latest_answer_does_not_block_completion(tmp_db, make_course):
    init_db(tmp_db)
    course, (t1, t2) = make_course(tmp_db, 1, [(["a", "b"], 0, 1), (["a", "b"], 1, 1)])
    user = register_user(tmp_db, "U", "u@example.com")
    submit_answer(tmp_db, user.id, t1.id, 0)
    submit_answer(tmp_db, user.id, t1.id, 1)
    result = submit_answer(tmp_db, user.id, t2.id, 1)
    assert result.course_completed is True
    assert get_user(tmp_db, user.id).finished_courses == [course.id]


def test_completed_course_is_appended_once(tmp_db, make_course):
    init_db(tmp_db)
    course, (t1,) = make_course(tmp_db, 1, [(["a", "b"], 0, 1)])
    user = register_user(tmp_db, "U", "u@example.com")
    assert submit_answer(tmp_db, user.id, t1.id, 0).course_completed is True
    assert submit_answer(tmp_db, user.id, t1.id, 0).course_completed is False
    user = get_user(tmp_db, user.id)
    assert user.finished_courses == [course.id]
    assert user.score == 2


def test_finished_courses_keep_completion_order(tmp_db, make_course):
    init_db(tmp_db)
    first, (a,) = make_course(tmp_db, 1, [(["a", "b"], 0, 1)])
    second, (b,) = make_course(tmp_db, 2, [(["a", "b"], 0, 1)])
    user = register_user(tmp_db, "U", "u@example.com")
    submit_answer(tmp_db, user.id, b.id, 0)
    submit_answer(tmp_db, user.id, a.id, 0)
    assert get_user(tmp_db, user.id).finished_courses == [second.id, first.id]


def test_progress_is_per_user(tmp_db, make_course):
    init_db(tmp_db)
    _, (t1, t2) = make_course(tmp_db, 1, [(["a", "b"], 0, 1), (["a", "b"], 1, 1)])
    ann = register_user(tmp_db, "Ann", "ann@example.com")
    bob = register_user(tmp_db, "Bob", "bob@example.com")
    submit_answer(tmp_db, ann.id, t1.id, 0)
    result = submit_answer(tmp_db, bob.id, t2.id, 1)
    assert result.course_completed is False
    assert get_user(tmp_db, bob.id).finished_courses == []


def test_unknown_test_raises_not_found(tmp_db):
    init_db(tmp_db)
    user = register_user(tmp_db, "U", "u@example.com")
    with pytest.raises(NotFound):
        submit_answer(tmp_db, user.id, 999, 0)


def test_unknown_user_raises_not_found(tmp_db, make_course):
    init_db(tmp_db)
    _, (t1,) = make_course(tmp_db, 1, [(["a", "b"], 0, 1)])
    with pytest.raises(NotFound):
        submit_answer(tmp_db, 999, t1.id, 0)


@pytest.mark.parametrize("answer", [-1, 2, "0", None, True])
def test_malformed_answer_raises_invalid_input(tmp_db, make_course, answer):
    init_db(tmp_db)
    _, (t1,) = make_course(tmp_db, 1, [(["a", "b"], 0, 1)])
    user = register_user(tmp_db, "U", "u@example.com")
    with pytest.raises(InvalidInput):
        submit_answer(tmp_db, user.id, t1.id, answer)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM attempts").fetchone()[0] == 0
    conn.close()


def test_failed_submission_leaves_no_partial_state(tmp_db, make_course, monkeypatch):
    init_db(tmp_db)
    _, (t1,) = make_course(tmp_db, 1, [(["a", "b"], 0, 4)])
    user = register_user(tmp_db, "U", "u@example.com")

    def broken(*args, **kwargs):
        raise RuntimeError("store went away")

    monkeypatch.setattr("quiz_tracker.store.append_finished_course_if_absent", broken)
    with pytest.raises(RuntimeError):
        submit_answer(tmp_db, user.id, t1.id, 0)
    user = get_user(tmp_db, user.id)
    assert user.score == 0
    assert user.finished_courses == []
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM attempts").fetchone()[0] == 0
    conn.close()


def test_concurrent_submissions_append_course_once(tmp_db, make_course):
    init_db(tmp_db)
    course, (t1, t2) = make_course(tmp_db, 1, [(["a", "b"], 0, 1), (["a", "b"], 1, 2)])
    user = register_user(tmp_db, "U", "u@example.com")
    submit_answer(tmp_db, user.id, t1.id, 0)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: submit_answer(tmp_db, user.id, t2.id, 1), range(8)))

    assert sum(r.course_completed for r in results) == 1
    user = get_user(tmp_db, user.id)
    assert user.finished_courses == [course.id]
    assert user.score == 1 + 8 * 2 == _score_from_attempts(tmp_db, user.id)


def test_concurrent_submissions_on_different_tests_complete_course(tmp_db, make_course):
    init_db(tmp_db)
    course, tests = make_course(tmp_db, 1, [(["a", "b"], 0, 1)] * 6)
    user = register_user(tmp_db, "U", "u@example.com")

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(lambda t: submit_answer(tmp_db, user.id, t.id, 0), tests))

    assert sum(r.course_completed for r in results) == 1
    assert get_user(tmp_db, user.id).finished_courses == [course.id]


def test_store_error_mid_submission_rolls_back(tmp_db, make_course, monkeypatch):
    init_db(tmp_db)
    _, (t1, t2) = make_course(tmp_db, 1, [(["a", "b"], 0, 4), (["a", "b"], 1, 1)])
    user = register_user(tmp_db, "U", "u@example.com")

    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr("quiz_tracker.store.get_correct_attempts", locked)
    with pytest.raises(StoreFailure) as excinfo:
        submit_answer(tmp_db, user.id, t1.id, 0)
    assert isinstance(excinfo.value.__cause__, sqlite3.OperationalError)

    user = get_user(tmp_db, user.id)
    assert user.score == 0
    assert user.finished_courses == []
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM attempts").fetchone()[0] == 0
    conn.close()
