"""Leaderboard ranking and the window shown to a user."""
from quiz_tracker.config import TOP_SIZE, WINDOW_RADIUS
from quiz_tracker.db import connection
from quiz_tracker.errors import NotFound
from quiz_tracker.models import LeaderboardEntry, LeaderboardWindow, UserAttemptStats
from quiz_tracker import store


def calc_accuracy(correct: int, total: int) -> int:
    """Percent of correct attempts, rounded half up. 0 with no attempts."""
    if total == 0:
        return 0
    # floor(100 * correct / total + 1/2) in integer arithmetic
    return (200 * correct + total) // (2 * total)


def rank_users(users: list[UserAttemptStats], current_user_id: int) -> list[LeaderboardEntry]:
    """Sort by score desc, then name, then id, and number the result from 1."""
    ordered = sorted(users, key=lambda u: (-u.score, u.name, u.id))
    return [
        LeaderboardEntry(
            position=i,
            id=u.id,
            name=u.name,
            score=u.score,
            completed_courses=u.completed_courses,
            total_attempts=u.total_attempts,
            correct_answers=u.correct_answers,
            accuracy=calc_accuracy(u.correct_answers, u.total_attempts),
            is_current_user=u.id == current_user_id,
        )
        for i, u in enumerate(ordered, 1)
    ]


def build_window(entries: list[LeaderboardEntry], current_user_id: int) -> LeaderboardWindow:
    """Top entries plus a band around the current user.

    The band never reaches back into the top entries, so a user ranked in
    the top only shows up there.
    """
    index = next((i for i, e in enumerate(entries) if e.id == current_user_id), None)
    if index is None:
        raise NotFound(f"User {current_user_id} not found")
    start = max(TOP_SIZE, index - WINDOW_RADIUS)
    end = min(len(entries), index + WINDOW_RADIUS + 1)
    return LeaderboardWindow(
        top=entries[:TOP_SIZE],
        nearby=entries[start:end],
        current_user_position=index + 1,
        total_users=len(entries),
    )


def get_leaderboard(db_path: str, current_user_id: int) -> list[LeaderboardEntry]:
    with connection(db_path) as conn:
        users = store.list_users_with_attempt_stats(conn)
    return rank_users(users, current_user_id)


def get_leaderboard_window(db_path: str, user_id: int) -> LeaderboardWindow:
    return build_window(get_leaderboard(db_path, user_id), user_id)
