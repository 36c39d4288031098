"""Data classes for the tracker domain model."""
from dataclasses import dataclass, field
from typing import Optional

from quiz_tracker.config import DEFAULT_FONT_SIZE, DEFAULT_LANGUAGE, DEFAULT_THEME
from quiz_tracker.errors import InvalidInput


@dataclass
class User:
    id: int
    name: str
    email: str
    score: int = 0
    finished_courses: list[int] = field(default_factory=list)
    created_at: Optional[str] = None


@dataclass
class UserSettings:
    user_id: int
    font_size: int = DEFAULT_FONT_SIZE
    theme: str = DEFAULT_THEME
    language: str = DEFAULT_LANGUAGE


@dataclass
class Course:
    id: int
    title: str
    order_number: int
    description: str = ""


@dataclass
class Test:
    __test__ = False  # not a pytest class

    id: int
    course_id: int
    question: str
    options: list[str]
    correct_answer: int
    points: int = 1


@dataclass
class Attempt:
    id: int
    user_id: int
    test_id: int
    answer: int
    is_correct: bool
    points: int
    created_at: str


@dataclass
class SubmissionResult:
    is_correct: bool
    points: int
    course_completed: bool


@dataclass
class UserAttemptStats:
    """A user row joined with its attempt counters, as read for ranking."""
    id: int
    name: str
    score: int
    completed_courses: int = 0
    total_attempts: int = 0
    correct_answers: int = 0


@dataclass
class LeaderboardEntry:
    position: int
    id: int
    name: str
    score: int
    completed_courses: int
    total_attempts: int
    correct_answers: int
    accuracy: int
    is_current_user: bool = False


@dataclass
class LeaderboardWindow:
    top: list[LeaderboardEntry]
    nearby: list[LeaderboardEntry]
    current_user_position: int
    total_users: int


# Input structs. Each checks its own field constraints on construction.


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_text(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


@dataclass
class NewCourse:
    title: str
    order_number: int
    description: str = ""

    def __post_init__(self):
        if not _is_text(self.title):
            raise InvalidInput("Title is required")
        if not _is_int(self.order_number):
            raise InvalidInput("Order number must be an integer")
        if not isinstance(self.description, str):
            raise InvalidInput("Description must be text")


@dataclass
class NewTest:
    question: str
    options: list[str]
    correct_answer: int
    points: int = 1

    def __post_init__(self):
        if not _is_text(self.question):
            raise InvalidInput("Question is required")
        if not isinstance(self.options, (list, tuple)) or len(self.options) < 2:
            raise InvalidInput("Options must be a list with at least 2 choices")
        if not all(_is_text(o) for o in self.options):
            raise InvalidInput("Options must be non-empty strings")
        self.options = list(self.options)
        if not _is_int(self.correct_answer) or not 0 <= self.correct_answer < len(self.options):
            raise InvalidInput("correct_answer must be a valid index in options")
        if not _is_int(self.points) or self.points < 1:
            raise InvalidInput("Points must be a positive integer")
