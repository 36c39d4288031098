"""Interactive CLI application."""
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from quiz_tracker.config import DEFAULT_DB_PATH, LOG_LEVEL, THEMES
from quiz_tracker.courses import create_course, create_test, get_course_tests, list_courses
from quiz_tracker.db import init_db
from quiz_tracker.errors import Conflict, InvalidInput, NotFound, QuizTrackerError, StoreFailure
from quiz_tracker.leaderboard import get_leaderboard_window
from quiz_tracker.models import NewCourse, NewTest, User
from quiz_tracker.scoring import submit_answer
from quiz_tracker.seed import is_seeded, seed_all
from quiz_tracker.users import (
    find_user_by_email, get_progress, get_settings, get_user, get_user_attempts,
    register_user, update_settings,
)

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")

ERROR_STYLES = {
    NotFound: "yellow",
    Conflict: "magenta",
    InvalidInput: "dark_orange",
    StoreFailure: "red",
}


class SessionExitRequested(Exception):
    """Raised when the user leaves a running test session."""


def session_prompt(prompt: str, **kwargs) -> str:
    value = Prompt.ask(prompt, **kwargs)
    if value.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return value


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    while True:
        value = session_prompt(f"{prompt} [dim]({'/'.join(choices)}, q to stop)[/dim]").strip()
        if value in choices:
            return int(value)
        console.print("[red]Please pick one of the listed options.[/red]")


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Quiz Tracker[/bold]\n[dim]Courses, tests and a leaderboard[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(user: User | None):
    who = f"[green]{user.name}[/green]" if user else "[dim]nobody (register or login)[/dim]"
    console.print(f"\n[bold]Commands[/bold] - signed in as {who}")
    commands = [
        ("register", "Create an account"),
        ("login", "Sign in by email"),
        ("courses", "List courses"),
        ("take", "Answer the tests of a course"),
        ("progress", "Score and finished courses"),
        ("history", "Your attempts"),
        ("leaderboard", "Rankings around you"),
        ("settings", "Display preferences"),
        ("new-course", "Add a course"),
        ("new-test", "Add a test to a course"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_error(error: QuizTrackerError) -> None:
    color = next((c for cls, c in ERROR_STYLES.items() if isinstance(error, cls)), "red")
    console.print(f"[{color}]{type(error).__name__}: {error}[/{color}]")


def run_test_session(db_path: str, user: User, tests: list[dict]) -> tuple[int, int]:
    if not tests:
        console.print("[yellow]This course has no tests yet.[/yellow]")
        return 0, 0
    correct = 0
    console.print(f"\n[bold]Tests[/bold] - {len(tests)} questions\n")
    for i, test in enumerate(tests, 1):
        console.print(f"[bold]Q{i}.[/bold] {test['question']} [dim]({test['points']} pts)[/dim]\n")
        for n, option in enumerate(test["options"], 1):
            console.print(f"  [cyan]{n})[/cyan] {option}")
        choices = [str(n) for n in range(1, len(test["options"]) + 1)]
        answer = session_int_prompt("\nYour answer", choices=choices)
        result = submit_answer(db_path, user.id, test["id"], answer - 1)
        if result.is_correct:
            correct += 1
            console.print(f"[green]Correct! +{result.points}[/green]")
        else:
            console.print("[red]Incorrect.[/red]")
        if result.course_completed:
            console.print(Panel("[bold green]Course completed![/bold green]", border_style="green"))
        console.print()
    console.print(f"[bold]Score: {correct}/{len(tests)} ({correct/len(tests)*100:.0f}%)[/bold]\n")
    return correct, len(tests)


def cmd_register(db_path: str) -> User:
    name = Prompt.ask("Name")
    email = Prompt.ask("Email")
    user = register_user(db_path, name, email)
    console.print(f"[green]Welcome, {user.name}![/green]")
    return user


def cmd_login(db_path: str) -> User:
    email = Prompt.ask("Email")
    user = find_user_by_email(db_path, email)
    console.print(f"[green]Signed in as {user.name}.[/green]")
    return user


def cmd_courses(db_path: str, user: User | None):
    finished = set(user.finished_courses) if user else set()
    table = Table(title="Courses")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Tests", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Status")
    for course in list_courses(db_path):
        table.add_row(
            str(course["order_number"]),
            course["title"],
            str(len(course["tests"])),
            str(sum(t["points"] for t in course["tests"])),
            "[green]Done[/green]" if course["id"] in finished else "",
        )
    console.print(table)


def cmd_take(db_path: str, user: User):
    courses = list_courses(db_path)
    if not courses:
        console.print("[yellow]No courses yet.[/yellow]")
        return
    for course in courses:
        console.print(f"  [cyan]{course['order_number']}[/cyan]) {course['title']}")
    number = session_int_prompt("Select course", choices=[str(c["order_number"]) for c in courses])
    course = next(c for c in courses if c["order_number"] == number)
    run_test_session(db_path, user, get_course_tests(db_path, course["id"]))


def cmd_progress(db_path: str, user: User):
    progress = get_progress(db_path, user.id)
    titles = {c["id"]: c["title"] for c in list_courses(db_path)}
    console.print(Panel(
        f"Score: [bold]{progress['score']}[/bold]\n"
        f"Finished courses: [bold]{len(progress['finished_courses'])}[/bold]",
        title=user.name, border_style="blue",
    ))
    for course_id in progress["finished_courses"]:
        console.print(f"  [green]✓[/green] {titles.get(course_id, course_id)}")


def cmd_history(db_path: str, user: User):
    history = get_user_attempts(db_path, user.id)
    table = Table(title="Attempts")
    table.add_column("When")
    table.add_column("Course", style="cyan")
    table.add_column("Question")
    table.add_column("Result")
    table.add_column("Points", justify="right")
    for a in history["attempts"]:
        table.add_row(
            a["attempted_at"][:16].replace("T", " "),
            a["course"]["title"],
            a["question"],
            "[green]correct[/green]" if a["is_correct"] else "[red]wrong[/red]",
            str(a["points"]),
        )
    console.print(table)
    console.print(f"  Total: [bold]{history['total']}[/bold]  |  "
                  f"Correct: [bold]{history['correct_answers']}[/bold]  |  "
                  f"Points: [bold]{history['total_points']}[/bold]")


def _leaderboard_rows(table: Table, entries) -> None:
    for e in entries:
        style = "bold green" if e.is_current_user else None
        table.add_row(
            str(e.position), e.name, str(e.score), str(e.completed_courses),
            str(e.total_attempts), f"{e.accuracy}%", style=style,
        )


def cmd_leaderboard(db_path: str, user: User):
    window = get_leaderboard_window(db_path, user.id)
    table = Table(title=f"Leaderboard - you are #{window.current_user_position} of {window.total_users}")
    for column in ("Rank", "Name", "Score", "Courses", "Attempts", "Accuracy"):
        table.add_column(column, justify="left" if column == "Name" else "right")
    _leaderboard_rows(table, window.top)
    if window.nearby:
        if window.nearby[0].position > len(window.top) + 1:
            table.add_row("...", "", "", "", "", "")
        _leaderboard_rows(table, window.nearby)
    console.print(table)


def cmd_settings(db_path: str, user: User):
    current = get_settings(db_path, user.id)
    console.print(f"Font size {current.font_size}, theme {current.theme}, language {current.language}")
    font_size = Prompt.ask("Font size", default=str(current.font_size))
    theme = Prompt.ask("Theme", choices=list(THEMES), default=current.theme)
    language = Prompt.ask("Language", default=current.language)
    if not font_size.strip().isdigit():
        raise InvalidInput("Font size must be a positive integer")
    updated = update_settings(db_path, user.id, font_size=int(font_size), theme=theme, language=language)
    console.print(f"[green]Saved: font size {updated.font_size}, theme {updated.theme}, "
                  f"language {updated.language}[/green]")


def cmd_new_course(db_path: str):
    title = Prompt.ask("Title")
    description = Prompt.ask("Description", default="")
    order = Prompt.ask("Order number")
    if not order.strip().lstrip("-").isdigit():
        raise InvalidInput("Order number must be an integer")
    course = create_course(db_path, NewCourse(title=title, order_number=int(order), description=description))
    console.print(f"[green]Created course {course.order_number}. {course.title}[/green]")


def cmd_new_test(db_path: str):
    courses = list_courses(db_path)
    if not courses:
        console.print("[yellow]Create a course first.[/yellow]")
        return
    for course in courses:
        console.print(f"  [cyan]{course['order_number']}[/cyan]) {course['title']}")
    number = Prompt.ask("Course", choices=[str(c["order_number"]) for c in courses])
    course = next(c for c in courses if str(c["order_number"]) == number)
    question = Prompt.ask("Question")
    options = [o.strip() for o in Prompt.ask("Options (separated by |)").split("|")]
    correct = Prompt.ask("Number of the correct option")
    points = Prompt.ask("Points", default="1")
    if not correct.strip().isdigit() or not points.strip().isdigit():
        raise InvalidInput("Correct option and points must be numbers")
    test = create_test(
        db_path, course["id"],
        NewTest(question=question, options=options, correct_answer=int(correct) - 1, points=int(points)),
    )
    console.print(f"[green]Added test {test.id} to {course['title']}[/green]")


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()
    user = None

    while True:
        show_menu(user)
        choice = Prompt.ask("\n[bold]>[/bold]", default="courses").strip().lower()
        try:
            if user is not None:
                user = get_user(db_path, user.id)
            if choice == "register":
                user = cmd_register(db_path)
            elif choice == "login":
                user = cmd_login(db_path)
            elif choice == "courses":
                cmd_courses(db_path, user)
            elif choice == "new-course":
                cmd_new_course(db_path)
            elif choice == "new-test":
                cmd_new_test(db_path)
            elif choice in ("take", "progress", "history", "leaderboard", "settings"):
                if user is None:
                    console.print("[yellow]Register or login first.[/yellow]")
                    continue
                {
                    "take": cmd_take,
                    "progress": cmd_progress,
                    "history": cmd_history,
                    "leaderboard": cmd_leaderboard,
                    "settings": cmd_settings,
                }[choice](db_path, user)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next time![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except QuizTrackerError as e:
            show_error(e)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Unexpected error")
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
