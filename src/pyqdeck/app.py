"""Interactive CLI application."""
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from pyqdeck import config
from pyqdeck.bookmarks import list_bookmarks, resolve_bookmarks, toggle_bookmark
from pyqdeck.catalog import load_catalog
from pyqdeck.completion import bulk_load, clear_all_completion, clear_completion, toggle_completed
from pyqdeck.db import init_db
from pyqdeck.explain import ExplanationError, RequestType, SubjectContext, explain
from pyqdeck.filters import (
    filter_questions, questions_for_view, sort_for_review, sort_questions, unique_chapters,
    unique_years,
)
from pyqdeck.journey import (
    get_onboarding_selections, is_onboarding_completed, load_journey,
    save_journey, save_onboarding_selections,
)
from pyqdeck.locator import locate
from pyqdeck.models import Catalog, JourneyRecord, Question
from pyqdeck.progress import (
    aggregate, children_progress, group_progress, node_progress, progress_color,
    progress_label, question_ids_under,
)
from pyqdeck.streak import check_and_reset_streak, load_streak
from pyqdeck.text import format_question_text, preview

console = Console()
logger = logging.getLogger(__name__)


class BackRequested(Exception):
    """Raised when the user types 'b' or 'back' at a navigation prompt."""


def nav_prompt(prompt: str, choices: list[str] | None = None, default: str | None = None) -> str:
    if default is None:
        answer = Prompt.ask(prompt).strip()
    else:
        answer = Prompt.ask(prompt, default=default).strip()
    if answer.lower() in ("b", "back"):
        raise BackRequested()
    if choices is not None and answer not in choices:
        console.print(f"[red]Pick one of: {', '.join(choices)}[/red]")
        return nav_prompt(prompt, choices, default)
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]PYQDeck[/bold]\n[dim]Your pocket guide to past exam questions[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(db_path: str):
    journey = load_journey(db_path)
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("browse", "Browse branches and subjects"),
        ("home", "Subjects of your saved semester"),
        ("resume", f"Resume {journey.subject_name or journey.subject_id}" if journey else "Resume last subject"),
        ("bookmarks", "Bookmarked questions"),
        ("streak", "Daily streak"),
        ("setup", "Choose your branch and semester"),
        ("reset", "Reset completion progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _progress_cell(progress) -> str:
    color = progress_color(progress)
    if progress.percent is None:
        return f"[{color}]No Data[/{color}]"
    return f"[{color}]{progress.percent}%[/{color}] ({progress_label(progress)})"


def pick_branch(catalog: Catalog, completion: dict) -> str:
    table = Table(title="Branches")
    table.add_column("#", justify="right")
    table.add_column("Branch", style="cyan")
    table.add_column("Progress")
    rows = children_progress(catalog, completion)
    for i, (branch, progress) in enumerate(rows, 1):
        table.add_row(str(i), branch.name, _progress_cell(progress))
    console.print(table)
    index = nav_prompt("Branch #", choices=[str(i) for i in range(1, len(rows) + 1)])
    return rows[int(index) - 1][0].id


def pick_semester(catalog: Catalog, branch_id: str, completion: dict) -> str | None:
    branch = locate(catalog, branch_id).branch
    rows = children_progress(branch, completion)
    if not rows:
        console.print("[yellow]No semesters for this branch yet.[/yellow]")
        return None
    table = Table(title=branch.name)
    table.add_column("#", justify="right")
    table.add_column("Semester", style="cyan")
    table.add_column("Progress")
    for i, (sem, progress) in enumerate(rows, 1):
        table.add_row(str(i), f"Semester {sem.number}", _progress_cell(progress))
    console.print(table)
    index = nav_prompt("Semester #", choices=[str(i) for i in range(1, len(rows) + 1)])
    return rows[int(index) - 1][0].id


def pick_subject(catalog: Catalog, branch_id: str, sem_id: str, completion: dict) -> str | None:
    result = locate(catalog, branch_id, sem_id)
    if not result.ok:
        console.print(f"[red]{result.error.value}[/red]")
        return None
    rows = children_progress(result.semester, completion)
    if not rows:
        console.print("[yellow]No subjects for this semester yet.[/yellow]")
        return None
    table = Table(title=f"{result.branch.name} - Semester {result.semester.number}")
    table.add_column("#", justify="right")
    table.add_column("Code")
    table.add_column("Subject", style="cyan")
    table.add_column("Progress")
    for i, (subject, progress) in enumerate(rows, 1):
        table.add_row(str(i), subject.code, subject.name, _progress_cell(progress))
    console.print(table)
    index = nav_prompt("Subject #", choices=[str(i) for i in range(1, len(rows) + 1)])
    return rows[int(index) - 1][0].id


def pick_view(questions: list[Question], completion: dict) -> list[Question]:
    """Chapter-wise, year-wise or all questions of a subject."""
    mode = nav_prompt("Organize by", choices=["chapter", "year", "all"], default="chapter")
    if mode == "all":
        return sort_for_review(questions, completion)
    labels = unique_chapters(questions) if mode == "chapter" else unique_years(questions)
    if not labels:
        return []
    groups = group_progress(questions, completion, by=mode)
    table = Table(title="Chapters" if mode == "chapter" else "Years")
    table.add_column("#", justify="right")
    table.add_column(mode.title(), style="cyan")
    table.add_column("Progress")
    for i, label in enumerate(labels, 1):
        table.add_row(str(i), str(label), _progress_cell(groups[label]))
    console.print(table)
    index = nav_prompt(f"{mode.title()} #", choices=[str(i) for i in range(1, len(labels) + 1)])
    return questions_for_view(questions, mode, labels[int(index) - 1])


def show_question_list(questions: list[Question], completion: dict, bookmarks: set[str]) -> None:
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Done")
    table.add_column("Year")
    table.add_column("Q")
    table.add_column("Marks", justify="right")
    table.add_column("Question")
    for i, q in enumerate(questions, 1):
        done = "[green]✔[/green]" if completion.get(q.question_id) else ""
        mark = " [yellow]★[/yellow]" if q.question_id in bookmarks else ""
        marks = "" if q.marks is None else f"{q.marks:g}"
        table.add_row(str(i), done, str(q.year or ""), q.q_number, marks, preview(q.text, 70) + mark)
    console.print(table)


def show_question(q: Question) -> None:
    body = format_question_text(q.text)
    if q.options:
        body += "\n\n" + "\n".join(f"- {opt}" for opt in q.options)
    subtitle = " · ".join(p for p in (q.chapter_label, q.type, f"{q.marks:g} marks" if q.marks is not None else "") if p)
    console.print(Panel(Markdown(body), title=f"{q.year or ''} {q.q_number}".strip(), subtitle=subtitle, border_style="cyan"))


def run_question_session(
    db_path: str, questions: list[Question], context: SubjectContext | None = None,
) -> None:
    """Question list loop: c N toggles done, s N toggles bookmark, v N views, ai N asks the AI, f filters."""
    if not questions:
        console.print("[yellow]No questions here yet.[/yellow]")
        return
    all_questions = questions
    while True:
        ids = [q.question_id for q in questions]
        completion = bulk_load(db_path, ids)
        bookmarks = set(list_bookmarks(db_path))
        show_question_list(questions, completion, bookmarks)
        console.print(f"[dim]{progress_label(aggregate(ids, completion))}  |  "
                      "c N: done  s N: bookmark  v N: view  ai N: explain  f: filter  ask: ask AI  b: back[/dim]")
        try:
            command = nav_prompt(">")
        except BackRequested:
            return
        if command == "f":
            filtered = prompt_filters(all_questions)
            if filtered:
                questions = filtered
            else:
                console.print("[yellow]No questions match that filter.[/yellow]")
            continue
        if command == "ask":
            ask_custom(context)
            continue
        action, _, arg = command.partition(" ")
        if not arg.strip().isdigit() or not 1 <= int(arg) <= len(questions):
            console.print("[red]Give a question number from the list.[/red]")
            continue
        q = questions[int(arg) - 1]
        if action == "c":
            done = toggle_completed(db_path, q.question_id)
            console.print(f"[green]{q.q_number} marked {'done' if done else 'not done'}[/green]")
        elif action == "s":
            saved = toggle_bookmark(db_path, q.question_id)
            console.print(f"[yellow]{q.q_number} {'bookmarked' if saved else 'removed from bookmarks'}[/yellow]")
        elif action == "v":
            show_question(q)
        elif action == "ai":
            ask_ai(db_path, q, context)
        else:
            console.print("[red]Unknown command. Try again.[/red]")


def _numbers(answer: str) -> list[int]:
    return [int(part) for part in answer.replace(",", " ").split() if part.isdigit()]


def prompt_filters(questions: list[Question]) -> list[Question]:
    """Multi-select year/chapter filter. A blank answer keeps that dimension unfiltered."""
    years = unique_years(questions)
    chapters = unique_chapters(questions)
    console.print(f"[bold]Years:[/bold] {', '.join(str(y) for y in years) or 'none'}")
    for i, chapter in enumerate(chapters, 1):
        console.print(f"  [cyan]{i:>2}[/cyan] {chapter}")
    year_answer = Prompt.ask("Years (e.g. 2023,2021; blank for all)", default="")
    chapter_answer = Prompt.ask("Chapter #s (e.g. 1,3; blank for all)", default="")
    selected_years = {y for y in _numbers(year_answer) if y in years}
    selected_chapters = {chapters[n - 1] for n in _numbers(chapter_answer) if 1 <= n <= len(chapters)}
    return sort_questions(filter_questions(questions, selected_years, selected_chapters))


def ask_custom(context: SubjectContext | None) -> None:
    query = Prompt.ask("Ask the AI").strip()
    if not query:
        return
    with console.status("Asking the AI..."):
        try:
            answer = explain(RequestType.CUSTOM_QUERY, query, context)
        except ExplanationError as e:
            console.print(f"[red]AI Error: {e}[/red]")
            return
    console.print(Panel(Markdown(answer), title="AI Answer", border_style="magenta"))


def ask_ai(db_path: str, q: Question, context: SubjectContext | None) -> None:
    kind = Prompt.ask("Ask for", choices=["solve", "concepts"], default="solve")
    request_type = RequestType.SOLVE_QUESTION if kind == "solve" else RequestType.EXPLAIN_CONCEPTS
    with console.status("Asking the AI..."):
        try:
            answer = explain(request_type, q, context or SubjectContext(), db_path=db_path)
        except ExplanationError as e:
            console.print(f"[red]AI Error: {e}[/red]")
            return
    console.print(Panel(Markdown(answer), title="AI Answer", border_style="magenta"))


def open_subject(db_path: str, catalog: Catalog, branch_id: str, sem_id: str, subject_id: str) -> None:
    result = locate(catalog, branch_id, sem_id, subject_id)
    if not result.ok:
        console.print(f"[red]{result.error.value}[/red]")
        return
    save_journey(db_path, JourneyRecord(
        branch_id=branch_id, sem_id=sem_id, subject_id=subject_id,
        branch_name=result.branch.name,
        semester_name=f"Semester {result.semester.number}",
        subject_name=result.subject.name,
    ))
    context = SubjectContext(
        branch_name=result.branch.name,
        semester_number=result.semester.number,
        subject_name=result.subject.name,
        subject_code=result.subject.code,
    )
    completion = bulk_load(db_path, [q.question_id for q in result.questions])
    console.print(Panel(
        f"[bold]{result.subject.name}[/bold] ({result.subject.code})\n"
        f"{_progress_cell(node_progress(result.subject, completion))}",
        border_style="blue",
    ))
    while True:
        completion = bulk_load(db_path, [q.question_id for q in result.questions])
        try:
            questions = pick_view(result.questions, completion)
        except BackRequested:
            return
        run_question_session(db_path, questions, context)


def _all_completion(db_path: str, catalog: Catalog) -> dict:
    return bulk_load(db_path, question_ids_under(catalog))


def cmd_browse(db_path: str, catalog: Catalog):
    while True:
        completion = _all_completion(db_path, catalog)
        try:
            branch_id = pick_branch(catalog, completion)
        except BackRequested:
            return
        cmd_semester(db_path, catalog, branch_id)


def cmd_semester(db_path: str, catalog: Catalog, branch_id: str):
    while True:
        completion = _all_completion(db_path, catalog)
        try:
            sem_id = pick_semester(catalog, branch_id, completion)
        except BackRequested:
            return
        if sem_id is None:
            return
        cmd_subjects(db_path, catalog, branch_id, sem_id)


def cmd_subjects(db_path: str, catalog: Catalog, branch_id: str, sem_id: str):
    while True:
        completion = _all_completion(db_path, catalog)
        try:
            subject_id = pick_subject(catalog, branch_id, sem_id, completion)
        except BackRequested:
            return
        if subject_id is None:
            return
        open_subject(db_path, catalog, branch_id, sem_id, subject_id)


def cmd_home(db_path: str, catalog: Catalog):
    selections = get_onboarding_selections(db_path)
    if not selections["branch_id"] or not selections["sem_id"]:
        console.print("[yellow]No saved semester. Run 'setup' first.[/yellow]")
        return
    cmd_subjects(db_path, catalog, selections["branch_id"], selections["sem_id"])


def cmd_resume(db_path: str, catalog: Catalog):
    journey = load_journey(db_path)
    if journey is None:
        console.print("[yellow]Nothing to resume yet. Open a subject first.[/yellow]")
        return
    open_subject(db_path, catalog, journey.branch_id, journey.sem_id, journey.subject_id)


def cmd_bookmarks(db_path: str, catalog: Catalog):
    entries = resolve_bookmarks(catalog, list_bookmarks(db_path))
    if not entries:
        console.print("[yellow]No bookmarked questions yet.[/yellow]")
        return
    console.print(f"\n[bold]Bookmarks[/bold] - {len(entries)} questions")
    for entry in entries:
        console.print(f"  [dim]{entry.branch.name} › Sem {entry.semester.number} › {entry.subject.code}[/dim]")
    run_question_session(db_path, [e.question for e in entries])


def cmd_streak(db_path: str):
    record = load_streak(db_path)
    console.print(Panel(
        f"Current streak: [bold]{record.streak}[/bold] day(s)\n"
        f"Best streak: [bold]{record.best_streak}[/bold]\n"
        f"Completed today: [bold]{record.today_count}[/bold]",
        title="Daily Streak", border_style="green",
    ))


def cmd_setup(db_path: str, catalog: Catalog):
    console.print("\n[bold]Pick your branch and semester[/bold]")
    completion = _all_completion(db_path, catalog)
    try:
        branch_id = pick_branch(catalog, completion)
        sem_id = pick_semester(catalog, branch_id, completion)
    except BackRequested:
        return
    if sem_id is None:
        return
    if save_onboarding_selections(db_path, branch_id, sem_id):
        console.print("[green]Saved! Use 'home' to jump straight to your subjects.[/green]")


def cmd_reset(db_path: str, catalog: Catalog):
    scope = Prompt.ask("Reset progress for", choices=["subject", "everything"], default="subject")
    if scope == "everything":
        if Confirm.ask("Forget completion state for every question?", default=False):
            if clear_all_completion(db_path):
                console.print("[green]All progress cleared.[/green]")
        return
    journey = load_journey(db_path)
    if journey is None:
        console.print("[yellow]Open a subject first; its progress is what gets reset.[/yellow]")
        return
    result = locate(catalog, journey.branch_id, journey.sem_id, journey.subject_id)
    if not result.ok:
        console.print(f"[red]{result.error.value}[/red]")
        return
    if Confirm.ask(f"Reset progress for {result.subject.name}?", default=False):
        if clear_completion(db_path, [q.question_id for q in result.questions]):
            console.print(f"[green]Progress for {result.subject.code} cleared.[/green]")


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def main():
    setup_logging()
    db_path = config.DB_PATH
    init_db(db_path)
    catalog = load_catalog(config.CATALOG_PATH)
    check_and_reset_streak(db_path)

    show_welcome()
    if not is_onboarding_completed(db_path):
        console.print("[dim]Setting up for first use...[/dim]")
        cmd_setup(db_path, catalog)

    while True:
        show_menu(db_path)
        choice = Prompt.ask("\n[bold]>[/bold]", default="browse").strip().lower()
        try:
            if choice == "browse":
                cmd_browse(db_path, catalog)
            elif choice == "home":
                cmd_home(db_path, catalog)
            elif choice == "resume":
                cmd_resume(db_path, catalog)
            elif choice == "bookmarks":
                cmd_bookmarks(db_path, catalog)
            elif choice == "streak":
                cmd_streak(db_path)
            elif choice == "setup":
                cmd_setup(db_path, catalog)
            elif choice == "reset":
                cmd_reset(db_path, catalog)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exams![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Unhandled error in command %s", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
