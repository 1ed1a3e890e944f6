"""
Signal Drill: command line front end for the scheduling engine.

Commands:
- signal-drill init-db           - Create tables
- signal-drill import-questions  - Load questions from a JSON file
- signal-drill session           - Show the next study batch
- signal-drill drill             - Interactive study session
- signal-drill answer            - Record a single score
- signal-drill stats             - Show learner statistics
- signal-drill boxes             - Show the box overview
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt
from rich.table import Table

from config import get_settings
from src.content.store import seed_questions
from src.core.logging import configure_logging
from src.db.database import get_session_factory, init_db, session_scope
from src.scheduling.engine import StudyEngine
from src.scheduling.errors import SchedulingError
from src.scheduling.models import SessionMode, SessionOptions, SessionQuestion


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="signal-drill",
    help="Signal Drill: spaced repetition for railway signal exams",
    no_args_is_help=True,
)
console = Console()

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
    "dim": "dim",
}

BOX_COLORS = {1: "red", 2: "yellow", 3: "cyan", 4: "blue", 5: "green"}


def _engine() -> StudyEngine:
    return StudyEngine.from_settings()


def _fail(e: SchedulingError) -> NoReturn:
    console.print(f"[{STYLES['incorrect']}]Error:[/] {e}")
    raise typer.Exit(code=1)


def _options(
    mode: SessionMode,
    category: Optional[str],
    subcategory: Optional[List[str]],
    regulation: str,
    box: Optional[int],
    batch: Optional[int],
) -> SessionOptions:
    subcategories = subcategory or []
    return SessionOptions(
        mode=mode.value,
        category=category,
        subcategory=subcategories[0] if len(subcategories) == 1 else None,
        subcategories=subcategories if len(subcategories) > 1 else [],
        regulation=regulation,
        box_number=box,
        batch_size=batch,
    )


# =============================================================================
# Display Helpers
# =============================================================================


def display_question(item: SessionQuestion, index: int, total: int) -> None:
    """Display the front of a card."""
    q = item.question
    status = "new" if item.is_new else f"box {item.progress.box_number}"
    header = f"Card {index}/{total}  |  {q.category} / {q.sub_category or '-'}  |  {status}"
    console.print(Panel(q.text or q.id, title=header, title_align="left", border_style="cyan", padding=(1, 2)))


def display_answers(item: SessionQuestion) -> None:
    """Display the back of a card."""
    answers = item.question.answers
    if not answers:
        return
    lines = [
        f"[green]✓[/green] {a.text}" if a.is_correct else f"[dim]  {a.text}[/dim]"
        for a in answers
    ]
    console.print(Panel("\n".join(lines), border_style="green", padding=(1, 2)))


def session_table(items: list[SessionQuestion]) -> Table:
    table = Table(title=f"Session ({len(items)} cards)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Question")
    table.add_column("Category")
    table.add_column("Regulation")
    table.add_column("Box", justify="center")
    table.add_column("Next review")

    for i, item in enumerate(items, 1):
        q, p = item.question, item.progress
        table.add_row(
            str(i),
            q.id,
            f"{q.category} / {q.sub_category or '-'}",
            q.regulation_category or "-",
            str(p.box_number) if p else "[cyan]new[/cyan]",
            f"{p.next_review_at:%Y-%m-%d %H:%M}" if p else "-",
        )
    return table


# =============================================================================
# Commands
# =============================================================================


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")) -> None:
    configure_logging(get_settings(), level="DEBUG" if verbose else "WARNING")


@app.command("init-db")
def init_db_command() -> None:
    """Create the progress, stats and questions tables."""
    init_db()
    console.print(f"[{STYLES['info']}]Database initialized[/]")


@app.command("import-questions")
def import_questions(path: Path = typer.Argument(..., exists=True, readable=True, help="JSON list of questions")) -> None:
    """Load questions into the local questions table."""
    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        console.print(f"[{STYLES['incorrect']}]Expected a JSON list of questions[/]")
        raise typer.Exit(code=1)

    init_db()
    with session_scope(get_session_factory()) as session:
        count = seed_questions(session, rows)
    console.print(f"[{STYLES['info']}]Imported {count} questions[/]")


@app.command()
def session(
    learner: Optional[str] = typer.Option(None, "--learner", "-l", help="Learner id (omit for guest)"),
    mode: SessionMode = typer.Option(SessionMode.REVIEW, "--mode", "-m", case_sensitive=False),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    subcategory: Optional[List[str]] = typer.Option(None, "--subcategory", "-s", help="Repeat for several"),
    regulation: str = typer.Option("all", "--regulation", "-r"),
    box: Optional[int] = typer.Option(None, "--box", "-b", min=1, max=5),
    batch: Optional[int] = typer.Option(None, "--batch", min=1),
) -> None:
    """Show the next study batch without answering it."""
    engine = _engine()
    try:
        items = engine.load_session(learner, _options(mode, category, subcategory, regulation, box, batch))
    except SchedulingError as e:
        _fail(e)

    if not items:
        console.print(f"[{STYLES['warning']}]No questions match this session[/]")
        return
    console.print(session_table(items))


@app.command()
def drill(
    learner: Optional[str] = typer.Option(None, "--learner", "-l", help="Learner id (omit for guest)"),
    mode: SessionMode = typer.Option(SessionMode.REVIEW, "--mode", "-m", case_sensitive=False),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    subcategory: Optional[List[str]] = typer.Option(None, "--subcategory", "-s"),
    regulation: str = typer.Option("all", "--regulation", "-r"),
    box: Optional[int] = typer.Option(None, "--box", "-b", min=1, max=5),
    batch: Optional[int] = typer.Option(None, "--batch", min=1),
) -> None:
    """Study interactively, rating each card 0-5."""
    engine = _engine()
    try:
        items = engine.load_session(learner, _options(mode, category, subcategory, regulation, box, batch))
    except SchedulingError as e:
        _fail(e)

    if not items:
        console.print(f"[{STYLES['warning']}]Nothing to study right now[/]")
        return

    correct = 0
    xp = 0
    for index, item in enumerate(items, 1):
        display_question(item, index, len(items))
        console.input("[dim]Press Enter to reveal...[/dim]")
        display_answers(item)
        score = IntPrompt.ask("Score (0-5)", choices=[str(s) for s in range(6)])

        try:
            outcome = engine.submit_answer(learner, item.question.id, score)
        except SchedulingError as e:
            _fail(e)

        correct += score >= 4
        xp += outcome.xp_gained
        if outcome.progress:
            p = outcome.progress
            console.print(
                f"[{STYLES['dim']}]Box {p.box_number}, next review {p.next_review_at:%Y-%m-%d}[/]"
            )

    console.print(
        Panel(
            f"Answered {len(items)} cards, {correct} correct"
            + (f", +{xp} XP" if learner else " (guest, not saved)"),
            title="[bold]Session complete[/bold]",
            border_style="green",
        )
    )


@app.command()
def answer(
    question_id: str = typer.Argument(...),
    score: int = typer.Argument(..., help="0-5"),
    learner: Optional[str] = typer.Option(None, "--learner", "-l", help="Learner id (omit for guest)"),
) -> None:
    """Record a single score for a question."""
    engine = _engine()
    try:
        outcome = engine.submit_answer(learner, question_id, score)
    except SchedulingError as e:
        _fail(e)

    if not outcome.persisted:
        console.print(f"[{STYLES['dim']}]Guest answer accepted (not saved)[/]")
        return
    p = outcome.progress
    style = STYLES["correct"] if score >= 4 else STYLES["incorrect"]
    console.print(
        f"[{style}]Box {p.box_number}[/] | next review {p.next_review_at:%Y-%m-%d %H:%M} | "
        f"streak {p.streak} | +{outcome.xp_gained} XP"
    )


@app.command()
def stats(learner: str = typer.Argument(..., help="Learner id")) -> None:
    """Show XP, answer totals and the daily streak."""
    engine = _engine()
    try:
        summary = engine.get_stats(learner)
    except SchedulingError as e:
        _fail(e)

    table = Table(title=f"Stats for {learner}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("XP", str(summary.xp))
    table.add_row("Correct", str(summary.total_correct))
    table.add_row("Incorrect", str(summary.total_incorrect))
    table.add_row("Day streak", str(summary.streak_days))
    table.add_row("Last activity", str(summary.last_activity_date or "-"))
    console.print(table)


@app.command()
def boxes(learner: str = typer.Argument(..., help="Learner id")) -> None:
    """Show how many cards sit in each box and how many are due."""
    engine = _engine()
    try:
        overview = engine.get_box_overview(learner)
    except SchedulingError as e:
        _fail(e)

    table = Table(title=f"Boxes for {learner}")
    table.add_column("Box", justify="center")
    table.add_column("Cards", justify="right")
    table.add_column("Due", justify="right")
    for b in overview:
        color = BOX_COLORS.get(b.box_number, "white")
        table.add_row(f"[{color}]Box {b.box_number}[/{color}]", str(b.count), str(b.due))
    console.print(table)
    logger.debug(f"Box overview for {learner}: {overview}")


def run() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    run()
