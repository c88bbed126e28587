"""recallkit CLI: import markdown questions and study them with spaced repetition."""

import json
import logging
import re
import sys
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from recallkit.application.config import AppConfig, resolve_config
from recallkit.application.factory import Services, build_services
from recallkit.application.study import StudyResponse, correct_answer_text, grade_answer
from recallkit.domain.classification import QuestionKind, classify_question
from recallkit.domain.errors import RecallkitError
from recallkit.domain.models import Question

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="recallkit: Markdown quiz import with SM-2 spaced repetition.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

export_app = typer.Typer(help="Export questions or statistics as JSON.", no_args_is_help=True)
app.add_typer(export_app, name="export")

import_app = typer.Typer(help="Import questions or statistics from JSON.", no_args_is_help=True)
app.add_typer(import_app, name="import")

config_app = typer.Typer(help="Inspect recallkit configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class ImportMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


ImportModeOption = Annotated[
    ImportMode,
    typer.Option("--mode", help="'merge' adds to existing data, 'replace' discards it first."),
]

# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    store: Annotated[
        Path | None, typer.Option("--store", help="Store file. Defaults to config.")
    ] = None,
):
    """Global settings for recallkit."""
    ctx.ensure_object(dict)
    # Without -v the configured verbosity applies.
    config = resolve_config({"store_file": store, "verbose": verbose or None})
    ctx.obj["config"] = config

    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif config.verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


def _config(ctx: typer.Context) -> AppConfig:
    obj = ctx.obj or {}
    return obj.get("config") or resolve_config()


def _services(ctx: typer.Context) -> Services:
    config = _config(ctx)
    logger.debug(f"Using store {config.store_file}")
    return build_services(config)


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg="red")
    raise typer.Exit(1)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot read {path}: {e}")


def _short(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 3] + "..."


# ---------------------------------------------------------------------------
# Markdown import
# ---------------------------------------------------------------------------


@app.command()
def parse(
    path: Annotated[Path, typer.Argument(help="Markdown file with questions.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
):
    """Parse a markdown file and report questions and problems without saving."""
    from recallkit.application.parsing import parse_questions

    result = parse_questions(_read_text(path))

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "questions": [q.to_json_dict() for q in result.questions],
                    "errors": [
                        {"line": e.line, "message": e.message, "severity": e.severity}
                        for e in result.errors
                    ],
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    else:
        typer.echo(f"Questions: {len(result.questions)}")
        for q in result.questions:
            kind = classify_question(q).value
            typer.echo(f"  [{kind}] {_short(q.text)} ({len(q.choices)} choices, {q.points} pt)")
        for e in result.errors:
            color = "red" if e.severity == "error" else "yellow"
            typer.secho(f"  line {e.line}: {e.severity}: {e.message}", fg=color)

    if result.has_errors:
        raise typer.Exit(1)


@app.command()
def add(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Markdown file with questions.")],
):
    """Parse a markdown file and [bold green]add[/bold green] its questions to the library."""
    from recallkit.application.parsing import parse_questions

    result = parse_questions(_read_text(path))
    for e in result.errors:
        color = "red" if e.severity == "error" else "yellow"
        typer.secho(f"line {e.line}: {e.message}", fg=color)

    if not result.questions:
        _fail("No valid questions found.")

    services = _services(ctx)
    if not services.library.add(result.questions):
        _fail("Failed to save questions. Storage quota may be exceeded.")

    typer.secho(f"Added {len(result.questions)} questions.", fg="green")


# ---------------------------------------------------------------------------
# Library & review state
# ---------------------------------------------------------------------------


@app.command("list")
def list_questions(ctx: typer.Context):
    """List questions with their kind and review state."""
    services = _services(ctx)
    questions = services.library.all()
    if not questions:
        typer.echo("Library is empty.")
        return

    for q in questions:
        metadata = services.reviews.get_metadata(q.id)
        if metadata.is_new:
            state = "new"
        else:
            state = f"next {metadata.next_review_date.date().isoformat()}"
        kind = classify_question(q).value
        typer.echo(f"{q.id}  {kind:<13} {state:<16} {_short(q.text)}")


@app.command()
def delete(
    ctx: typer.Context,
    question_id: Annotated[str, typer.Argument(help="ID of the question to delete.")],
):
    """Delete a question. Its statistics stay until 'recallkit cleanup'."""
    services = _services(ctx)
    try:
        saved = services.library.delete(question_id)
    except RecallkitError as e:
        _fail(str(e))
    if not saved:
        _fail("Failed to save questions. Storage quota may be exceeded.")
    typer.echo(f"Deleted {question_id}.")


@app.command()
def due(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show questions due for review."""
    services = _services(ctx)
    due_questions = services.reviews.get_due(services.library.all())

    if json_output:
        typer.echo(json.dumps([q.id for q in due_questions], indent=2))
        return

    typer.echo(f"Due: {len(due_questions)}")
    for q in due_questions:
        typer.echo(f"  {q.id}  {_short(q.text)}")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show review progress: new, learning, review and due counts."""
    services = _services(ctx)
    questions = services.library.all()
    result = services.reviews.get_stats(questions)
    summary = services.reviews.statistics_summary(questions)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "total": result.total,
                    "new": result.new,
                    "learning": result.learning,
                    "review": result.review,
                    "due": result.due,
                    "withProgress": summary.with_progress,
                    "categories": summary.categories,
                    "orphaned": summary.orphaned_count,
                },
                indent=2,
            )
        )
        return

    typer.echo(
        f"Total: {result.total}  New: {result.new}  Learning: {result.learning}"
        f"  Review: {result.review}  Due: {result.due}"
    )
    if summary.orphaned_count:
        typer.secho(
            f"Orphaned statistics: {summary.orphaned_count} (run 'recallkit cleanup')",
            fg="yellow",
        )


@app.command()
def answer(
    ctx: typer.Context,
    question_id: Annotated[str, typer.Argument(help="ID of the answered question.")],
    correct: Annotated[
        bool, typer.Option("--correct/--incorrect", help="Whether the answer was correct.")
    ],
    confidence: Annotated[
        float | None,
        typer.Option(min=0.0, max=1.0, help="Optional confidence between 0 and 1."),
    ] = None,
):
    """Record an answer and reschedule the question."""
    services = _services(ctx)
    try:
        services.library.get(question_id)
    except RecallkitError as e:
        _fail(str(e))

    outcome = services.reviews.record_answer(question_id, correct, confidence)
    if not outcome.saved:
        _fail("Failed to save review progress. Storage quota may be exceeded.")

    m = outcome.metadata
    typer.echo(
        f"quality={outcome.quality} interval={m.interval}d repetitions={m.repetitions} "
        f"ease={m.easiness_factor:.2f} next={m.next_review_date.date().isoformat()}"
    )


def _parse_labels(raw: str) -> list[str]:
    return [p.upper() for p in re.split(r"[\s,]+", raw.strip()) if p]


def _ask(question: Question) -> StudyResponse:
    by_label = {c.label: c.id for c in question.choices}
    kind = classify_question(question)

    if kind is QuestionKind.FILL_IN_BLANK:
        return StudyResponse(typed=typer.prompt("Your answer"))

    for c in question.choices:
        typer.echo(f"  {c.label}. {c.text}")

    if kind is QuestionKind.SORTING:
        raw = typer.prompt("Correct order (labels, e.g. C,A,B)")
        return StudyResponse(ordered_ids=[by_label.get(lbl, lbl) for lbl in _parse_labels(raw)])

    raw = typer.prompt("Your answer (labels)")
    return StudyResponse(selected_ids={by_label.get(lbl, lbl) for lbl in _parse_labels(raw)})


@app.command()
def study(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option(min=1, help="Maximum questions in this session.")] = 20,
):
    """Study due questions interactively."""
    services = _services(ctx)
    queue = services.reviews.get_due(services.library.all())[:limit]
    if not queue:
        typer.secho("Nothing due. Come back later!", fg="green")
        return

    score = 0
    for i, question in enumerate(queue, start=1):
        typer.echo(f"\n[{i}/{len(queue)}] {question.text}")
        is_correct = grade_answer(question, _ask(question))
        if is_correct:
            score += 1
            typer.secho("Correct!", fg="green")
        else:
            typer.secho(f"Incorrect. Answer: {correct_answer_text(question)}", fg="red")
        if question.explanation:
            typer.echo(question.explanation)

        outcome = services.reviews.record_answer(question.id, is_correct)
        if not outcome.saved:
            _fail("Failed to save review progress. Storage quota may be exceeded.")

    typer.echo(f"\nScore: {score}/{len(queue)}")


@app.command()
def cleanup(ctx: typer.Context):
    """Remove statistics of questions that no longer exist."""
    services = _services(ctx)
    result = services.reviews.cleanup_orphans(services.library.all())
    if not result.saved:
        _fail("Failed to save review metadata.")
    typer.echo(f"Removed {result.removed} orphaned statistics.")


@app.command()
def reset(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Reset all review progress."""
    if not force:
        typer.confirm("Reset all review progress?", abort=True)
    services = _services(ctx)
    if not services.reviews.reset_all():
        _fail("Failed to reset review progress.")
    typer.echo("Review progress reset.")


# ---------------------------------------------------------------------------
# Export / import subgroups
# ---------------------------------------------------------------------------


def _default_export_path(kind: str) -> Path:
    return Path(f"recallkit-{kind}-{date.today().isoformat()}.json")


def _write_export(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot write {path}: {e}")


@export_app.command("questions")
def export_questions(
    ctx: typer.Context,
    out: Annotated[Path | None, typer.Argument(help="Output file.")] = None,
):
    """Export all questions."""
    from recallkit.application.export_import import export_questions_json

    services = _services(ctx)
    questions = services.library.all()
    target = out or _default_export_path("questions")
    _write_export(target, export_questions_json(questions))
    typer.echo(f"Exported {len(questions)} questions to {target}")


@export_app.command("stats")
def export_stats(
    ctx: typer.Context,
    out: Annotated[Path | None, typer.Argument(help="Output file.")] = None,
):
    """Export review statistics (orphaned records are skipped)."""
    from recallkit.application.statistics_io import build_statistics_export

    services = _services(ctx)
    data = build_statistics_export(services.reviews.all_metadata(), services.library.all())
    target = out or _default_export_path("statistics")
    _write_export(target, json.dumps(data, indent=2, ensure_ascii=False))
    typer.echo(f"Exported {data['statisticsCount']} statistics to {target}")


def _report(errors: list[str], warnings: list[str]) -> None:
    for w in warnings:
        typer.secho(f"warning: {w}", fg="yellow")
    for e in errors:
        typer.secho(f"error: {e}", fg="red")


@import_app.command("questions")
def import_questions(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Exported questions JSON.")],
    mode: ImportModeOption = ImportMode.MERGE,
    preserve_ids: Annotated[
        bool,
        typer.Option("--preserve-ids", help="Keep IDs so imported statistics still match."),
    ] = False,
):
    """Import questions from a JSON export."""
    from recallkit.application.export_import import (
        parse_imported_questions,
        regenerate_question_ids,
    )

    result = parse_imported_questions(_read_text(path))
    _report(result.errors, result.warnings)
    if not result.success:
        _fail("Import failed: no valid questions.")

    questions = result.questions if preserve_ids else regenerate_question_ids(result.questions)
    services = _services(ctx)
    if mode is ImportMode.MERGE:
        existing = services.library.ids()
        replaced = sum(1 for q in questions if q.id in existing)
        saved = services.library.add(questions)
    else:
        replaced = 0
        saved = services.library.replace(questions)
    if not saved:
        _fail("Failed to save questions. Storage quota may be exceeded.")

    typer.secho(f"Imported {len(questions)} questions ({mode.value}).", fg="green")
    if replaced:
        typer.echo(f"{replaced} of them replaced stored questions with the same ID.")


@import_app.command("stats")
def import_stats(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Exported statistics JSON.")],
    mode: ImportModeOption = ImportMode.MERGE,
):
    """Import review statistics for questions in the current library."""
    from recallkit.application.statistics_io import parse_imported_statistics

    services = _services(ctx)
    result = parse_imported_statistics(_read_text(path), services.library.ids())
    _report(result.errors, result.warnings)
    if not result.success:
        _fail("Import failed.")

    if result.statistics or mode is ImportMode.REPLACE:
        records = [s.to_metadata() for s in result.statistics]
        if not services.reviews.import_statistics(records, mode.value):
            _fail("Failed to save statistics. Storage quota may be exceeded.")

    typer.secho(
        f"Imported {result.matched_count} statistics "
        f"({result.unmatched_count} unmatched, {mode.value}).",
        fg="green",
    )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
