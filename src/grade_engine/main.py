"""
Main CLI entry point for the grading engine.

Usage:
    grade-engine api --port 8000
    grade-engine grade <submission_id>
    grade-engine show <submission_id>
    grade-engine publish <submission_id>
    grade-engine roster <assignment_id>
"""

import argparse
import asyncio
import sys

from rich.console import Console
from rich.table import Table

from grade_engine.config.constants import API_HOST, API_PORT
from grade_engine.config.logging_config import get_logger, setup_structured_logging
from grade_engine.config.settings import get_settings
from grade_engine.core.exceptions import GradingEngineError
from grade_engine.core.models import GradeView
from grade_engine.core.service import GradingService

logger = get_logger(__name__)


def print_grade(console: Console, view: GradeView) -> None:
    """Render a teacher grade view as a table."""
    table = Table(title=f"Submission {view.submission_id} ({view.status.value})")
    table.add_column("Question", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Source")
    table.add_column("Feedback")

    for question_id, line in view.per_question.items():
        score = "-" if line.score is None else f"{line.score:g}/{line.max_points:g}"
        source = "-" if line.source is None else line.source.value
        if line.provisional:
            source += " (provisional)"
        table.add_row(question_id, score, source, line.feedback or "")

    console.print(table)
    percentage = f" ({view.percentage}%)" if view.percentage is not None else ""
    console.print(f"Total: [bold]{view.total_score:g}/{view.max_score:g}[/bold]{percentage}")


async def command_grade(args, service: GradingService, console: Console) -> int:
    """Auto-grade, then AI-grade if enabled."""
    print_grade(console, await service.trigger_grading(args.submission_id))
    return 0


async def command_show(args, service: GradingService, console: Console) -> int:
    print_grade(console, await service.get_grade(args.submission_id))
    return 0


async def command_publish(args, service: GradingService, console: Console) -> int:
    view = await service.publish(args.submission_id)
    console.print(f"[bold green]Published[/bold green] {view.submission_id}: {view.total_score:g}/{view.max_score:g}")
    return 0


async def command_roster(args, service: GradingService, console: Console) -> int:
    """List the submissions of an assignment."""
    roster = await service.list_submissions(args.assignment_id)

    table = Table(title=f"Assignment {args.assignment_id}")
    table.add_column("Student", style="cyan")
    table.add_column("Submission")
    table.add_column("Submitted")
    table.add_column("Status")
    table.add_column("Score", justify="right")

    for entry in roster:
        table.add_row(
            entry.student_id,
            entry.submission_id,
            str(entry.submitted_at)[:19],
            entry.label,
            f"{entry.percentage}%" if entry.percentage is not None else "-",
        )

    console.print(table)
    return 0


def command_api(args):
    """Start the API server."""
    import uvicorn

    from grade_engine.api.app import create_app

    console = Console()

    app = create_app()

    console.print("[bold green]Starting API server[/bold green]")
    console.print(f"Host: {args.host}")
    console.print(f"Port: {args.port}")
    console.print(f"Docs: http://{args.host}:{args.port}/docs")

    uvicorn.run(app, host=args.host, port=args.port)

    return 0


SERVICE_COMMANDS = {
    "grade": command_grade,
    "show": command_show,
    "publish": command_publish,
    "roster": command_roster,
}


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Grade engine - auto, AI and manual grading of assignment submissions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    grade_parser = subparsers.add_parser("grade", help="Run auto and AI grading for a submission")
    grade_parser.add_argument("submission_id")

    show_parser = subparsers.add_parser("show", help="Show the teacher view of a grade")
    show_parser.add_argument("submission_id")

    publish_parser = subparsers.add_parser("publish", help="Publish a fully graded submission")
    publish_parser.add_argument("submission_id")

    roster_parser = subparsers.add_parser("roster", help="List submissions of an assignment")
    roster_parser.add_argument("assignment_id")

    api_parser = subparsers.add_parser("api", help="Start API server")
    api_parser.add_argument("--host", default=API_HOST, help="Host to bind to")
    api_parser.add_argument("--port", type=int, default=API_PORT, help="Port to bind to")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    setup_structured_logging(settings.log_level, settings.log_file)

    if args.command == "api":
        return command_api(args)

    console = Console()
    try:
        service = GradingService.from_settings(settings)
        return asyncio.run(SERVICE_COMMANDS[args.command](args, service, console))
    except GradingEngineError as e:
        logger.error(f"{args.command} failed: {e}")
        console.print(f"[red]Error:[/red] {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
