"""CLI interface for the Agile Planner."""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import load_credentials, provider_from_credentials
from .errors import ConfigurationError
from .generation import BacklogGenerator, validate_backlog
from .generation.schema import find_duplicate_story_ids
from .generation_logger import GenerationLogger, get_generation_summary
from .markdown_generator import RenderResult, generate_markdown_files, save_raw_backlog
from .models import Backlog, BacklogResult, PlannerConfig

console = Console()

# Windows-compatible symbols (cp1252 doesn't support Unicode checkmarks)
if sys.platform == "win32":
    SYM_OK = "[OK]"
    SYM_FAIL = "[X]"
else:
    SYM_OK = "✓"
    SYM_FAIL = "✗"


def _read_json(path: Path) -> Optional[dict]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}:[/red] {e}")
        return None


def _print_backlog_summary(backlog: Backlog) -> None:
    console.print(f"[bold]Epic:[/bold] {backlog.epic.title}")

    table = Table(title="User Stories")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Scope")
    table.add_column("Dependencies")

    for story in backlog.mvp:
        deps = ", ".join(story.dependencies) if story.dependencies else "-"
        table.add_row(story.id, story.title, story.priority.value, "MVP", deps)
    for iteration in backlog.iterations:
        for story in iteration.stories:
            deps = ", ".join(story.dependencies) if story.dependencies else "-"
            table.add_row(story.id, story.title, story.priority.value, iteration.name, deps)

    console.print(table)


def _print_render_warnings(rendered: RenderResult) -> None:
    for warning in rendered.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")


@click.group()
@click.version_option(version=__version__)
def main():
    """Agile Planner - AI-generated agile backlogs for coding agents."""
    pass


@main.command()
@click.argument('project_name')
@click.option('--description', '-d', default='', help='Project description')
@click.option('--description-file', type=click.Path(exists=True, dir_okay=False),
              help='Read the project description from a file')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), default='.',
              help='Directory where the backlog folder is created (default: current directory)')
@click.option('--max-attempts', type=click.IntRange(min=1), default=3, show_default=True,
              help='Maximum generation attempts')
@click.option('--timeout', type=float, default=120.0, show_default=True,
              help='Per-attempt request timeout in seconds')
@click.option('--env-file', type=click.Path(exists=True, dir_okay=False),
              help='.env file to load API keys from')
@click.option('--json-only', is_flag=True, help='Only write backlog.json, skip markdown files')
@click.option('--no-log', is_flag=True, help='Do not write a JSONL generation log')
def generate(
    project_name: str,
    description: str,
    description_file: Optional[str],
    output_dir: str,
    max_attempts: int,
    timeout: float,
    env_file: Optional[str],
    json_only: bool,
    no_log: bool,
):
    """Generate an agile backlog for a project.

    Needs OPENAI_API_KEY or GROQ_API_KEY in the environment (or a .env file).
    OpenAI is used when both are set.

    \b
    Examples:
        agile-planner generate "Todo App" -d "A collaborative todo list"
        agile-planner generate "Shop" --description-file ./brief.md -o ./shop
        agile-planner generate "Shop" --description-file ./brief.md --json-only
    """
    if description_file:
        description = Path(description_file).read_text(encoding="utf-8").strip()
    if not description:
        description = click.prompt('Project description')

    config = PlannerConfig(max_attempts=max_attempts, request_timeout_seconds=timeout)
    credentials = load_credentials(env_file)

    try:
        provider = provider_from_credentials(credentials, timeout=config.request_timeout_seconds)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("[dim]Set OPENAI_API_KEY or GROQ_API_KEY (or pass --env-file)[/dim]")
        sys.exit(2)

    output_path = Path(output_dir).resolve()
    backlog_dir = output_path / config.output_dir_name

    logger = None if no_log else GenerationLogger(backlog_dir / "logs")

    console.print(f"\n[bold]Generating Agile Backlog[/bold]")
    console.print(f"  Project: {project_name}")
    console.print(f"  Provider: {provider.name} ({provider.model})")
    console.print(f"  Attempts: up to {config.max_attempts}")
    console.print("")

    generator = BacklogGenerator(provider, config=config, logger=logger)
    with console.status("[bold blue]Asking the model for a backlog..."):
        result = generator.generate(project_name, description)

    if not result.success:
        console.print(f"[red]{SYM_FAIL} Generation failed:[/red] {result.error.message}")
        if logger:
            console.print(f"[dim]Log: {logger.log_file}[/dim]")
        sys.exit(1)

    attempts = generator.last_outcome.attempt_count if generator.last_outcome else 1
    console.print(f"[green]{SYM_OK}[/green] Backlog generated in {attempts} attempt(s)\n")
    _print_backlog_summary(result.result)

    duplicates = find_duplicate_story_ids(result.result.to_json_dict())
    if duplicates:
        console.print(f"[yellow]Warning:[/yellow] story ids used more than once: {', '.join(duplicates)}")

    if json_only:
        json_path = save_raw_backlog(result.result, backlog_dir)
        console.print(f"\n[green]{SYM_OK}[/green] Saved {json_path}")
        return

    rendered = generate_markdown_files(result, output_path, dir_name=config.output_dir_name)
    if not rendered.success:
        console.print(f"[red]{SYM_FAIL} Failed to write markdown:[/red] {rendered.error.message}")
        sys.exit(1)

    _print_render_warnings(rendered)

    console.print(f"\n[green]{SYM_OK}[/green] Wrote {len(rendered.files)} files to {rendered.output_dir}")
    console.print(f"\nNext steps:")
    console.print(f"  1. Review the epic: {rendered.output_dir / 'epics' / 'epic.md'}")
    console.print(f"  2. Hand {rendered.output_dir / 'mvp' / 'user-stories.md'} to your coding agent")


@main.command()
@click.argument('backlog_file', type=click.Path(exists=True, dir_okay=False))
def validate(backlog_file: str):
    """Check a backlog JSON file against the backlog schema."""
    path = Path(backlog_file)
    data = _read_json(path)
    if data is None:
        sys.exit(1)

    validation = validate_backlog(data)
    if validation.valid:
        console.print(f"[green]{SYM_OK}[/green] {path.name} is a valid backlog")
        duplicates = find_duplicate_story_ids(data)
        if duplicates:
            console.print(f"[yellow]Warning:[/yellow] story ids used more than once: {', '.join(duplicates)}")
        return

    table = Table(title=f"Schema violations ({len(validation.violations)})")
    table.add_column("Path", style="cyan")
    table.add_column("Rule")
    table.add_column("Message")
    for violation in validation.violations:
        table.add_row(violation.instance_path or "(root)", violation.keyword, violation.message)

    console.print(table)
    console.print(f"[red]{SYM_FAIL} {path.name} is not a valid backlog[/red]")
    sys.exit(1)


@main.command()
@click.argument('backlog_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), default='.',
              help='Directory where the backlog folder is created (default: current directory)')
def render(backlog_file: str, output_dir: str):
    """Render an existing backlog JSON file as markdown."""
    path = Path(backlog_file)
    data = _read_json(path)
    if data is None:
        sys.exit(1)

    validation = validate_backlog(data)
    if not validation.valid:
        console.print(f"[red]{SYM_FAIL} Invalid backlog:[/red] {validation.error_message}")
        sys.exit(1)

    try:
        result = BacklogResult.ok(data)
    except ValidationError as e:
        console.print(f"[red]{SYM_FAIL} Invalid backlog:[/red] {e}")
        sys.exit(1)

    rendered = generate_markdown_files(result, Path(output_dir).resolve())
    if not rendered.success:
        console.print(f"[red]{SYM_FAIL} Failed to write markdown:[/red] {rendered.error.message}")
        sys.exit(1)

    _print_render_warnings(rendered)

    console.print(f"[green]{SYM_OK}[/green] Wrote {len(rendered.files)} files to {rendered.output_dir}")


@main.command()
@click.argument('log_file', type=click.Path(exists=True, dir_okay=False))
def log(log_file: str):
    """Summarize a JSONL generation log."""
    summary = get_generation_summary(Path(log_file))
    if summary is None:
        console.print("[yellow]Log is empty[/yellow]")
        return

    outcome = summary["outcome"] or "in progress"
    color = "green" if outcome == "success" else "red" if outcome in ("failure", "exception") else "yellow"

    console.print(f"[bold]Generation:[/bold] {summary['generation_id']}")
    console.print(f"[bold]Provider:[/bold] {summary['provider']} ({summary['model']})")
    console.print(f"[bold]Outcome:[/bold] [{color}]{outcome}[/{color}]")
    console.print(f"[bold]Attempts:[/bold] {summary['attempts']}")

    if summary["errors"]:
        table = Table(title="Errors")
        table.add_column("Attempt", justify="right")
        table.add_column("Type")
        table.add_column("Message")
        for error in summary["errors"]:
            attempt = str(error["attempt"]) if error["attempt"] is not None else "-"
            table.add_row(attempt, error["type"], error["message"] or "")
        console.print(table)


@main.command()
@click.option('--host', default='127.0.0.1', help='Host to bind to')
@click.option('--port', default=8000, help='Port to listen on')
@click.option('--env-file', type=click.Path(exists=True, dir_okay=False),
              help='.env file to load API keys from')
def serve(host: str, port: int, env_file: Optional[str]):
    """Start the HTTP API.

    \b
    Endpoints:
      POST http://host:port/api/backlog/generate
      POST http://host:port/api/backlog/validate
      GET  http://host:port/health
    """
    from .api import run_server

    console.print(f"[bold]Starting Agile Planner API[/bold]")
    console.print(f"API: http://{host}:{port}/api/")
    console.print(f"Docs: http://{host}:{port}/docs")
    console.print(f"\nPress Ctrl+C to stop\n")

    try:
        run_server(host=host, port=port, env_file=env_file)
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


@main.command()
@click.option('--env-file', type=click.Path(exists=True, dir_okay=False),
              help='.env file to load API keys from')
def mcp(env_file: Optional[str]):
    """Run as an MCP server over stdio.

    \b
    Tools:
      generateBacklog  project_name, project_description, output_path
      validateBacklog  backlog
    """
    from .mcp_server import run_mcp_server

    # stdout is the protocol channel
    Console(stderr=True).print("[bold]Agile Planner MCP server[/bold] (stdio)")
    run_mcp_server(env_file=env_file)


if __name__ == "__main__":
    main()
