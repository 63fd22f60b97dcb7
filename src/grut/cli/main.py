"""Main CLI entry point for Grut."""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from grut.constants import (
    EXIT_DATA_ERROR,
    EXIT_USER_ERROR,
    SHORT_HASH_LENGTH,
    TEXT_ENCODING,
    TEXT_ERRORS,
)
from grut.core import Repository
from grut.diff import ADDED, REMOVED, Changed, NewFile
from grut.errors import (
    AmbiguousDigestError,
    GrutError,
    NotARepositoryError,
    ObjectNotFoundError,
    SourceFileUnreadableError,
)

console = Console()
app = typer.Typer(
    name="grut",
    help="Minimal local version control: snapshots, history and line diffs",
    add_completion=False,
)

# Errors caused by what the user asked for, as opposed to damaged data
_USER_ERRORS = (
    NotARepositoryError,
    ObjectNotFoundError,
    AmbiguousDigestError,
    SourceFileUnreadableError,
)


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Grut - a tiny single-branch version control system."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _fail(error: GrutError) -> NoReturn:
    """Print a GrutError and exit with the matching code."""
    console.print(
        f"[bold red]Error:[/bold red] {escape(_printable(str(error)))}",
        style="red",
    )
    if isinstance(error, NotARepositoryError):
        console.print(
            "\nRun [bold]grut init[/bold] to initialize a repository",
            style="yellow",
        )
    code = EXIT_USER_ERROR if isinstance(error, _USER_ERRORS) else EXIT_DATA_ERROR
    raise typer.Exit(code)


def _open_repo() -> Repository:
    try:
        return Repository.discover(Path.cwd())
    except GrutError as e:
        _fail(e)


def _printable(text: str) -> str:
    """Turn surrogate-escaped bytes back into something a terminal can show."""
    return text.encode(TEXT_ENCODING, TEXT_ERRORS).decode(TEXT_ENCODING, "replace")


def _format_date(timestamp: str) -> str:
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return dt.strftime("%Y-%m-%d %H:%M:%S")


@app.command()
def version() -> None:
    """Show Grut version."""
    from grut import __version__
    typer.echo(f"Grut version {__version__}")


@app.command()
def init(
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress output except errors",
    ),
) -> None:
    """Initialize a Grut repository in the current directory."""
    workspace_root = Path.cwd()

    try:
        repo, created = Repository.initialize(workspace_root)
    except OSError as e:
        console.print(
            f"[bold red]Error:[/bold red] Failed to initialize repository: {escape(str(e))}",
            style="red",
        )
        raise typer.Exit(EXIT_USER_ERROR)

    if quiet:
        return

    if not created:
        console.print(
            f"[yellow]Repository already initialized.[/yellow] [dim]({escape(str(repo.grut_dir))})[/dim]"
        )
        return

    success_message = f"""[bold green]✓[/bold green] Initialized empty Grut repository

[dim]Repository root:[/dim] {escape(str(repo.root))}
[dim]Storage location:[/dim] {escape(str(repo.grut_dir))}

[bold]Next steps:[/bold]
  1. Stage a file: [cyan]grut add notes.txt[/cyan]
  2. Commit it: [cyan]grut commit -m "First version"[/cyan]
  3. Review history: [cyan]grut log[/cyan]
  4. Inspect a commit: [cyan]grut show <hash>[/cyan]
"""
    console.print(Panel(success_message, border_style="green", title="Grut Initialized"))


@app.command()
def add(
    paths: List[str] = typer.Argument(..., help="Files to stage"),
) -> None:
    """Add files to the staging area."""
    repo = _open_repo()

    staged = []
    errors = []
    for raw_path in paths:
        try:
            entry = repo.stage_file(os.path.relpath(Path.cwd().resolve() / raw_path, repo.root))
        except SourceFileUnreadableError as e:
            errors.append(str(e))
            continue
        except GrutError as e:
            _fail(e)
        staged.append(entry)

    for entry in staged:
        console.print(
            f"  [green]+[/green] Added {escape(_printable(entry.path))}  "
            f"[dim]({entry.digest[:SHORT_HASH_LENGTH]})[/dim]"
        )

    if errors:
        console.print("\n[bold red]Errors:[/bold red]")
        for error in errors:
            console.print(f"  [red]x[/red] {escape(_printable(error))}")
        raise typer.Exit(EXIT_USER_ERROR)


@app.command()
def commit(
    message: str = typer.Option(
        ...,
        "--message",
        "-m",
        help="Commit message",
    ),
) -> None:
    """Commit staged files as a snapshot."""
    repo = _open_repo()

    try:
        staged = repo.status()
        parent = repo.head()
        commit_hash = repo.commit(message)
    except GrutError as e:
        _fail(e)

    if commit_hash is None:
        console.print("[yellow]Nothing to commit[/yellow] (staging area is empty)")
        console.print("  Use [bold]grut add <file>[/bold] to stage files", style="dim")
        return

    console.print(
        f"[bold green]>[/bold green] Committed [bold cyan]{commit_hash[:SHORT_HASH_LENGTH]}[/bold cyan]"
        f" ({len(staged)} file(s))"
    )
    console.print(f"  [dim]Hash:[/dim]    {commit_hash}")
    console.print(
        f"  [dim]Parent:[/dim]  {parent[:SHORT_HASH_LENGTH] if parent else '(root commit)'}"
    )
    console.print(f"\n  {escape(_printable(message))}")


@app.command()
def log(
    oneline: bool = typer.Option(
        False,
        "--oneline",
        help="Show one line per commit",
    ),
    max_count: Optional[int] = typer.Option(
        None,
        "--max-count",
        "-n",
        min=1,
        help="Limit number of commits shown",
    ),
) -> None:
    """Show commit history, newest first."""
    repo = _open_repo()

    try:
        entries = repo.history(limit=max_count)
    except GrutError as e:
        _fail(e)

    if not entries:
        console.print("[dim]No commits yet[/dim]")
        return

    for i, entry in enumerate(entries):
        if oneline:
            first_line = entry.message.split("\n")[0]
            console.print(
                f"[yellow]{entry.digest[:SHORT_HASH_LENGTH]}[/yellow] {escape(_printable(first_line))}"
            )
            continue

        console.print(f"[bold yellow]commit {entry.digest}[/bold yellow]")
        if entry.parent:
            console.print(f"[dim]Parent: {entry.parent[:SHORT_HASH_LENGTH]}[/dim]")
        else:
            console.print("[dim]Parent: (root commit)[/dim]")
        console.print(f"[bold]Date:[/bold]    {_format_date(entry.timestamp)}")
        console.print(f"[bold]Message:[/bold] {escape(_printable(entry.message))}")

        if i < len(entries) - 1:
            console.print("[dim]------------------------[/dim]")


@app.command()
def show(
    commit_hash: Optional[str] = typer.Argument(
        None,
        help="Commit to show (full or abbreviated hash, default: HEAD)",
    ),
    stat: bool = typer.Option(
        False,
        "--stat",
        help="Show only per-file line counts",
    ),
) -> None:
    """Show the changes a commit made relative to its parent."""
    repo = _open_repo()

    try:
        reports = repo.show_commit(commit_hash)
    except GrutError as e:
        _fail(e)

    if stat:
        summary = repo.diff_engine.summarize(reports)
        for path, counts in summary["files"].items():
            console.print(
                f"  {escape(_printable(path))} [dim]({counts['status']})[/dim] "
                f"[green]+{counts['added']}[/green] [red]-{counts['removed']}[/red]"
            )
        console.print(
            f"\n{len(summary['files'])} file(s), "
            f"[green]{summary['total_added']} insertion(s)[/green], "
            f"[red]{summary['total_removed']} deletion(s)[/red]"
        )
        return

    console.print("[bold]Changes:[/bold]\n")

    for report in reports:
        if isinstance(report, NewFile):
            console.print(f"[bold green]New file: {escape(_printable(report.path))}[/bold green]")
            console.print(_printable(report.content), markup=False, emoji=False, highlight=False, end="")
        elif isinstance(report, Changed):
            console.print(f"[bold cyan]Diff for {escape(_printable(report.path))}:[/bold cyan]")
            for run in report.runs:
                for line in run.lines:
                    text = _printable(line.rstrip("\r\n"))
                    if run.tag == ADDED:
                        console.print("+" + text, style="green", markup=False, emoji=False, highlight=False)
                    elif run.tag == REMOVED:
                        console.print("-" + text, style="red", markup=False, emoji=False, highlight=False)
                    else:
                        console.print(" " + text, markup=False, emoji=False, highlight=False)
        console.print("\n[dim]------------------------[/dim]\n")


@app.command()
def status() -> None:
    """Show files staged for the next commit."""
    repo = _open_repo()

    try:
        staged = repo.status()
        head = repo.head()
    except GrutError as e:
        _fail(e)

    if head:
        console.print(f"[dim]HEAD:[/dim] {head[:SHORT_HASH_LENGTH]}")
    else:
        console.print("[dim]HEAD:[/dim] (no commits yet)")

    if not staged:
        console.print("\n[dim]Nothing staged[/dim]")
        return

    console.print("\n[bold green]Staged for commit:[/bold green]")
    for entry in staged:
        console.print(
            f"  [green]+[/green] {escape(_printable(entry.path))}  "
            f"[dim]({entry.digest[:SHORT_HASH_LENGTH]})[/dim]"
        )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
