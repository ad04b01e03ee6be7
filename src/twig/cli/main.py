"""Main CLI entry point for Twig."""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from typer.core import TyperCommand

from twig.constants import (
    EXIT_DATA_ERROR,
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
    LOG_DATE_FORMAT,
    SHORT_HASH_LENGTH,
)
from twig.core import MergeStrategy, Repository
from twig.errors import ObjectCorruptedError, StateError, TwigError
from twig.logging_config import configure_logging
from twig.storage import Commit

console = Console(highlight=False, soft_wrap=True)
app = typer.Typer(
    name="twig",
    help="A small local version control system",
    add_completion=False,
)


class CheckoutCommand(TyperCommand):
    """Accepts ``checkout -- FILE`` and ``checkout COMMIT -- FILE``.

    Click drops a bare ``--`` while parsing, so it is turned into the
    ``--file`` option first.
    """

    def parse_args(self, ctx: typer.Context, args: List[str]) -> List[str]:
        args = ["--file" if arg == "--" else arg for arg in args]
        return super().parse_args(ctx, args)


def _exit_with_error(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}", style="red")
    if isinstance(error, (ObjectCorruptedError, StateError)):
        raise typer.Exit(EXIT_DATA_ERROR)
    if isinstance(error, TwigError):
        raise typer.Exit(EXIT_USER_ERROR)
    raise typer.Exit(EXIT_SYSTEM_ERROR)


@contextmanager
def _repository() -> Iterator[Repository]:
    """Open the repository in the current directory and save it on success."""
    try:
        with Repository.open(Path.cwd()) as repo:
            yield repo
    except (TwigError, OSError) as e:
        _exit_with_error(e)


def _format_date(timestamp: str) -> str:
    moment = datetime.fromisoformat(timestamp).astimezone()
    return moment.strftime(LOG_DATE_FORMAT.format(day=moment.day))


def _print_commit(commit: Commit) -> None:
    console.print("===")
    console.print(f"commit {commit.address}")
    if commit.is_merge:
        short = " ".join(p[:SHORT_HASH_LENGTH] for p in commit.parents)
        console.print(f"Merge: {short}")
    console.print(f"Date: {_format_date(commit.timestamp)}")
    console.print(escape(commit.message))
    console.print()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging on stderr",
    ),
) -> None:
    """A small local version control system."""
    configure_logging(verbose=verbose)


@app.command()
def version() -> None:
    """Show Twig version."""
    from twig import __version__
    typer.echo(f"Twig version {__version__}")


@app.command()
def init() -> None:
    """Initialize a Twig repository in the current directory."""
    try:
        Repository.init(Path.cwd())
    except (TwigError, OSError) as e:
        _exit_with_error(e)
    console.print(f"Initialized empty Twig repository in {escape(str(Path.cwd()))}")


@app.command()
def add(filename: str = typer.Argument(..., help="File to stage")) -> None:
    """Stage a file for the next commit."""
    with _repository() as repo:
        repo.add(filename)


@app.command()
def commit(message: str = typer.Argument("", help="Commit message")) -> None:
    """Record the staged changes as a new commit."""
    with _repository() as repo:
        new_commit = repo.commit(message)
        console.print(
            f"[{repo.state.current_branch} {new_commit.address[:SHORT_HASH_LENGTH]}] {message}",
            markup=False,
        )


@app.command()
def rm(filename: str = typer.Argument(..., help="File to unstage or remove")) -> None:
    """Unstage a file, or stage a tracked file for removal."""
    with _repository() as repo:
        repo.rm(filename)


@app.command()
def log() -> None:
    """Show the history of the current branch."""
    with _repository() as repo:
        for entry in repo.log():
            _print_commit(entry)


@app.command("global-log")
def global_log() -> None:
    """Show every commit ever made."""
    with _repository() as repo:
        for entry in repo.global_log():
            _print_commit(entry)


@app.command()
def find(message: str = typer.Argument(..., help="Exact commit message")) -> None:
    """Print the ids of all commits with the given message."""
    with _repository() as repo:
        for address in repo.find(message):
            console.print(address)


@app.command()
def status() -> None:
    """Show branches, staged changes and working tree state."""
    with _repository() as repo:
        report = repo.status()

    console.print("=== Branches ===")
    for name in report.branches:
        marker = "*" if name == report.current_branch else ""
        console.print(f"{marker}{escape(name)}")
    sections = [
        ("Staged Files", report.staged),
        ("Removed Files", report.removed),
        ("Modifications Not Staged For Commit", report.modified),
        ("Untracked Files", report.untracked),
    ]
    for title, names in sections:
        console.print()
        console.print(f"=== {title} ===")
        for name in names:
            console.print(escape(name))
    console.print()


@app.command(cls=CheckoutCommand)
def checkout(
    target: Optional[str] = typer.Argument(None, help="Branch name, or commit id with --"),
    file: Optional[str] = typer.Option(None, "--file", help="Restore only this file"),
) -> None:
    """Switch branches, or restore a file (checkout [COMMIT] -- FILE)."""
    if target is None and file is None:
        console.print("[bold red]Error:[/bold red] Incorrect operands.", style="red")
        raise typer.Exit(EXIT_USER_ERROR)

    with _repository() as repo:
        if file is not None:
            repo.checkout_file(file, target)
        else:
            repo.checkout_branch(target)


@app.command()
def branch(name: str = typer.Argument(..., help="New branch name")) -> None:
    """Create a branch at the current commit."""
    with _repository() as repo:
        repo.branch(name)


@app.command("rm-branch")
def rm_branch(name: str = typer.Argument(..., help="Branch to delete")) -> None:
    """Delete a branch pointer."""
    with _repository() as repo:
        repo.remove_branch(name)


@app.command()
def reset(commit_id: str = typer.Argument(..., help="Commit id (prefix allowed)")) -> None:
    """Check out a commit and move the branch head to it."""
    with _repository() as repo:
        repo.reset(commit_id)


@app.command()
def merge(branch_name: str = typer.Argument(..., help="Branch to merge in")) -> None:
    """Merge another branch into the current branch."""
    with _repository() as repo:
        result = repo.merge(branch_name)

    if result.strategy is MergeStrategy.NO_OP:
        console.print("Given branch is an ancestor of the current branch.")
    elif result.strategy is MergeStrategy.FAST_FORWARD:
        console.print("Current branch fast-forwarded.")
    elif result.has_conflicts:
        console.print("Encountered a merge conflict.")


@app.command("add-remote")
def add_remote(
    name: str = typer.Argument(..., help="Remote name"),
    path: str = typer.Argument(..., help="Path to the remote's .twig directory"),
) -> None:
    """Register a remote repository."""
    with _repository() as repo:
        repo.add_remote(name, path)


@app.command("rm-remote")
def rm_remote(name: str = typer.Argument(..., help="Remote name")) -> None:
    """Forget a registered remote."""
    with _repository() as repo:
        repo.remove_remote(name)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
