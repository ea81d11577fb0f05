"""CLI command: skynet-review analyze — send source files for security review."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from skynet_review.cli.display import FindingPrinter, print_results, print_summary
from skynet_review.client.models import AnalysisRequest
from skynet_review.client.transport import TransportClient
from skynet_review.config import ReviewConfig
from skynet_review.errors import NotARepository, ReviewError
from skynet_review.git.changes import ChangeSetResolver
from skynet_review.git.models import DiffKind, DiffTarget
from skynet_review.git.refs import validate_ref
from skynet_review.git.select import select_files

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def _split_extensions(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> tuple[str, ...] | None:
    if value is None:
        return None
    return tuple(e.strip() for e in value.split(",") if e.strip())


@click.command()
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--git-diff", is_flag=True, help="Analyze changed files from git diff.")
@click.option(
    "--staged", is_flag=True, help="Analyze only staged changes (requires --git-diff)."
)
@click.option(
    "--commit",
    metavar="REF",
    default=None,
    help="Compare against a commit or branch (requires --git-diff).",
)
@click.option(
    "--include-ext",
    metavar="EXTS",
    default=None,
    callback=_split_extensions,
    help="Only include these file extensions (comma-separated).",
)
@click.option("--context", "repository_context", default=None, help="Free-text repository context.")
@click.option("--no-stream", is_flag=True, help="Wait for the full result instead of streaming.")
@click.pass_context
def analyze(
    ctx: click.Context,
    files: tuple[Path, ...],
    git_diff: bool,
    staged: bool,
    commit: str | None,
    include_ext: tuple[str, ...] | None,
    repository_context: str | None,
    no_stream: bool,
) -> None:
    """Analyze source code files for security vulnerabilities."""
    if files and git_diff:
        raise click.UsageError("FILES cannot be combined with --git-diff.")
    if (staged or commit) and not git_diff:
        raise click.UsageError("--staged and --commit require --git-diff.")
    if staged and commit:
        raise click.UsageError("--staged and --commit are mutually exclusive.")

    config: ReviewConfig = ctx.obj["config"]
    if include_ext is None and config.include_ext:
        include_ext = config.include_ext

    try:
        if git_diff:
            selected = _git_diff_files(_diff_target(staged, commit), include_ext)
        elif not files:
            err_console.print(
                "[bold red]Error: No files specified. Use file paths or --git-diff[/bold red]"
            )
            sys.exit(1)
        elif include_ext is not None:
            selected = select_files(files, include_ext)
        else:
            selected = list(files)

        if not selected:
            console.print("[yellow]No files to analyze.[/yellow]")
            return

        console.print("[bold cyan]Analyzing files...[/bold cyan]")
        for path in selected:
            console.print(f"  - {escape(str(path))}")
        console.print()

        request = AnalysisRequest.from_sources(
            read_sources(selected), repository_context=repository_context
        )
        with TransportClient(
            config.gateway_url,
            token=config.api_token,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
        ) as client:
            if no_stream:
                results = client.analyze(request)
                print_results(console, results)
            else:
                _stream(client, request)
    except ReviewError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)


def _diff_target(staged: bool, commit: str | None) -> DiffTarget:
    if staged:
        return DiffTarget.staged()
    if commit is not None:
        return DiffTarget.commit(commit)
    return DiffTarget.working_tree()


def _git_diff_files(
    target: DiffTarget, include_ext: Sequence[str] | None
) -> list[Path]:
    # Reject a bad ref before any git process is started
    if target.kind is DiffKind.COMMIT:
        validate_ref(target.reference or "")

    resolver = ChangeSetResolver()
    if not resolver.is_git_repository():
        raise NotARepository(
            "Not inside a git repository. Use file paths instead of --git-diff"
        )

    change_set = resolver.resolve(target)
    console.print(
        f"[bold cyan]Git:[/bold cyan] {escape(change_set.description)} in "
        f"{escape(str(change_set.repository_root))} ({len(change_set.paths)} files)"
    )
    return select_files(change_set.paths, include_ext)


def read_sources(paths: Sequence[Path]) -> list[tuple[str, str]]:
    """Read each file as UTF-8, keyed by its base name."""
    sources: list[tuple[str, str]] = []
    for path in paths:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Read failed for %s: %r", path, exc)
            raise ReviewError(f"Failed to read {path}") from exc
        sources.append((path.name or "unknown", content))
    return sources


def _stream(client: TransportClient, request: AnalysisRequest) -> None:
    console.print("[bold green]Security Analysis (streaming)[/bold green]\n")
    printer = FindingPrinter(console)
    outcome = client.analyze_stream(request, printer)
    outcome.raise_for_failure()
    print_summary(console, printer.count)
