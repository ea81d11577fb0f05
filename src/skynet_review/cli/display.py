"""Rich rendering of findings and analysis results."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from skynet_review.client.models import AnalysisResult, SecurityFinding

_SEVERITY_STYLES = {
    "CRITICAL": "bold red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "blue",
    "INFO": "white",
}


class FindingPrinter:
    """Prints findings one at a time, numbering them in arrival order."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self.count = 0

    def __call__(self, finding: SecurityFinding) -> None:
        self.count += 1
        print_finding(self._console, self.count, finding)


def print_finding(console: Console, number: int, finding: SecurityFinding) -> None:
    label = finding.severity_label
    style = _SEVERITY_STYLES[label]
    console.print(
        f"  {number}. [bold]{escape(finding.title)}[/bold] "
        f"\\[[{style}]{label}[/{style}]]"
    )
    console.print(f"     ID: [dim]{escape(finding.id)}[/dim]")
    console.print(f"     File: {escape(finding.file_path)}")
    if finding.line_number is not None:
        console.print(f"     Line: {finding.line_number}")
    console.print(f"     {escape(finding.description)}")

    if finding.code_snippet:
        console.print("\n     Code:")
        console.print(Rule(style="dim"), width=65)
        for line in finding.code_snippet.splitlines():
            console.print(f"     [dim]{escape(line)}[/dim]")
        console.print(Rule(style="dim"), width=65)

    console.print("\n     Remediation:")
    console.print(f"     [green]{escape(finding.remediation)}[/green]")
    console.print()


def print_results(console: Console, results: Sequence[AnalysisResult]) -> int:
    """Render buffered per-agent results. Returns the total finding count."""
    total = 0
    for result in results:
        agent = escape(result.agent_type)
        if not result.success:
            message = escape(result.error_message or "Unknown error")
            console.print(f"\n[bold red]✗[/bold red] {agent} failed: {message}")
            continue

        console.print(
            f"\n[bold green]✓[/bold green] {agent} Analysis "
            f"(completed in {escape(result.duration)})"
        )
        if not result.findings:
            console.print("  [green]No issues found![/green]")
            continue

        console.print(f"  Found {len(result.findings)} issue(s):\n")
        for i, finding in enumerate(result.findings, start=1):
            print_finding(console, i, finding)
        total += len(result.findings)
    return total


def print_summary(console: Console, count: int) -> None:
    if count == 0:
        console.print("  [green]No issues found![/green]")
    else:
        console.print(f"\n[bold cyan]Summary:[/bold cyan] Found {count} issue(s)")
