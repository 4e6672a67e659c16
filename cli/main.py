"""deadlinks CLI: scan a directory of Markdown documents for dead links.

Usage:
    python cli/main.py [ROOT] [OPTIONS]
    deadlinks --help

Dead links are a result, not a failure: the command exits 0 after writing
the report unless ``--strict`` is given.  A missing or unreadable ROOT exits
with code 2 before any work starts.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from deadlinks.xxx import
# ...` works when the CLI is invoked as `python cli/main.py` from any
# working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from dataclasses import replace
from typing import Optional

import typer

from deadlinks.config import settings
from deadlinks.errors import ScanRootError
from deadlinks.logging import configure_logging
from deadlinks.pipeline import run_check
from deadlinks.report import build_report, write_report

app = typer.Typer(
    name="deadlinks",
    help="Find dead internal and external links in Markdown documents.",
    add_completion=False,
)

EXIT_DEAD_LINKS = 1
EXIT_SETUP_ERROR = 2


def _print_section(title: str, entries: list) -> None:
    if not entries:
        return
    typer.echo(f"[check] {title}:")
    for entry in entries:
        status = f"  ({entry.status})" if entry.status is not None else ""
        typer.echo(f"  {entry.path}:{entry.line}  {entry.url}{status}")


@app.command()
def check(
    root: Path = typer.Argument(Path("./tests"), help="Directory to scan."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Report file (default: dead_links.json)."
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", min=1, help="Maximum external probes in flight."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0.1, help="Per-request timeout in seconds."
    ),
    include_alive: bool = typer.Option(
        False, "--include-alive", help="Keep alive links in the report."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Exit 1 when any dead link is found."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Check every link under ROOT and write a JSON report."""
    configure_logging(verbose=verbose)

    overrides: dict = {}
    if output is not None:
        overrides["report_path"] = output
    if concurrency is not None:
        overrides["checker_concurrency"] = concurrency
    if timeout is not None:
        overrides["request_timeout"] = timeout
    run_settings = replace(settings, **overrides)

    typer.echo(f"[check] Scanning {str(root)!r} …")
    try:
        result = run_check(root, run_settings)
    except ScanRootError as exc:
        typer.echo(f"[check] {exc}", err=True)
        raise typer.Exit(EXIT_SETUP_ERROR)

    report = build_report(
        result, include_alive=include_alive or run_settings.report_alive_links
    )
    path = write_report(report, run_settings.report_path)

    summary = report.summary
    typer.echo(
        f"[check] Documents: {summary.documents}  Links: {summary.links}  "
        f"External URLs: {len(report.visited)}"
    )
    _print_section("Dead internal links", report.dead_internal)
    _print_section("Dead external links", report.dead_external)
    _print_section("Should be relative", report.should_be_relative)
    typer.echo(
        f"[check] Dead internal: {summary.dead_internal}  "
        f"Dead external: {summary.dead_external}  "
        f"Should be relative: {summary.should_be_relative}"
    )
    typer.echo(f"[check] Report written to {path}")

    if strict and result.has_dead_links:
        raise typer.Exit(EXIT_DEAD_LINKS)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
