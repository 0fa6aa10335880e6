"""CLI entry point for tidyhtml.

Usage:
    python -m tidyhtml format page.html          # Print formatted page.html
    python -m tidyhtml format -i page.html       # Format page.html in place
    python -m tidyhtml lint page.html            # Show tidy's diagnostics
    python -m tidyhtml init                      # Write .tidyhtml/config.toml

Or via the installed command:
    tidyhtml format --stop-on-warning page.html
    tidyhtml format --tidy /opt/tidy/bin/tidy page.html
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tidyhtml._version import get_full_version_string
from tidyhtml.config import TidySettings, get_config_path, load_settings, save_settings
from tidyhtml.exceptions import SettingsError
from tidyhtml.formatter import (
    FileDocument,
    FormatOutcome,
    FormatStatus,
    StringDocument,
    TidyFormatter,
)

# Formatted documents go to stdout; everything else goes to stderr
console = Console(stderr=True)


def configure_logging() -> None:
    """Configure the root logger from LOG_LEVEL (default WARNING)."""
    level = os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(levelname)s: %(name)s: %(message)s")


def find_git_root(start_path: Path) -> Path:
    """Find the git repository root from a starting path.

    Args:
        start_path: Directory to start searching from

    Returns:
        Path to the git root, or start_path if not found
    """
    current = start_path.resolve()
    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent
    return start_path


def build_settings(args: argparse.Namespace, workspace: Path) -> TidySettings:
    """Load workspace settings and apply command-line overrides."""
    settings = load_settings(workspace)
    updates: dict[str, object] = {}
    if args.tidy:
        updates["tidy_exec_path"] = str(args.tidy)
    if getattr(args, "stop_on_warning", False):
        updates["stop_on_warning"] = True
    return settings.model_copy(update=updates) if updates else settings


def print_messages(path: Path, messages: list[str], style: str = "yellow") -> None:
    for message in messages:
        console.print(f"[{style}]![/] {path}: {message}")


def print_outcome(path: Path, outcome: FormatOutcome) -> None:
    """Print the status line for one formatted file."""
    if outcome.status is FormatStatus.FORMATTED:
        console.print(f"[green]✓[/] {path}")
        print_messages(path, outcome.messages)
    elif outcome.status is FormatStatus.SKIPPED:
        console.print(f"[dim]- {path} (empty)[/]")
    else:
        console.print(f"[red]✗[/] {path}: {outcome.status.value}")
        print_messages(path, outcome.messages, style="red")


def read_file(path: Path) -> str | None:
    """Read a file as UTF-8, printing an error and returning None on failure."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Error:[/] Cannot read {path}: {e}")
        return None


async def format_files(formatter: TidyFormatter, files: list[Path], *, write: bool) -> int:
    """Format each file; print to stdout unless writing in place."""
    exit_code = 0
    for path in files:
        if not path.exists():
            console.print(f"[red]Error:[/] File not found: {path}")
            exit_code = 1
            continue

        if write:
            outcome = await formatter.format_document(FileDocument(path))
        else:
            text = read_file(path)
            if text is None:
                exit_code = 1
                continue
            document = StringDocument(text, path)
            outcome = await formatter.format_document(document)
            if outcome.applied:
                sys.stdout.write(document.text)

        print_outcome(path, outcome)
        if outcome.status in (FormatStatus.BLOCKED, FormatStatus.FAILED):
            exit_code = 1
    return exit_code


async def lint_files(formatter: TidyFormatter, files: list[Path]) -> int:
    """Print a table of tidy diagnostics for each file."""
    exit_code = 0
    for path in files:
        if not path.exists():
            console.print(f"[red]Error:[/] File not found: {path}")
            exit_code = 1
            continue

        text = read_file(path)
        if text is None:
            exit_code = 1
            continue
        document = StringDocument(text, path)
        report = await formatter.lint_document(document)
        print_messages(path, report.messages, style="red" if report.failed else "yellow")
        if report.failed:
            exit_code = 1
            continue

        if not report.diagnostics:
            console.print(f"[green]✓[/] {path}: no warnings or errors")
            continue

        table = Table(title=str(path), show_lines=False)
        table.add_column("Line", justify="right")
        table.add_column("Col", justify="right")
        table.add_column("Severity")
        table.add_column("Message")
        for diagnostic in report.diagnostics:
            style = "red" if diagnostic.is_error else "yellow"
            table.add_row(
                str(diagnostic.line),
                str(diagnostic.column),
                f"[{style}]{diagnostic.severity}[/]",
                diagnostic.message,
            )
        console.print(table)
        if any(d.is_error for d in report.diagnostics):
            exit_code = 1
    return exit_code


def run_init(workspace: Path, *, force: bool = False) -> int:
    """Write a default settings file into the workspace."""
    config_path = get_config_path(workspace)
    if config_path.exists() and not force:
        console.print(f"[red]Error:[/] {config_path} already exists (use --force to overwrite)")
        return 1

    settings = TidySettings(options_tidy={"indent": "auto", "wrap": 0})
    try:
        save_settings(workspace, settings)
    except SettingsError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1
    console.print(Panel(f"[bold blue]Wrote {config_path}[/]", expand=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()
    configure_logging()

    parser = argparse.ArgumentParser(
        prog="tidyhtml",
        description="Format HTML documents with HTML Tidy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  tidyhtml format page.html              Print the formatted document
  tidyhtml format -i *.html              Format files in place
  tidyhtml lint page.html                Show warnings and errors
  tidyhtml init                          Create .tidyhtml/config.toml

Configuration:
  .tidyhtml/config.toml in your repo:
    [tidy]
    tidy_exec_path = "/usr/local/bin/tidy"
    enable_dynamic_tags = true

    [tidy.options]
    indent = "auto"

  A .htmlTidy JSON file next to a document (or in a parent directory)
  replaces [tidy.options] for that document.
""",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--workspace",
        "-w",
        type=Path,
        default=None,
        help="Workspace directory (defaults to git root)",
    )
    common.add_argument(
        "--tidy",
        type=Path,
        default=None,
        help="Path to the tidy executable (overrides settings)",
    )

    format_parser = subparsers.add_parser(
        "format", parents=[common], help="Format HTML documents"
    )
    format_parser.add_argument("files", type=Path, nargs="+", help="Files to format")
    format_parser.add_argument(
        "--in-place",
        "-i",
        dest="write",
        action="store_true",
        help="Write the formatted output back to each file",
    )
    format_parser.add_argument(
        "--stop-on-warning",
        action="store_true",
        help="Leave a document untouched when tidy reports warnings",
    )

    lint_parser = subparsers.add_parser(
        "lint", parents=[common], help="Report tidy's warnings and errors"
    )
    lint_parser.add_argument("files", type=Path, nargs="+", help="Files to check")

    init_parser = subparsers.add_parser("init", help="Write a default .tidyhtml/config.toml")
    init_parser.add_argument(
        "--workspace",
        "-w",
        type=Path,
        default=None,
        help="Workspace directory (defaults to git root)",
    )
    init_parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing settings file"
    )

    subparsers.add_parser("version", help="Show version information")

    args = parser.parse_args(argv)

    if args.command == "version":
        print(get_full_version_string())
        return 0

    workspace = args.workspace.resolve() if args.workspace else find_git_root(Path.cwd())

    if args.command == "init":
        return run_init(workspace, force=args.force)

    try:
        settings = build_settings(args, workspace)
    except SettingsError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    formatter = TidyFormatter(settings, workspace=workspace)
    files = [f.resolve() for f in args.files]

    if args.command == "lint":
        return asyncio.run(lint_files(formatter, files))
    return asyncio.run(format_files(formatter, files, write=args.write))


if __name__ == "__main__":
    sys.exit(main())
