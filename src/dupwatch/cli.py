# Dupwatch - Find and monitor duplicate code fragments
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
CLI entry point for dupwatch.

Usage:
    dupwatch <path> [options]
    dupwatch --trend [--monitor-file FILE]
    dupwatch --help
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import (
    DEFAULT_JOBS,
    DEFAULT_MIN_LINES,
    DEFAULT_THRESHOLD,
    DuplicateOptions,
    load_config,
    merge_config_with_cli,
)
from .detector import detect_duplicates
from .discovery import get_files_to_process
from .models import DupwatchError, HistoryNotFoundError
from .monitor import DEFAULT_HISTORY_FILE, render_trend
from .progress import console_progress
from .reporter import OutputFormat, report_duplicates


# Extension to output format mapping for -o FILE.EXT
EXTENSION_FORMAT_MAP = {
    ".md": "markdown",
    ".json": "json",
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def print_trend(monitor_file: Path) -> bool:
    """Echo the trend table. Returns False if the history file is missing."""
    try:
        click.echo(render_trend(monitor_file))
    except HistoryNotFoundError as e:
        click.echo(click.style(f"Could not print duplication trend: {e}", fg="yellow"), err=True)
        return False
    return True


@click.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, dir_okay=True), required=False)
@click.option("-t", "--threshold", type=float, default=DEFAULT_THRESHOLD,
              help="Similarity threshold 0.0-1.0 (default: 0.80)")
@click.option("-m", "--min-lines", type=int, default=DEFAULT_MIN_LINES,
              help="Minimum lines per block (default: 5)")
@click.option("-j", "--jobs", type=int, default=DEFAULT_JOBS,
              help="Number of worker threads (default: 4)")
@click.option("-d", "--depth", type=int, default=-1,
              help="Maximum directory depth, -1 for unlimited")
@click.option("-l", "--lang", "languages", multiple=True,
              help="Only analyze these languages (repeatable)")
@click.option("-e", "--exclude", multiple=True,
              help="Directory or file names to exclude (repeatable)")
@click.option("-i", "--input-file", type=click.Path(), default=None,
              help="Analyze a single file instead of a directory")
@click.option("--names-only", is_flag=True,
              help="Compare function/method declarations instead of code blocks")
@click.option("--short", is_flag=True,
              help="Show 3-line snippets instead of full blocks")
@click.option("-o", "--output", type=str, default=None,
              help="Output file path (report.md or report.json)")
@click.option("--format", "output_format", type=click.Choice(["markdown", "json"]), default=None,
              help="Output format for stdout (default: markdown)")
@click.option("--monitor", is_flag=True,
              help="Record this run in the duplication history")
@click.option("--monitor-file", type=click.Path(), default=DEFAULT_HISTORY_FILE,
              help="Path to the duplication history file")
@click.option("--monitor-comment", type=str, default="",
              help="Comment stored with this run's snapshot")
@click.option("--trend", is_flag=True,
              help="Show the duplication trend and exit")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.option("-q", "--quiet", is_flag=True, help="Hide progress bars")
@click.version_option(version=__version__)
def main(
    path: Optional[str],
    threshold: float,
    min_lines: int,
    jobs: int,
    depth: int,
    languages: tuple,
    exclude: tuple,
    input_file: Optional[str],
    names_only: bool,
    short: bool,
    output: Optional[str],
    output_format: Optional[str],
    monitor: bool,
    monitor_file: str,
    monitor_comment: str,
    trend: bool,
    verbose: bool,
    quiet: bool,
):
    """
    Find duplicated code and track how duplication evolves.

    PATH is the root directory to analyze.

    Examples:

      # Find duplicates in ./src
      dupwatch ./src

      # Stricter search, bigger blocks, markdown report
      dupwatch ./src --threshold 0.9 --min-lines 10 -o duplicates.md

      # Record the run and show the trend
      dupwatch ./src --monitor --monitor-comment "after refactor"

      # Show the trend only
      dupwatch --trend
    """
    configure_logging(verbose)

    if trend:
        sys.exit(0 if print_trend(Path(monitor_file)) else 1)

    if path is None and input_file is None:
        click.echo("❌ Error: PATH is required for analysis.", err=True)
        click.echo("   Use --help for usage information.", err=True)
        sys.exit(1)

    root_path = Path(path or ".").resolve()

    # Config values override defaults, but explicit CLI args override config
    config = load_config(root_path)
    threshold = merge_config_with_cli(config, threshold, "threshold", DEFAULT_THRESHOLD)
    min_lines = merge_config_with_cli(config, min_lines, "min_lines", DEFAULT_MIN_LINES)
    jobs = merge_config_with_cli(config, jobs, "jobs", DEFAULT_JOBS)
    depth = merge_config_with_cli(config, depth, "depth", -1)
    monitor = merge_config_with_cli(config, monitor, "monitor", False)
    monitor_file = merge_config_with_cli(config, monitor_file, "monitor_file", DEFAULT_HISTORY_FILE)
    names_only = merge_config_with_cli(config, names_only, "names_only", False)
    if not languages and isinstance(config.get("languages"), list):
        languages = tuple(config["languages"])
    if not exclude and isinstance(config.get("exclude"), list):
        exclude = tuple(config["exclude"])

    if verbose and config:
        click.echo("📝 Loaded config from .dupwatchrc/.dupwatch.toml")

    options = DuplicateOptions(
        directory=str(root_path),
        input_file=input_file,
        depth=depth,
        languages=list(languages),
        excludes=list(exclude),
        jobs=jobs,
        threshold=threshold,
        min_lines=min_lines,
        names_only=names_only,
        short=short,
        verbose=verbose,
        output=output,
        monitor=monitor,
        monitor_file=monitor_file,
        monitor_comment=monitor_comment,
    ).normalized()

    # Resolve the output format before doing any work
    if output:
        ext = Path(output).suffix.lower()
        if ext not in EXTENSION_FORMAT_MAP:
            valid_exts = ", ".join(EXTENSION_FORMAT_MAP.keys())
            click.echo(f"❌ Invalid output extension '{ext}'. Valid: {valid_exts}", err=True)
            sys.exit(1)
        fmt = OutputFormat(EXTENSION_FORMAT_MAP[ext])
    else:
        fmt = OutputFormat(output_format or "markdown")

    try:
        files = get_files_to_process(options)
    except DupwatchError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(click.style(f"Found {len(files)} files to process", fg="cyan"), err=True)

    if not files:
        click.echo(click.style(
            "No files found to analyze. Please check your directory path and language filters.",
            fg="yellow",
        ), err=True)
        sys.exit(0)

    report = detect_duplicates(files, options, progress=console_progress(enabled=not quiet))

    rendered = report_duplicates(report, root_path, output_format=fmt, short=short)
    if output:
        try:
            Path(output).write_text(rendered, encoding="utf-8")
        except OSError as e:
            click.echo(click.style(f"❌ Could not write report to {output}: {e}", fg="red"), err=True)
            sys.exit(1)
        click.echo(f"   ✅ Report written to: {output}", err=True)
    else:
        click.echo(rendered)

    click.echo(click.style(f"Duplicate analysis completed in {report.elapsed:.2f}s", fg="green"), err=True)
    click.echo(
        f"Found {click.style(str(len(report.pairs)), fg='yellow')} duplicate pairs "
        f"with similarity threshold {options.threshold:.0%}",
        err=True,
    )

    if options.monitor:
        if report.monitor_error is not None:
            click.echo(click.style(f"Error saving monitoring data: {report.monitor_error}", fg="red"), err=True)
        elif report.snapshot is not None and not report.cancelled:
            click.echo(f"Monitoring data saved to {click.style(options.monitor_file, fg='cyan')}", err=True)
            print_trend(Path(options.monitor_file))


# Entry point alias for pyproject.toml
cli = main


if __name__ == "__main__":
    main()
