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
Duplicate detection run: extraction, matching and optional monitoring.
"""

from pathlib import Path
from typing import Optional, Sequence
import logging
import threading
import time

from .config import DuplicateOptions
from .extractor import extract_corpus
from .matcher import find_duplicate_blocks
from .models import DuplicateReport, MonitoringError
from .monitor import append_snapshot, new_snapshot
from .names import find_duplicate_names
from .progress import ProgressFactory


logger = logging.getLogger(__name__)


def detect_duplicates(
    files: Sequence[str],
    options: DuplicateOptions,
    progress: Optional[ProgressFactory] = None,
    cancel: Optional[threading.Event] = None,
) -> DuplicateReport:
    """
    Run duplicate detection over an already discovered list of files.

    A failure to record the monitoring snapshot does not fail the run; it is
    logged and attached to the report as monitor_error.

    Args:
        files: Absolute paths of the files to analyze
        options: Run options (normalized here)
        progress: Optional progress bar factory, one bar per stage
        cancel: Optional cancellation signal for the matching stage

    Returns:
        DuplicateReport for the reporting side
    """
    options = options.normalized()
    started = time.monotonic()
    files = list(files)

    if options.names_only:
        logger.info("Analyzing method and function names...")
        names = find_duplicate_names(
            files,
            threshold=options.threshold,
            jobs=options.jobs,
            progress=progress,
            cancel=cancel,
        )
        report = DuplicateReport(
            files=files,
            total_blocks=names.duplicated_occurrence_count,
            pairs=[p.as_duplicate_pair() for p in names.pairs],
            threshold=options.threshold,
            min_lines=options.min_lines,
            names=names,
        )
    else:
        blocks, processed = extract_corpus(
            files,
            min_lines=options.min_lines,
            max_lines=options.max_lines,
            step=options.step,
            jobs=options.jobs,
            progress=progress,
        )
        logger.info(f"Extracted {len(blocks)} code blocks from {len(processed)} files")

        pairs = find_duplicate_blocks(
            blocks,
            threshold=options.threshold,
            jobs=options.jobs,
            progress=progress,
            cancel=cancel,
        )
        report = DuplicateReport(
            files=files,
            total_blocks=len(blocks),
            pairs=pairs,
            threshold=options.threshold,
            min_lines=options.min_lines,
        )

    report.elapsed = time.monotonic() - started
    report.cancelled = cancel is not None and cancel.is_set()
    logger.info(f"Found {len(report.pairs)} duplicate pairs in {report.elapsed:.2f}s")

    if options.monitor:
        record_snapshot(report, options)

    return report


def record_snapshot(report: DuplicateReport, options: DuplicateOptions) -> None:
    """Append the run's metrics to the monitoring history, keeping any error on the report."""
    snapshot = new_snapshot(
        total_files=report.total_files,
        total_blocks=report.total_blocks,
        duplicate_pairs=len(report.pairs),
        directory=options.directory,
        threshold=options.threshold,
        min_line_count=options.min_lines,
        comment=options.monitor_comment,
    )
    report.snapshot = snapshot

    if report.cancelled:
        logger.warning("Run was cancelled, not recording a monitoring snapshot")
        return

    try:
        append_snapshot(snapshot, Path(options.monitor_file))
    except MonitoringError as e:
        logger.error(f"Error saving monitoring data: {e}")
        report.monitor_error = e
