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
Duplication history - one snapshot per monitored run.

The history is a JSON document stored next to the project:

    {"metrics": [{"timestamp": "...", "total_files": 12, ...}, ...]}

Entries are only ever appended. Reading is lenient: a missing or corrupt
file is an empty history, unknown keys are ignored and entries that cannot
be parsed are dropped.
"""

import contextlib
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .models import (
    DuplicationSnapshot,
    HistoryNotFoundError,
    MonitoringError,
    MonitoringHistory,
)


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = "duplication_history.json"
TREND_WINDOW = 5

# Python before 3.11 only parses 3 or 6 fractional digits, RFC 3339 allows any
_FRACTION = re.compile(r"\.(\d+)")


def _six_digits(match: "re.Match") -> str:
    return "." + (match.group(1) + "000000")[:6]


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(_six_digits, text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def snapshot_to_dict(snapshot: DuplicationSnapshot) -> Dict[str, Any]:
    data = {
        "timestamp": snapshot.timestamp.isoformat(),
        "total_files": snapshot.total_files,
        "total_blocks": snapshot.total_blocks,
        "duplicate_pairs": snapshot.duplicate_pairs,
        "duplication_rate": snapshot.duplication_rate,
        "directory": snapshot.directory,
        "threshold": snapshot.threshold,
        "min_line_count": snapshot.min_line_count,
    }
    if snapshot.comment:
        data["comment"] = snapshot.comment
    return data


def snapshot_from_dict(data: Dict[str, Any]) -> DuplicationSnapshot:
    """
    Rebuild a snapshot from its JSON form.

    Raises:
        KeyError, TypeError, ValueError: if a required field is missing or invalid
    """
    return DuplicationSnapshot(
        timestamp=parse_timestamp(data["timestamp"]),
        total_files=int(data.get("total_files", 0)),
        total_blocks=int(data.get("total_blocks", 0)),
        duplicate_pairs=int(data.get("duplicate_pairs", 0)),
        duplication_rate=float(data["duplication_rate"]),
        directory=str(data.get("directory", "")),
        threshold=float(data.get("threshold", 0.0)),
        min_line_count=int(data.get("min_line_count", 0)),
        comment=str(data.get("comment") or ""),
    )


def _read_document(history_file: Path) -> Dict[str, Any]:
    """
    The history document as stored, with a "metrics" list.

    A missing, unreadable or malformed file is an empty document.
    """
    try:
        with open(history_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {"metrics": []}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable monitoring history {history_file}: {e}")
        return {"metrics": []}

    if not isinstance(data, dict) or not isinstance(data.get("metrics"), list):
        logger.warning(f"Ignoring monitoring history without a metrics list: {history_file}")
        return {"metrics": []}
    return data


def _parse_metrics(entries: List[Any]) -> MonitoringHistory:
    metrics = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            metrics.append(snapshot_from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping malformed history entry {entry!r}: {e}")
    return MonitoringHistory(metrics=metrics)


def load_history(history_file: Path) -> MonitoringHistory:
    """
    Load the monitoring history.

    Returns an empty history if the file is missing, unreadable or not
    valid JSON. Entries that cannot be parsed are skipped.
    """
    return _parse_metrics(_read_document(Path(history_file))["metrics"])


def append_snapshot(snapshot: DuplicationSnapshot, history_file: Path) -> MonitoringHistory:
    """
    Append a snapshot to the history and rewrite the file.

    Existing entries are written back exactly as read, including ones
    this version cannot parse and keys it does not know. Writes to a
    temp file then renames for crash safety.

    Returns:
        The parseable snapshots of the history as written

    Raises:
        MonitoringError: if the file cannot be written
    """
    history_file = Path(history_file)
    data = _read_document(history_file)
    data["metrics"].append(snapshot_to_dict(snapshot))

    temp_path = history_file.with_name(history_file.name + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(temp_path, history_file)
    except OSError as e:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise MonitoringError(f"error writing monitoring file {history_file}: {e}") from e

    logger.debug(f"Appended snapshot #{len(data['metrics'])} to {history_file}")
    return _parse_metrics(data["metrics"])


@dataclass
class TrendRow:
    """One displayed snapshot and how its rate moved since the previous run."""

    snapshot: DuplicationSnapshot
    direction: Optional[str] = None  # "up", "down", "same"; None for the first row


@dataclass
class Trend:
    """Recent rows plus the verdict from the first ever run to the latest."""

    rows: List[TrendRow] = field(default_factory=list)
    first: Optional[DuplicationSnapshot] = None
    last: Optional[DuplicationSnapshot] = None

    @property
    def overall(self) -> str:
        if self.first is None or self.last is None:
            return "stable"
        if self.last.duplication_rate > self.first.duplication_rate:
            return "increasing"
        if self.last.duplication_rate < self.first.duplication_rate:
            return "decreasing"
        return "stable"


def _direction(current: float, previous: float) -> str:
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "same"


def compute_trend(history: MonitoringHistory, window: int = TREND_WINDOW) -> Trend:
    """
    Build the trend over the last `window` snapshots.

    The overall verdict always compares the very first snapshot with the
    latest one, however many rows are shown.
    """
    metrics = history.metrics
    if not metrics:
        return Trend()

    start = max(len(metrics) - window, 0)
    rows = []
    for i in range(start, len(metrics)):
        direction = None
        if i > start:
            direction = _direction(metrics[i].duplication_rate, metrics[i - 1].duplication_rate)
        rows.append(TrendRow(snapshot=metrics[i], direction=direction))

    return Trend(rows=rows, first=metrics[0], last=metrics[-1])


_RATE_COLORS = {"up": "red", "down": "green", "same": "yellow", None: None}


def render_trend(history_file: Path, window: int = TREND_WINDOW) -> str:
    """
    Render the duplication trend as a console table.

    Raises:
        HistoryNotFoundError: if the history file does not exist
    """
    history_file = Path(history_file)
    if not history_file.exists():
        raise HistoryNotFoundError(f"monitoring file not found: {history_file}")

    history = load_history(history_file)
    if len(history) < 2:
        return click.style(
            "Not enough data points to show a trend. Run with --monitor multiple times.",
            fg="yellow",
        )

    trend = compute_trend(history, window)

    lines = [
        click.style("Duplication Trend:", fg="cyan"),
        "┌──────────────────┬───────────┬────────────┬──────────────────┐",
        "│ Date             │ Files     │ Duplicates │ Duplication Rate │",
        "├──────────────────┼───────────┼────────────┼──────────────────┤",
    ]
    for row in trend.rows:
        m = row.snapshot
        rate = click.style(f"{m.duplication_rate * 100:15.2f}%", fg=_RATE_COLORS[row.direction])
        lines.append(
            f"│ {m.timestamp.strftime('%Y-%m-%d %H:%M'):<16} │ {m.total_files:<9} │ {m.duplicate_pairs:<10} │ {rate} │"
        )
    lines.append("└──────────────────┴───────────┴────────────┴──────────────────┘")

    first_rate = trend.first.duplication_rate * 100
    last_rate = trend.last.duplication_rate * 100
    if trend.overall == "increasing":
        lines.append(f"Overall trend: {click.style('↑ Increasing', fg='red')} ({first_rate:.2f}% → {last_rate:.2f}%)")
    elif trend.overall == "decreasing":
        lines.append(f"Overall trend: {click.style('↓ Decreasing', fg='green')} ({first_rate:.2f}% → {last_rate:.2f}%)")
    else:
        lines.append(f"Overall trend: {click.style('→ Stable', fg='yellow')} ({last_rate:.2f}%)")

    return "\n".join(lines)


def new_snapshot(
    total_files: int,
    total_blocks: int,
    duplicate_pairs: int,
    directory: str,
    threshold: float,
    min_line_count: int,
    comment: str = "",
) -> DuplicationSnapshot:
    """Snapshot of a run finishing now."""
    return DuplicationSnapshot.from_counts(
        timestamp=datetime.now(timezone.utc),
        total_files=total_files,
        total_blocks=total_blocks,
        duplicate_pairs=duplicate_pairs,
        directory=directory,
        threshold=threshold,
        min_line_count=min_line_count,
        comment=comment,
    )
