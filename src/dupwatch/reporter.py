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
Report generator - formats duplicate pairs for output.

Supports markdown and json output formats.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional
import json
import os

from .models import Block, DuplicatePair, DuplicateReport, NameScanResult


class OutputFormat(Enum):
    MARKDOWN = "markdown"
    JSON = "json"


# (lower bound, upper bound, label); upper bounds are exclusive except for 1.0
SIMILARITY_BANDS = [
    (0.95, 1.0, "Near-Identical (95-100%)"),
    (0.90, 0.95, "Very Similar (90-95%)"),
    (0.80, 0.90, "Similar (80-90%)"),
    (0.70, 0.80, "Moderately Similar (70-80%)"),
]

MAX_PAIRS_PER_BAND = 10
MAX_SUMMARY_LOCATIONS = 3


def report_duplicates(
    report: DuplicateReport,
    root_path: Path,
    output_format: OutputFormat = OutputFormat.MARKDOWN,
    short: bool = False,
    generated_at: Optional[datetime] = None,
) -> str:
    """
    Generate a report of a detection run.

    Args:
        report: Result of detect_duplicates
        root_path: Paths are shown relative to this directory
        output_format: Desired output format
        short: Show 3-line snippets instead of full blocks
        generated_at: Timestamp printed in the header (defaults to now)

    Returns:
        Formatted report string
    """
    generated_at = generated_at or datetime.now()

    if output_format == OutputFormat.MARKDOWN:
        return _format_markdown(report, root_path, short, generated_at)
    elif output_format == OutputFormat.JSON:
        return _format_json(report, root_path, generated_at)
    else:
        raise ValueError(f"Unknown format: {output_format}")


def band_for(similarity: float) -> Optional[str]:
    """Label of the similarity band a score falls into, if any."""
    for low, high, label in SIMILARITY_BANDS:
        if low <= similarity < high or (high == 1.0 and similarity == 1.0):
            return label
    return None


def _rel(path: str, root_path: Path) -> str:
    try:
        return os.path.relpath(path, root_path)
    except ValueError:
        # Different drive on Windows
        return path


def _format_markdown(
    report: DuplicateReport,
    root_path: Path,
    short: bool,
    generated_at: datetime,
) -> str:
    lines = []

    lines.append("# Duplicate Code Analysis")
    lines.append("")
    lines.append(f"*Generated on {generated_at.strftime('%Y-%m-%d %H:%M:%S')}*")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Files Analyzed:** {report.total_files}")
    lines.append(f"- **Files With Duplicates:** {len(report.files_with_duplicates)}")
    lines.append(f"- **Duplicate Pairs Found:** {len(report.pairs)}")
    lines.append(f"- **Similarity Threshold:** {report.threshold:.0%}")
    if report.names is None:
        lines.append(f"- **Minimum Block Size:** {report.min_lines} lines")
    lines.append(f"- **Analysis Time:** {report.elapsed:.2f}s")
    if report.cancelled:
        lines.append("- **Status:** cancelled, results are partial")
    lines.append("")

    if report.names is not None:
        lines.extend(_names_markdown(report.names, root_path))
        return "\n".join(lines)

    if not report.pairs:
        lines.append("No duplicates found with the current threshold.")
        lines.append("")
        return "\n".join(lines)

    lines.append("## Duplicate Blocks")
    lines.append("")

    for low, high, label in SIMILARITY_BANDS:
        in_band = [p for p in report.pairs if band_for(p.similarity) == label]
        if not in_band:
            continue

        lines.append(f"### {label}")
        lines.append("")
        lines.append(f"Found {len(in_band)} duplicate pairs in this range.")
        lines.append("")

        for i, pair in enumerate(in_band[:MAX_PAIRS_PER_BAND], start=1):
            lines.append(f"#### Duplicate Pair {i} ({pair.similarity:.1%} similar)")
            lines.append("")
            lines.extend(_block_markdown("File 1", pair.block_a, root_path, short))
            lines.extend(_block_markdown("File 2", pair.block_b, root_path, short))
            lines.append("---")
            lines.append("")

        hidden = len(in_band) - MAX_PAIRS_PER_BAND
        if hidden > 0:
            lines.append(f"*{hidden} more duplicate pairs in this range not shown.*")
            lines.append("")

    return "\n".join(lines)


def _block_markdown(title: str, block: Block, root_path: Path, short: bool) -> List[str]:
    lines = [
        f"**{title}:** `{_rel(block.file_path, root_path)}` (lines {block.start_line}-{block.end_line})",
        "",
        "```",
    ]
    if short and block.line_count > 3:
        lines.append(block.snippet(3) + "...")
    else:
        lines.append(block.content)
    lines.append("```")
    lines.append("")
    return lines


def _names_markdown(names: NameScanResult, root_path: Path) -> List[str]:
    lines = ["## Duplicate Method/Function Pairs", ""]

    if not names.pairs:
        lines.append("No duplicate method/function pairs found.")
        lines.append("")
    else:
        lines.append("| Method 1 | Method 2 | Similarity |")
        lines.append("|----------|----------|------------|")
        for pair in names.pairs:
            first = f"`{pair.name}` in `{_rel(pair.first.file_path, root_path)}:{pair.first.line_number}`"
            second = f"`{pair.name}` in `{_rel(pair.second.file_path, root_path)}:{pair.second.line_number}`"
            lines.append(f"| {first} | {second} | {pair.similarity:.1%} |")
        lines.append("")

    lines.append("## Method/Function Name Summary")
    lines.append("")

    if not names.summary:
        lines.append("No function or method names detected in the duplicated code.")
        lines.append("")
        return lines

    lines.append("| Method/Function Name | Occurrences | Locations |")
    lines.append("|----------------------|-------------|-----------|")
    for entry in names.summary:
        shown = [
            f"`{_rel(o.file_path, root_path)}:{o.line_number}`"
            for o in entry.occurrences[:MAX_SUMMARY_LOCATIONS]
        ]
        if entry.count > MAX_SUMMARY_LOCATIONS:
            shown.append(f"*...and {entry.count - MAX_SUMMARY_LOCATIONS} more*")
        lines.append(f"| `{entry.name}` | {entry.count} | {'<br>'.join(shown)} |")
    lines.append("")

    return lines


def _block_dict(block: Block, root_path: Path) -> dict:
    return {
        "file": _rel(block.file_path, root_path),
        "start_line": block.start_line,
        "end_line": block.end_line,
        "content": block.content,
    }


def _pair_dict(pair: DuplicatePair, root_path: Path) -> dict:
    return {
        "similarity": round(pair.similarity, 4),
        "block_a": _block_dict(pair.block_a, root_path),
        "block_b": _block_dict(pair.block_b, root_path),
    }


def _format_json(report: DuplicateReport, root_path: Path, generated_at: datetime) -> str:
    data = {
        "generated_at": generated_at.isoformat(),
        "root": str(root_path),
        "summary": {
            "files_analyzed": report.total_files,
            "files_with_duplicates": len(report.files_with_duplicates),
            "total_blocks": report.total_blocks,
            "duplicate_pairs": len(report.pairs),
            "threshold": report.threshold,
            "min_lines": report.min_lines,
            "elapsed_seconds": round(report.elapsed, 3),
            "cancelled": report.cancelled,
        },
    }

    if report.names is None:
        data["pairs"] = [_pair_dict(p, root_path) for p in report.pairs]
    else:
        data["name_pairs"] = [
            {
                "name": p.name,
                "similarity": round(p.similarity, 4),
                "first": {"file": _rel(p.first.file_path, root_path), "line": p.first.line_number},
                "second": {"file": _rel(p.second.file_path, root_path), "line": p.second.line_number},
            }
            for p in report.names.pairs
        ]
        data["name_summary"] = [
            {
                "name": s.name,
                "occurrences": s.count,
                "locations": [f"{_rel(o.file_path, root_path)}:{o.line_number}" for o in s.occurrences],
            }
            for s in report.names.summary
        ]

    return json.dumps(data, indent=2)
