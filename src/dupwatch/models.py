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
Data models for dupwatch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Tuple


class DupwatchError(Exception):
    """Base class for dupwatch errors."""


class DiscoveryError(DupwatchError):
    """The files to analyze could not be determined."""


class MonitoringError(DupwatchError):
    """A snapshot could not be written to the monitoring history."""


class HistoryNotFoundError(MonitoringError):
    """The monitoring history file does not exist."""


@dataclass(frozen=True)
class Block:
    """A contiguous run of source lines used as one comparison unit."""

    file_path: str           # Absolute path of the source file
    start_line: int          # Starting line number (1-indexed)
    end_line: int            # Ending line number (inclusive)
    content: str             # Lines joined with "\n"
    lines: Tuple[str, ...]   # Individual lines of the block

    def __post_init__(self):
        if self.start_line < 1 or self.start_line > self.end_line:
            raise ValueError(
                f"Invalid line range {self.start_line}-{self.end_line} for {self.file_path}"
            )

    @property
    def line_count(self) -> int:
        """Number of lines in this block."""
        return self.end_line - self.start_line + 1

    @property
    def location(self) -> str:
        """Human-readable location string."""
        return f"{self.file_path}:{self.start_line}-{self.end_line}"

    def overlaps(self, other: "Block") -> bool:
        """True if both blocks come from the same file and share a line."""
        return (
            self.file_path == other.file_path
            and self.start_line <= other.end_line
            and other.start_line <= self.end_line
        )

    def snippet(self, max_lines: int = 3) -> str:
        """First few lines of the content."""
        return "\n".join(self.lines[:max_lines])

    @property
    def sort_key(self) -> Tuple[str, int, int]:
        return (self.file_path, self.start_line, self.end_line)


@dataclass(frozen=True)
class DuplicatePair:
    """Two blocks whose similarity meets the configured threshold."""

    block_a: Block
    block_b: Block
    similarity: float

    def __post_init__(self):
        if not 0.0 <= self.similarity <= 1.0:
            raise ValueError(f"Similarity out of range: {self.similarity}")

    @property
    def sort_key(self) -> tuple:
        """Similarity descending, then locations of both blocks."""
        return (-self.similarity, *self.block_a.sort_key, *self.block_b.sort_key)

    @property
    def files(self) -> List[str]:
        """Unique files referenced by this pair."""
        return sorted({self.block_a.file_path, self.block_b.file_path})


@dataclass(frozen=True)
class NamedOccurrence:
    """A function or method name found on a single declaration line."""

    name: str
    file_path: str
    line_number: int         # 1-indexed
    context_line: str        # The full source line holding the declaration
    family: str = ""         # Pattern family that produced the match

    def to_block(self) -> Block:
        """Single-line block view, used for pairing and reporting."""
        return Block(
            file_path=self.file_path,
            start_line=self.line_number,
            end_line=self.line_number,
            content=self.context_line,
            lines=(self.context_line,),
        )

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line_number}"


@dataclass(frozen=True)
class NamePair:
    """Two occurrences of the same name with similar declaration lines."""

    name: str
    first: NamedOccurrence
    second: NamedOccurrence
    similarity: float

    def as_duplicate_pair(self) -> DuplicatePair:
        return DuplicatePair(
            block_a=self.first.to_block(),
            block_b=self.second.to_block(),
            similarity=self.similarity,
        )


@dataclass
class NameSummary:
    """All occurrences of one duplicated name."""

    name: str
    occurrences: List[NamedOccurrence] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.occurrences)


@dataclass
class NameScanResult:
    """Result of the name-based duplicate path."""

    pairs: List[NamePair] = field(default_factory=list)
    summary: List[NameSummary] = field(default_factory=list)
    occurrences: List[NamedOccurrence] = field(default_factory=list)
    used_fallback: bool = False

    @property
    def duplicated_occurrence_count(self) -> int:
        """Occurrences belonging to names that appear more than once."""
        counts: dict[str, int] = {}
        for occ in self.occurrences:
            counts[occ.name] = counts.get(occ.name, 0) + 1
        return sum(n for n in counts.values() if n > 1)


@dataclass(frozen=True)
class DuplicationSnapshot:
    """Aggregate metrics of one monitored run."""

    timestamp: datetime
    total_files: int
    total_blocks: int
    duplicate_pairs: int
    duplication_rate: float
    directory: str
    threshold: float
    min_line_count: int
    comment: str = ""

    @classmethod
    def from_counts(
        cls,
        timestamp: datetime,
        total_files: int,
        total_blocks: int,
        duplicate_pairs: int,
        directory: str,
        threshold: float,
        min_line_count: int,
        comment: str = "",
    ) -> "DuplicationSnapshot":
        """Build a snapshot, deriving the duplication rate from the counts."""
        rate = duplicate_pairs / total_blocks if total_blocks > 0 else 0.0
        return cls(
            timestamp=timestamp,
            total_files=total_files,
            total_blocks=total_blocks,
            duplicate_pairs=duplicate_pairs,
            duplication_rate=rate,
            directory=directory,
            threshold=threshold,
            min_line_count=min_line_count,
            comment=comment,
        )


@dataclass
class MonitoringHistory:
    """Ordered, append-only list of snapshots."""

    metrics: List[DuplicationSnapshot] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.metrics)


@dataclass
class DuplicateReport:
    """Everything one detection run hands to the reporting side."""

    files: List[str]
    total_blocks: int
    pairs: List[DuplicatePair]
    threshold: float
    min_lines: int
    elapsed: float = 0.0
    names: Optional[NameScanResult] = None
    snapshot: Optional[DuplicationSnapshot] = None
    monitor_error: Optional[MonitoringError] = None
    cancelled: bool = False

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def files_with_duplicates(self) -> List[str]:
        seen = set()
        for pair in self.pairs:
            seen.update(pair.files)
        return sorted(seen)
