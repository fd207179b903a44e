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
Block extractor - turns source files into candidate comparison blocks.

Every start line opens a family of windows whose sizes grow from
min_lines in fixed steps up to max_lines. Windows that are mostly blank
are dropped.
"""

from typing import List, Optional, Sequence, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
import threading

from .models import Block
from .progress import ProgressFactory, make_progress


logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 30
DEFAULT_STEP = 5
MAX_BLANK_RATIO = 0.3


def read_source_text(file_path: str) -> str:
    """Read a file untranslated: "\\r\\n" and lone "\\r" are kept as written."""
    with open(file_path, "r", encoding="utf-8", errors="replace", newline="") as f:
        return f.read()


def read_source_lines(file_path: str) -> List[str]:
    """
    Read a file as a list of lines (undecodable bytes are replaced).

    Only "\\n" ends a line, so line numbers match what an editor shows and
    what the name path reports. A trailing "\\r" is stripped from each line
    and a final newline does not add an empty line.
    """
    lines = [line.rstrip("\r") for line in read_source_text(file_path).split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def block_sizes(min_lines: int, available: int, max_lines: int = DEFAULT_MAX_LINES, step: int = DEFAULT_STEP) -> range:
    """Window sizes tried at one start offset (empty when min_lines > max_lines)."""
    ceiling = min(max_lines, available)
    return range(min_lines, ceiling + 1, max(step, 1))


def extract_blocks(
    file_path: str,
    lines: Sequence[str],
    min_lines: int,
    max_lines: int = DEFAULT_MAX_LINES,
    step: int = DEFAULT_STEP,
    max_blank_ratio: float = MAX_BLANK_RATIO,
) -> List[Block]:
    """
    Extract candidate blocks from one file.

    Args:
        file_path: Path recorded on every block
        lines: File content, one entry per line
        min_lines: Smallest block size (>= 1)
        max_lines: Largest block size
        step: Size increment between tiers
        max_blank_ratio: Blocks with a larger share of blank lines are dropped

    Returns:
        Blocks ordered by start line, then size
    """
    if min_lines < 1:
        raise ValueError(f"min_lines must be at least 1, got {min_lines}")

    blocks: List[Block] = []
    blank = [not line.strip() for line in lines]

    for i in range(len(lines) - min_lines + 1):
        for size in block_sizes(min_lines, len(lines) - i, max_lines, step):
            empty = sum(blank[i:i + size])
            if empty / size > max_blank_ratio:
                continue

            block_lines = tuple(lines[i:i + size])
            blocks.append(Block(
                file_path=file_path,
                start_line=i + 1,  # 1-indexed
                end_line=i + size,
                content="\n".join(block_lines),
                lines=block_lines,
            ))

    return blocks


def extract_corpus(
    files: Sequence[str],
    min_lines: int,
    max_lines: int = DEFAULT_MAX_LINES,
    step: int = DEFAULT_STEP,
    jobs: int = 4,
    progress: Optional[ProgressFactory] = None,
) -> Tuple[List[Block], List[str]]:
    """
    Extract blocks from every file in parallel.

    Files that cannot be read are logged and skipped.

    Returns:
        (blocks sorted by location, files that were read successfully)
    """
    all_blocks: List[Block] = []
    processed: List[str] = []
    lock = threading.Lock()

    bar = make_progress(progress, len(files), "Extracting code blocks")
    bar.start()

    def process(file_path: str) -> int:
        lines = read_source_lines(file_path)
        blocks = extract_blocks(file_path, lines, min_lines, max_lines, step)
        with lock:
            all_blocks.extend(blocks)
            processed.append(file_path)
        return len(blocks)

    with ThreadPoolExecutor(max_workers=max(jobs, 1)) as executor:
        futures = {executor.submit(process, file_path): file_path for file_path in files}

        for future in as_completed(futures):
            file_path = futures[future]
            try:
                count = future.result()
                logger.debug(f"{file_path}: {count} blocks")
            except OSError as e:
                logger.warning(f"Skipping {file_path}: {e}")
            finally:
                bar.increment()

    bar.finish()

    all_blocks.sort(key=lambda b: b.sort_key)
    processed.sort()

    logger.debug(f"Extracted {len(all_blocks)} blocks from {len(processed)} files")
    return all_blocks, processed
