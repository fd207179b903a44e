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
Pairwise matcher - scores every candidate pair on a pool of worker threads.

Candidate pairs are produced lazily into a bounded queue so memory stays
flat even though the number of pairs grows quadratically with the number
of blocks. Hits are appended to one shared list under a lock and sorted
once all workers are done.

Progress is reported per file rather than per pair: workers push a file
path onto a second queue the first time they see it, and a single updater
thread advances the bar.
"""

from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple
from concurrent.futures import ThreadPoolExecutor
import logging
import queue
import threading

from .models import Block, DuplicatePair
from .progress import ProgressFactory, make_progress
from .similarity import similarity


logger = logging.getLogger(__name__)

DEFAULT_JOBS = 4
WORK_QUEUE_SIZE = 1000

# Marks the end of a queue
_DONE = object()

Scorer = Callable[[str, str], float]


def candidate_pairs(blocks: Sequence[Block]) -> Iterator[Tuple[int, int]]:
    """
    Yield every index pair (i, j), i < j, worth comparing.

    Pairs of blocks from the same file with overlapping line ranges are
    skipped, even when their content is identical.
    """
    for i in range(len(blocks)):
        first = blocks[i]
        for j in range(i + 1, len(blocks)):
            if first.overlaps(blocks[j]):
                continue
            yield i, j


def score_pairs(
    texts: Sequence[str],
    files: Sequence[str],
    candidates: Iterable[Tuple[int, int]],
    threshold: float,
    jobs: int = DEFAULT_JOBS,
    progress: Optional[ProgressFactory] = None,
    label: str = "Comparing code blocks",
    cancel: Optional[threading.Event] = None,
    scorer: Scorer = similarity,
    queue_size: int = WORK_QUEUE_SIZE,
) -> List[Tuple[int, int, float]]:
    """
    Score candidate pairs concurrently and keep those at or above threshold.

    Args:
        texts: Text of each item, compared by the scorer
        files: File path of each item, used for progress only
        candidates: Index pairs to score (consumed once)
        threshold: Minimum score to keep a pair
        jobs: Number of worker threads
        progress: Optional factory for the per-file progress bar
        label: Progress bar label
        cancel: When set, no further pairs are produced or scored
        scorer: Similarity function
        queue_size: Bound of the work queue

    Returns:
        (i, j, score) hits in completion order
    """
    workers = max(jobs, 1)
    hits: List[Tuple[int, int, float]] = []
    hits_lock = threading.Lock()

    work: "queue.Queue" = queue.Queue(maxsize=queue_size)

    unique_files = set(files)
    seen_files: set = set()
    seen_lock = threading.Lock()
    seen_queue: "queue.Queue" = queue.Queue(maxsize=len(unique_files) + 1)

    bar = make_progress(progress, len(unique_files), label)
    bar.start()

    def cancelled() -> bool:
        return cancel is not None and cancel.is_set()

    def produce():
        try:
            for pair in candidates:
                if cancelled():
                    logger.info("Matching cancelled, no further pairs queued")
                    break
                work.put(pair)
        finally:
            for _ in range(workers):
                work.put(_DONE)

    def mark_seen(path: str):
        with seen_lock:
            if path in seen_files:
                return
            seen_files.add(path)
        seen_queue.put(path)

    def consume():
        while True:
            item = work.get()
            if item is _DONE:
                return
            if cancelled():
                continue

            i, j = item
            score = scorer(texts[i], texts[j])
            if score >= threshold:
                with hits_lock:
                    hits.append((i, j, score))

            mark_seen(files[i])
            mark_seen(files[j])

    def update_progress():
        while True:
            item = seen_queue.get()
            if item is _DONE:
                return
            bar.increment()

    with ThreadPoolExecutor(max_workers=workers + 2) as executor:
        updater = executor.submit(update_progress)
        producer = executor.submit(produce)
        consumers = [executor.submit(consume) for _ in range(workers)]

        try:
            for future in consumers:
                future.result()
            producer.result()
        finally:
            seen_queue.put(_DONE)
            updater.result()

    bar.finish()
    return hits


def find_duplicate_blocks(
    blocks: Sequence[Block],
    threshold: float,
    jobs: int = DEFAULT_JOBS,
    progress: Optional[ProgressFactory] = None,
    cancel: Optional[threading.Event] = None,
) -> List[DuplicatePair]:
    """
    Find all pairs of similar blocks.

    Args:
        blocks: Blocks from every processed file (read-only while matching)
        threshold: Similarity threshold in (0, 1]
        jobs: Number of worker threads
        progress: Optional progress bar factory
        cancel: Optional cancellation signal checked between pairs

    Returns:
        Duplicate pairs sorted by similarity (highest first), ties broken
        by the locations of both blocks
    """
    if len(blocks) < 2:
        return []

    hits = score_pairs(
        texts=[b.content for b in blocks],
        files=[b.file_path for b in blocks],
        candidates=candidate_pairs(blocks),
        threshold=threshold,
        jobs=jobs,
        progress=progress,
        label="Comparing code blocks",
        cancel=cancel,
    )

    duplicates = [
        DuplicatePair(block_a=blocks[i], block_b=blocks[j], similarity=score)
        for i, j, score in hits
    ]
    duplicates.sort(key=lambda d: d.sort_key)

    logger.debug(f"Found {len(duplicates)} duplicate pairs among {len(blocks)} blocks")
    return duplicates
