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
Name-based duplicate detection.

Finds function and method declarations with regular expressions, groups
them by name across the corpus and compares the declaration lines of
every pair sharing a name. Much cheaper than block matching, and a much
weaker signal: only one line of context is compared.

Pattern families are tried per file in priority order and the first
family with any match is the only one used for that file. Denied names
are dropped after the family is chosen. If no family matches anywhere, a
generic pattern is run over the whole corpus once.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
import re
import threading

from .models import NamedOccurrence, NamePair, NameScanResult, NameSummary
from .extractor import read_source_text
from .matcher import DEFAULT_JOBS, score_pairs
from .progress import ProgressFactory, make_progress


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternFamily:
    """A compiled declaration pattern and the group holding the name."""

    name: str
    pattern: re.Pattern
    name_group: int


# Compiled once at import, shared read-only by every worker
PATTERN_FAMILIES: Tuple[PatternFamily, ...] = (
    # func foo(, func (r *T) foo(, def foo(, function foo(, fn foo(
    PatternFamily(
        "keyword",
        re.compile(r"^[ \t]*(?:func|method|def|function|fn)\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)\s*\(", re.MULTILINE),
        1,
    ),
    # Type Class::method(args) const {
    PatternFamily(
        "qualified_method",
        re.compile(r"(\w+(?:\s*[*&]\s*)?)\s+(\w+)::(\w+)\s*\(([^)]*)\)\s*(?:const)?\s*(?:\{|;)", re.MULTILINE),
        3,
    ),
    # Type name(args) { or ;
    PatternFamily(
        "c_function",
        re.compile(r"(\w+(?:\s*[*&]\s*)?)\s+(\w+)\s*\(([^)]*)\)\s*(?:\{|;)", re.MULTILINE),
        2,
    ),
    # const name = function( / name = (args) =>
    PatternFamily(
        "assigned_function",
        re.compile(
            r"^[ \t]*(?:(?:export|const|let|var)\s+)*([A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*=>)",
            re.MULTILINE,
        ),
        1,
    ),
)

GENERIC_FAMILY = PatternFamily(
    "generic",
    re.compile(r"([A-Za-z0-9_]+)\s*\([^)]*\)\s*\{", re.MULTILINE),
    1,
)

# Identifiers too generic to say anything about duplication
DENY_LIST = frozenset({
    # Keywords
    "if", "for", "while", "switch", "case", "return", "sizeof", "typedef",
    "struct", "class", "enum", "union", "goto", "continue", "break", "else",
    "elif", "do", "static", "extern", "const", "volatile", "register", "auto",
    "inline", "virtual", "explicit", "operator", "template", "typename",
    "namespace", "using", "try", "catch", "throw", "new", "delete", "public",
    "private", "protected", "friend", "this", "self", "default", "NULL",
    "nullptr", "true", "false", "function", "lambda", "with", "await",
    "async", "yield", "assert", "defer", "go", "select", "func", "constexpr",

    # Common method names
    "get", "set", "add", "remove", "create", "update", "find", "search",
    "init", "initialize", "start", "stop", "run", "execute", "parse", "read",
    "write", "open", "close", "load", "save", "reset", "print", "main",
    "test", "handle", "process", "validate", "check", "convert", "transform",
    "calculate", "compute", "generate", "draw", "cancel",

    # Container methods
    "at", "data", "size", "empty", "push_back", "pop_back", "front", "back",
    "insert", "erase", "clear", "swap", "emplace", "emplace_back", "len",

    # Math helpers
    "exp", "sqrt", "pow", "abs", "sin", "cos", "tan", "floor", "ceil",
    "round", "min", "max", "clamp", "lerp", "normalize", "isnan", "isinf",
    "isfinite", "nan", "log", "log10",
})


def _line_number(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def match_family(
    family: PatternFamily,
    file_path: str,
    content: str,
    lines: Optional[Sequence[str]] = None,
    deny_list: frozenset = DENY_LIST,
) -> List[NamedOccurrence]:
    """All non-denied declarations one family finds in a file."""
    if lines is None:
        lines = content.split("\n")

    occurrences = []
    for match in family.pattern.finditer(content):
        name = match.group(family.name_group)
        if name in deny_list:
            continue

        line_number = _line_number(content, match.start(family.name_group))
        context = lines[line_number - 1].rstrip("\r") if line_number - 1 < len(lines) else ""

        occurrences.append(NamedOccurrence(
            name=name,
            file_path=file_path,
            line_number=line_number,
            context_line=context,
            family=family.name,
        ))

    return occurrences


def select_family(
    content: str,
    families: Sequence[PatternFamily] = PATTERN_FAMILIES,
) -> Optional[PatternFamily]:
    """First family with any match in the content, denied names included."""
    for family in families:
        if family.pattern.search(content):
            return family
    return None


def extract_named_occurrences(
    file_path: str,
    content: str,
    families: Sequence[PatternFamily] = PATTERN_FAMILIES,
    deny_list: frozenset = DENY_LIST,
) -> List[NamedOccurrence]:
    """
    Declarations found in one file by the first family that matches.

    The family is chosen on raw matches; the deny list is applied to that
    family's matches only, so a file whose first matching family finds
    nothing but denied names yields no occurrences.

    Args:
        file_path: Path recorded on each occurrence
        content: Full file content
        families: Pattern families in priority order
        deny_list: Names to ignore

    Returns:
        Occurrences in file order, or an empty list
    """
    family = select_family(content, families)
    if family is None:
        return []
    return match_family(family, file_path, content, deny_list=deny_list)


def _read_contents(
    files: Sequence[str],
    jobs: int,
    progress: Optional[ProgressFactory],
) -> Dict[str, str]:
    """Read every file in parallel, skipping the unreadable ones."""
    contents: Dict[str, str] = {}
    lock = threading.Lock()

    bar = make_progress(progress, len(files), "Analyzing method names")
    bar.start()

    def read(file_path: str):
        text = read_source_text(file_path)
        with lock:
            contents[file_path] = text

    with ThreadPoolExecutor(max_workers=max(jobs, 1)) as executor:
        futures = {executor.submit(read, file_path): file_path for file_path in files}
        for future in as_completed(futures):
            try:
                future.result()
            except OSError as e:
                logger.warning(f"Skipping {futures[future]}: {e}")
            finally:
                bar.increment()

    bar.finish()
    return contents


def collect_occurrences(contents: Dict[str, str]) -> Tuple[List[NamedOccurrence], bool]:
    """
    Extract occurrences from every file.

    Returns:
        (occurrences sorted by location, whether the generic fallback was used)
    """
    occurrences: List[NamedOccurrence] = []
    matched_any = False
    for file_path in sorted(contents):
        content = contents[file_path]
        family = select_family(content)
        if family is None:
            continue
        matched_any = True
        occurrences.extend(match_family(family, file_path, content))

    used_fallback = False
    if not matched_any:
        used_fallback = True
        logger.info("No declarations found, retrying with the generic pattern")
        for file_path in sorted(contents):
            occurrences.extend(match_family(GENERIC_FAMILY, file_path, contents[file_path]))

    occurrences.sort(key=lambda o: (o.file_path, o.line_number, o.name))
    return occurrences, used_fallback


def group_by_name(occurrences: Sequence[NamedOccurrence]) -> Dict[str, List[int]]:
    """Indices of occurrences sharing each name."""
    groups: Dict[str, List[int]] = {}
    for idx, occ in enumerate(occurrences):
        groups.setdefault(occ.name, []).append(idx)
    return groups


def _name_candidates(
    occurrences: Sequence[NamedOccurrence],
    groups: Dict[str, List[int]],
) -> Iterator[Tuple[int, int]]:
    for indices in groups.values():
        if len(indices) < 2:
            continue
        for pos, i in enumerate(indices):
            for j in indices[pos + 1:]:
                a, b = occurrences[i], occurrences[j]
                if a.file_path == b.file_path and a.line_number == b.line_number:
                    continue
                yield i, j


def summarize(pairs: Sequence[NamePair]) -> List[NameSummary]:
    """
    Per-name summary of the occurrences taking part in a duplicate pair.

    Sorted by occurrence count (highest first), then name.
    """
    by_name: Dict[str, Dict[Tuple[str, int], NamedOccurrence]] = {}
    for pair in pairs:
        seen = by_name.setdefault(pair.name, {})
        for occ in (pair.first, pair.second):
            seen.setdefault((occ.file_path, occ.line_number), occ)

    summary = [
        NameSummary(name=name, occurrences=[seen[key] for key in sorted(seen)])
        for name, seen in by_name.items()
        if len(seen) > 1
    ]
    summary.sort(key=lambda s: (-s.count, s.name))
    return summary


def find_duplicate_names(
    files: Sequence[str],
    threshold: float,
    jobs: int = DEFAULT_JOBS,
    progress: Optional[ProgressFactory] = None,
    cancel: Optional[threading.Event] = None,
) -> NameScanResult:
    """
    Find functions and methods declared more than once with similar lines.

    Args:
        files: Files to scan
        threshold: Minimum similarity of two declaration lines
        jobs: Number of worker threads
        progress: Optional progress bar factory
        cancel: Optional cancellation signal

    Returns:
        NameScanResult with pairs sorted by name, then similarity
    """
    contents = _read_contents(files, jobs, progress)
    occurrences, used_fallback = collect_occurrences(contents)
    groups = group_by_name(occurrences)

    hits = score_pairs(
        texts=[o.context_line for o in occurrences],
        files=[o.file_path for o in occurrences],
        candidates=_name_candidates(occurrences, groups),
        threshold=threshold,
        jobs=jobs,
        progress=progress,
        label="Comparing declarations",
        cancel=cancel,
    )

    pairs = [
        NamePair(
            name=occurrences[i].name,
            first=occurrences[i],
            second=occurrences[j],
            similarity=score,
        )
        for i, j, score in hits
    ]
    pairs.sort(key=lambda p: (
        p.name, -p.similarity,
        p.first.file_path, p.first.line_number,
        p.second.file_path, p.second.line_number,
    ))

    logger.debug(f"{len(occurrences)} declarations, {len(pairs)} duplicate name pairs")

    return NameScanResult(
        pairs=pairs,
        summary=summarize(pairs),
        occurrences=occurrences,
        used_fallback=used_fallback,
    )
