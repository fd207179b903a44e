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
Source file discovery.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Set
import fnmatch
import os

from .config import DuplicateOptions
from .models import DiscoveryError


# Language to extension mapping
LANGUAGE_EXTENSIONS = {
    "c": {".c", ".h"},
    "cpp": {".cpp", ".cc", ".cxx", ".hpp", ".hxx", ".hh", ".h"},
    "go": {".go"},
    "python": {".py", ".pyw"},
    "javascript": {".js", ".mjs", ".cjs", ".jsx"},
    "typescript": {".ts", ".tsx"},
    "java": {".java"},
    "rust": {".rs"},
    "csharp": {".cs"},
    "swift": {".swift"},
    "kotlin": {".kt", ".kts"},
    "php": {".php"},
    "ruby": {".rb"},
}

LANGUAGE_ALIASES = {
    "c++": "cpp",
    "cxx": "cpp",
    "golang": "go",
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "rs": "rust",
    "cs": "csharp",
    "c#": "csharp",
}


def extensions_for(languages: Optional[Sequence[str]]) -> Set[str]:
    """File extensions for the given languages (all known ones if empty)."""
    if not languages:
        return set().union(*LANGUAGE_EXTENSIONS.values())

    extensions: Set[str] = set()
    for language in languages:
        key = language.lower()
        key = LANGUAGE_ALIASES.get(key, key)
        extensions |= LANGUAGE_EXTENSIONS.get(key, set())
    return extensions


def has_valid_extension(path: Path, languages: Optional[Sequence[str]]) -> bool:
    return path.suffix.lower() in extensions_for(languages)


def is_excluded(path: Path, excludes: Sequence[str], root: Optional[Path] = None) -> bool:
    """True if the basename matches an exclude glob or the path below root contains it."""
    text = str(path.relative_to(root)) if root is not None else str(path)
    return any(
        fnmatch.fnmatch(path.name, pattern) or pattern in text
        for pattern in excludes
    )


def find_source_files(
    directory: Path,
    languages: Optional[Sequence[str]] = None,
    excludes: Sequence[str] = (),
    depth: int = -1,
) -> List[str]:
    """
    Find all source files below a directory.

    Args:
        directory: Root directory to scan
        languages: Only keep files of these languages (all if empty)
        excludes: Directory or file names / substrings to skip
        depth: Maximum directory depth below root, -1 for unlimited

    Returns:
        Sorted absolute file paths
    """
    root = Path(directory).resolve()
    if not root.is_dir():
        raise DiscoveryError(f"directory does not exist: {directory}")

    extensions = extensions_for(languages)
    found = set()

    for current, dirnames, filenames in os.walk(root):
        current_path = Path(current)
        level = len(current_path.relative_to(root).parts)

        # Prune in place so os.walk skips excluded and too-deep directories
        dirnames[:] = sorted(
            d for d in dirnames
            if not is_excluded(current_path / d, excludes, root)
            and (depth < 0 or level < depth)
        )

        for name in filenames:
            file_path = current_path / name
            if file_path.suffix.lower() not in extensions:
                continue
            if is_excluded(file_path, excludes, root):
                continue
            found.add(str(file_path))

    return sorted(found)


def get_files_to_process(options: DuplicateOptions) -> List[str]:
    """
    Files for a run: the input file alone if one is given, else a directory scan.

    Raises:
        DiscoveryError: if the input file or directory is missing, or the
            input file is not a supported source file
    """
    if options.input_file:
        path = Path(options.input_file)
        if not path.is_file():
            raise DiscoveryError(f"input file does not exist: {options.input_file}")
        if not has_valid_extension(path, options.languages):
            raise DiscoveryError(f"input file has invalid extension: {options.input_file}")
        return [str(path.resolve())]

    return find_source_files(
        Path(options.directory),
        languages=options.languages,
        excludes=options.excludes,
        depth=options.depth,
    )
