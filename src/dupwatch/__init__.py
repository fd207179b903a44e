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
Dupwatch - Find near-duplicate code and track duplication across runs.

Compares overlapping line windows with a normalized edit distance, or
function declarations by name, and keeps a JSON history of duplication
rates so trends can be followed over time.
"""

__version__ = "0.1.0"

from .similarity import similarity
from .extractor import extract_blocks, extract_corpus
from .matcher import find_duplicate_blocks
from .names import find_duplicate_names, extract_named_occurrences
from .monitor import append_snapshot, load_history, render_trend, compute_trend
from .detector import detect_duplicates
from .config import DuplicateOptions, load_config, find_config_file

__all__ = [
    "__version__",
    "similarity",
    "extract_blocks",
    "extract_corpus",
    "find_duplicate_blocks",
    "find_duplicate_names",
    "extract_named_occurrences",
    "append_snapshot",
    "load_history",
    "render_trend",
    "compute_trend",
    "detect_duplicates",
    "DuplicateOptions",
    "load_config",
    "find_config_file",
]
