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
Lexical similarity metric.

Normalized Levenshtein similarity with a cheap length-ratio rejection.
Pure function of its inputs, safe to call from any thread.
"""

import Levenshtein


# Strings whose lengths differ by more than this ratio are never duplicates
MIN_LENGTH_RATIO = 0.7


def length_ratio(a: str, b: str) -> float:
    """Ratio of the shorter length to the longer one (1.0 if both empty)."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return min(len(a), len(b)) / longest


def similarity(a: str, b: str, min_length_ratio: float = MIN_LENGTH_RATIO) -> float:
    """
    Similarity of two strings in [0, 1].

    Returns 0.0 without computing the edit distance when the length ratio
    is below min_length_ratio. Otherwise 1 - distance / max length.

    Args:
        a: First string
        b: Second string
        min_length_ratio: Rejection bound for very different lengths

    Returns:
        1.0 for identical strings (including two empty ones), 0.0 for
        completely different ones
    """
    if length_ratio(a, b) < min_length_ratio:
        return 0.0

    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0

    distance = Levenshtein.distance(a, b)
    score = 1.0 - distance / longest

    return min(1.0, max(0.0, score))
