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
Console progress bar.

Each stage gets its own ProgressBar from the caller; nothing is shared
between stages and there is no process-wide "current" bar.
"""

import threading
from typing import Callable, Optional

import click


# Factory signature used by the detector: (total, label) -> ProgressBar
ProgressFactory = Callable[[int, str], "ProgressBar"]


class ProgressBar:
    """
    Thread-safe progress bar rendered on a single console line.

    Workers call increment() concurrently; the line is redrawn under a lock.
    """

    def __init__(self, total: int, label: str, width: int = 30, enabled: bool = True):
        self.total = max(total, 0)
        self.label = label
        self.width = width
        self.enabled = enabled
        self.current = 0
        self.started = False
        self.finished = False
        self._lock = threading.Lock()

    def start(self) -> "ProgressBar":
        with self._lock:
            self.started = True
            self.finished = False
            self.current = 0
            self._render()
        return self

    def increment(self, amount: int = 1) -> None:
        with self._lock:
            if self.finished:
                return
            self.current = min(self.current + amount, self.total) if self.total else self.current + amount
            self._render()

    def finish(self) -> None:
        with self._lock:
            if self.finished:
                return
            self.finished = True
            if self.total:
                self.current = self.total
            self._render()
            if self.enabled:
                click.echo(err=True)

    def __enter__(self) -> "ProgressBar":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finish()

    def _render(self) -> None:
        if not self.enabled:
            return
        total = max(self.total, 1)
        filled = min(int(self.width * self.current / total), self.width)
        bar = "=" * filled + ">" + " " * (self.width - filled - 1) if filled < self.width else "=" * self.width
        # \r rewinds to the start of the line, \033[K clears the rest of it
        click.echo(f"\r   [{bar}] {self.current}/{self.total} {self.label}\033[K", nl=False, err=True)


def console_progress(enabled: bool = True) -> ProgressFactory:
    """Return a factory creating console bars, or silent ones when disabled."""

    def factory(total: int, label: str) -> ProgressBar:
        return ProgressBar(total, label, enabled=enabled)

    return factory


def silent_progress(total: int, label: str) -> ProgressBar:
    """ProgressFactory that never prints."""
    return ProgressBar(total, label, enabled=False)


def make_progress(factory: Optional[ProgressFactory], total: int, label: str) -> ProgressBar:
    """Create a bar from an optional factory."""
    if factory is None:
        return silent_progress(total, label)
    return factory(total, label)
