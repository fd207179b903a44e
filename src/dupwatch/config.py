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
Run options and configuration file support.

Looks for .dupwatchrc or .dupwatch.toml in the analyzed directory or any
of its parents.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Dict, Any, List

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

from .extractor import DEFAULT_MAX_LINES, DEFAULT_STEP
from .monitor import DEFAULT_HISTORY_FILE


CONFIG_NAMES = [".dupwatchrc", ".dupwatch.toml"]
CONFIG_SECTION = "dupwatch"

DEFAULT_THRESHOLD = 0.8
DEFAULT_MIN_LINES = 5
DEFAULT_JOBS = 4


@dataclass
class DuplicateOptions:
    """Options for one duplicate detection run."""

    # Input
    directory: str = "."
    input_file: Optional[str] = None
    depth: int = -1                       # -1 means unlimited
    languages: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)

    # Processing
    jobs: int = DEFAULT_JOBS
    threshold: float = DEFAULT_THRESHOLD
    min_lines: int = DEFAULT_MIN_LINES
    max_lines: int = DEFAULT_MAX_LINES
    step: int = DEFAULT_STEP

    # Output
    names_only: bool = False
    short: bool = False
    verbose: bool = False
    output: Optional[str] = None

    # Monitoring
    monitor: bool = False
    monitor_file: str = DEFAULT_HISTORY_FILE
    monitor_comment: str = ""

    def normalized(self) -> "DuplicateOptions":
        """Copy with out-of-range values replaced by their defaults."""
        threshold = self.threshold
        if threshold <= 0 or threshold > 1.0:
            threshold = DEFAULT_THRESHOLD

        min_lines = self.min_lines if self.min_lines > 0 else DEFAULT_MIN_LINES
        jobs = self.jobs if self.jobs > 0 else DEFAULT_JOBS
        step = self.step if self.step > 0 else DEFAULT_STEP

        return replace(self, threshold=threshold, min_lines=min_lines, jobs=jobs, step=step)


def find_config_file(start_path: Path) -> Optional[Path]:
    """
    Search for .dupwatchrc or .dupwatch.toml in start_path and parent directories.

    Args:
        start_path: Directory to start searching from

    Returns:
        Path to config file if found, None otherwise
    """
    current = start_path.resolve()

    while True:
        for name in CONFIG_NAMES:
            config_path = current / name
            if config_path.is_file():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path) -> Dict[str, Any]:
    """
    Load the [dupwatch] table of the nearest config file.

    Returns an empty dict if no config file is found or it cannot be parsed.

    Example config file (.dupwatchrc or .dupwatch.toml):
        [dupwatch]
        threshold = 0.85
        min_lines = 8
        jobs = 8
        languages = ["c", "cpp"]
        exclude = ["build", "third_party"]
        monitor = true
        monitor_file = "duplication_history.json"
    """
    config_path = find_config_file(path)

    if config_path is None:
        return {}

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}

    section = data.get(CONFIG_SECTION, {})
    return section if isinstance(section, dict) else {}


def merge_config_with_cli(
    config: Dict[str, Any],
    cli_value,
    config_key: str,
    default_value,
):
    """
    Merge config file value with CLI value.

    An explicit CLI value (one that differs from the default) wins.
    Otherwise the config value is used if present, else the default.
    """
    if cli_value != default_value:
        return cli_value

    return config.get(config_key, default_value)
