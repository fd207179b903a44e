from pathlib import Path

import pytest

from dupwatch.config import DuplicateOptions
from dupwatch.discovery import (
    extensions_for,
    find_source_files,
    get_files_to_process,
    is_excluded,
)
from dupwatch.models import DiscoveryError


@pytest.fixture
def project(tmp_path):
    files = [
        "main.c",
        "util.h",
        "README.md",
        "lib/list.cpp",
        "lib/deep/tree.go",
        "build/generated.c",
        "scripts/tool.py",
    ]
    for name in files:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("int x;\n")
    return tmp_path


def relative(paths, root):
    return sorted(str(Path(p).relative_to(root.resolve())) for p in paths)


def test_finds_all_known_languages(project):
    found = find_source_files(project)
    assert relative(found, project) == [
        "build/generated.c",
        "lib/deep/tree.go",
        "lib/list.cpp",
        "main.c",
        "scripts/tool.py",
        "util.h",
    ]
    assert all(Path(p).is_absolute() for p in found)


def test_language_filter(project):
    found = find_source_files(project, languages=["c"])
    assert relative(found, project) == ["build/generated.c", "main.c", "util.h"]


def test_language_aliases():
    assert extensions_for(["golang"]) == {".go"}
    assert ".cpp" in extensions_for(["C++"])
    assert extensions_for(["cobol"]) == set()


def test_excludes(project):
    found = find_source_files(project, excludes=["build", "*.py"])
    assert relative(found, project) == ["lib/deep/tree.go", "lib/list.cpp", "main.c", "util.h"]


def test_depth(project):
    assert relative(find_source_files(project, depth=0), project) == ["main.c", "util.h"]
    assert "lib/deep/tree.go" not in relative(find_source_files(project, depth=1), project)
    assert "lib/deep/tree.go" in relative(find_source_files(project, depth=2), project)


def test_is_excluded_matches_relative_path(tmp_path):
    root = tmp_path / "repo"
    assert is_excluded(root / "vendor" / "x.c", ["vendor"], root)
    assert not is_excluded(root / "src" / "x.c", ["repo"], root)


def test_missing_directory(tmp_path):
    with pytest.raises(DiscoveryError):
        find_source_files(tmp_path / "missing")


def test_input_file(project):
    options = DuplicateOptions(input_file=str(project / "main.c"))
    assert get_files_to_process(options) == [str((project / "main.c").resolve())]


def test_input_file_errors(project):
    with pytest.raises(DiscoveryError, match="does not exist"):
        get_files_to_process(DuplicateOptions(input_file=str(project / "nope.c")))

    with pytest.raises(DiscoveryError, match="invalid extension"):
        get_files_to_process(DuplicateOptions(input_file=str(project / "README.md")))


def test_directory_scan_from_options(project):
    options = DuplicateOptions(directory=str(project), languages=["go"])
    assert relative(get_files_to_process(options), project) == ["lib/deep/tree.go"]
