from dupwatch.extractor import (
    block_sizes,
    extract_blocks,
    extract_corpus,
    read_source_lines,
    read_source_text,
)
from dupwatch.names import extract_named_occurrences

from conftest import write_lines


def code_lines(n):
    return [f"value_{i} = compute({i})" for i in range(n)]


def test_exactly_min_lines_gives_one_block():
    lines = code_lines(5)
    blocks = extract_blocks("a.py", lines, min_lines=5)
    assert len(blocks) == 1
    assert blocks[0].start_line == 1
    assert blocks[0].end_line == 5
    assert blocks[0].lines == tuple(lines)
    assert blocks[0].content == "\n".join(lines)


def test_shorter_than_min_lines_gives_nothing():
    assert extract_blocks("a.py", code_lines(4), min_lines=5) == []
    assert extract_blocks("a.py", [], min_lines=1) == []


def test_size_tiers():
    assert list(block_sizes(5, 100)) == [5, 10, 15, 20, 25, 30]
    assert list(block_sizes(5, 12)) == [5, 10]
    assert list(block_sizes(7, 7)) == [7]


def test_windows_per_start_offset():
    lines = code_lines(12)
    blocks = extract_blocks("a.py", lines, min_lines=5)
    spans = [(b.start_line, b.end_line) for b in blocks]
    # offsets 0..7 for size 5, offsets 0..2 for size 10
    assert len(spans) == 8 + 3
    assert (1, 10) in spans
    assert (3, 12) in spans
    assert (8, 12) in spans
    assert all(b.start_line <= b.end_line for b in blocks)


def test_mostly_blank_blocks_are_dropped():
    lines = ["x = 1", "", "", "y = 2", "z = 3"]
    # 2/5 blank > 0.3
    assert extract_blocks("a.py", lines, min_lines=5) == []

    lines = ["x = 1", "   ", "w = 0", "y = 2", "z = 3"]
    # 1/5 blank <= 0.3
    assert len(extract_blocks("a.py", lines, min_lines=5)) == 1


def test_read_source_lines_ignores_trailing_newline(tmp_path):
    path = write_lines(tmp_path / "a.c", code_lines(5))
    assert len(read_source_lines(path)) == 5


def test_extract_corpus_skips_unreadable_files(tmp_path):
    good = write_lines(tmp_path / "good.py", code_lines(6))
    missing = str(tmp_path / "missing.py")

    blocks, processed = extract_corpus([good, missing], min_lines=5, jobs=2)

    assert processed == [good]
    assert {b.file_path for b in blocks} == {good}
    assert [(b.start_line, b.end_line) for b in blocks] == [(1, 5), (2, 6)]


def test_extract_corpus_is_ordered(tmp_path):
    files = [write_lines(tmp_path / f"f{i}.py", code_lines(8)) for i in range(4)]

    blocks, processed = extract_corpus(list(reversed(files)), min_lines=5, jobs=4)

    assert processed == sorted(files)
    assert blocks == sorted(blocks, key=lambda b: b.sort_key)


def test_min_lines_above_maximum_gives_no_blocks():
    assert list(block_sizes(40, 50)) == []
    assert extract_blocks("a.py", code_lines(50), min_lines=40) == []
    assert extract_blocks("a.py", code_lines(50), min_lines=12, max_lines=10) == []


def test_blocks_never_exceed_maximum_size():
    blocks = extract_blocks("a.py", code_lines(80), min_lines=3, max_lines=30, step=4)
    assert max(b.line_count for b in blocks) <= 30


def test_only_newline_ends_a_line(tmp_path):
    path = tmp_path / "feed.c"
    path.write_bytes(b"int a;\n\x0cint b;\nint c;\n")

    lines = read_source_lines(str(path))

    assert lines == ["int a;", "\x0cint b;", "int c;"]
    blocks = extract_blocks(str(path), lines, min_lines=1, max_lines=1)
    assert [(b.start_line, b.content) for b in blocks][-1] == (3, "int c;")


def test_carriage_returns(tmp_path):
    crlf = tmp_path / "crlf.c"
    crlf.write_bytes(b"int a;\r\nint b;\r\n")
    assert read_source_lines(str(crlf)) == ["int a;", "int b;"]

    lone = tmp_path / "lone.c"
    lone.write_bytes(b"int a;\rint b;\nint c;")
    assert read_source_lines(str(lone)) == ["int a;\rint b;", "int c;"]


def test_line_numbers_agree_with_name_path(tmp_path):
    path = tmp_path / "feed.py"
    path.write_bytes(b"x = 1\n\x0c\ndef tally_rows(rows):\n    return len(rows)\n")

    lines = read_source_lines(str(path))
    occurrences = extract_named_occurrences(str(path), read_source_text(str(path)))

    assert occurrences[0].line_number == 3
    assert lines[occurrences[0].line_number - 1] == occurrences[0].context_line
