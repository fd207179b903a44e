import threading

import pytest

from dupwatch.config import DuplicateOptions
from dupwatch.detector import detect_duplicates
from dupwatch.models import MonitoringError
from dupwatch.monitor import load_history

from conftest import write_lines


def test_finds_shared_block_across_files(duplicated_corpus):
    alpha, beta = duplicated_corpus
    options = DuplicateOptions(min_lines=5, threshold=0.8, jobs=2)

    report = detect_duplicates([alpha, beta], options)

    assert report.total_blocks > 0
    assert report.pairs
    best = report.pairs[0]
    assert best.similarity >= 0.95
    assert {best.block_a.file_path, best.block_b.file_path} == {alpha, beta}
    assert report.files_with_duplicates == sorted([alpha, beta])

    for pair in report.pairs:
        assert not pair.block_a.overlaps(pair.block_b)

    # the shared block sits on lines 5-14 of both files
    identical = [p for p in report.pairs if p.similarity == 1.0]
    assert any(
        p.block_a.start_line == 5 and p.block_a.end_line == 14
        and p.block_b.start_line == 5 and p.block_b.end_line == 14
        for p in identical
    )


def test_renamed_identifier_falls_below_strict_threshold(renamed_corpus):
    report = detect_duplicates(list(renamed_corpus), DuplicateOptions(min_lines=5, threshold=0.99))
    assert report.pairs == []
    assert report.total_blocks > 0


def test_invalid_options_fall_back_to_defaults(duplicated_corpus):
    options = DuplicateOptions(min_lines=0, threshold=7.0, jobs=0)
    report = detect_duplicates(list(duplicated_corpus), options)

    assert report.threshold == 0.8
    assert report.min_lines == 5
    assert report.pairs


def test_monitoring_records_snapshot(duplicated_corpus, tmp_path):
    history_file = tmp_path / "history.json"
    options = DuplicateOptions(
        directory=str(tmp_path),
        min_lines=5,
        monitor=True,
        monitor_file=str(history_file),
        monitor_comment="baseline",
    )

    report = detect_duplicates(list(duplicated_corpus), options)

    assert report.monitor_error is None
    history = load_history(history_file)
    assert len(history) == 1
    snapshot = history.metrics[0]
    assert snapshot.total_files == 2
    assert snapshot.total_blocks == report.total_blocks
    assert snapshot.duplicate_pairs == len(report.pairs)
    assert snapshot.duplication_rate == pytest.approx(len(report.pairs) / report.total_blocks)
    assert snapshot.comment == "baseline"
    assert snapshot.min_line_count == 5


def test_monitoring_failure_keeps_report(duplicated_corpus, tmp_path):
    options = DuplicateOptions(
        min_lines=5,
        monitor=True,
        monitor_file=str(tmp_path / "no-such-dir" / "history.json"),
    )

    report = detect_duplicates(list(duplicated_corpus), options)

    assert report.pairs
    assert isinstance(report.monitor_error, MonitoringError)
    assert report.snapshot is not None


def test_cancelled_run_records_nothing(duplicated_corpus, tmp_path):
    history_file = tmp_path / "history.json"
    cancel = threading.Event()
    cancel.set()
    options = DuplicateOptions(min_lines=5, monitor=True, monitor_file=str(history_file))

    report = detect_duplicates(list(duplicated_corpus), options, cancel=cancel)

    assert report.cancelled
    assert report.pairs == []
    assert not history_file.exists()


def test_unreadable_files_are_skipped(duplicated_corpus, tmp_path):
    alpha, beta = duplicated_corpus
    missing = str(tmp_path / "vanished.py")

    report = detect_duplicates([alpha, missing, beta], DuplicateOptions(min_lines=5))

    assert report.pairs
    for pair in report.pairs:
        assert missing not in pair.files


def test_names_only(tmp_path):
    a = write_lines(tmp_path / "a.py", ["def compute_invoice(order):", "    return order.total"])
    b = write_lines(tmp_path / "b.py", ["def compute_invoice(order):", "    return order.sum"])
    c = write_lines(tmp_path / "c.py", ["def unrelated(x):", "    return x"])

    report = detect_duplicates([a, b, c], DuplicateOptions(names_only=True))

    assert report.names is not None
    assert len(report.names.pairs) == 1
    assert report.names.pairs[0].name == "compute_invoice"
    assert report.total_blocks == 2
    assert len(report.pairs) == 1
    assert report.pairs[0].block_a.start_line == 1
    assert report.pairs[0].block_a.content == "def compute_invoice(order):"
