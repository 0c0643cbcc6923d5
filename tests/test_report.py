"""Tests for log reading, outage reconstruction and report renderers."""
import io
import json
from datetime import timedelta

import pytest

from netcheck import report_modes
from netcheck.report import Report, average_duration, find_outages, parse_line, read_results
from netcheck.timefmt import OutagePrecision


def test_reader_skips_malformed_lines(tmp_path, sample, logfile_writer):
    path = logfile_writer(tmp_path / "a.jsonl", [sample(True, 0), sample(False, 1)])
    good = sample(True, 3)
    with open(path, "a", encoding="utf-8") as f:
        f.write("not json at all\n")
        f.write(json.dumps({"timestamp": "2026-10-19T10:02:00Z", "message": "Graceful shutdown"}) + "\n")
        f.write(json.dumps({"message": "x", "result": {"timestamp": "2026-10-19T10:02:00Z"}}) + "\n")
        f.write(json.dumps({"message": "x", "result": "Online"}) + "\n")
        f.write(json.dumps({"message": "check", "result": good.to_json()}) + "\n")
        f.write('{"timestamp":"2026-10-19T10:04:00Z","message":"check","result":{"conn')
    results = read_results(path)
    assert [r.timestamp.minute for r in results] == [0, 1, 3]


def with_result(sample, **changes):
    data = sample.to_json()
    data.update(changes)
    return json.dumps({"message": "check", "result": data})


@pytest.mark.parametrize(
    "make_line",
    [
        lambda s: with_result(s, avg={"secs": 1e999, "nanos": 0}),
        lambda s: with_result(s, timestamp="9999-12-31T23:59:59-01:00"),
        lambda s: with_result(s, results=[dict(s.to_json()["results"][0], status_code=1e999)]),
        lambda s: "[" * 100000 + "]" * 100000,
    ],
    ids=["huge-duration", "timestamp-out-of-range", "huge-status", "deep-nesting"],
)
def test_reader_skips_unrepresentable_lines(tmp_path, sample, logfile_writer, make_line):
    path = logfile_writer(tmp_path / "a.jsonl", [sample(True, 0)])
    with open(path, "a", encoding="utf-8") as f:
        f.write(make_line(sample(False, 1)) + "\n")
    assert len(read_results(path)) == 1


def test_missing_file_is_empty(tmp_path):
    assert read_results(tmp_path / "gone.jsonl") == []


def test_parse_line_blank():
    assert parse_line("   \n") is None


def test_per_file_and_aggregate_views(tmp_path, sample, logfile_writer):
    first = logfile_writer(tmp_path / "netcheck_2026-10-19_0.jsonl", [sample(True, 0), sample(False, 1)])
    second = logfile_writer(tmp_path / "netcheck_2026-10-19_1.jsonl", [sample(False, 2), sample(True, 4)])
    report = Report.from_paths([first, second])

    per_file = [len(outages) for _, outages in report.item_outages()]
    assert per_file == [0, 1]

    (outage,) = report.all_outages()
    assert outage.start.timestamp.minute == 1
    assert outage.end.timestamp.minute == 4
    assert outage.duration == timedelta(minutes=3)


def test_outage_spanning_rotation_only_in_aggregate(tmp_path, sample, logfile_writer):
    first = logfile_writer(tmp_path / "a_2026-10-19_0.jsonl", [sample(True, 0), sample(False, 1)])
    second = logfile_writer(tmp_path / "a_2026-10-19_1.jsonl", [sample(True, 2)])
    report = Report.from_paths([first, second])
    assert all(not outages for _, outages in report.item_outages())
    assert len(report.all_outages()) == 1


def test_outage_references_samples(sample):
    samples = [sample(False, 0), sample(True, 1)]
    (outage,) = find_outages(samples)
    assert outage.start is samples[0]
    assert outage.end is samples[1]


def test_min_duration_filter(sample):
    samples = [sample(False, 0), sample(True, 0), sample(False, 1), sample(True, 2)]
    assert len(find_outages(samples)) == 2
    assert len(find_outages(samples, min_duration=timedelta(seconds=1))) == 1


def test_average_duration(sample):
    outages = find_outages([sample(False, 0), sample(True, 2), sample(False, 3), sample(True, 7)])
    assert average_duration(outages) == timedelta(minutes=3)
    assert average_duration([]) is None


@pytest.fixture
def report(tmp_path, sample, logfile_writer):
    a = logfile_writer(tmp_path / "netcheck_2026-10-18_0.jsonl",
                       [sample(True, 0), sample(False, 1), sample(True, 6)])
    b = logfile_writer(tmp_path / "netcheck_2026-10-19_0.jsonl",
                       [sample(True, 10), sample(False, 11), sample(True, 12),
                        sample(False, 20), sample(True, 20)])
    return Report.from_paths([a, b])


def test_outages_mode(report):
    out = io.StringIO()
    found = report_modes.outages(report, out)
    text = out.getvalue()
    assert "Duration Report for: netcheck_2026-10-18_0.jsonl" in text
    assert "Duration Report for: netcheck_2026-10-19_0.jsonl" in text
    assert text.count("Internet outage:") == 2
    assert "Duration: 5 minutes" in text
    assert "Duration: 1 minute\n" in text
    # zero-length outage at minute 20 is left out
    assert "Outages: 2" in text
    assert "Average duration: 3 minutes" in text
    assert len(found) == 2


def test_longest_mode(report):
    out = io.StringIO()
    worst = report_modes.longest(report, out)
    assert worst.duration == timedelta(minutes=5)
    assert out.getvalue().startswith("Longest outage from ")
    assert out.getvalue().rstrip().endswith("took 5 minutes")


def test_most_outages_mode(report):
    out = io.StringIO()
    item = report_modes.most_outages(report, out)
    assert item.name == "netcheck_2026-10-19_0.jsonl"
    assert out.getvalue() == "Logfile with most outages: netcheck_2026-10-19_0.jsonl\n"


def test_modes_without_outages(tmp_path, sample, logfile_writer):
    path = logfile_writer(tmp_path / "quiet.jsonl", [sample(True, 0), sample(True, 1)])
    report = Report.from_paths([path])
    out = io.StringIO()
    assert report_modes.longest(report, out) is None
    assert report_modes.most_outages(report, out).name == "quiet.jsonl"
    assert report_modes.outages(report, out) == []
    assert "Average duration" not in out.getvalue()
    assert report_modes.most_outages(Report([]), out) is None


def test_ties_go_to_newest(tmp_path, sample, logfile_writer):
    older = logfile_writer(tmp_path / "netcheck_2026-10-18_0.jsonl", [sample(False, 0), sample(True, 2)])
    newer = logfile_writer(tmp_path / "netcheck_2026-10-19_0.jsonl", [sample(False, 10), sample(True, 12)])
    report = Report.from_paths([older, newer])
    out = io.StringIO()
    assert report_modes.most_outages(report, out).name == "netcheck_2026-10-19_0.jsonl"
    assert report_modes.longest(report, out).start.timestamp.minute == 10


def test_most_outages_without_any_picks_newest(tmp_path, sample, logfile_writer):
    older = logfile_writer(tmp_path / "netcheck_2026-10-18_0.jsonl", [sample(True, 0)])
    newer = logfile_writer(tmp_path / "netcheck_2026-10-19_0.jsonl", [sample(True, 1)])
    out = io.StringIO()
    item = report_modes.most_outages(Report.from_paths([older, newer]), out)
    assert item.name == "netcheck_2026-10-19_0.jsonl"
    assert out.getvalue() == "Logfile with most outages: netcheck_2026-10-19_0.jsonl\n"


def test_simple_mode(report):
    out = io.StringIO()
    report_modes.simple(report, out)
    lines = out.getvalue().splitlines()
    assert lines[0] == "Logfile: netcheck_2026-10-18_0.jsonl"
    assert lines[1].endswith(": Online")
    assert lines[2].endswith(": Offline")


def test_cleanup_mode(report, tmp_path):
    out = io.StringIO()
    paths = list(report.iter_logfile_paths())
    paths[0].unlink()
    failed = report_modes.cleanup(report, out)
    assert failed == 1
    assert not paths[1].exists()
    text = out.getvalue()
    assert "Error:   removed file" in text
    assert "Success: removed file" in text


def test_exact_precision_in_output(tmp_path, sample, logfile_writer):
    path = logfile_writer(tmp_path / "x.jsonl", [sample(False, 0), sample(True, 1.5)])
    report = Report.from_paths([path], OutagePrecision.EXACT)
    (outage,) = report.all_outages()
    assert outage.timespan().count(":") == 5
    assert str(outage).startswith("Outage at ")
    assert str(outage).endswith("for 1 minute")
