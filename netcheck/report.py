"""
Rebuild samples from JSON-lines log files and derive outages from them.
Two views: per file (fresh tracker per file) and aggregate (one tracker over all files in order).
An outage crossing a rotation boundary only shows up in the aggregate view.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from netcheck.model import InternetCheckResult
from netcheck.timefmt import OutagePrecision, human_duration, timespan_string
from netcheck.tracker import DowntimeTracker

logger = logging.getLogger("netcheck.report")

RESULT_KEY = "result"


def parse_line(line: str) -> Optional[InternetCheckResult]:
    """Sample nested under "result" in one log line, or None for anything else."""
    line = line.strip()
    if not line:
        return None
    try:
        record = json.loads(line)
        if not isinstance(record, dict) or RESULT_KEY not in record:
            return None
        return InternetCheckResult.from_json(record[RESULT_KEY])
    except (ValueError, LookupError, TypeError, AttributeError, ArithmeticError, RecursionError):
        return None


def read_results(path: Path) -> list[InternetCheckResult]:
    """All readable samples in path; malformed lines are skipped, an unreadable file gives []."""
    results = []
    skipped = 0
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                result = parse_line(line)
                if result is not None:
                    results.append(result)
                elif line.strip() and RESULT_KEY in line:
                    skipped += 1
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return []
    if skipped:
        logger.debug("Skipped %d malformed records in %s", skipped, path)
    return results


@dataclass
class Outage:
    """Closed outage; start and end are the samples themselves, not copies."""
    start: InternetCheckResult
    end: InternetCheckResult
    precision: OutagePrecision = OutagePrecision.NORMAL

    @property
    def duration(self) -> timedelta:
        return self.end.timestamp - self.start.timestamp

    def timespan(self) -> str:
        return timespan_string(self.start.timestamp, self.end.timestamp, self.precision)

    def __str__(self) -> str:
        return f"Outage at {self.timespan()} for {human_duration(self.duration)}"


def find_outages(
    results: Iterable[InternetCheckResult],
    precision: OutagePrecision = OutagePrecision.NORMAL,
    min_duration: Optional[timedelta] = None,
) -> list[Outage]:
    """Single pass over results. With min_duration set, shorter outages are dropped."""
    tracker: DowntimeTracker[Outage] = DowntimeTracker()

    def reduce(start: InternetCheckResult, end: InternetCheckResult) -> Optional[Outage]:
        outage = Outage(start, end, precision)
        if min_duration is not None and outage.duration < min_duration:
            return None
        return outage

    outages = []
    for result in results:
        outage = tracker.track(result, reduce)
        if outage is not None:
            outages.append(outage)
    return outages


def average_duration(outages: Sequence[Outage]) -> Optional[timedelta]:
    if not outages:
        return None
    return sum((o.duration for o in outages), timedelta(0)) / len(outages)


@dataclass
class Logfile:
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class ReportItem:
    logfile: Logfile
    results: list[InternetCheckResult] = field(default_factory=list)

    @classmethod
    def from_path(cls, path: Path) -> "ReportItem":
        return cls(Logfile(Path(path)), read_results(Path(path)))

    @property
    def name(self) -> str:
        return self.logfile.name

    def outages(
        self,
        precision: OutagePrecision = OutagePrecision.NORMAL,
        min_duration: Optional[timedelta] = None,
    ) -> list[Outage]:
        return find_outages(self.results, precision, min_duration)


class Report:
    """Samples of several log files, kept in the order the files were given."""

    def __init__(self, items: list[ReportItem], precision: Optional[OutagePrecision] = None):
        self.items = items
        self.precision = precision or OutagePrecision.NORMAL

    @classmethod
    def from_paths(cls, paths: Sequence[Path], precision: Optional[OutagePrecision] = None) -> "Report":
        return cls([ReportItem.from_path(p) for p in paths], precision)

    def iter_all_results(self) -> Iterator[InternetCheckResult]:
        for item in self.items:
            yield from item.results

    def iter_logfile_paths(self) -> Iterator[Path]:
        for item in self.items:
            yield item.logfile.path

    def all_outages(self, min_duration: Optional[timedelta] = None) -> list[Outage]:
        return find_outages(self.iter_all_results(), self.precision, min_duration)

    def item_outages(self, min_duration: Optional[timedelta] = None) -> list[tuple[ReportItem, list[Outage]]]:
        return [(item, item.outages(self.precision, min_duration)) for item in self.items]
