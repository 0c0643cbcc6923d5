"""
Report renderers. Each takes a Report and writes plain text to `out` (stdout by default).
"""
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, TextIO

from netcheck.report import Outage, Report, ReportItem, average_duration
from netcheck.timefmt import human_duration

logger = logging.getLogger("netcheck.report")

# Outages shorter than this are treated as noise in the outages view.
MIN_REPORTED_OUTAGE = timedelta(seconds=1)


def _out(out: Optional[TextIO]) -> TextIO:
    return out or sys.stdout


def simple(report: Report, out: Optional[TextIO] = None) -> None:
    out = _out(out)
    for item in report.items:
        print(f"Logfile: {item.name}", file=out)
        for result in item.results:
            print(f"  {result.get_time()}: {result.connectivity}", file=out)
        print(file=out)


def outages(report: Report, out: Optional[TextIO] = None) -> list[Outage]:
    """Per-file outage listing, then count and average over all files. Returns the aggregate outages."""
    out = _out(out)
    for item, item_outages in report.item_outages(MIN_REPORTED_OUTAGE):
        print(f"Duration Report for: {item.name}", file=out)
        for o in item_outages:
            print(f"Internet outage: {o.timespan()} | Duration: {human_duration(o.duration)}", file=out)
        print(file=out)

    found = report.all_outages(MIN_REPORTED_OUTAGE)
    print(f"Outages: {len(found)}", file=out)
    avg = average_duration(found)
    if avg is not None:
        print(f"Average duration: {human_duration(avg)}", file=out)
    return found


def longest(report: Report, out: Optional[TextIO] = None) -> Optional[Outage]:
    found = report.all_outages()
    if not found:
        print("No outages found", file=_out(out))
        return None
    # ties go to the latest outage
    worst = max(reversed(found), key=lambda o: o.duration)
    print(f"Longest outage from {worst.timespan()}, took {human_duration(worst.duration)}", file=_out(out))
    return worst


def most_outages(report: Report, out: Optional[TextIO] = None) -> Optional[ReportItem]:
    """Items are in chronological order; on a tie the newest file wins, also when no file has outages."""
    counted = report.item_outages()
    if not counted:
        print("No outages found", file=_out(out))
        return None
    item, _ = max(reversed(counted), key=lambda pair: len(pair[1]))
    print(f"Logfile with most outages: {item.name}", file=_out(out))
    return item


def cleanup(report: Report, out: Optional[TextIO] = None) -> int:
    """Delete every file in the report. Returns how many could not be removed."""
    out = _out(out)
    failed = 0
    for path in report.iter_logfile_paths():
        stamp = datetime.now(timezone.utc).strftime("%H:%M:%S")
        try:
            path.unlink()
        except OSError as e:
            failed += 1
            logger.warning("Could not remove %s: %s", path, e)
            print(f"[{stamp}] - Error:   removed file '{path}' | {e}", file=out)
        else:
            print(f"[{stamp}] - Success: removed file '{path}'", file=out)
    return failed


REPORT_MODES: dict[str, Callable[..., object]] = {
    "simple": simple,
    "outages": outages,
    "longest": longest,
    "most-outages": most_outages,
    "cleanup": cleanup,
}
DEFAULT_REPORT_MODE = "outages"
