"""
netcheck – internet connectivity monitor and outage reports. Entry point.
- monitor: probe on an interval, write JSON-lines records (rotating files and/or stdout)
- report: rebuild outages from those files (simple, outages, longest, most-outages, cleanup)
- config: show or initialise the config file
Exit status 0 on Ctrl-C / normal completion, 1 on errors (message plus cause chain on stderr).
"""
import argparse
import asyncio
import json
import logging
import os
import sys
import traceback
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from netcheck.config import (
    LOG_MODES,
    MonitorSettings,
    get_config_path,
    get_default_config,
    load_config,
    resolve_log_dir,
    save_config,
)
from netcheck.errors import NetcheckError
from netcheck.jsonlog import LogMode
from netcheck.logging_setup import setup_logging
from netcheck.monitor import run_monitor
from netcheck.report import Report
from netcheck.report_modes import DEFAULT_REPORT_MODE, REPORT_MODES, cleanup
from netcheck.selection import chronological, select_logfiles
from netcheck.timefmt import OutagePrecision

logger = logging.getLogger("netcheck")


class CommandError(NetcheckError):
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="netcheck", description="Network monitor & outage analyzer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on stderr")
    parser.add_argument("--debug", action="store_true", help="Print full tracebacks on errors")
    sub = parser.add_subparsers(dest="command", required=True)

    mon = sub.add_parser("monitor", help="Check the connection periodically and log the results")
    mon.add_argument("-f", "--filename", dest="file_prefix",
                     help="Log file prefix; date and index are appended automatically")
    mon.add_argument("-s", "--size", dest="max_size", type=int,
                     help="Max log file size in bytes before a new file is started")
    mon.add_argument("-m", "--mode", dest="log_mode", choices=LOG_MODES,
                     help="'stdout' only prints, 'file' only writes files, 'all' does both")
    mon.add_argument("-d", "--dir", dest="log_dir", help="Log directory")
    mon.add_argument("-i", "--interval", type=float, help="Seconds between checks")
    mon.add_argument("-t", "--timeout", type=float, help="Per-request timeout in seconds")
    mon.add_argument("--latency-threshold", dest="latency_threshold_ms", type=int,
                     help="Mean latency in ms above which a check counts as slow")

    rep = sub.add_parser("report", help="Analyse log files")
    rep.add_argument("-m", "--mode", choices=list(REPORT_MODES), default=DEFAULT_REPORT_MODE,
                     help="'simple' lists every check, 'cleanup' deletes the selected files")
    rep.add_argument("-d", "--dir", dest="log_dir", help="Log directory")
    rep.add_argument("-f", "--filename", dest="file_prefix", help="Only use files with this prefix")
    rep.add_argument("--exact", action="store_true", help="Show outage times with seconds")
    rep.add_argument("files", nargs="*", metavar="FILE", help="Log files to use (shell wildcards work)")
    pick = rep.add_mutually_exclusive_group()
    pick.add_argument("-a", "--all", dest="all_files", action="store_true", help="Use every log file")
    pick.add_argument("-l", "--last", type=int, metavar="N", help="Use the last N log files")

    cfg = sub.add_parser("config", help="Show or create the config file")
    cfg.add_argument("--init", action="store_true", help="Write the default config (overwrites)")
    return parser


def run_monitor_command(args: argparse.Namespace) -> int:
    overrides = {
        "file_prefix": args.file_prefix,
        "max_size": args.max_size,
        "log_mode": args.log_mode,
        "log_dir": args.log_dir,
        "interval": args.interval,
        "timeout": args.timeout,
        "latency_threshold_ms": args.latency_threshold_ms,
    }
    settings = MonitorSettings.from_config(load_config(), overrides)
    log_dir = settings.log_dir if LogMode(settings.log_mode).to_file else None
    setup_logging(log_dir, args.verbose)
    logger.info("netcheck started (monitor)")
    try:
        checks = asyncio.run(run_monitor(settings))
    except KeyboardInterrupt:
        checks = None
    logger.info("netcheck stopped (%s checks)", checks if checks is not None else "interrupted")
    return 0


def run_report_command(args: argparse.Namespace) -> int:
    setup_logging(None, args.verbose)
    config = load_config()
    log_dir = resolve_log_dir(args.log_dir or config.get("log_dir"))
    paths = select_logfiles(
        log_dir,
        files=args.files,
        all_files=args.all_files,
        last=args.last,
        prefix=args.file_prefix,
    )
    if not paths:
        print(f"No log files found in {log_dir}")
        return 0
    precision = OutagePrecision.EXACT if args.exact else None
    report = Report.from_paths(chronological(paths), precision)
    renderer = REPORT_MODES[args.mode]
    if renderer is cleanup:
        return 1 if cleanup(report) else 0
    renderer(report)
    return 0


def run_config_command(args: argparse.Namespace) -> int:
    if args.init:
        path = save_config(get_default_config())
        print(f"Wrote default config to {path}")
        return 0
    print(f"# {get_config_path()}")
    print(json.dumps(load_config(), indent=2, ensure_ascii=False))
    return 0


COMMANDS = {
    "monitor": run_monitor_command,
    "report": run_report_command,
    "config": run_config_command,
}


def print_error(err: BaseException, debug: bool = False) -> None:
    if debug:
        traceback.print_exception(type(err), err, err.__traceback__, file=sys.stderr)
        return
    print(f"Error: {err}", file=sys.stderr)
    seen = {id(err)}
    cause = err.__cause__ or err.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        print(f"    - {cause}", file=sys.stderr)
        cause = cause.__cause__ or cause.__context__


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    debug = args.debug or bool(os.environ.get("NETCHECK_DEBUG"))
    try:
        try:
            return COMMANDS[args.command](args)
        except (NetcheckError, OSError) as e:
            raise CommandError(f"The {args.command} command failed") from e
    except CommandError as e:
        print_error(e, debug)
        return 1


if __name__ == "__main__":
    sys.exit(main())
