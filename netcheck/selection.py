"""
Log file discovery and selection for reports.
Lists are returned most recent first (date embedded in the name, then rotation index);
reverse them with chronological() before replaying samples.
"""
import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from netcheck.errors import ConfigError
from netcheck.jsonlog import LOGFILE_SUFFIX

logger = logging.getLogger("netcheck.selection")

DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
INDEX_RE = re.compile(r"_(\d+)\.jsonl$")
NO_DATE = "0000-00-00"

PathLike = Union[str, Path]


def filename_sort_key(path: PathLike) -> tuple[str, int]:
    name = Path(path).name
    m = DATE_RE.search(name)
    idx = INDEX_RE.search(name)
    return (m.group(1) if m else NO_DATE, int(idx.group(1)) if idx else 0)


def sort_by_filename_date(paths: Iterable[PathLike]) -> list[Path]:
    """Newest first."""
    return sorted((Path(p) for p in paths), key=filename_sort_key, reverse=True)


def chronological(paths: Sequence[Path]) -> list[Path]:
    return list(reversed(paths))


def is_logfile(path: Path) -> bool:
    return path.suffix == LOGFILE_SUFFIX


def collect_logfiles(directory: PathLike, prefix: Optional[str] = None) -> list[Path]:
    """All .jsonl files in directory (optionally only those named {prefix}_...), newest first."""
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise ConfigError(f"Cannot read log directory {directory}: {e}") from e
    files = [p for p in entries if p.is_file() and is_logfile(p)]
    if prefix:
        files = [p for p in files if p.name.startswith(f"{prefix}_")]
    return sort_by_filename_date(files)


def select_logfiles(
    directory: PathLike,
    files: Optional[Sequence[PathLike]] = None,
    all_files: bool = False,
    last: Optional[int] = None,
    prefix: Optional[str] = None,
) -> list[Path]:
    """
    Pick report files, newest first. Precedence: last N, explicit files, all, otherwise the newest one.
    Explicit files are filtered to .jsonl but are not required to exist.
    """
    if last is not None:
        if last < 1:
            raise ConfigError(f"--last must be at least 1, got {last}")
        return collect_logfiles(directory, prefix)[:last]
    if files:
        chosen = [Path(f) for f in files]
        skipped = [p for p in chosen if not is_logfile(p)]
        for p in skipped:
            logger.warning("Skipping %s: not a %s file", p, LOGFILE_SUFFIX)
        return sort_by_filename_date(p for p in chosen if is_logfile(p))
    if all_files:
        return collect_logfiles(directory, prefix)
    return collect_logfiles(directory, prefix)[:1]
