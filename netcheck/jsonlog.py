"""
Append-only JSON-lines record log with size-based rotation.
Files are named {prefix}_{YYYY-MM-DD}_{index}.jsonl (local date, index from 0).
A new file is started when the day changes or the active file reached max_size.
All file state sits behind one lock held for the duration of a single call.
"""
import json
import logging
import os
import sys
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Callable, Optional, TextIO, Union

from netcheck.config import DEFAULT_FILE_PREFIX, DEFAULT_MAX_SIZE
from netcheck.errors import ConfigError, LogWriteError, WriterPoisonedError
from netcheck.model import duration_to_json, format_timestamp, utcnow

logger = logging.getLogger("netcheck.jsonlog")

LOGFILE_SUFFIX = ".jsonl"


class LogMode(Enum):
    SILENT = "silent"
    STDOUT = "stdout"
    FILE = "file"
    ALL = "all"

    @property
    def to_file(self) -> bool:
        return self in (LogMode.FILE, LogMode.ALL)

    @property
    def to_stdout(self) -> bool:
        return self in (LogMode.STDOUT, LogMode.ALL)


@dataclass
class _FileState:
    file: BinaryIO
    path: Path
    current_size: int


def _json_default(obj: Any) -> Any:
    if hasattr(obj, "to_json"):
        return obj.to_json()
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    if isinstance(obj, timedelta):
        return duration_to_json(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def logfile_name(prefix: str, day: date, index: int) -> str:
    return f"{prefix}_{day.strftime('%Y-%m-%d')}_{index}{LOGFILE_SUFFIX}"


class RotatingJsonLogger:
    """
    Record sink shared by everything that writes monitoring records.
    Build it once at startup and pass it around; it is safe to call from several threads.
    """

    def __init__(
        self,
        directory: Union[str, Path, None],
        file_prefix: str = DEFAULT_FILE_PREFIX,
        max_size: int = DEFAULT_MAX_SIZE,
        mode: LogMode = LogMode.ALL,
        stream: Optional[TextIO] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        if directory is None or str(directory) == "":
            raise ConfigError("Log directory is required, but was not set")
        if max_size <= 0:
            raise ConfigError(f"max_size must be positive, got {max_size}")
        self.directory = Path(directory)
        self.file_prefix = file_prefix or DEFAULT_FILE_PREFIX
        self.max_size = max_size
        self.mode = mode
        self._stream = stream
        self._today = today or date.today
        self._lock = threading.Lock()
        self._state: Optional[_FileState] = None
        self._poisoned = False

    def __enter__(self) -> "RotatingJsonLogger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def current_path(self) -> Optional[Path]:
        """Path of the open file, None before the first file write."""
        state = self._state
        return state.path if state else None

    def log(self, message: str, **fields: Any) -> None:
        """Write {timestamp, message, **fields} as one record."""
        record: dict[str, Any] = {"timestamp": utcnow(), "message": message}
        record.update(fields)
        self.log_record(record)

    def log_record(self, record: dict[str, Any]) -> None:
        if self.mode == LogMode.SILENT:
            return
        try:
            line = json.dumps(record, default=_json_default, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise LogWriteError(f"Could not serialise log record: {e}") from e
        if self.mode.to_file:
            self._log_file((line + "\n").encode("utf-8"))
        if self.mode.to_stdout:
            stream = self._stream or sys.stdout
            stream.write(line + "\n")
            stream.flush()

    def sync(self) -> None:
        """Flush the open file to stable storage."""
        with self._lock:
            self._check_poisoned()
            if self._state is None:
                return
            try:
                self._state.file.flush()
                os.fsync(self._state.file.fileno())
            except OSError as e:
                raise LogWriteError(f"Could not sync {self._state.path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            state, self._state = self._state, None
            if state is not None:
                self._release(state)

    def current_file_path(self) -> Path:
        """
        First index for today whose file is missing or still below max_size.
        Raises OSError when the directory cannot be inspected.
        """
        day = self._today()
        index = 0
        while True:
            path = self.directory / logfile_name(self.file_prefix, day, index)
            try:
                size = path.stat().st_size
            except FileNotFoundError:
                return path
            if size < self.max_size:
                return path
            index += 1

    def _check_poisoned(self) -> None:
        if self._poisoned:
            raise WriterPoisonedError("Log writer is unusable after an interrupted write")

    def _log_file(self, data: bytes) -> None:
        with self._lock:
            self._check_poisoned()
            try:
                self._write_locked(data)
            except BaseException as e:
                if not isinstance(e, Exception):
                    self._poisoned = True
                raise

    def _write_locked(self, data: bytes) -> None:
        try:
            target = self.current_file_path()
        except OSError as e:
            raise LogWriteError(f"Could not inspect log directory {self.directory}: {e}") from e

        state = self._state
        if state is not None and state.path == target and state.current_size < self.max_size:
            try:
                state.file.write(data)
                state.file.flush()
            except OSError as e:
                raise LogWriteError(f"Could not write to {state.path}: {e}") from e
            state.current_size += len(data)
            return

        # Nothing is committed until the record is in the new file.
        new_state = self._open(target)
        try:
            new_state.file.write(data)
            new_state.file.flush()
        except OSError as e:
            new_state.file.close()
            raise LogWriteError(f"Could not write to {target}: {e}") from e
        new_state.current_size += len(data)

        if state is not None:
            self._release(state)
        self._state = new_state
        logger.debug("Logging to %s (existing size %d bytes)", target, new_state.current_size - len(data))

    def _open(self, target: Path) -> _FileState:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LogWriteError(f"Could not create log directory {self.directory}: {e}") from e
        try:
            f = open(target, "ab")
        except OSError as e:
            raise LogWriteError(f"Could not open log file {target}: {e}") from e
        try:
            size = os.fstat(f.fileno()).st_size
        except OSError as e:
            f.close()
            raise LogWriteError(f"Could not stat log file {target}: {e}") from e
        return _FileState(file=f, path=target, current_size=size)

    @staticmethod
    def _release(state: _FileState) -> None:
        try:
            state.file.flush()
            os.fsync(state.file.fileno())
        except OSError as e:
            logger.warning("Could not sync %s before closing: %s", state.path, e)
        finally:
            state.file.close()
