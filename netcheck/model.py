"""
Connectivity samples and their JSON representation.
One InternetCheckResult covers every probed target at one instant.
The JSON layout matches the records written by earlier netcheck releases, so old logs stay readable.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, Optional

DEFAULT_LATENCY_THRESHOLD_MS = 500

_ISO_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


class Connectivity(Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"

    @classmethod
    def from_bool(cls, up: bool) -> "Connectivity":
        return cls.ONLINE if up else cls.OFFLINE

    def __str__(self) -> str:
        return self.value


class LatencySpeed(Enum):
    SLOW = "Slow"
    OK = "Ok"

    @classmethod
    def of(cls, results: Iterable["TargetResult"], threshold_ms: Optional[int] = None) -> "LatencySpeed":
        """Classify the mean latency of results. No results counts as OK."""
        millis = [r.latency.millis for r in results]
        if not millis:
            return cls.OK
        threshold = DEFAULT_LATENCY_THRESHOLD_MS if threshold_ms is None else threshold_ms
        return cls.SLOW if sum(millis) // len(millis) > threshold else cls.OK


class ErrorKind(Enum):
    TIMEOUT = "Timeout"
    DNS_FAILURE = "DnsFailure"
    CONNECTION_REFUSED = "ConnectionRefused"
    TLS_ERROR = "TlsError"
    HTTP_STATUS = "HttpStatus"
    INVALID_REQUEST = "InvalidRequest"
    OTHER = "Other"


@dataclass(frozen=True)
class CheckError:
    """Classified reason a target probe failed."""
    kind: ErrorKind
    status_code: Optional[int] = None  # only for HTTP_STATUS
    message: Optional[str] = None  # only for OTHER

    @classmethod
    def http_status(cls, code: int) -> "CheckError":
        return cls(ErrorKind.HTTP_STATUS, status_code=code)

    @classmethod
    def other(cls, message: str) -> "CheckError":
        return cls(ErrorKind.OTHER, message=message)

    def to_json(self) -> Any:
        if self.kind == ErrorKind.HTTP_STATUS:
            return {self.kind.value: self.status_code}
        if self.kind == ErrorKind.OTHER:
            return {self.kind.value: self.message or ""}
        return self.kind.value

    @classmethod
    def from_json(cls, data: Any) -> "CheckError":
        if isinstance(data, str):
            kind = ErrorKind(data)
            if kind in (ErrorKind.HTTP_STATUS, ErrorKind.OTHER):
                raise ValueError(f"error kind {data!r} needs a value")
            return cls(kind)
        if isinstance(data, dict) and len(data) == 1:
            (name, value), = data.items()
            kind = ErrorKind(name)
            if kind == ErrorKind.HTTP_STATUS:
                return cls.http_status(int(value))
            if kind == ErrorKind.OTHER:
                return cls.other(str(value))
        raise ValueError(f"unrecognised check error: {data!r}")

    def __str__(self) -> str:
        if self.kind == ErrorKind.HTTP_STATUS:
            return f"HTTP {self.status_code}"
        if self.kind == ErrorKind.OTHER:
            return f"Other: {self.message}"
        return self.kind.value


@dataclass(frozen=True)
class Latency:
    duration: timedelta
    speed: LatencySpeed

    @classmethod
    def from_duration(cls, duration: timedelta, threshold_ms: Optional[int] = None) -> "Latency":
        threshold = DEFAULT_LATENCY_THRESHOLD_MS if threshold_ms is None else threshold_ms
        millis = duration // timedelta(milliseconds=1)
        return cls(duration, LatencySpeed.SLOW if millis > threshold else LatencySpeed.OK)

    @property
    def millis(self) -> int:
        return self.duration // timedelta(milliseconds=1)


@dataclass(frozen=True)
class TargetResult:
    target: str
    success: bool
    latency: Latency
    status_code: Optional[int] = None
    error: Optional[CheckError] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def avg_durations(durations: Iterable[timedelta]) -> timedelta:
    total = timedelta(0)
    count = 0
    for d in durations:
        total += d
        count += 1
    if count == 0:
        return timedelta(0)
    return total / count


@dataclass(frozen=True)
class InternetCheckResult:
    """One connectivity sample. The timestamp is fixed at creation."""
    connectivity: Connectivity
    speed: LatencySpeed
    results: tuple[TargetResult, ...]
    avg: timedelta
    timestamp: datetime = field(default_factory=utcnow)

    @classmethod
    def from_results(
        cls,
        results: Iterable[TargetResult],
        latency_threshold_ms: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ) -> "InternetCheckResult":
        """Derive connectivity (any target up), speed and mean latency from per-target results."""
        results = tuple(results)
        return cls(
            connectivity=Connectivity.from_bool(any(r.success for r in results)),
            speed=LatencySpeed.of(results, latency_threshold_ms),
            results=results,
            avg=avg_durations(r.latency.duration for r in results),
            timestamp=timestamp or utcnow(),
        )

    @property
    def is_online(self) -> bool:
        return self.connectivity == Connectivity.ONLINE

    def get_time(self) -> str:
        return self.timestamp.astimezone().strftime("%d.%m.%y - %H:%M")

    def to_json(self) -> dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "connectivity": self.connectivity.value,
            "speed": self.speed.value,
            "results": [_target_to_json(r) for r in self.results],
            "avg": duration_to_json(self.avg),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "InternetCheckResult":
        """Raises KeyError, TypeError, ValueError or OverflowError when data is not a sample."""
        return cls(
            connectivity=Connectivity(data["connectivity"]),
            speed=LatencySpeed(data.get("speed", LatencySpeed.OK.value)),
            results=tuple(_target_from_json(r) for r in data.get("results", [])),
            avg=duration_from_json(data.get("avg", 0)),
            timestamp=parse_timestamp(data["timestamp"]),
        )


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; extra fractional digits (nanoseconds) are truncated."""
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    text = _ISO_FRACTION_RE.sub(r".\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def duration_to_json(d: timedelta) -> dict[str, int]:
    secs = d.days * 86400 + d.seconds
    return {"secs": secs, "nanos": d.microseconds * 1000}


def duration_from_json(data: Any) -> timedelta:
    if isinstance(data, dict):
        return timedelta(seconds=int(data["secs"]), microseconds=int(data.get("nanos", 0)) // 1000)
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return timedelta(seconds=data)
    raise ValueError(f"unrecognised duration: {data!r}")


def _target_to_json(r: TargetResult) -> dict[str, Any]:
    return {
        "target": r.target,
        "success": r.success,
        "latency": {"duration": duration_to_json(r.latency.duration), "speed": r.latency.speed.value},
        "status_code": r.status_code,
        "error": r.error.to_json() if r.error is not None else None,
    }


def _target_from_json(data: dict[str, Any]) -> TargetResult:
    latency = data["latency"]
    error = data.get("error")
    status = data.get("status_code")
    return TargetResult(
        target=str(data["target"]),
        success=bool(data["success"]),
        latency=Latency(duration_from_json(latency["duration"]), LatencySpeed(latency["speed"])),
        status_code=int(status) if status is not None else None,
        error=CheckError.from_json(error) if error is not None else None,
    )
