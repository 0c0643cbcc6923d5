"""Shared fixtures: sample factory and log line writer."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from netcheck.model import InternetCheckResult, Latency, TargetResult

BASE_TIME = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


def make_sample(online: bool, minute: float = 0, latency_ms: int = 40) -> InternetCheckResult:
    results = [
        TargetResult(
            target="Google",
            success=online,
            latency=Latency.from_duration(timedelta(milliseconds=latency_ms)),
            status_code=204 if online else None,
        ),
    ]
    return InternetCheckResult.from_results(results, timestamp=BASE_TIME + timedelta(minutes=minute))


def write_log(path, samples, message="check"):
    with open(path, "w", encoding="utf-8") as f:
        for s in samples:
            record = {"timestamp": s.to_json()["timestamp"], "message": message, "result": s.to_json()}
            f.write(json.dumps(record) + "\n")
    return path


@pytest.fixture
def sample():
    return make_sample


@pytest.fixture
def logfile_writer():
    return write_log


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path, monkeypatch):
    monkeypatch.setenv("NETCHECK_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("NETCHECK_LOG_LEVEL", raising=False)
    monkeypatch.delenv("NETCHECK_DEBUG", raising=False)
