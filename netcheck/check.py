"""
HTTP reachability probe (httpx, one GET per target, all targets concurrently).
Transport failures never raise: they are classified into a CheckError and stored in the sample.
"""
import asyncio
import logging
import time
from datetime import timedelta
from typing import Optional, Sequence

import httpx

from netcheck.config import TargetConfig
from netcheck.model import CheckError, ErrorKind, InternetCheckResult, Latency, TargetResult

logger = logging.getLogger("netcheck.check")

_TLS_MARKERS = ("tls", "ssl", "certificate")
_DNS_MARKERS = (
    "dns",
    "resolve",
    "name resolution",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
)
_REFUSED_MARKERS = ("refused",)
_MALFORMED_REQUEST = (httpx.UnsupportedProtocol, httpx.InvalidURL, httpx.LocalProtocolError)


def build_client(timeout_s: float) -> httpx.AsyncClient:
    """Shared client for all probes; the timeout applies per request."""
    return httpx.AsyncClient(timeout=timeout_s, follow_redirects=True)


def _error_text(exc: BaseException) -> str:
    """Lower-cased messages of exc and everything it was raised from."""
    parts = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(str(current))
        current = current.__cause__ or current.__context__
    return " | ".join(parts).lower()


def classify_error(exc: BaseException) -> CheckError:
    """
    Map a probe exception to the error taxonomy. Order matters:
    a timeout during the TLS handshake is a Timeout, not a TlsError.
    """
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return CheckError(ErrorKind.TIMEOUT)
    text = _error_text(exc)
    if any(m in text for m in _TLS_MARKERS):
        return CheckError(ErrorKind.TLS_ERROR)
    if any(m in text for m in _DNS_MARKERS):
        return CheckError(ErrorKind.DNS_FAILURE)
    if any(m in text for m in _REFUSED_MARKERS):
        return CheckError(ErrorKind.CONNECTION_REFUSED)
    if isinstance(exc, httpx.ConnectError):
        return CheckError(ErrorKind.CONNECTION_REFUSED)
    if isinstance(exc, httpx.HTTPStatusError):
        return CheckError.http_status(exc.response.status_code)
    if isinstance(exc, _MALFORMED_REQUEST):
        return CheckError(ErrorKind.INVALID_REQUEST)
    return CheckError.other(str(exc) or type(exc).__name__)


async def check_target(
    client: httpx.AsyncClient,
    target: TargetConfig,
    latency_threshold_ms: Optional[int] = None,
) -> TargetResult:
    start = time.perf_counter()
    try:
        response = await client.get(target.url)
    except Exception as e:
        latency = Latency.from_duration(timedelta(seconds=time.perf_counter() - start), latency_threshold_ms)
        error = classify_error(e)
        logger.debug("Probe %s (%s) failed: %s (%r)", target.name, target.url, error, e)
        return TargetResult(target=target.name, success=False, latency=latency, error=error)

    latency = Latency.from_duration(timedelta(seconds=time.perf_counter() - start), latency_threshold_ms)
    code = response.status_code
    if response.is_success:
        return TargetResult(target=target.name, success=True, latency=latency, status_code=code)
    logger.debug("Probe %s (%s): HTTP %d", target.name, target.url, code)
    return TargetResult(
        target=target.name,
        success=False,
        latency=latency,
        status_code=code,
        error=CheckError.http_status(code),
    )


async def check_connection(
    client: httpx.AsyncClient,
    targets: Sequence[TargetConfig],
    latency_threshold_ms: Optional[int] = None,
) -> InternetCheckResult:
    """Probe every target concurrently and fold the outcomes into one sample."""
    results = await asyncio.gather(*(check_target(client, t, latency_threshold_ms) for t in targets))
    return InternetCheckResult.from_results(results, latency_threshold_ms)
