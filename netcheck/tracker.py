"""
Downtime tracker: folds an ordered stream of samples into closed outages.
States: idle (nothing pending) and tracking (first offline sample remembered).
Transitions: idle -> tracking on the first offline sample; tracking -> idle on the next online sample,
which closes the outage. An outage still open when the stream ends is never reported.
"""
from typing import Callable, Generic, Optional, TypeVar

from netcheck.model import Connectivity, InternetCheckResult

T = TypeVar("T")

Reducer = Callable[[InternetCheckResult, InternetCheckResult], Optional[T]]


class DowntimeTracker(Generic[T]):
    """Cheap to construct; create a new instance to start over."""

    def __init__(self) -> None:
        self._first_offline: Optional[InternetCheckResult] = None

    @property
    def first_offline(self) -> Optional[InternetCheckResult]:
        return self._first_offline

    @property
    def is_tracking(self) -> bool:
        return self._first_offline is not None

    def track(self, result: InternetCheckResult, reducer: Reducer) -> Optional[T]:
        """
        Feed the next sample (non-decreasing timestamps).
        When it closes an outage, returns reducer(first_offline, result); the reducer may return None to skip it.
        """
        if self._first_offline is None:
            if result.connectivity == Connectivity.OFFLINE:
                self._first_offline = result
            return None
        if result.connectivity == Connectivity.ONLINE:
            first = self._first_offline
            self._first_offline = None
            return reducer(first, result)
        return None
