"""Unit tests for the downtime tracker (netcheck.tracker)."""
import pytest
from netcheck.tracker import DowntimeTracker


@pytest.fixture
def tracker():
    return DowntimeTracker()


def pair(start, end):
    return (start, end)


def run(tracker, samples, reducer=pair):
    return [o for o in (tracker.track(s, reducer) for s in samples) if o is not None]


def test_initial_state(tracker):
    assert tracker.is_tracking is False
    assert tracker.first_offline is None


def test_online_only_emits_nothing(tracker, sample):
    assert run(tracker, [sample(True, 0), sample(True, 1), sample(True, 2)]) == []
    assert tracker.is_tracking is False


def test_online_offline_online(tracker, sample):
    up, down, back = sample(True, 0), sample(False, 1), sample(True, 5)
    outages = run(tracker, [up, down, back])
    assert outages == [(down, back)]
    start, end = outages[0]
    assert start is down and end is back
    assert (end.timestamp - start.timestamp).total_seconds() == 240


def test_starts_at_first_offline_sample(tracker, sample):
    first, second, back = sample(False, 0), sample(False, 1), sample(True, 2)
    outages = run(tracker, [first, second, back])
    assert len(outages) == 1
    assert outages[0][0] is first


def test_never_recovered_is_dropped(tracker, sample):
    down = sample(False, 1)
    assert run(tracker, [sample(True, 0), down]) == []
    assert tracker.first_offline is down


def test_single_sample(tracker, sample):
    assert run(tracker, [sample(False, 0)]) == []


def test_reducer_can_veto(tracker, sample):
    down, back = sample(False, 0), sample(True, 0)
    assert run(tracker, [down, back], reducer=lambda s, e: None) == []
    # state still reset: a new outage starts fresh
    again, back2 = sample(False, 1), sample(True, 3)
    assert run(tracker, [again, back2]) == [(again, back2)]


def test_multiple_outages(tracker, sample):
    seq = [sample(True, 0), sample(False, 1), sample(True, 2), sample(False, 3), sample(False, 4), sample(True, 6)]
    outages = run(tracker, seq)
    assert [(s.timestamp.minute, e.timestamp.minute) for s, e in outages] == [(1, 2), (3, 6)]


def test_new_instance_resets(sample):
    t = DowntimeTracker()
    t.track(sample(False, 0), pair)
    assert t.is_tracking
    assert DowntimeTracker().is_tracking is False
