"""Unit tests for the watch registry and broadcast batching."""

import pytest

from normcache import Broadcaster, DiffResult, Watch
from normcache.util import CoWWatchSet


def make_broadcaster():
    """Broadcaster whose diff echoes the watch's query."""
    return Broadcaster(lambda watch: DiffResult(result=watch.query))


class TestCoWWatchSet:
    """Copy-on-write watch registry."""

    def test_add_and_membership(self):
        watches = CoWWatchSet()
        watch = Watch(query="q", callback=print)

        watches.add(watch)

        assert len(watches) == 1
        assert watch in watches

    def test_membership_is_by_identity(self):
        watches = CoWWatchSet()
        first = Watch(query="q", callback=print)
        twin = Watch(query="q", callback=print)
        watches.add(first)
        watches.add(twin)

        assert watches.remove(twin)

        assert first in watches
        assert twin not in watches
        assert not watches.remove(twin)

    def test_snapshot_is_stable_under_modification(self):
        watches = CoWWatchSet()
        first = Watch(query="a", callback=print)
        second = Watch(query="b", callback=print)
        watches.add(first)

        snapshot = watches.snapshot()
        watches.add(second)
        watches.remove(first)

        assert list(snapshot) == [first]
        assert list(watches.snapshot()) == [second]

    def test_empty_snapshot(self):
        assert list(CoWWatchSet().snapshot()) == []


@pytest.mark.unit
@pytest.mark.broadcast
def test_broadcast_calls_every_watch_with_its_own_diff():
    broadcaster = make_broadcaster()
    received = []
    broadcaster.watch(Watch(query="a", callback=received.append))
    broadcaster.watch(Watch(query="b", callback=received.append))

    broadcaster.broadcast()

    assert [diff.result for diff in received] == ["a", "b"]


@pytest.mark.unit
@pytest.mark.broadcast
def test_unsubscribe_removes_only_that_watch():
    broadcaster = make_broadcaster()
    received = []
    unsubscribe = broadcaster.watch(Watch(query="a", callback=received.append))
    broadcaster.watch(Watch(query="a", callback=received.append))

    unsubscribe()
    broadcaster.broadcast()

    assert len(broadcaster) == 1
    assert len(received) == 1


@pytest.mark.unit
@pytest.mark.broadcast
def test_unsubscribing_during_broadcast_does_not_skip_others():
    broadcaster = make_broadcaster()
    calls = []
    unsubscribers = []

    def first(diff):
        calls.append("first")
        unsubscribers[0]()

    unsubscribers.append(broadcaster.watch(Watch(query="a", callback=first)))
    broadcaster.watch(Watch(query="b", callback=lambda diff: calls.append("second")))

    broadcaster.broadcast()
    broadcaster.broadcast()

    assert calls == ["first", "second", "second"]


@pytest.mark.unit
@pytest.mark.broadcast
def test_batch_defers_broadcasts_and_emits_once():
    broadcaster = make_broadcaster()
    received = []
    broadcaster.watch(Watch(query="a", callback=received.append))

    with broadcaster.batch():
        broadcaster.broadcast()
        broadcaster.broadcast()
        assert broadcaster.is_batching
        assert received == []

    assert len(received) == 1
    assert not broadcaster.is_batching


@pytest.mark.unit
@pytest.mark.broadcast
def test_nested_batches_emit_at_the_outermost_exit():
    broadcaster = make_broadcaster()
    received = []
    broadcaster.watch(Watch(query="a", callback=received.append))

    with broadcaster.batch():
        with broadcaster.batch():
            broadcaster.broadcast()
        assert received == []
        broadcaster.broadcast()

    assert len(received) == 1


@pytest.mark.unit
@pytest.mark.broadcast
def test_batch_without_broadcasts_emits_nothing():
    broadcaster = make_broadcaster()
    received = []
    broadcaster.watch(Watch(query="a", callback=received.append))

    with broadcaster.batch():
        pass

    assert received == []


@pytest.mark.unit
@pytest.mark.broadcast
def test_batch_exiting_with_an_exception_drops_the_broadcast():
    broadcaster = make_broadcaster()
    received = []
    broadcaster.watch(Watch(query="a", callback=received.append))

    with pytest.raises(RuntimeError):
        with broadcaster.batch():
            broadcaster.broadcast()
            raise RuntimeError("failed mutation")

    assert received == []
    assert not broadcaster.is_batching

    broadcaster.broadcast()
    assert len(received) == 1


@pytest.mark.unit
@pytest.mark.broadcast
def test_callback_errors_propagate():
    broadcaster = make_broadcaster()

    def failing(diff):
        raise ValueError("callback failed")

    broadcaster.watch(Watch(query="a", callback=failing))

    with pytest.raises(ValueError, match="callback failed"):
        broadcaster.broadcast()
