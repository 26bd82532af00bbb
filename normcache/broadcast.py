"""
NormCache Broadcast - Watch Registry and Change Notification
============================================================

The Broadcaster keeps every active watch and, whenever the cache changes,
recomputes each watch's diff and hands it to the watch's callback.

There is no dependency tracking: every watch is recomputed on every mutation,
whether or not its data changed. Callbacks may be notified with a result that
is identical to the previous one, but never miss a change.

Batching
--------

Composite mutations (recording an optimistic transaction that performs
several writes, removing an optimistic patch and replaying the rest) wrap
their work in ``broadcaster.batch()``. Broadcasts requested inside a batch are
deferred and emitted once when the outermost batch exits normally. If the
batch exits with an exception the pending broadcast is dropped, so a failed
mutation never notifies anyone.
"""

import logging
from typing import Callable

from .types import DiffResult, Watch
from .util import CoWWatchSet


class BroadcastBatch:
    """Defers broadcasts and emits a single one when the outermost batch exits."""

    def __init__(self, broadcaster: "Broadcaster"):
        self.broadcaster = broadcaster
        self._is_outermost = False

    def __enter__(self):
        self._is_outermost = self.broadcaster._depth == 0
        self.broadcaster._depth += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        broadcaster = self.broadcaster
        broadcaster._depth -= 1
        if not self._is_outermost:
            return

        pending = broadcaster._pending
        broadcaster._pending = False
        if pending and exc_type is None:
            broadcaster.broadcast()


class Broadcaster:
    """
    Registry of active watches.

    Args:
        diff: Computes the current DiffResult for a watch. The cache passes
            its own diff bound to the watch's query, variables, optimistic
            flag and previous result.
    """

    def __init__(self, diff: Callable[[Watch], DiffResult]):
        self._diff = diff
        self._watches = CoWWatchSet()
        self._depth = 0
        self._pending = False

    def watch(self, watch: Watch) -> Callable[[], None]:
        """Register watch and return a callable that unregisters it."""
        self._watches.add(watch)

        def unsubscribe() -> None:
            self._watches.remove(watch)

        return unsubscribe

    def batch(self) -> BroadcastBatch:
        return BroadcastBatch(self)

    @property
    def is_batching(self) -> bool:
        return self._depth > 0

    def broadcast(self) -> None:
        """Recompute and deliver the diff of every registered watch."""
        if self._depth:
            self._pending = True
            return

        watches = self._watches.snapshot()
        logging.debug(f"Broadcasting to {len(watches)} watches")
        for watch in watches:
            watch.callback(self._diff(watch))

    def __len__(self) -> int:
        return len(self._watches)

    def __contains__(self, watch: Watch) -> bool:
        return watch in self._watches
