"""
Copy-on-Write Watch Set
=======================

This module provides CoWWatchSet and SharedWatchArray for watch storage with
copy-on-write semantics.

A broadcast iterates over a snapshot of the registered watches. Taking a
snapshot shares the backing array instead of copying it; the array is only
copied when the set is modified while a snapshot is still shared. Watches
that subscribe or unsubscribe from inside a callback therefore never disturb
the broadcast in progress.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..types import Watch


@dataclass
class SharedWatchArray:
    """Shared watch array for CoW."""

    watches: List[Watch]


class CoWWatchSet:
    """
    Copy-on-Write watch set.

    Membership is by identity, insertion order is preserved, and snapshots
    are never mutated after they are handed out.
    """

    __slots__ = ("_shared_ref", "_own_watches", "_is_shared")

    def __init__(self, shared_ref: Optional[SharedWatchArray] = None):
        self._shared_ref = shared_ref
        self._own_watches: Optional[List[Watch]] = None
        self._is_shared = shared_ref is not None

    def _writable(self) -> List[Watch]:
        if self._is_shared:
            # First modification since the array was shared - copy it
            self._own_watches = self._shared_ref.watches.copy()
            self._is_shared = False
            self._shared_ref = None

        if self._own_watches is None:
            self._own_watches = []

        return self._own_watches

    def add(self, watch: Watch) -> None:
        """Add watch, copying the shared array if necessary."""
        self._writable().append(watch)

    def remove(self, watch: Watch) -> bool:
        """Remove this exact watch. Returns False if it was not registered."""
        watches = self._current()
        if not any(existing is watch for existing in watches):
            return False
        writable = self._writable()
        writable[:] = [existing for existing in writable if existing is not watch]
        return True

    def _current(self) -> List[Watch]:
        if self._is_shared:
            return self._shared_ref.watches
        return self._own_watches or []

    def snapshot(self) -> Sequence[Watch]:
        """Share the current array; later modifications copy it first."""
        if not self._is_shared:
            self._shared_ref = SharedWatchArray(self._own_watches or [])
            self._own_watches = None
            self._is_shared = True
        return self._shared_ref.watches

    def __len__(self) -> int:
        return len(self._current())

    def __contains__(self, watch: Watch) -> bool:
        return any(existing is watch for existing in self._current())
