"""
NormCache Store - Layered Normalized Record Storage
===================================================

This module provides Store, the default NormalizedCache implementation, and the
helpers used to turn snapshots into live stores.

Layers
------

A Store resolves a lookup by walking its layers from the top down and
returning the first layer that has the key:

1. active recordings, innermost first
2. the overlay (patches merged left to right, later patches win)
3. the store's own data
4. the parent store it was overlaid on, if any

A key mapped to ``None`` is a tombstone: it stops the walk and reads as
deleted. Absent keys fall through.

Basic Usage
-----------

```python
store = Store({"Person:1": {"name": "Ann"}})

optimistic = store.overlay({"Person:1": {"name": "Bea"}})
optimistic.get("Person:1")  # {"name": "Bea"}
store.get("Person:1")       # {"name": "Ann"}, never mutated by the overlay

patch = store.record(lambda: store.delete("Person:1"))
patch                       # {"Person:1": None}
store.get("Person:1")       # {"name": "Ann"}, recordings don't touch data
```

Recordings nest. A nested recording reads through the enclosing one, and its
buffer is returned to the caller instead of being merged upward.
"""

import logging
from typing import Callable, Iterator, List, Optional, Union

from .errors import RecordingInProgressError
from .types import DataId, NormalizedCache, NormalizedCacheObject, StoreObject


class Store(NormalizedCache):
    """
    Copy-on-write normalized store with overlay and recording support.

    Attributes:
        _data: Records owned by this store. For an overlaid store this is its
            own patch layer, the parent is never written to.
        _overlay: Merged overlay patches, or None when not overlaid.
        _base: Read-only parent store, or None for a root store.
        _recordings: Stack of active recording buffers.
    """

    def __init__(
        self,
        data: Optional[NormalizedCacheObject] = None,
        overlay: Optional[NormalizedCacheObject] = None,
        base: Optional[NormalizedCache] = None,
    ):
        self._data: NormalizedCacheObject = dict(data) if data else {}
        self._overlay: Optional[NormalizedCacheObject] = (
            dict(overlay) if overlay is not None else None
        )
        self._base = base
        self._recordings: List[NormalizedCacheObject] = []

    @property
    def is_recording(self) -> bool:
        return bool(self._recordings)

    def _layers(self) -> Iterator[NormalizedCacheObject]:
        """Own layers, top-down."""
        yield from reversed(self._recordings)
        if self._overlay is not None:
            yield self._overlay
        yield self._data

    def get(self, data_id: DataId) -> Optional[StoreObject]:
        for layer in self._layers():
            if data_id in layer:
                return layer[data_id]
        if self._base is not None:
            return self._base.get(data_id)
        return None

    def set(self, data_id: DataId, value: Optional[StoreObject]) -> None:
        if self._recordings:
            self._recordings[-1][data_id] = value
            return

        self._data[data_id] = value
        if self._overlay is not None and data_id in self._overlay:
            # Stale overlay entry would shadow the value just written
            del self._overlay[data_id]

    def delete(self, data_id: DataId) -> None:
        self.set(data_id, None)

    def clear(self) -> None:
        if self._recordings:
            raise RecordingInProgressError()

        self._data = {}
        self._overlay = None
        self._base = None
        logging.debug("Store cleared")

    def to_object(self) -> NormalizedCacheObject:
        result = self._base.to_object() if self._base is not None else {}
        for layer in reversed(list(self._layers())):
            result.update(layer)
        return {data_id: value for data_id, value in result.items() if value is not None}

    def overlay(self, *patches: NormalizedCacheObject) -> "Store":
        merged: NormalizedCacheObject = {}
        # Recording buffers are popped later; the overlay keeps what they hold now
        for recording in self._recordings:
            merged.update(recording)
        for patch in patches:
            merged.update(patch)
        return Store(overlay=merged, base=self)

    def record(self, transaction: Callable[[], None]) -> NormalizedCacheObject:
        recorded: NormalizedCacheObject = {}
        self._recordings.append(recorded)
        try:
            transaction()
        finally:
            self._recordings.pop()
        return recorded

    def __repr__(self) -> str:
        layers = len(self._recordings)
        return (
            f"Store(records={len(self._data)}, "
            f"overlaid={self._overlay is not None}, recordings={layers})"
        )


def default_store_factory(seed: Optional[NormalizedCacheObject] = None) -> Store:
    return Store(seed)


def is_normalized_cache(
    store: Union[NormalizedCache, NormalizedCacheObject],
) -> bool:
    """Tell a live store apart from a plain snapshot dict."""
    return isinstance(store, NormalizedCache)


def ensure_normalized_cache(
    store: Union[NormalizedCache, NormalizedCacheObject],
    store_factory: Callable[
        [Optional[NormalizedCacheObject]], NormalizedCache
    ] = default_store_factory,
) -> NormalizedCache:
    """
    Return store unchanged if it is already a live store, otherwise build one
    from the snapshot with store_factory.
    """
    if is_normalized_cache(store):
        return store
    return store_factory(store)
