"""
NormCache InMemoryCache - Normalized Cache Orchestration
========================================================

InMemoryCache owns the confirmed Store, the ordered list of optimistic
patches and the watch registry. It turns result trees into records and back
through the collaborators configured in CacheConfig and notifies every watch
after each successful mutation.

Basic Usage
-----------

```python
from graphql import parse
from normcache import InMemoryCache

QUERY = parse("{ me { id name } }")

cache = InMemoryCache()
cache.write_query(QUERY, {"me": {"__typename": "Person", "id": 1, "name": "Ann"}})
cache.read_query(QUERY)
# {"me": {"id": 1, "name": "Ann", "__typename": "Person"}}
```

Optimistic Updates
------------------

An optimistic transaction is recorded against the data currently visible to
optimistic readers (confirmed data plus earlier patches). The captured writes
become a named patch:

```python
cache.record_optimistic_transaction(
    lambda proxy: proxy.write_query(
        QUERY, {"me": {"__typename": "Person", "id": 1, "name": "Bea"}}
    ),
    "rename-1",
)
cache.read_query(QUERY, optimistic=True)   # name == "Bea"
cache.read_query(QUERY)                    # name == "Ann"
cache.remove_optimistic("rename-1")
```

Patches form an ordered log: each one was computed with the earlier ones
visible. Removing a patch therefore throws away the data of all remaining
patches and replays their transactions in order against the corrected state.

Watches
-------

``watch()`` registers a query and a callback. Every mutation (write, reset,
optimistic record or removal) re-diffs every watch and calls its callback,
whether or not the watched data changed.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from cachetools import LRUCache
from graphql import parse
from graphql.language import DocumentNode, print_ast

from .broadcast import Broadcaster
from .config import CacheConfig
from .documents import (
    add_typename_to_document,
    diff_query_against_store,
    get_fragment_query_document,
    read_query_from_store,
    write_result_to_store,
)
from .errors import EvictionNotSupportedError
from .store import ensure_normalized_cache
from .types import (
    ROOT_QUERY,
    DataId,
    DiffResult,
    NormalizedCache,
    NormalizedCacheObject,
    OptimisticStoreItem,
    Watch,
)

Document = Union[DocumentNode, str]
TransactionFn = Callable[["InMemoryCache"], None]


class InMemoryCache:
    """
    Normalized in-memory cache with optimistic patches and watches.

    Args:
        config: Base configuration, CacheConfig() when omitted.
        **overrides: CacheConfig fields replacing the ones in config.

    Not thread safe: all calls on one instance must be serialized by the
    caller.
    """

    def __init__(self, config: Optional[CacheConfig] = None, **overrides: Any):
        config = config or CacheConfig()
        self.config = replace(config, **overrides) if overrides else config
        self.add_typename = self.config.add_typename

        self._data: NormalizedCache = self.config.store_factory()
        self._optimistic: List[OptimisticStoreItem] = []
        # Set while an optimistic transaction records; reads and writes target it
        self._transaction_view: Optional[NormalizedCache] = None
        self._transformed_documents = LRUCache(maxsize=self.config.document_cache_size)
        self._broadcaster = Broadcaster(self._diff_watch)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def restore(
        self, data: Optional[Union[NormalizedCache, NormalizedCacheObject]]
    ) -> "InMemoryCache":
        """
        Replace the confirmed data.

        A live NormalizedCache is adopted as is; a snapshot dict is copied
        into a new store built by the configured store factory. Optimistic
        patches are kept.
        """
        if data is not None:
            self._data = ensure_normalized_cache(data, self.config.store_factory)
            logging.debug(f"Cache restored from {type(data).__name__}")
        return self

    def extract(
        self, optimistic: bool = False, serializable: bool = True
    ) -> Union[NormalizedCacheObject, NormalizedCache]:
        """
        Return the confirmed data, or confirmed data with every optimistic
        patch applied when optimistic is set and patches exist.

        With serializable=False the live store (or overlay store) is returned
        instead of a materialized dict.
        """
        data = self._view(optimistic)
        return data.to_object() if serializable else data

    def _view(self, optimistic: bool) -> NormalizedCache:
        if self._transaction_view is not None:
            return self._transaction_view
        if optimistic and self._optimistic:
            return self._data.overlay(*(item.data for item in self._optimistic))
        return self._data

    def _target(self) -> NormalizedCache:
        if self._transaction_view is not None:
            return self._transaction_view
        return self._data

    # ------------------------------------------------------------------
    # Reading and writing
    # ------------------------------------------------------------------

    def read(
        self,
        query: Document,
        variables: Optional[Dict[str, Any]] = None,
        root_id: Optional[DataId] = None,
        optimistic: bool = False,
        previous_result: Any = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Read a complete result for query.

        Returns None when root_id is given and the confirmed store has no such
        record. The check deliberately ignores optimistic patches, even for
        optimistic reads: a patch can't create a root that was never
        confirmed.

        Raises:
            MissingFieldError: If the store lacks a field the query selects.
        """
        if root_id is not None and self._data.get(root_id) is None:
            return None

        return read_query_from_store(
            self._view(optimistic),
            self.transform_document(query),
            variables=variables,
            root_id=root_id,
            fragment_matcher=self.config.fragment_matcher,
            previous_result=previous_result,
        )

    def write(
        self,
        query: Document,
        result: Dict[str, Any],
        data_id: DataId = ROOT_QUERY,
        variables: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Normalize result into the store under data_id, then broadcast.

        The records are collected in a recording first and applied only once
        normalization succeeds, so a raising write leaves the store untouched.
        """
        document = self.transform_document(query)
        target = self._target()
        changes = target.record(
            lambda: write_result_to_store(
                data_id,
                result,
                document,
                target,
                variables=variables,
                data_id_from_object=self.config.data_id_from_object,
                fragment_matcher=self.config.fragment_matcher,
            )
        )
        for changed_id, record in changes.items():
            target.set(changed_id, record)
        self.broadcast_watches()

    def diff(
        self,
        query: Document,
        variables: Optional[Dict[str, Any]] = None,
        optimistic: bool = False,
        return_partial_data: bool = True,
        previous_result: Any = None,
    ) -> DiffResult:
        """Diff query against the store. Never broadcasts."""
        return diff_query_against_store(
            self._view(optimistic),
            self.transform_document(query),
            variables=variables,
            return_partial_data=return_partial_data,
            fragment_matcher=self.config.fragment_matcher,
            previous_result=previous_result,
        )

    # ------------------------------------------------------------------
    # Watches
    # ------------------------------------------------------------------

    def watch(
        self,
        query: Document,
        callback: Callable[[DiffResult], None],
        variables: Optional[Dict[str, Any]] = None,
        optimistic: bool = False,
        previous_result: Optional[Callable[[], Any]] = None,
    ) -> Callable[[], None]:
        """
        Call callback with a fresh diff of query after every mutation.

        Returns a function that removes this watch.
        """
        return self._broadcaster.watch(
            Watch(
                query=query,
                callback=callback,
                variables=variables,
                optimistic=optimistic,
                previous_result=previous_result or (lambda: None),
            )
        )

    def _diff_watch(self, watch: Watch) -> DiffResult:
        return self.diff(
            watch.query,
            variables=watch.variables,
            optimistic=watch.optimistic,
            previous_result=watch.previous_result(),
        )

    def broadcast_watches(self) -> None:
        # Every watch is invalidated on every change
        self._broadcaster.broadcast()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def evict(self, *args: Any, **kwargs: Any) -> None:
        raise EvictionNotSupportedError()

    def reset(self) -> None:
        """
        Drop all confirmed data and broadcast.

        Raises:
            RecordingInProgressError: If called from inside an optimistic
                transaction.
        """
        self._target().clear()
        self.broadcast_watches()

    def perform_transaction(self, transaction: TransactionFn) -> None:
        transaction(self)

    # ------------------------------------------------------------------
    # Optimistic layer
    # ------------------------------------------------------------------

    def record_optimistic_transaction(self, transaction: TransactionFn, id: str) -> None:
        """
        Run transaction against the current optimistic view and keep the
        writes it made as the patch named id.

        Broadcasts requested while the transaction runs are folded into one
        broadcast after the patch is added. If the transaction raises, no
        patch is added and nothing is broadcast.
        """
        view = self._view(optimistic=True)
        previous_view = self._transaction_view

        with self._broadcaster.batch():
            self._transaction_view = view
            try:
                patch = view.record(lambda: transaction(self))
            finally:
                self._transaction_view = previous_view

            self._optimistic.append(OptimisticStoreItem(id, transaction, patch))
            logging.debug(f"Recorded optimistic patch {id} touching {len(patch)} records")
            self.broadcast_watches()

    def remove_optimistic(self, id: str) -> None:
        """
        Remove the patch named id and rebuild the remaining ones.

        Remaining patches were computed with the removed one visible, so their
        data is discarded and their transactions are replayed in order.
        Replay runs against confirmed data plus the replayed patches, also when
        called from inside an optimistic transaction.
        """
        previous = self._optimistic
        previous_view = self._transaction_view
        to_perform = [item for item in previous if item.id != id]

        with self._broadcaster.batch():
            self._optimistic = []
            self._transaction_view = None
            try:
                for item in to_perform:
                    self.record_optimistic_transaction(item.transaction, item.id)
            except Exception:
                self._optimistic = previous
                raise
            finally:
                self._transaction_view = previous_view

            logging.debug(
                f"Removed optimistic patch {id}, replayed {len(to_perform)} patches"
            )
            self.broadcast_watches()

    # ------------------------------------------------------------------
    # Documents and data proxy helpers
    # ------------------------------------------------------------------

    def transform_document(self, document: Document) -> DocumentNode:
        """
        Parse document if needed and add ``__typename`` selections when
        add_typename is configured. Results are kept in an LRU cache keyed by
        the document source.
        """
        key = document if isinstance(document, str) else print_ast(document)
        cached = self._transformed_documents.get(key)
        if cached is not None:
            return cached

        transformed = _parse(document)
        if self.add_typename:
            transformed = add_typename_to_document(transformed)
        self._transformed_documents[key] = transformed
        return transformed

    def read_query(
        self,
        query: Document,
        variables: Optional[Dict[str, Any]] = None,
        optimistic: bool = False,
    ) -> Optional[Dict[str, Any]]:
        return self.read(query, variables=variables, optimistic=optimistic)

    def read_fragment(
        self,
        fragment: Document,
        id: DataId,
        fragment_name: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
        optimistic: bool = False,
    ) -> Optional[Dict[str, Any]]:
        return self.read(
            get_fragment_query_document(_parse(fragment), fragment_name),
            variables=variables,
            root_id=id,
            optimistic=optimistic,
        )

    def write_query(
        self,
        query: Document,
        data: Dict[str, Any],
        variables: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.write(query, data, data_id=ROOT_QUERY, variables=variables)

    def write_fragment(
        self,
        fragment: Document,
        id: DataId,
        data: Dict[str, Any],
        fragment_name: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.write(
            get_fragment_query_document(_parse(fragment), fragment_name),
            data,
            data_id=id,
            variables=variables,
        )


def _parse(document: Document) -> DocumentNode:
    return parse(document) if isinstance(document, str) else document
