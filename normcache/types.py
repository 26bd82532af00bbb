"""
NormCache Types
===============

Shared data model for the normalized cache.

A normalized cache flattens result trees into one record per entity. Records
are keyed by a DataId (usually ``"Typename:id"``), and fields that hold other
entities store an IdValue reference instead of the nested object. The whole
cache can be materialized as a NormalizedCacheObject, a flat dict that is
JSON serializable whenever the stored scalars are.

Tombstones
----------

Inside recorded buffers and optimistic patches a key that maps to ``None``
means "deleted in this layer". That is different from an absent key, which
means "not touched, look in the layer below".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

DataId = str

#: Field key -> stored value. Values are scalars, IdValue references,
#: JSON blobs or lists of those.
StoreObject = Dict[str, Any]

#: DataId -> record, or None for a tombstone.
NormalizedCacheObject = Dict[DataId, Optional[StoreObject]]

ROOT_QUERY = "ROOT_QUERY"
ROOT_MUTATION = "ROOT_MUTATION"


@dataclass(frozen=True)
class IdValue:
    """Reference from a field to another record in the store."""

    id: DataId
    generated: bool = False
    typename: Optional[str] = None


@dataclass(frozen=True)
class DiffResult:
    """Result of diffing a query against the store."""

    result: Any
    complete: bool = True


class NormalizedCache(ABC):
    """
    Interface used to access, set and remove StoreObjects.

    Anything implementing this interface can be handed to
    ``InMemoryCache.restore`` as a live store; plain dicts are treated as
    snapshots and copied into a new store.
    """

    @abstractmethod
    def get(self, data_id: DataId) -> Optional[StoreObject]:
        pass

    @abstractmethod
    def set(self, data_id: DataId, value: Optional[StoreObject]) -> None:
        pass

    @abstractmethod
    def delete(self, data_id: DataId) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def to_object(self) -> NormalizedCacheObject:
        """Return a dict with the contents of the store."""
        pass

    @abstractmethod
    def overlay(self, *patches: NormalizedCacheObject) -> "NormalizedCache":
        """Return a store that reads patches first, then this store."""
        pass

    @abstractmethod
    def record(self, transaction: Callable[[], None]) -> NormalizedCacheObject:
        """Capture all changes made to the store while transaction runs."""
        pass


class Transaction:
    """
    Re-invocable optimistic transaction.

    Boxes a function together with the inputs it was created with, so that
    replaying it after an earlier patch is removed re-executes exactly the
    same command against the new state. The cache is passed as the first
    argument on every call.

    Example:
        tx = Transaction(lambda proxy, data: proxy.write_query(QUERY, data), data)
        cache.record_optimistic_transaction(tx, "mutation-1")
    """

    __slots__ = ("fn", "args", "kwargs")

    def __init__(self, fn: Callable[..., None], *args: Any, **kwargs: Any):
        self.fn = fn
        self.args: Tuple[Any, ...] = args
        self.kwargs: Dict[str, Any] = kwargs

    def __call__(self, proxy: Any) -> None:
        self.fn(proxy, *self.args, **self.kwargs)

    def __repr__(self) -> str:
        name = getattr(self.fn, "__name__", repr(self.fn))
        return f"Transaction({name}, args={self.args!r}, kwargs={self.kwargs!r})"


@dataclass(frozen=True)
class OptimisticStoreItem:
    """A named speculative patch and the transaction that produced it."""

    id: str
    transaction: Callable[[Any], None]
    data: NormalizedCacheObject


@dataclass(frozen=True, eq=False)
class Watch:
    """
    Standing subscription to a query.

    Compared by identity so that unsubscribing removes exactly the entry that
    was registered, even if another watch has identical options.
    """

    query: Any
    callback: Callable[[DiffResult], None]
    variables: Optional[Dict[str, Any]] = None
    optimistic: bool = False
    previous_result: Callable[[], Any] = field(default=lambda: None)


FragmentMatchResult = Union[bool, str]
FragmentMatcher = Callable[[Optional[str], str], FragmentMatchResult]
DataIdFromObject = Callable[[Dict[str, Any]], Optional[DataId]]
StoreFactory = Callable[..., NormalizedCache]

__all__ = [
    "DataId",
    "StoreObject",
    "NormalizedCacheObject",
    "ROOT_QUERY",
    "ROOT_MUTATION",
    "IdValue",
    "DiffResult",
    "NormalizedCache",
    "Transaction",
    "OptimisticStoreItem",
    "Watch",
    "FragmentMatchResult",
    "FragmentMatcher",
    "DataIdFromObject",
    "StoreFactory",
]
