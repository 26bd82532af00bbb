"""
NormCache - Normalized In-Memory Cache
======================================

A normalized cache for GraphQL-style result trees. Results are flattened into
one record per entity, reads and diffs rebuild trees from those records, and
optimistic patches are layered on top of confirmed data without touching it.
"""

from .broadcast import BroadcastBatch, Broadcaster
from .cache import InMemoryCache
from .config import CacheConfig, default_data_id_from_object
from .documents import (
    HeuristicFragmentMatcher,
    IntrospectionFragmentMatcher,
    add_typename_to_document,
    diff_query_against_store,
    get_fragment_query_document,
    read_query_from_store,
    write_result_to_store,
)
from .errors import (
    CacheError,
    DocumentError,
    EvictionNotSupportedError,
    MissingFieldError,
    RecordingInProgressError,
    StoreWriteError,
)
from .store import (
    Store,
    default_store_factory,
    ensure_normalized_cache,
    is_normalized_cache,
)
from .types import (
    ROOT_MUTATION,
    ROOT_QUERY,
    DiffResult,
    IdValue,
    NormalizedCache,
    OptimisticStoreItem,
    Transaction,
    Watch,
)

__all__ = [
    # Cache
    "InMemoryCache",
    "CacheConfig",
    "default_data_id_from_object",
    # Store
    "Store",
    "NormalizedCache",
    "default_store_factory",
    "ensure_normalized_cache",
    "is_normalized_cache",
    # Broadcast
    "Broadcaster",
    "BroadcastBatch",
    # Data model
    "DiffResult",
    "IdValue",
    "OptimisticStoreItem",
    "Transaction",
    "Watch",
    "ROOT_QUERY",
    "ROOT_MUTATION",
    # Default collaborators
    "HeuristicFragmentMatcher",
    "IntrospectionFragmentMatcher",
    "add_typename_to_document",
    "diff_query_against_store",
    "get_fragment_query_document",
    "read_query_from_store",
    "write_result_to_store",
    # Exceptions
    "CacheError",
    "DocumentError",
    "EvictionNotSupportedError",
    "MissingFieldError",
    "RecordingInProgressError",
    "StoreWriteError",
]
