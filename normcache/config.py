"""
NormCache Configuration
=======================

CacheConfig collects the collaborators and knobs of an InMemoryCache. Every
field has a default, so ``InMemoryCache()`` works out of the box and
``InMemoryCache(add_typename=False)`` overrides a single field.

Fields:
    fragment_matcher: Decides whether a record matches a fragment's type
        condition. Defaults to a HeuristicFragmentMatcher.
    data_id_from_object: Derives a record's DataId from a result object,
        returning None to store it under a generated id instead.
    add_typename: Select ``__typename`` on every object of every document.
    store_factory: Builds the confirmed store, optionally from a snapshot.
    document_cache_size: Number of transformed documents kept in the LRU
        cache used by ``InMemoryCache.transform_document``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .documents import HeuristicFragmentMatcher
from .store import default_store_factory
from .types import DataId, DataIdFromObject, FragmentMatcher, StoreFactory


def default_data_id_from_object(result: Dict[str, Any]) -> Optional[DataId]:
    """``"Typename:id"`` (or ``"Typename:_id"``) for typed objects, else None."""
    typename = result.get("__typename")
    if typename:
        if "id" in result:
            return f"{typename}:{result['id']}"
        if "_id" in result:
            return f"{typename}:{result['_id']}"
    return None


@dataclass(frozen=True)
class CacheConfig:
    fragment_matcher: FragmentMatcher = field(
        default_factory=lambda: HeuristicFragmentMatcher().match
    )
    data_id_from_object: Optional[DataIdFromObject] = default_data_id_from_object
    add_typename: bool = True
    store_factory: StoreFactory = default_store_factory
    document_cache_size: int = 1000
