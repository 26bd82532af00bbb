"""
NormCache Documents - Default Collaborators
===========================================

Default implementations of the collaborators the cache delegates tree walking
to. They work on graphql-core document ASTs:

- write_result_to_store: normalizes a result tree into records
- read_query_from_store / diff_query_against_store: rebuild results
- HeuristicFragmentMatcher / IntrospectionFragmentMatcher: type conditions
- add_typename_to_document: selects ``__typename`` on every object
- get_fragment_query_document: turns fragments into a query

Any of them can be replaced through CacheConfig.
"""

from .fragment_matcher import (
    HEURISTIC,
    HeuristicFragmentMatcher,
    IntrospectionFragmentMatcher,
)
from .read import diff_query_against_store, read_query_from_store, reuse_previous_result
from .transform import add_typename_to_document
from .utils import (
    create_fragment_map,
    get_default_values,
    get_fragment_definitions,
    get_fragment_query_document,
    get_main_definition,
    get_operation_definition,
    result_key_name_from_field,
    should_include,
    store_key_name_from_field,
)
from .write import merge_with_generated, write_result_to_store

__all__ = [
    "HEURISTIC",
    "HeuristicFragmentMatcher",
    "IntrospectionFragmentMatcher",
    "add_typename_to_document",
    "create_fragment_map",
    "diff_query_against_store",
    "get_default_values",
    "get_fragment_definitions",
    "get_fragment_query_document",
    "get_main_definition",
    "get_operation_definition",
    "merge_with_generated",
    "read_query_from_store",
    "result_key_name_from_field",
    "reuse_previous_result",
    "should_include",
    "store_key_name_from_field",
    "write_result_to_store",
]
