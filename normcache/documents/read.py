"""
Reconstructor and differ: rebuild result trees from store records.

Both walk the query's selection sets starting at a root record and follow
IdValue references into other records. The differ reports whether every
selected field was found; the reconstructor insists on it.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from graphql.language import DocumentNode, FieldNode, SelectionSetNode

from ..errors import MissingFieldError
from ..types import (
    ROOT_QUERY,
    DataId,
    DiffResult,
    FragmentMatcher,
    IdValue,
    NormalizedCache,
)
from .fragment_matcher import HEURISTIC
from .utils import (
    FragmentMap,
    create_fragment_map,
    get_default_values,
    get_fragment_definitions,
    get_main_definition,
    get_operation_definition,
    resolve_fragment,
    result_key_name_from_field,
    should_include,
    store_key_name_from_field,
)

_MISSING = object()


@dataclass
class ReadContext:
    store: NormalizedCache
    variables: Dict[str, Any]
    fragment_map: FragmentMap
    return_partial_data: bool
    fragment_matcher: Optional[FragmentMatcher] = None
    has_missing_field: bool = False


def diff_query_against_store(
    store: NormalizedCache,
    query: DocumentNode,
    variables: Optional[Dict[str, Any]] = None,
    return_partial_data: bool = True,
    fragment_matcher: Optional[FragmentMatcher] = None,
    previous_result: Any = None,
    root_id: Optional[DataId] = None,
) -> DiffResult:
    """
    Read query from store and report whether the result is complete.

    Args:
        return_partial_data: When False, a missing field raises
            MissingFieldError instead of being left out of the result.
        previous_result: Earlier result for the same query. Subtrees of the
            new result that are equal to it are replaced by the previous
            objects, so unchanged data keeps its identity.
        root_id: Record to start from, ``ROOT_QUERY`` by default.

    Raises:
        MissingFieldError: If a field is missing and partial data was not
            requested.
    """
    definition = get_main_definition(query)
    context = ReadContext(
        store=store,
        variables={
            **get_default_values(get_operation_definition(query)),
            **(variables or {}),
        },
        fragment_map=create_fragment_map(get_fragment_definitions(query)),
        return_partial_data=return_partial_data,
        fragment_matcher=fragment_matcher,
    )
    result = read_selection_set(root_id or ROOT_QUERY, definition.selection_set, context)
    if previous_result is not None:
        result = reuse_previous_result(previous_result, result)
    return DiffResult(result=result, complete=not context.has_missing_field)


def read_query_from_store(
    store: NormalizedCache,
    query: DocumentNode,
    variables: Optional[Dict[str, Any]] = None,
    root_id: Optional[DataId] = None,
    fragment_matcher: Optional[FragmentMatcher] = None,
    previous_result: Any = None,
) -> Dict[str, Any]:
    """Read a complete result for query, raising MissingFieldError otherwise."""
    return diff_query_against_store(
        store,
        query,
        variables=variables,
        return_partial_data=False,
        fragment_matcher=fragment_matcher,
        previous_result=previous_result,
        root_id=root_id,
    ).result


def read_selection_set(
    data_id: DataId,
    selection_set: SelectionSetNode,
    context: ReadContext,
    lenient: bool = False,
) -> Dict[str, Any]:
    store_object = context.store.get(data_id)
    result: Dict[str, Any] = {}

    for selection in selection_set.selections:
        if not should_include(selection, context.variables):
            continue

        if isinstance(selection, FieldNode):
            store_field_name = store_key_name_from_field(selection, context.variables)
            value = (
                store_object.get(store_field_name, _MISSING)
                if store_object is not None
                else _MISSING
            )
            if value is _MISSING:
                if lenient:
                    continue
                if not context.return_partial_data:
                    raise MissingFieldError(store_field_name, data_id)
                context.has_missing_field = True
                continue

            _merge_into(
                result,
                {
                    result_key_name_from_field(selection): _read_value(
                        value, selection, context, lenient
                    )
                },
            )
            continue

        fragment = resolve_fragment(selection, context.fragment_map)
        match = True
        if context.fragment_matcher is not None and fragment.type_condition is not None:
            typename = store_object.get("__typename") if store_object else None
            match = context.fragment_matcher(typename, fragment.type_condition.name.value)
        if match:
            _merge_into(
                result,
                read_selection_set(
                    data_id,
                    fragment.selection_set,
                    context,
                    lenient=lenient or match == HEURISTIC,
                ),
            )

    return result


def _read_value(value: Any, field_node: FieldNode, context: ReadContext, lenient: bool) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [_read_value(item, field_node, context, lenient) for item in value]
    if isinstance(value, IdValue):
        if field_node.selection_set is None:
            return value
        return read_selection_set(value.id, field_node.selection_set, context, lenient)
    # JSON blobs are copied so callers can't mutate stored records
    return copy.deepcopy(value)


def _merge_into(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if key in target:
            target[key] = _merge_values(target[key], value)
        else:
            target[key] = value


def _merge_values(existing: Any, incoming: Any) -> Any:
    if isinstance(existing, dict) and isinstance(incoming, dict):
        merged = dict(existing)
        _merge_into(merged, incoming)
        return merged
    if (
        isinstance(existing, list)
        and isinstance(incoming, list)
        and len(existing) == len(incoming)
    ):
        return [_merge_values(old, new) for old, new in zip(existing, incoming)]
    return incoming


def reuse_previous_result(previous: Any, result: Any) -> Any:
    """Replace subtrees of result that equal previous with previous's objects."""
    if previous == result:
        return previous
    if isinstance(previous, dict) and isinstance(result, dict):
        return {
            key: reuse_previous_result(previous[key], value) if key in previous else value
            for key, value in result.items()
        }
    if isinstance(previous, list) and isinstance(result, list):
        reused: List[Any] = [
            reuse_previous_result(old, new) for old, new in zip(previous, result)
        ]
        reused.extend(result[len(previous):])
        return reused
    return result
