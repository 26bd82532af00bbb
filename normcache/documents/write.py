"""
Normalizer: flattens a result tree into store records.

Objects that the identity function can name are stored under their own
DataId and referenced with an IdValue. Objects it can't name are stored under
a generated id built from their path (``$ROOT_QUERY.me``,
``$Person:1.friends.0``) and still referenced the same way, so every record
is a flat dict of scalars and references.

Records are never mutated in place. Each changed field produces a new dict
written through ``store.set``, which is what lets recordings and overlays
capture the change without touching the layer below.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from graphql.language import (
    DocumentNode,
    FieldNode,
    SelectionSetNode,
    print_ast,
)

from ..errors import StoreWriteError
from ..types import (
    DataId,
    DataIdFromObject,
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
class WriteContext:
    store: NormalizedCache
    variables: Dict[str, Any]
    fragment_map: FragmentMap
    data_id_from_object: Optional[DataIdFromObject] = None
    fragment_matcher: Optional[FragmentMatcher] = None
    processed_data: Dict[DataId, List[SelectionSetNode]] = field(default_factory=dict)


def write_result_to_store(
    data_id: DataId,
    result: Dict[str, Any],
    document: DocumentNode,
    store: NormalizedCache,
    variables: Optional[Dict[str, Any]] = None,
    data_id_from_object: Optional[DataIdFromObject] = None,
    fragment_matcher: Optional[FragmentMatcher] = None,
) -> NormalizedCache:
    """
    Write result, shaped by document, into store under data_id.

    The document may be an operation or a fragment document; for fragment
    documents the first fragment is used. Returns the store.
    """
    definition = get_main_definition(document)
    context = WriteContext(
        store=store,
        variables={
            **get_default_values(get_operation_definition(document)),
            **(variables or {}),
        },
        fragment_map=create_fragment_map(get_fragment_definitions(document)),
        data_id_from_object=data_id_from_object,
        fragment_matcher=fragment_matcher,
    )
    write_selection_set_to_store(result, data_id, definition.selection_set, context)
    return store


def write_selection_set_to_store(
    result: Dict[str, Any],
    data_id: DataId,
    selection_set: SelectionSetNode,
    context: WriteContext,
    lenient: bool = False,
) -> None:
    for selection in selection_set.selections:
        if not should_include(selection, context.variables):
            continue

        if isinstance(selection, FieldNode):
            result_key = result_key_name_from_field(selection)
            value = result.get(result_key, _MISSING)
            if value is not _MISSING:
                write_field_to_store(data_id, value, selection, context)
            elif not lenient:
                logging.warning(f"Missing field {result_key} in {data_id}")
            continue

        fragment = resolve_fragment(selection, context.fragment_map)
        match = True
        if context.fragment_matcher is not None and fragment.type_condition is not None:
            match = context.fragment_matcher(
                result.get("__typename"), fragment.type_condition.name.value
            )
        if match:
            write_selection_set_to_store(
                result,
                data_id,
                fragment.selection_set,
                context,
                lenient=lenient or match == HEURISTIC,
            )


def _is_data_processed(
    data_id: DataId,
    selection_set: SelectionSetNode,
    processed_data: Dict[DataId, List[SelectionSetNode]],
) -> bool:
    processed = processed_data.setdefault(data_id, [])
    if any(existing is selection_set for existing in processed):
        return True
    processed.append(selection_set)
    return False


def _write_object(
    value: Dict[str, Any],
    generated_id: DataId,
    selection_set: SelectionSetNode,
    context: WriteContext,
) -> IdValue:
    value_data_id = generated_id
    generated = True
    if context.data_id_from_object is not None:
        semantic_id = context.data_id_from_object(value)
        if semantic_id:
            value_data_id = semantic_id
            generated = False

    if not _is_data_processed(value_data_id, selection_set, context.processed_data):
        write_selection_set_to_store(value, value_data_id, selection_set, context)

    return IdValue(value_data_id, generated, value.get("__typename"))


def _process_array_value(
    values: List[Any],
    generated_id: DataId,
    selection_set: SelectionSetNode,
    context: WriteContext,
) -> List[Any]:
    processed = []
    for index, item in enumerate(values):
        item_id = f"{generated_id}.{index}"
        if item is None:
            processed.append(None)
        elif isinstance(item, list):
            processed.append(_process_array_value(item, item_id, selection_set, context))
        else:
            processed.append(_write_object(item, item_id, selection_set, context))
    return processed


def write_field_to_store(
    data_id: DataId,
    value: Any,
    field_node: FieldNode,
    context: WriteContext,
) -> None:
    store = context.store
    store_field_name = store_key_name_from_field(field_node, context.variables)
    generated_id = f"${data_id}.{store_field_name}"

    if value is None or field_node.selection_set is None:
        store_value = copy.deepcopy(value)
    elif isinstance(value, list):
        store_value = _process_array_value(
            value, generated_id, field_node.selection_set, context
        )
    else:
        store_value = _write_object(
            value, generated_id, field_node.selection_set, context
        )
        store_object = store.get(data_id)
        escaped_id = store_object.get(store_field_name) if store_object else None
        if isinstance(escaped_id, IdValue) and escaped_id != store_value:
            _replace_reference(escaped_id, store_value, field_node, store)

    store_object = store.get(data_id)
    if store_object is None or store_object.get(store_field_name, _MISSING) != store_value:
        store.set(data_id, {**(store_object or {}), store_field_name: store_value})


def _replace_reference(
    escaped_id: IdValue,
    store_value: IdValue,
    field_node: FieldNode,
    store: NormalizedCache,
) -> None:
    had_typename = escaped_id.typename is not None
    has_typename = store_value.typename is not None
    typename_changed = (
        had_typename and has_typename and escaped_id.typename != store_value.typename
    )

    if store_value.generated and not escaped_id.generated and not typename_changed:
        raise StoreWriteError(
            "Store error: the application attempted to write an object with no "
            f"provided id but the store already contains an id of {escaped_id.id} "
            "for this object. The selection set that was trying to be written "
            f"is:\n{print_ast(field_node)}"
        )

    if had_typename and not has_typename:
        raise StoreWriteError(
            "Store error: the application attempted to write an object with no "
            "provided typename but the store already contains an object with "
            f"typename of {escaped_id.typename} for the object of id "
            f"{escaped_id.id}. The selection set that was trying to be written "
            f"is:\n{print_ast(field_node)}"
        )

    if not escaped_id.generated:
        return

    if typename_changed:
        # A different type took the place of an inlined object
        if not store_value.generated:
            store.delete(escaped_id.id)
    else:
        merge_with_generated(escaped_id.id, store_value.id, store)


def merge_with_generated(
    generated_key: DataId, real_key: DataId, store: NormalizedCache
) -> bool:
    """
    Fold the record stored under a generated id into the record of its real
    id, then delete the generated record. Nested generated references are
    merged recursively. Returns True if the store changed.
    """
    if generated_key == real_key:
        return False

    generated = store.get(generated_key) or {}
    real = store.get(real_key) or {}
    made_changes = False

    for key, value in generated.items():
        real_value = real.get(key)
        if (
            isinstance(value, IdValue)
            and value.generated
            and isinstance(real_value, IdValue)
            and value != real_value
            and merge_with_generated(value.id, real_value.id, store)
        ):
            made_changes = True

    store.delete(generated_key)
    merged = {**generated, **real}
    if merged == real:
        return made_changes

    store.set(real_key, merged)
    return True
