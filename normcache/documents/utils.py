"""
Document helpers shared by the reader, the writer and the cache.

These work on graphql-core ASTs and never look at the store.
"""

import json
from typing import Any, Dict, List, Optional

from graphql.language import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    NameNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
)
from graphql.pyutils import Undefined
from graphql.utilities import value_from_ast_untyped

from ..errors import DocumentError

FragmentMap = Dict[str, FragmentDefinitionNode]


def get_operation_definition(
    document: DocumentNode,
) -> Optional[OperationDefinitionNode]:
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            return definition
    return None


def get_fragment_definitions(document: DocumentNode) -> List[FragmentDefinitionNode]:
    return [
        definition
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    ]


def create_fragment_map(fragments: List[FragmentDefinitionNode]) -> FragmentMap:
    return {fragment.name.value: fragment for fragment in fragments}


def get_main_definition(document: DocumentNode):
    """
    Return the operation of document, or its first fragment when the document
    only holds fragments.
    """
    operation = get_operation_definition(document)
    if operation is not None:
        return operation

    fragments = get_fragment_definitions(document)
    if fragments:
        return fragments[0]

    raise DocumentError(
        "Expected a parsed GraphQL document with a query, mutation, "
        "subscription, or a fragment."
    )


def get_default_values(
    definition: Optional[OperationDefinitionNode],
) -> Dict[str, Any]:
    """Default values declared on the operation's variable definitions."""
    if definition is None or not definition.variable_definitions:
        return {}

    defaults: Dict[str, Any] = {}
    for variable_definition in definition.variable_definitions:
        if variable_definition.default_value is not None:
            defaults[variable_definition.variable.name.value] = value_from_ast_untyped(
                variable_definition.default_value
            )
    return defaults


def get_fragment_query_document(
    document: DocumentNode, fragment_name: Optional[str] = None
) -> DocumentNode:
    """
    Turn a document of fragments into a query that spreads one of them.

    Raises:
        DocumentError: If the document contains an operation, or if it holds
            several fragments and fragment_name is not given.
    """
    actual_fragment_name = fragment_name
    fragments: List[FragmentDefinitionNode] = []

    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            name = f" named '{definition.name.value}'" if definition.name else ""
            raise DocumentError(
                f"Found a {definition.operation.value} operation{name}. "
                "No operations are allowed when using a fragment as a query. "
                "Only fragments are allowed."
            )
        if isinstance(definition, FragmentDefinitionNode):
            fragments.append(definition)

    if actual_fragment_name is None:
        if len(fragments) != 1:
            raise DocumentError(
                f"Found {len(fragments)} fragments. `fragment_name` must be "
                "provided when there is not exactly 1 fragment."
            )
        actual_fragment_name = fragments[0].name.value

    if actual_fragment_name not in create_fragment_map(fragments):
        raise DocumentError(f"No fragment named {actual_fragment_name}.")

    query = OperationDefinitionNode(
        operation=OperationType.QUERY,
        name=None,
        variable_definitions=(),
        directives=(),
        selection_set=SelectionSetNode(
            selections=(
                FragmentSpreadNode(
                    name=NameNode(value=actual_fragment_name), directives=()
                ),
            )
        ),
    )
    return DocumentNode(definitions=(query, *document.definitions))


def _directive_arguments(directive, variables: Dict[str, Any]) -> Dict[str, Any]:
    return {
        argument.name.value: value_from_ast_untyped(argument.value, variables)
        for argument in directive.arguments or ()
    }


def should_include(selection, variables: Optional[Dict[str, Any]] = None) -> bool:
    """Evaluate the @skip and @include directives on a selection."""
    variables = variables or {}
    for directive in selection.directives or ():
        name = directive.name.value
        if name not in ("skip", "include"):
            continue
        condition = _directive_arguments(directive, variables).get("if")
        if not isinstance(condition, bool):
            raise DocumentError(f"Invalid argument value for the @{name} directive.")
        if name == "skip" and condition:
            return False
        if name == "include" and not condition:
            return False
    return True


def argument_values(
    field: FieldNode, variables: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Resolve a field's arguments, dropping ones bound to unset variables."""
    values: Dict[str, Any] = {}
    for argument in field.arguments or ():
        value = value_from_ast_untyped(argument.value, variables)
        if value is not Undefined:
            values[argument.name.value] = value
    return values


def store_key_name_from_field(
    field: FieldNode, variables: Optional[Dict[str, Any]] = None
) -> str:
    """
    Key under which a field is stored in its record.

    Fields without arguments use their name; fields with arguments append the
    JSON encoded arguments, e.g. ``friends({"first":10})``.
    """
    name = field.name.value
    if not field.arguments:
        return name
    arguments = argument_values(field, variables)
    if not arguments:
        return name
    return f"{name}({json.dumps(arguments, separators=(',', ':'))})"


def result_key_name_from_field(field: FieldNode) -> str:
    return field.alias.value if field.alias else field.name.value


def resolve_fragment(selection, fragment_map: FragmentMap):
    """Return the inline fragment itself, or the definition a spread names."""
    if isinstance(selection, InlineFragmentNode):
        return selection
    if isinstance(selection, FragmentSpreadNode):
        fragment = fragment_map.get(selection.name.value)
        if fragment is None:
            raise DocumentError(f"No fragment named {selection.name.value}.")
        return fragment
    raise DocumentError(f"Unsupported selection {selection.kind}.")
