"""
Document transforms applied before a document reaches the store.
"""

from graphql.language import (
    DocumentNode,
    FieldNode,
    NameNode,
    OperationDefinitionNode,
    SelectionSetNode,
    Visitor,
    visit,
)

TYPENAME_FIELD = FieldNode(
    alias=None,
    name=NameNode(value="__typename"),
    arguments=(),
    directives=(),
    selection_set=None,
)


def _has_typename(selection_set: SelectionSetNode) -> bool:
    return any(
        isinstance(selection, FieldNode)
        and selection.name.value == "__typename"
        and selection.alias is None
        for selection in selection_set.selections
    )


class AddTypenameVisitor(Visitor):
    """Adds ``__typename`` to every selection set below the operation root."""

    def enter_selection_set(self, node, key, parent, path, ancestors):
        if isinstance(parent, OperationDefinitionNode) or _has_typename(node):
            return None
        return SelectionSetNode(
            selections=(*node.selections, TYPENAME_FIELD), loc=node.loc
        )


def add_typename_to_document(document: DocumentNode) -> DocumentNode:
    """
    Return a copy of document that selects ``__typename`` on every object.

    The operation root is left alone. Applying the transform twice gives the
    same document as applying it once.
    """
    return visit(document, AddTypenameVisitor())
