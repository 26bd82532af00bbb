"""Unit tests for document helpers, transforms and fragment matchers."""

import logging

import pytest
from graphql import parse, print_ast

from normcache import (
    DocumentError,
    HeuristicFragmentMatcher,
    IntrospectionFragmentMatcher,
    add_typename_to_document,
    get_fragment_query_document,
)
from normcache.documents import (
    get_default_values,
    get_operation_definition,
    result_key_name_from_field,
    should_include,
    store_key_name_from_field,
)


def first_field(source):
    return parse(source).definitions[0].selection_set.selections[0]


def root_fields(source):
    return parse(source).definitions[0].selection_set.selections


@pytest.mark.unit
@pytest.mark.documents
def test_add_typename_skips_the_operation_root():
    document = parse("{ me { name friends { name } } }")

    result = add_typename_to_document(document)

    expected = parse("{ me { name friends { name __typename } __typename } }")
    assert print_ast(result) == print_ast(expected)


@pytest.mark.unit
@pytest.mark.documents
def test_add_typename_is_idempotent():
    once = add_typename_to_document(parse("{ me { name } }"))
    twice = add_typename_to_document(once)

    assert print_ast(twice) == print_ast(once)


@pytest.mark.unit
@pytest.mark.documents
def test_add_typename_keeps_existing_typename():
    document = parse("{ me { __typename name } }")

    assert print_ast(add_typename_to_document(document)) == print_ast(document)


@pytest.mark.unit
@pytest.mark.documents
def test_add_typename_covers_fragments():
    result = add_typename_to_document(parse("fragment F on Person { name }"))

    expected = parse("fragment F on Person { name __typename }")
    assert print_ast(result) == print_ast(expected)


@pytest.mark.unit
@pytest.mark.documents
def test_add_typename_does_not_mutate_the_input():
    document = parse("{ me { name } }")
    before = print_ast(document)

    add_typename_to_document(document)

    assert print_ast(document) == before


class TestFragmentQueryDocument:
    """Wrapping fragment documents into queries."""

    def test_single_fragment(self):
        document = parse("fragment PersonName on Person { name }")

        query = get_fragment_query_document(document)

        expected = parse("{ ...PersonName } fragment PersonName on Person { name }")
        assert print_ast(query) == print_ast(expected)

    def test_named_fragment_among_several(self):
        document = parse("fragment A on Person { name } fragment B on Person { id }")

        query = get_fragment_query_document(document, "B")

        assert get_operation_definition(query).selection_set.selections[0].name.value == "B"

    def test_several_fragments_need_a_name(self):
        document = parse("fragment A on Person { name } fragment B on Person { id }")

        with pytest.raises(DocumentError, match="Found 2 fragments"):
            get_fragment_query_document(document)

    def test_operations_are_rejected(self):
        with pytest.raises(DocumentError, match="Found a query operation named 'Q'"):
            get_fragment_query_document(parse("query Q { a }"))

    def test_unknown_fragment_name(self):
        document = parse("fragment A on Person { name }")

        with pytest.raises(DocumentError, match="No fragment named X"):
            get_fragment_query_document(document, "X")


@pytest.mark.unit
@pytest.mark.documents
def test_store_key_name_includes_resolved_arguments():
    field = first_field("{ friends(first: 10, after: $cursor) { name } }")

    assert store_key_name_from_field(field, {"cursor": "abc"}) == (
        'friends({"first":10,"after":"abc"})'
    )
    assert store_key_name_from_field(field) == 'friends({"first":10})'


@pytest.mark.unit
@pytest.mark.documents
def test_store_key_name_without_arguments_is_the_field_name():
    assert store_key_name_from_field(first_field("{ me { name } }")) == "me"


@pytest.mark.unit
@pytest.mark.documents
def test_result_key_prefers_the_alias():
    assert result_key_name_from_field(first_field("{ boss: me { name } }")) == "boss"
    assert result_key_name_from_field(first_field("{ me { name } }")) == "me"


@pytest.mark.unit
@pytest.mark.documents
def test_skip_and_include_directives():
    fields = root_fields("{ a @skip(if: true) b @include(if: $show) c }")

    assert [should_include(field, {"show": False}) for field in fields] == [
        False,
        False,
        True,
    ]
    assert should_include(fields[1], {"show": True})


@pytest.mark.unit
@pytest.mark.documents
def test_directive_without_boolean_condition_is_an_error():
    field = first_field("{ a @skip(if: $missing) }")

    with pytest.raises(DocumentError, match="@skip"):
        should_include(field, {})


@pytest.mark.unit
@pytest.mark.documents
def test_default_values_of_operation_variables():
    operation = get_operation_definition(
        parse("query Q($first: Int = 5, $name: String) { a }")
    )

    assert get_default_values(operation) == {"first": 5}
    assert get_default_values(None) == {}


class TestFragmentMatchers:
    def test_heuristic_matcher(self):
        match = HeuristicFragmentMatcher().match

        assert match("Person", "Person") is True
        assert match(None, "Person") == "heuristic"
        assert match("Droid", "Character") == "heuristic"

    def test_introspection_matcher(self):
        match = IntrospectionFragmentMatcher({"Character": ["Human", "Droid"]}).match

        assert match("Droid", "Character") is True
        assert match("Droid", "Droid") is True
        assert match("Person", "Character") is False
        assert match(None, "Character") is False

    def test_heuristic_matcher_notes_each_pair_once_at_debug_level(self, caplog):
        match = HeuristicFragmentMatcher().match

        with caplog.at_level(logging.DEBUG):
            match("Droid", "Character")
            match("Droid", "Character")
            match("Human", "Character")

        records = [r for r in caplog.records if "Heuristic fragment matching" in r.message]
        assert [r.levelno for r in records] == [logging.DEBUG, logging.DEBUG]
