import pytest

from docgraph.core.exceptions import (
    ContextResolutionError,
    ConversionUnsupportedError,
    DocGraphError,
    DocumentNotFoundError,
    InvalidIdentifierError,
    InvalidSelectorError,
    ParseFailure,
    StructuralPreconditionError,
)


def test_structural_precondition_is_a_type_error():
    """Missing reserved keys surface as TypeError subclasses naming the key."""
    error = StructuralPreconditionError("Node", ("contents", "a"), missing_key="$edges")
    assert isinstance(error, TypeError)
    assert isinstance(error, DocGraphError)
    assert error.missing_key == "$edges"
    assert "$edges" in str(error)


def test_conversion_unsupported_names_both_kinds():
    error = ConversionUnsupportedError("Edge", "Number")
    assert isinstance(error, NotImplementedError)
    assert str(error) == "Conversion from Edge to Number not yet implemented."


def test_parse_failure_names_the_format():
    error = ParseFailure("D3Json", "missing nodes")
    assert error.format_name == "D3Json"
    assert str(error).startswith("Failed to parse format: D3Json")


def test_context_resolution_message():
    error = ContextResolutionError("@$.a")
    assert "could not find context for selection" in str(error)
    assert error.selector == "@$.a"


@pytest.mark.parametrize(
    ("error", "base"),
    [
        (DocumentNotFoundError("x"), KeyError),
        (InvalidIdentifierError("_x", "reserved"), ValueError),
        (InvalidSelectorError("x", "no @"), ValueError),
    ],
)
def test_builtin_bases(error, base):
    """Errors can be caught by their builtin counterparts."""
    assert isinstance(error, base)
    assert isinstance(error, DocGraphError)


def test_not_found_message_is_not_quoted_twice():
    assert str(DocumentNotFoundError("a;b")) == "Document not found: 'a;b'"
