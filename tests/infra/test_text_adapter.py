import pytest

from docgraph.core.exceptions import ParseFailure
from docgraph.infra.adapters.text import detect_format, parse_text


@pytest.mark.parametrize(
    ("mime_type", "filename", "expected"),
    [
        ("application/json", None, "json"),
        ("TEXT/CSV", None, "csv"),
        (None, "rows.tsv", "tsv"),
        (None, "graph.gexf", "xml"),
        ("image/svg+xml", "x.bin", "xml"),
        (None, "notes.txt", None),
        (None, None, None),
    ],
)
def test_detect_format(mime_type, filename, expected):
    assert detect_format(mime_type, filename) == expected


def test_parse_json():
    assert parse_text('{"a": [1, 2]}', "application/json") == {"a": [1, 2]}
    assert parse_text(b'{"a": 1}', filename="x.json") == {"a": 1}


def test_parse_json_failure():
    with pytest.raises(ParseFailure, match="Failed to parse format: JSON"):
        parse_text("{nope", "application/json")


def test_parse_delimited():
    assert parse_text("a,b\n1,2\n", filename="t.csv") == [{"a": "1", "b": "2"}]
    assert parse_text("a\tb\n1\t2\n", filename="t.tsv") == [{"a": "1", "b": "2"}]


def test_parse_xml():
    # ARRANGE
    text = '<deck xmlns="urn:cards" name="main"><card suit="hearts">A</card><!-- skip --><card/></deck>'

    # ACT
    parsed = parse_text(text, "application/xml")

    # ASSERT
    assert parsed == {
        "tag": "deck",
        "attributes": {"name": "main"},
        "children": [
            {"tag": "card", "attributes": {"suit": "hearts"}, "text": "A"},
            {"tag": "card"},
        ],
    }


def test_parse_xml_failure():
    with pytest.raises(ParseFailure, match="XML"):
        parse_text("<open>", filename="broken.xml")


def test_xml_entities_are_not_expanded():
    text = '<!DOCTYPE r [<!ENTITY e SYSTEM "file:///etc/passwd">]><r>&e;</r>'
    assert "root:" not in str(parse_text(text, "text/xml"))


def test_unknown_formats_stay_text():
    assert parse_text(b"plain words", filename="notes.txt") == "plain words"
