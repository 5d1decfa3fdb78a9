"""
Tests for link detection and plain/delta conversions.
"""

import pytest

from notes_engine import (
    Embed,
    LineBreak,
    RichDocument,
    TextRun,
    doc_to_plain,
    extract_links,
    extract_links_from_doc,
    link_records,
    plain_to_doc,
    tasks_to_doc,
    text_conversions,
    text_to_doc,
)


class TestLinks:

    def test_finds_urls_in_order(self):
        text = "See https://example.com/docs and www.python.org, or github.com/psf"
        assert extract_links(text) == ["https://example.com/docs", "www.python.org", "github.com/psf"]

    def test_keeps_duplicates(self):
        assert extract_links("a.io b a.io") == ["a.io", "a.io"]

    def test_no_links(self):
        assert extract_links("nothing here") == []
        assert extract_links(None) == []

    def test_doc_links_from_attributes_and_text(self):
        doc = RichDocument([
            TextRun("click", {"link": "https://docs.example.com"}),
            TextRun(" or visit example.org"),
            TextRun("example.org again"),
        ])
        assert extract_links_from_doc(doc) == ["https://docs.example.com", "example.org"]

    def test_link_records(self):
        assert link_records(["a.com", "b.com"], 7) == [
            {"url": "a.com", "message_id": 7},
            {"url": "b.com", "message_id": 7},
        ]


class TestPlainToDoc:

    @pytest.mark.parametrize("text", [
        "",
        "hello",
        "line one\nline two\n",
        "go to https://example.com now",
        "example.com",
        "  spaced  out  ",
    ])
    def test_doc_to_plain_inverts_plain_to_doc(self, text):
        assert doc_to_plain(plain_to_doc(text)) == text

    def test_empty_string_gives_one_empty_run(self):
        assert plain_to_doc("").ops == [TextRun("")]

    def test_links_become_own_runs(self):
        doc = plain_to_doc("go to https://example.com now")
        assert doc.ops == [
            TextRun("go to "),
            TextRun("https://example.com", {"link": "https://example.com"}),
            TextRun(" now"),
        ]

    def test_link_detection_can_be_disabled(self):
        assert plain_to_doc("example.com", detect_links=False).ops == [TextRun("example.com")]


class TestDocToPlain:

    def test_link_text_replaced_by_url(self):
        doc = RichDocument([TextRun("click here", {"link": "https://example.com"}), LineBreak()])
        assert doc_to_plain(doc) == "https://example.com\n"

    def test_embeds_skipped(self):
        doc = RichDocument([TextRun("a"), Embed({"image": "x.png"}), TextRun("b")])
        assert doc_to_plain(doc) == "ab"


class TestTextToDoc:

    def test_lines_and_breaks(self):
        assert text_to_doc("one\n\ntwo").ops == [TextRun("one"), LineBreak(), LineBreak(), TextRun("two")]

    def test_empty(self):
        assert text_to_doc("").ops == []

    def test_tasks_to_doc(self):
        doc = tasks_to_doc(["Buy milk", "Call Ann"])
        assert doc.ops == [
            TextRun("Buy milk"),
            LineBreak({"list": "unchecked"}),
            TextRun("Call Ann"),
            LineBreak({"list": "unchecked"}),
        ]


class TestTextConversions:

    def test_from_text(self):
        conversion = text_conversions(text_content="read example.com")
        assert conversion.text_content == "read example.com"
        assert conversion.delta_content == plain_to_doc("read example.com")
        assert conversion.links == ["example.com"]

    def test_delta_takes_precedence(self):
        doc = RichDocument([TextRun("from doc"), LineBreak()])
        conversion = text_conversions(text_content="ignored", delta_content=doc)
        assert conversion.text_content == "from doc\n"
        assert conversion.delta_content is doc
        assert conversion.links == []

    def test_nothing_given(self):
        conversion = text_conversions()
        assert conversion.text_content is None
        assert conversion.delta_content is None
        assert conversion.links == []
