"""
Tests for document parsing and serialization.
"""

import pytest

from notes_engine import (
    ContentFormat,
    Embed,
    EnhancementResult,
    ExtractedTask,
    InvalidDocument,
    LineBreak,
    RichDocument,
    TaskType,
    TextRun,
)
from notes_engine.models import parse_operation


class TestParseOperation:

    def test_single_newline_is_line_break(self):
        op = parse_operation({"insert": "\n", "attributes": {"list": "bullet"}})
        assert op == LineBreak({"list": "bullet"})

    def test_text_with_newlines_stays_text(self):
        op = parse_operation({"insert": "a\nb"})
        assert isinstance(op, TextRun)
        assert op.text == "a\nb"

    def test_object_insert_is_embed(self):
        op = parse_operation({"insert": {"image": "https://example.com/a.png"}})
        assert op == Embed({"image": "https://example.com/a.png"})

    def test_empty_attributes_normalized_to_none(self):
        assert parse_operation({"insert": "x", "attributes": {}}) == TextRun("x")

    @pytest.mark.parametrize("raw", [
        "text",
        {"attributes": {"bold": True}},
        {"insert": 42},
        {"insert": "x", "attributes": "bold"},
    ])
    def test_malformed_ops_rejected(self, raw):
        with pytest.raises(InvalidDocument):
            parse_operation(raw)


class TestRichDocument:

    def test_from_dict_and_back(self):
        data = {"ops": [
            {"insert": "Hello ", "attributes": {"bold": True}},
            {"insert": "world"},
            {"insert": "\n"},
        ]}
        doc = RichDocument.from_dict(data)
        assert len(doc) == 3
        assert doc.to_dict() == data

    def test_from_json(self):
        doc = RichDocument.from_json('{"ops": [{"insert": "hi\\n"}]}')
        assert doc.ops == [TextRun("hi\n")]

    def test_not_an_object(self):
        with pytest.raises(InvalidDocument, match="Not a valid object"):
            RichDocument.from_dict(["ops"])

    def test_missing_ops(self):
        with pytest.raises(InvalidDocument, match="Missing ops array"):
            RichDocument.from_dict({"noOps": "..."})

    def test_empty_ops(self):
        with pytest.raises(InvalidDocument, match="Empty ops array"):
            RichDocument.from_dict({"ops": []})

    def test_bad_json(self):
        with pytest.raises(InvalidDocument, match="Could not parse JSON"):
            RichDocument.from_json("{not json")


class TestResults:

    def test_enhancement_result_dumps_documents(self):
        doc = RichDocument([TextRun("a"), LineBreak()])
        result = EnhancementResult(doc, doc, ContentFormat.DELTA)
        assert result.to_dict() == {
            "enhanced": {"ops": [{"insert": "a"}, {"insert": "\n"}]},
            "original": {"ops": [{"insert": "a"}, {"insert": "\n"}]},
            "format": "delta",
        }

    def test_extracted_task_to_dict(self):
        task = ExtractedTask("Email Bob", TaskType.EMAIL, {"subject": "Hi"}, ["Bob"])
        assert task.to_dict() == {
            "title": "Email Bob",
            "type": "email",
            "details": {"subject": "Hi"},
            "people": ["Bob"],
        }
