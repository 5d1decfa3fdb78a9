"""
Data models for the notes engine.
No external dependencies, pure Python dataclasses.

A rich-text document ("delta") is an ordered list of operations. Each
operation inserts either text, a single line break, or an embed. Block
formatting such as list markers lives on the line break, inline
formatting (bold, links) on the text run.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .errors import InvalidDocument


class ContentFormat(str, Enum):
    """Shape of message content passed around the engine."""
    PLAIN = "plain"
    DELTA = "delta"


class ListKind(str, Enum):
    """Recognized values of the `list` block attribute."""
    BULLET = "bullet"
    ORDERED = "ordered"
    CHECKED = "checked"
    UNCHECKED = "unchecked"


LIST_KINDS = frozenset(k.value for k in ListKind)


class TaskType(str, Enum):
    """Kinds of task the extractor can return."""
    CALENDAR = "calendar"
    EMAIL = "email"
    TODO = "todo"


# =============================================================================
# OPERATIONS
# =============================================================================

@dataclass(frozen=True)
class TextRun:
    """A run of literal text with optional inline attributes."""
    text: str
    attributes: Optional[dict] = None

    def to_dict(self) -> dict:
        return _op_dict(self.text, self.attributes)


@dataclass(frozen=True)
class LineBreak:
    """Exactly one newline; carries block-level attributes."""
    attributes: Optional[dict] = None

    @property
    def text(self) -> str:
        return "\n"

    def to_dict(self) -> dict:
        return _op_dict("\n", self.attributes)


@dataclass(frozen=True)
class Embed:
    """A non-text insert (image, video...). One position unit wide."""
    payload: dict
    attributes: Optional[dict] = None

    def to_dict(self) -> dict:
        return _op_dict(self.payload, self.attributes)


Operation = Union[TextRun, LineBreak, Embed]


def _op_dict(insert: Any, attributes: Optional[dict]) -> dict:
    op = {"insert": insert}
    if attributes:
        op["attributes"] = dict(attributes)
    return op


def parse_operation(raw: Any) -> Operation:
    """Parse one serialized `{insert, attributes?}` op."""
    if not isinstance(raw, dict) or "insert" not in raw:
        raise InvalidDocument(f"Invalid Delta format: malformed op {raw!r}")

    insert = raw["insert"]
    attributes = raw.get("attributes") or None
    if attributes is not None and not isinstance(attributes, dict):
        raise InvalidDocument("Invalid Delta format: op attributes must be an object")

    if isinstance(insert, str):
        if insert == "\n":
            return LineBreak(attributes)
        return TextRun(insert, attributes)
    if isinstance(insert, dict):
        return Embed(insert, attributes)
    raise InvalidDocument(f"Invalid Delta format: unsupported insert {insert!r}")


# =============================================================================
# DOCUMENT
# =============================================================================

@dataclass
class RichDocument:
    """An ordered sequence of operations. Never mutated by the engine."""
    ops: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "RichDocument":
        """Build a document from its `{ops: [...]}` form.

        Raises InvalidDocument when the input is not an object, has no
        `ops` list, or the list is empty.
        """
        if not isinstance(data, dict):
            raise InvalidDocument("Invalid Delta format: Not a valid object")
        ops = data.get("ops")
        if not isinstance(ops, list):
            raise InvalidDocument("Invalid Delta format: Missing ops array")
        if not ops:
            raise InvalidDocument("Invalid Delta format: Empty ops array")
        return cls([parse_operation(op) for op in ops])

    @classmethod
    def from_json(cls, raw: str) -> "RichDocument":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise InvalidDocument("Invalid Delta format: Could not parse JSON") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        return {"ops": [op.to_dict() for op in self.ops]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __len__(self) -> int:
        return len(self.ops)


# =============================================================================
# ANALYSIS RECORDS
# =============================================================================

@dataclass(frozen=True)
class FormatSpan:
    """Half-open range [start, end) of the plain projection with formatting."""
    start: int
    end: int
    attributes: Optional[dict] = None
    embed: Optional[dict] = None


@dataclass(frozen=True)
class LineBreakRecord:
    """Plain-text offset of a line break and its block attributes."""
    position: int
    attributes: dict = field(default_factory=dict)


@dataclass
class DeltaAnalysis:
    """Result of walking a document: plain text plus formatting records."""
    plain_text: str = ""
    format_spans: list[FormatSpan] = field(default_factory=list)
    line_breaks: list[LineBreakRecord] = field(default_factory=list)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class EnhancementResult:
    """Output of a text enhancement call."""
    enhanced: Union[str, RichDocument]
    original: Union[str, RichDocument]
    format: ContentFormat = ContentFormat.PLAIN

    def to_dict(self) -> dict:
        def _dump(value):
            return value.to_dict() if isinstance(value, RichDocument) else value

        return {
            "enhanced": _dump(self.enhanced),
            "original": _dump(self.original),
            "format": self.format.value,
        }


@dataclass
class ExtractedTask:
    """An actionable task pulled out of a note."""
    title: str
    type: TaskType = TaskType.TODO
    details: Any = None
    people: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "type": self.type.value,
            "details": self.details,
            "people": list(self.people),
        }


@dataclass
class TodoConversion:
    """Tasks and leftover prose split out of a note."""
    tasks: Union[list[str], RichDocument]
    regular_text: Union[str, RichDocument]
    format: ContentFormat = ContentFormat.PLAIN

    def to_dict(self) -> dict:
        def _dump(value):
            return value.to_dict() if isinstance(value, RichDocument) else value

        return {
            "tasks": _dump(self.tasks),
            "regular_text": _dump(self.regular_text),
            "format": self.format.value,
        }


@dataclass
class TextConversion:
    """Both representations of a message body plus the links found in it."""
    text_content: Optional[str] = None
    delta_content: Optional[RichDocument] = None
    links: list[str] = field(default_factory=list)
