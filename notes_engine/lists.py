"""
List-aware reconstruction for bullet, numbered and checkbox documents.

A rewrite of a to-do list often changes how many lines there are (items
get split, merged or added). The generic reconstructor would then shift
list markers onto the wrong lines or drop them. This module keeps the
document a list:

    * same line count   → every line keeps the block attributes of the
                          original line at the same position
    * different count   → every non-empty line and the final line get a
                          list marker, cycling through the original
                          markers in order
"""

import logging
from collections import Counter
from typing import Optional

from .delta import analyze, is_line_break
from .models import LIST_KINDS, LineBreak, RichDocument, TextRun

logger = logging.getLogger(__name__)

# Lower rank wins a tie on count: checkboxes before bullets/numbers.
_LIST_GROUP_RANK = {
    "checked": 0,
    "unchecked": 0,
    "bullet": 1,
    "ordered": 1,
}


def line_attributes(doc: RichDocument) -> list[dict]:
    """Attributes of every newline in document order, inline newlines included."""
    attrs = []
    for op in doc.ops:
        if is_line_break(op):
            attrs.append(dict(op.attributes or {}))
        elif isinstance(op, TextRun) and "\n" in op.text:
            attrs.extend(dict(op.attributes or {}) for _ in range(op.text.count("\n")))
    return attrs


def _has_list(attributes: Optional[dict]) -> bool:
    return bool(attributes) and attributes.get("list") in LIST_KINDS


def is_list_like(doc: RichDocument) -> bool:
    """True when any line break carries a recognized `list` attribute."""
    return any(_has_list(a) for a in line_attributes(doc))


def default_list_kind(list_attributes: list[dict]) -> Optional[str]:
    """Most frequent list kind; ties go checkbox group first, then alphabetical."""
    counts = Counter(a["list"] for a in list_attributes if _has_list(a))
    if not counts:
        return None
    return min(counts, key=lambda kind: (-counts[kind], _LIST_GROUP_RANK[kind], kind))


def _non_list_runs(doc: RichDocument) -> list[tuple[str, dict]]:
    """Text runs with inline formatting of their own (bold titles etc.)."""
    runs = []
    for op in doc.ops:
        if not isinstance(op, TextRun) or is_line_break(op) or not op.attributes:
            continue
        attrs = {k: v for k, v in op.attributes.items() if k != "list"}
        text = op.text.strip()
        if attrs and text:
            runs.append((text, attrs))
    return runs


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def preserve_list_formatting(original: RichDocument, enhanced_text: str) -> RichDocument:
    """Rebuild a list document around rewritten text.

    Every line, the last one included, is closed by a LineBreak, so the
    output always ends with a newline like any rich-text document.
    """
    per_line = line_attributes(original)
    list_attributes = [a for a in per_line if _has_list(a)]
    default_kind = default_list_kind(list_attributes)
    inline_runs = _non_list_runs(original)

    original_lines = _split_lines(analyze(original).plain_text)
    lines = _split_lines(enhanced_text)
    if len(lines) > 1 and not lines[0].strip():
        lines = lines[1:]

    positional = len(lines) == len(original_lines)
    logger.debug(
        f"List reconstruction: {len(original_lines)} → {len(lines)} lines, "
        f"{len(list_attributes)} list markers, default={default_kind}, "
        f"{'positional' if positional else 'cycled'} mapping"
    )

    ops = []
    last = len(lines) - 1
    for index, line in enumerate(lines):
        if line:
            ops.append(TextRun(line, _match_inline(line, inline_runs)))

        if positional and index < len(per_line):
            attrs = per_line[index]
        elif line or index == last:
            if list_attributes:
                attrs = list_attributes[index % len(list_attributes)]
            else:
                attrs = {"list": default_kind} if default_kind else {}
        else:
            attrs = {}
        ops.append(LineBreak(dict(attrs) or None))

    doc = RichDocument(ops)
    if default_kind:
        doc = ensure_list_tagged(doc, default_kind)
    return doc


def _match_inline(line: str, inline_runs: list[tuple[str, dict]]) -> Optional[dict]:
    for text, attrs in inline_runs:
        if text in line:
            return dict(attrs)
    return None


def ensure_list_tagged(doc: RichDocument, default_kind: str) -> RichDocument:
    """Tag every line break with `default_kind` if none carries a list marker."""
    if any(isinstance(op, LineBreak) and _has_list(op.attributes) for op in doc.ops):
        return doc

    logger.warning(f"No list markers survived reconstruction, applying '{default_kind}' to all lines")
    ops = []
    for op in doc.ops:
        if isinstance(op, LineBreak):
            ops.append(LineBreak({**(op.attributes or {}), "list": default_kind}))
        else:
            ops.append(op)
    return RichDocument(ops)
