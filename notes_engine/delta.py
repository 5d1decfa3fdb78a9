"""
Delta ⇄ plain-text round trip.

analyze() flattens a rich-text document into the plain text an AI model
can rewrite, remembering where formatting and line breaks sat.
reconstruct() maps rewritten text back onto those records.

The remap is best-effort. It is exact when the rewrite keeps line
boundaries and character offsets, which holds for ordinary prose because
the rewrite prompt asks for the same number of lines. When lines grow or
shrink, formatting ranges are applied by original offset and may land
slightly off.
"""

import logging
from bisect import bisect_left

from .models import (
    DeltaAnalysis,
    Embed,
    FormatSpan,
    LineBreak,
    LineBreakRecord,
    RichDocument,
    TextRun,
)

logger = logging.getLogger(__name__)

EMBED_PLACEHOLDER = " "


def is_line_break(op) -> bool:
    """True for a LineBreak or a text run whose whole content is one newline."""
    return isinstance(op, LineBreak) or (isinstance(op, TextRun) and op.text == "\n")


def analyze(doc: RichDocument) -> DeltaAnalysis:
    """Walk `doc` and return its plain text, format spans and line breaks.

    Only an op that is exactly "\\n" yields a LineBreakRecord. Newlines
    inside longer text runs stay in the plain text but get no record, so
    line indices seen by reconstruct() can drift from the record list for
    such documents.
    """
    parts: list[str] = []
    spans: list[FormatSpan] = []
    breaks: list[LineBreakRecord] = []
    cursor = 0

    for op in doc.ops:
        if is_line_break(op):
            breaks.append(LineBreakRecord(cursor, dict(op.attributes or {})))
            parts.append("\n")
            cursor += 1
        elif isinstance(op, TextRun):
            parts.append(op.text)
            if op.attributes:
                spans.append(FormatSpan(cursor, cursor + len(op.text), dict(op.attributes)))
            cursor += len(op.text)
        elif isinstance(op, Embed):
            parts.append(EMBED_PLACEHOLDER)
            spans.append(FormatSpan(
                cursor,
                cursor + 1,
                dict(op.attributes) if op.attributes else None,
                op.payload,
            ))
            cursor += 1

    plain_text = "".join(parts)
    logger.debug(
        f"Analyzed {len(doc.ops)} ops → {len(plain_text)} chars, "
        f"{len(spans)} spans, {len(breaks)} line breaks"
    )
    return DeltaAnalysis(plain_text, spans, breaks)


def reconstruct(
    enhanced_text: str,
    format_spans: list[FormatSpan],
    line_breaks: list[LineBreakRecord],
) -> RichDocument:
    """Rebuild a document from rewritten text and the original records.

    Each line is emitted as unformatted text around the format spans that
    overlap its offsets, then closed by a LineBreak carrying the attributes
    of the line break at the same index. The final segment of the split
    gets no break, so a trailing newline in `enhanced_text` yields exactly
    one trailing LineBreak.

    Embeds are anchored to the line and column they had in the original
    and never consume rewritten text other than their own placeholder.
    """
    ops = []
    lines = enhanced_text.split("\n")
    text_spans = sorted((s for s in format_spans if s.embed is None), key=lambda s: s.start)
    embeds = _anchor_embeds(format_spans, line_breaks, lines)
    line_start = 0

    for index, line in enumerate(lines):
        ops.extend(_emit_line(line, line_start, text_spans, embeds.get(index, [])))

        if index < len(lines) - 1:
            record = line_breaks[index] if index < len(line_breaks) else None
            if record is not None and record.attributes:
                ops.append(LineBreak(dict(record.attributes)))
            else:
                ops.append(LineBreak())

        line_start += len(line) + 1

    return RichDocument(ops)


def _anchor_embeds(
    format_spans: list[FormatSpan],
    line_breaks: list[LineBreakRecord],
    lines: list[str],
) -> dict[int, list[tuple[int, FormatSpan]]]:
    """Map rewritten line index -> [(column, embed span)] from original positions."""
    positions = [r.position for r in line_breaks]
    # a trailing newline leaves an empty last segment that must stay empty
    last_line = len(lines) - 2 if len(lines) > 1 and lines[-1] == "" else len(lines) - 1

    anchored: dict[int, list[tuple[int, FormatSpan]]] = {}
    for span in sorted((s for s in format_spans if s.embed is not None), key=lambda s: s.start):
        index = bisect_left(positions, span.start)
        column = span.start - (positions[index - 1] + 1 if index else 0)
        if index > last_line:
            index, column = last_line, len(lines[last_line])
        anchored.setdefault(index, []).append((column, span))
    return anchored


def _place_embed(line: str, column: int, cursor: int) -> tuple[int, bool]:
    """Column to insert an embed at, and whether it takes the placeholder there."""
    column = max(cursor, min(column, len(line)))
    if column < len(line) and line[column] == EMBED_PLACEHOLDER:
        return column, True
    while 0 < column < len(line) and not line[column - 1].isspace() and not line[column].isspace():
        column += 1
    return column, False


def _emit_line(
    line: str,
    line_start: int,
    text_spans: list[FormatSpan],
    embeds: list[tuple[int, FormatSpan]],
) -> list:
    ops = []
    cursor = 0
    for column, span in embeds:
        at, consumed = _place_embed(line, column, cursor)
        ops.extend(_emit_text(line, line_start, cursor, at, text_spans))
        ops.append(Embed(span.embed, span.attributes))
        cursor = at + 1 if consumed else at

    ops.extend(_emit_text(line, line_start, cursor, len(line), text_spans))
    return ops


def _emit_text(line: str, line_start: int, start: int, end: int, spans: list[FormatSpan]) -> list:
    """Runs for line[start:end], formatted where text spans overlap it."""
    seg_start, seg_end = line_start + start, line_start + end
    ops = []
    cursor = seg_start

    for span in spans:
        if span.end <= seg_start or span.start >= seg_end:
            continue
        lo = max(span.start, cursor)
        hi = min(span.end, seg_end)
        if lo > cursor:
            ops.append(TextRun(line[cursor - line_start:lo - line_start]))
        if hi > lo:
            ops.append(TextRun(line[lo - line_start:hi - line_start], dict(span.attributes or {}) or None))
        cursor = max(cursor, hi)

    if cursor < seg_end:
        ops.append(TextRun(line[cursor - line_start:seg_end - line_start]))
    return ops
