"""
Conversions between plain strings and rich-text documents.

Used when a message arrives in only one of its two representations and
the other has to be derived for storage.
"""

from typing import Optional

from .links import LINK_PATTERN, extract_links, extract_links_from_doc
from .models import LineBreak, RichDocument, TextConversion, TextRun


def plain_to_doc(text: str, detect_links: bool = True) -> RichDocument:
    """Wrap a plain string into a document.

    With `detect_links`, every URL becomes its own run with a `link`
    attribute equal to the URL. Empty input yields one empty run, never
    zero operations.
    """
    if not detect_links:
        return RichDocument([TextRun(text)])

    ops = []
    last = 0
    for match in LINK_PATTERN.finditer(text):
        if match.start() > last:
            ops.append(TextRun(text[last:match.start()]))
        ops.append(TextRun(match.group(0), {"link": match.group(0)}))
        last = match.end()

    if last < len(text):
        ops.append(TextRun(text[last:]))
    if not ops:
        ops.append(TextRun(""))
    return RichDocument(ops)


def doc_to_plain(doc: RichDocument) -> str:
    """Concatenate the text of a document.

    A run with a `link` attribute contributes the URL rather than its
    displayed text. Embeds contribute nothing.
    """
    parts = []
    for op in doc.ops:
        if isinstance(op, LineBreak):
            parts.append("\n")
        elif isinstance(op, TextRun):
            link = (op.attributes or {}).get("link")
            parts.append(link if link else op.text)
    return "".join(parts)


def text_to_doc(text: str) -> RichDocument:
    """One run per non-empty line, one LineBreak per newline. Empty → no ops."""
    if not text:
        return RichDocument([])

    ops = []
    lines = text.split("\n")
    for index, line in enumerate(lines):
        if line:
            ops.append(TextRun(line))
        if index < len(lines) - 1:
            ops.append(LineBreak())
    return RichDocument(ops)


def tasks_to_doc(tasks: list[str]) -> RichDocument:
    """Render tasks as an unchecked checkbox list."""
    ops = []
    for task in tasks:
        if task:
            ops.append(TextRun(task))
        ops.append(LineBreak({"list": "unchecked"}))
    return RichDocument(ops)


def text_conversions(
    text_content: Optional[str] = None,
    delta_content: Optional[RichDocument] = None,
) -> TextConversion:
    """Fill in whichever representation of a message body is missing.

    A document takes precedence over text when both are given.
    """
    if delta_content is not None:
        return TextConversion(
            text_content=doc_to_plain(delta_content),
            delta_content=delta_content,
            links=extract_links_from_doc(delta_content),
        )
    if text_content:
        return TextConversion(
            text_content=text_content,
            delta_content=plain_to_doc(text_content),
            links=extract_links(text_content),
        )
    return TextConversion(text_content=text_content)
