"""
URL detection in message text and rich-text documents.
"""

import re
from typing import Optional

from .models import RichDocument, TextRun

LINK_PATTERN = re.compile(
    r"\b(?:https?://)?(?:www\.)?(?:[a-zA-Z0-9-]+\.)+[a-zA-Z]{2,}(?:/[^\s]*)?"
)


def extract_links(text: Optional[str]) -> list[str]:
    """Return every URL-like substring of `text`, in order, duplicates kept."""
    if not text:
        return []
    return [m.group(0) for m in LINK_PATTERN.finditer(text)]


def extract_links_from_doc(doc: RichDocument) -> list[str]:
    """Links from `link` attributes and from the text itself, de-duplicated."""
    links = []
    for op in doc.ops:
        if op.attributes and op.attributes.get("link"):
            links.append(op.attributes["link"])
        if isinstance(op, TextRun):
            links.extend(extract_links(op.text))
    return list(dict.fromkeys(links))


def link_records(links: list[str], message_id) -> list[dict]:
    """Rows ready for the links table."""
    return [{"url": link, "message_id": message_id} for link in links]
