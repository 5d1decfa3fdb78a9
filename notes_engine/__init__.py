"""
Notes Engine

Rich-text ("delta") round trip and AI augmentation for a notes backend.

The delta engine turns a formatted document into plain text an AI model
can rewrite, then maps the rewritten text back onto the original
formatting, keeping bullet and checkbox lists intact.

No FastAPI or database dependency.
Pure function interface: enhance_text(content, is_rich_format) -> EnhancementResult
"""

__version__ = "1.0.0"

from .models import (
    ContentFormat,
    ListKind,
    TaskType,
    TextRun,
    LineBreak,
    Embed,
    RichDocument,
    FormatSpan,
    LineBreakRecord,
    DeltaAnalysis,
    EnhancementResult,
    ExtractedTask,
    TodoConversion,
    TextConversion,
)
from .errors import (
    EnhancementError,
    InvalidContent,
    InvalidDocument,
    NoEnhanceableText,
    RewriteServiceFailure,
)
from .links import extract_links, extract_links_from_doc, link_records
from .delta import analyze, reconstruct
from .lists import is_list_like, default_list_kind, preserve_list_formatting
from .convert import (
    plain_to_doc,
    doc_to_plain,
    text_to_doc,
    tasks_to_doc,
    text_conversions,
)
from .enhance import enhance_text
