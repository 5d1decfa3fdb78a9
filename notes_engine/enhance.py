"""
Text enhancement orchestrator.

Pure function interface. The only side effect is the single call to the
rewrite service, made after all validation and analysis and before any
reconstruction.

Usage:
    from notes_engine import enhance_text

    result = enhance_text(delta_json, is_rich_format=True)
    print(result.to_dict()["enhanced"])
"""

import logging
from typing import Callable, Optional, Union

from .delta import analyze, reconstruct
from .errors import (
    EnhancementError,
    InvalidContent,
    InvalidDocument,
    NoEnhanceableText,
    RewriteServiceFailure,
)
from .lists import is_list_like, preserve_list_formatting
from .models import ContentFormat, EnhancementResult, RichDocument

logger = logging.getLogger(__name__)

Rewriter = Callable[[str], str]


def _default_rewriter() -> Rewriter:
    from .ai import GeminiClient

    return GeminiClient.from_config().rewrite


def _call_rewriter(rewriter: Rewriter, text: str) -> str:
    try:
        enhanced = rewriter(text)
    except EnhancementError:
        raise
    except Exception as e:
        logger.error(f"❌ Rewrite service failed: {e}")
        raise RewriteServiceFailure(f"Failed to enhance text: {e}", reason=e) from e

    if not isinstance(enhanced, str) or not enhanced.strip():
        raise RewriteServiceFailure("Failed to enhance text: rewrite service returned no text")
    return enhanced


def _coerce_document(content) -> RichDocument:
    if isinstance(content, RichDocument):
        if not content.ops:
            raise InvalidDocument("Invalid Delta format: Empty ops array")
        return content
    if isinstance(content, (str, bytes)):
        return RichDocument.from_json(content)
    return RichDocument.from_dict(content)


def enhance_text(
    content: Union[str, dict, RichDocument],
    is_rich_format: bool = False,
    rewriter: Optional[Rewriter] = None,
) -> EnhancementResult:
    """Enhance a plain string or a rich-text document.

    Args:
        content: Plain text, or for the rich path a document given as a
                 RichDocument, a `{ops: [...]}` dict, or its JSON string.
        is_rich_format: Selects the rich-text path.
        rewriter: `str -> str` rewrite service. Defaults to a GeminiClient
                  built from the environment.

    Returns:
        EnhancementResult with the enhanced content, the original and the format.

    Raises:
        InvalidContent, InvalidDocument, NoEnhanceableText,
        RewriteServiceFailure.
    """
    if not is_rich_format:
        if not isinstance(content, str) or not content.strip():
            raise InvalidContent("Content is empty or invalid")

        rewriter = rewriter or _default_rewriter()
        logger.info(f"Enhancing plain text ({len(content)} chars)")
        enhanced = _call_rewriter(rewriter, content)
        return EnhancementResult(enhanced, content, ContentFormat.PLAIN)

    doc = _coerce_document(content)
    analysis = analyze(doc)
    if not analysis.plain_text.strip():
        raise NoEnhanceableText("No text content found in Delta to enhance")

    rewriter = rewriter or _default_rewriter()
    logger.info(
        f"Enhancing rich text ({len(doc.ops)} ops, {len(analysis.plain_text)} chars)"
    )
    enhanced_text = _call_rewriter(rewriter, analysis.plain_text)

    if is_list_like(doc):
        logger.info("List document detected, preserving list formatting")
        enhanced_doc = preserve_list_formatting(doc, enhanced_text)
    else:
        enhanced_doc = reconstruct(enhanced_text, analysis.format_spans, analysis.line_breaks)

    logger.info(f"✅ Enhancement complete: {len(enhanced_doc.ops)} ops")
    return EnhancementResult(enhanced_doc, doc, ContentFormat.DELTA)
