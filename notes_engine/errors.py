"""
Error kinds surfaced by the enhancement pipeline.

None of these are retried inside the engine; the caller decides.
"""

from typing import Optional


class EnhancementError(Exception):
    """Base class for every enhancement failure."""


class InvalidContent(EnhancementError):
    """Plain-text path given empty, non-string or whitespace-only input."""


class InvalidDocument(EnhancementError):
    """Rich-text path given unparsable JSON, a non-object, or missing/empty ops."""


class NoEnhanceableText(EnhancementError):
    """The document holds no text once markers and embeds are set aside."""


class RewriteServiceFailure(EnhancementError):
    """The external rewrite call failed, timed out, or returned nothing usable."""

    def __init__(self, message: str, reason: Optional[BaseException] = None):
        super().__init__(message)
        self.reason = reason
