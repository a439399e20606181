"""Detail-page document link recovery."""

from .documents import (
    DocumentLinkEnhancer,
    EnhancementResult,
    EnhancementWarning,
    parse_document_links,
)

__all__ = [
    "DocumentLinkEnhancer",
    "EnhancementResult",
    "EnhancementWarning",
    "parse_document_links",
]
