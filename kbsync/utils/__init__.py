"""
Utility package exports
"""

from kbsync.utils.helpers import flatten_list, dedupe_preserving_order, clamp01, generate_preview, extract_frontmatter
from kbsync.utils.cancellation import CancellationToken, is_cancelled

__all__ = ["flatten_list", "dedupe_preserving_order", "clamp01", "generate_preview", "extract_frontmatter", "CancellationToken", "is_cancelled"]
