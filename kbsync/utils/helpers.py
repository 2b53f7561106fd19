"""
Shared Utility Functions

Common helper functions used across multiple modules.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


def flatten_list(items: Any) -> List[str]:
    """
    Normalize a frontmatter list field (keywords, tags) to a list of strings.

    YAML authors write these as a string, a list, or a list of lists:
    "sso" -> ["sso"], [["sso", "saml"]] -> ["sso", "saml"], None -> [].
    Only one level of nesting is unpacked.
    """
    if not items:
        return []
    if isinstance(items, str):
        return [items]
    if not isinstance(items, list):
        return [str(items)]

    values = []
    for entry in items:
        for value in entry if isinstance(entry, list) else [entry]:
            values.append(value if isinstance(value, str) else str(value))
    return values


def dedupe_preserving_order(items: Iterable[str]) -> List[str]:
    """Drop repeated entries, keeping the first occurrence of each."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def generate_preview(content: Optional[str], max_length: int = 200) -> str:
    """
    Generate a short content preview.

    Args:
        content: Full content (may be None)
        max_length: Maximum preview length before truncation

    Returns:
        The content itself if short enough, else a truncated prefix ending in "..."
    """
    if not content or not isinstance(content, str):
        return ""
    if len(content) <= max_length:
        return content
    return content[:max_length].strip() + "..."


def extract_frontmatter(content: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Extract YAML frontmatter from markdown content.

    Args:
        content: Raw markdown content

    Returns:
        Tuple of (frontmatter_dict, markdown_content). The dict is None when the
        content has no frontmatter or it cannot be parsed.
    """
    if not content.startswith("---"):
        return None, content

    parts = content.split("---", 2)
    if len(parts) < 3:
        return None, content

    frontmatter_yaml = parts[1].strip()
    markdown_content = parts[2].strip()

    try:
        frontmatter = yaml.safe_load(frontmatter_yaml) if frontmatter_yaml else {}
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse YAML frontmatter: {e}")
        return None, content

    if not isinstance(frontmatter, dict):
        return None, content

    return frontmatter, markdown_content
