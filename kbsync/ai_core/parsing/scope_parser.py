"""
Scope Parser

Reads a knowledge unit's scope either from a structured mapping (frontmatter)
or from a "Scope Definition" section in markdown.

Recognized markdown layout:

    ## Scope Definition
    **Covers:** SSO configuration, SAML setup
    **Future Additions:**
    - SCIM provisioning
    **Not Included:**
    - Password policies

Header and field labels are matched against ordered variant lists. A section
without a covers field raises MalformedScopeError; no section returns None.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from kbsync.errors import MalformedScopeError
from kbsync.models.knowledge import ScopeDefinition

logger = logging.getLogger(__name__)

# Section headers, most specific first
SECTION_HEADERS = ["scope definition", "scope"]

# Field labels, most specific first
COVERS_LABELS = ["covers", "current coverage", "coverage"]
FUTURE_LABELS = ["future additions", "future addition", "planned additions"]
NOT_INCLUDED_LABELS = ["not included", "explicitly excluded", "excluded"]

_HEADING = re.compile(r"^\s*(#{1,6})\s+(.*?)\s*#*\s*$")
_FIELD = re.compile(
    r"^\s*(?:[-*]\s+)?(?:\*\*)?(?P<label>[^:*]+?)(?:\*\*)?\s*:(?:\*\*)?\s*(?P<rest>.*)$"
)
_BULLET = re.compile(r"^\s*[-*+]\s+(.*)$")
_WHAT_COVERS = re.compile(r"^what\b.*\bcovers$")


def _normalize_label(label: str) -> str:
    return re.sub(r"\s+", " ", label.strip().lower())


def _field_for_label(label: str) -> Optional[str]:
    normalized = _normalize_label(label)
    if normalized in COVERS_LABELS or _WHAT_COVERS.match(normalized):
        return "covers"
    if normalized in FUTURE_LABELS:
        return "future_additions"
    if normalized in NOT_INCLUDED_LABELS:
        return "not_included"
    return None


def find_scope_section(markdown: str) -> Optional[List[str]]:
    """
    Return the lines of the scope section, or None if there is none.

    The section runs from a recognized heading to the next heading of the same
    or a higher level.
    """
    lines = markdown.splitlines()
    for header in SECTION_HEADERS:
        for start, line in enumerate(lines):
            heading = _HEADING.match(line)
            if not heading or _normalize_label(heading.group(2)) != header:
                continue
            level = len(heading.group(1))
            section = []
            for following in lines[start + 1:]:
                next_heading = _HEADING.match(following)
                if next_heading and len(next_heading.group(1)) <= level:
                    break
                section.append(following)
            return section
    return None


def _split_fields(section: List[str]) -> Dict[str, List[str]]:
    """Group section lines under the field label they follow."""
    fields: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for line in section:
        match = _FIELD.match(line)
        field_name = _field_for_label(match.group("label")) if match else None
        if field_name:
            # First occurrence wins
            current = field_name if field_name not in fields else None
            if current:
                fields[current] = [match.group("rest")] if match.group("rest").strip() else []
            continue
        if current:
            fields[current].append(line)
    return fields


def _as_list(lines: List[str]) -> List[str]:
    bullets = [m.group(1).strip() for m in (_BULLET.match(line) for line in lines) if m]
    if bullets:
        return [b for b in bullets if b]
    inline = " ".join(line.strip() for line in lines if line.strip())
    return [part.strip() for part in re.split(r"[,;]", inline) if part.strip()]


def _as_text(lines: List[str]) -> str:
    bullets = [m.group(1).strip() for m in (_BULLET.match(line) for line in lines) if m]
    if bullets:
        return ", ".join(b for b in bullets if b)
    return " ".join(line.strip() for line in lines if line.strip())


def parse_scope_markdown(markdown: Optional[str]) -> Optional[ScopeDefinition]:
    """
    Extract a scope definition from markdown content.

    Args:
        markdown: Markdown content with an embedded scope section

    Returns:
        ScopeDefinition, or None if the content has no scope section

    Raises:
        MalformedScopeError: If the section exists but has no covers field
    """
    if not markdown:
        return None

    section = find_scope_section(markdown)
    if section is None:
        return None

    fields = _split_fields(section)
    covers = _as_text(fields.get("covers", []))
    if not covers:
        logger.error("Scope Definition section found but missing 'Covers' field")
        raise MalformedScopeError('Scope Definition section found but missing "Covers" field')

    return ScopeDefinition(
        covers=covers,
        future_additions=_as_list(fields.get("future_additions", [])),
        not_included=_as_list(fields.get("not_included", [])),
    )


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def sanitize_scope(raw: Any) -> ScopeDefinition:
    """
    Validate a scope mapping (e.g. from YAML frontmatter).

    Accepts snake_case or camelCase keys.

    Raises:
        MalformedScopeError: If raw is not a mapping or covers is missing/empty
    """
    if not isinstance(raw, dict):
        raise MalformedScopeError("Scope definition must be a mapping")

    covers = raw.get("covers")
    covers = covers.strip() if isinstance(covers, str) else ""
    if not covers:
        raise MalformedScopeError('Scope definition must include non-empty "covers" field')

    keywords = raw.get("keywords")
    return ScopeDefinition(
        covers=covers,
        future_additions=_string_list(raw.get("future_additions", raw.get("futureAdditions"))),
        not_included=_string_list(raw.get("not_included", raw.get("notIncluded"))),
        keywords=_string_list(keywords) or None,
    )
