"""
Scope Scorer

Scores content against a knowledge unit's scope definition:
- Keyword overlap with the unit's keywords (60% weight)
- Direct matches of "covers" terms (30% weight)
- +0.1 per "future additions" entry found in the content
- -0.3 per "not included" entry found in the content
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from kbsync.ai_core.matching.keyword_extractor import score_keyword_match, tokenize
from kbsync.models.knowledge import ScopeDefinition
from kbsync.models.matching import Confidence
from kbsync.utils.helpers import clamp01, dedupe_preserving_order

KEYWORD_WEIGHT = 0.6
TERM_WEIGHT = 0.3
FUTURE_ADDITION_BONUS = 0.1
EXCLUSION_PENALTY = 0.3

HIGH_CONFIDENCE_THRESHOLD = 0.6
MEDIUM_CONFIDENCE_THRESHOLD = 0.3

_TERM_DELIMITERS = re.compile(r"[,;]")


@dataclass(frozen=True)
class ScopeScore:
    """Score of content against one scope, with the terms that matched."""

    score: float
    matched_terms: List[str] = field(default_factory=list)


def extract_scope_terms(covers: Optional[str]) -> List[str]:
    """
    Split a covers field into terms.

    "SSO configuration; SAML setup" -> ["sso configuration", "saml setup"]
    """
    if not covers:
        return []
    terms = (term.strip().lower() for term in _TERM_DELIMITERS.split(covers))
    return [term for term in terms if term]


def unit_keywords(scope: ScopeDefinition) -> List[str]:
    """
    Keywords used for overlap scoring.

    Stored keywords win; otherwise the covers terms are broken into words with
    the same tokenization as content keywords.
    """
    if scope.keywords:
        return [keyword.lower() for keyword in scope.keywords]
    return dedupe_preserving_order(tokenize(" ".join(extract_scope_terms(scope.covers))))


def term_matches(content_lower: str, term: str) -> bool:
    """A term matches verbatim, or through any of its words of 3+ characters."""
    if term in content_lower:
        return True
    return any(len(word) >= 3 and word in content_lower for word in term.split())


def score_content_against_scope(
    content: str,
    content_keywords: Sequence[str],
    scope: Optional[ScopeDefinition],
) -> ScopeScore:
    """
    Score content against a single scope definition.

    Args:
        content: Content text (combined, for batches)
        content_keywords: Keywords extracted from the content
        scope: The unit's scope definition

    Returns:
        ScopeScore clamped to [0, 1]; (0, []) when the scope has no covers
    """
    if scope is None or not scope.covers or not scope.covers.strip():
        return ScopeScore(score=0.0, matched_terms=[])

    content_lower = (content or "").lower()

    keywords = unit_keywords(scope)
    overlap = (
        score_keyword_match(content_keywords, keywords)
        if content_keywords and keywords
        else 0.0
    )

    scope_terms = extract_scope_terms(scope.covers)
    matched_scope_terms = [term for term in scope_terms if term_matches(content_lower, term)]
    term_ratio = len(matched_scope_terms) / max(len(scope_terms), 1)

    future_bonus = 0.0
    matched_additions = []
    for addition in scope.future_additions:
        if addition and addition.lower() in content_lower:
            future_bonus += FUTURE_ADDITION_BONUS
            matched_additions.append(addition)

    penalty = 0.0
    for excluded in scope.not_included:
        if excluded and excluded.lower() in content_lower:
            penalty += EXCLUSION_PENALTY

    score = clamp01(
        overlap * KEYWORD_WEIGHT + term_ratio * TERM_WEIGHT + future_bonus - penalty
    )

    return ScopeScore(
        score=score,
        matched_terms=dedupe_preserving_order(matched_scope_terms + matched_additions),
    )


def score_to_confidence(score: float) -> Confidence:
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return Confidence.HIGH
    if score >= MEDIUM_CONFIDENCE_THRESHOLD:
        return Confidence.MEDIUM
    return Confidence.LOW
