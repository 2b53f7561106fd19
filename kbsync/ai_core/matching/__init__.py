from kbsync.ai_core.matching.keyword_extractor import (
    STOP_WORDS,
    extract_keywords,
    score_keyword_match,
)
from kbsync.ai_core.matching.scope_scorer import (
    ScopeScore,
    score_content_against_scope,
    score_to_confidence,
)
from kbsync.ai_core.matching.semantic_matcher import SemanticMatcher, LLMSemanticMatcher

__all__ = [
    "STOP_WORDS",
    "extract_keywords",
    "score_keyword_match",
    "ScopeScore",
    "score_content_against_scope",
    "score_to_confidence",
    "SemanticMatcher",
    "LLMSemanticMatcher",
]
