# Prompt templates
from kbsync.ai_core.prompts.matching import (
    SEMANTIC_MATCHING_SYSTEM_PROMPT,
    SEMANTIC_MATCHING_HUMAN_PROMPT,
    format_candidate_units,
)

__all__ = [
    "SEMANTIC_MATCHING_SYSTEM_PROMPT",
    "SEMANTIC_MATCHING_HUMAN_PROMPT",
    "format_candidate_units",
]
