# Shared data models
from kbsync.models.knowledge import KnowledgeUnit, ScopeDefinition
from kbsync.models.matching import (
    ContentItem,
    ContentType,
    Confidence,
    MatchMode,
    MatchRequest,
    MatchResult,
    MatchStrategy,
    ResultStrategy,
)
from kbsync.models.staging import (
    DiscoveryCursor,
    DiscoveryResult,
    DiscoveryStatus,
    PaginationStyle,
    RawItem,
    SourceType,
    StagedItem,
    StageResult,
)

__all__ = [
    "KnowledgeUnit",
    "ScopeDefinition",
    "ContentItem",
    "ContentType",
    "Confidence",
    "MatchMode",
    "MatchRequest",
    "MatchResult",
    "MatchStrategy",
    "ResultStrategy",
    "DiscoveryCursor",
    "DiscoveryResult",
    "DiscoveryStatus",
    "PaginationStyle",
    "RawItem",
    "SourceType",
    "StagedItem",
    "StageResult",
]
