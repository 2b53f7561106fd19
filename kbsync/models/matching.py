"""
Matching Models

Request, result and semantic-service contract models for content-to-unit matching.
"""

from enum import Enum
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from kbsync.config import get_settings
from kbsync.models.knowledge import KnowledgeUnit, ScopeDefinition


class ContentType(str, Enum):
    """Kind of content being matched. Only affects the semantic hint."""

    SOURCE = "source"
    QUESTION = "question"
    QUESTION_BATCH = "question_batch"


class MatchStrategy(str, Enum):
    """Matching method."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class MatchMode(str, Enum):
    """Purpose of a matching call."""

    PREVIEW = "preview"  # Full ranked view for reviewers
    EXECUTE = "execute"  # Final selection
    FORECAST = "forecast"  # Cost estimate only


class Confidence(str, Enum):
    """Confidence band of a match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ResultStrategy(str, Enum):
    """Which pass produced a match."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"


class ContentItem(BaseModel):
    """A piece of content to match. Built per call, never persisted."""

    id: str = Field(..., description="Content identifier")
    label: str = Field("", description="Human-readable label")
    content: str = Field("", description="Body text")
    keywords: Optional[List[str]] = Field(
        None, description="Pre-extracted keywords (for staged sources)"
    )


class MatchResult(BaseModel):
    """A single content-to-unit match. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    unit_id: str
    unit_title: str
    score: float = Field(..., ge=0.0, le=1.0)
    confidence: Confidence
    matched_terms: List[str] = Field(default_factory=list)
    strategy: ResultStrategy
    reason: str
    suggested_excerpt: Optional[str] = None


class UnitRanking(BaseModel):
    """A unit with its ranking info, for the preview view."""

    id: str
    title: str
    score: float
    match_percentage: int
    matched_terms: List[str] = Field(default_factory=list)
    recommended: bool = Field(
        False, description="Whether the unit is in the final match set"
    )


class MatchOptions(BaseModel):
    """Optional knobs for a matching call."""

    max_units: int = Field(
        default_factory=lambda: get_settings().matching_max_units,
        ge=1,
        description="Max units to return",
    )
    min_score: float = Field(
        default_factory=lambda: get_settings().matching_min_score,
        ge=0.0,
        le=1.0,
        description="Keyword threshold",
    )
    approved_unit_ids: Optional[List[str]] = Field(
        None, description="Execute mode: restrict results to these unit ids"
    )


class MatchRequest(BaseModel):
    """Request for content-to-unit matching."""

    content: List[ContentItem] = Field(
        default_factory=list, description="Content to match (single item or batch)"
    )
    content_type: ContentType = ContentType.SOURCE
    units: List[KnowledgeUnit] = Field(
        default_factory=list, description="Candidate knowledge units"
    )
    library_id: Optional[str] = None
    strategy: MatchStrategy = MatchStrategy.KEYWORD
    mode: MatchMode = MatchMode.EXECUTE
    options: MatchOptions = Field(default_factory=MatchOptions)
    additional_context: Optional[str] = Field(
        None, description="Extra context for semantic matching"
    )

    @field_validator("content", mode="before")
    @classmethod
    def _wrap_single_item(cls, value):
        if isinstance(value, (dict, ContentItem)):
            return [value]
        return value


class ForecastResult(BaseModel):
    """Forecast mode result: estimation only."""

    mode: Literal["forecast"] = "forecast"
    total_content_items: int
    estimated_matched_units: int
    estimated_tokens: int
    coverage_percent: int


class ExecuteResult(BaseModel):
    """Execute mode result: the matched units."""

    mode: Literal["execute"] = "execute"
    total_content_items: int
    matches: List[MatchResult] = Field(default_factory=list)
    matched_count: int = 0


class PreviewCoverage(BaseModel):
    recommended_count: int
    total_units: int
    avg_recommended_score: float


class PreviewResult(BaseModel):
    """Preview mode result: every unit ranked plus the recommendations."""

    mode: Literal["preview"] = "preview"
    total_content_items: int
    total_units_available: int
    recommendations: List[MatchResult] = Field(default_factory=list)
    all_units: List[UnitRanking] = Field(default_factory=list)
    coverage: PreviewCoverage


MatchResponse = Union[PreviewResult, ExecuteResult, ForecastResult]


# Semantic matching service contract


class SemanticCandidate(BaseModel):
    """What crosses the semantic boundary for a unit: id, title and scope only."""

    id: str
    title: str
    scope: ScopeDefinition


class SemanticMatchRequest(BaseModel):
    content_label: str
    content_body: str
    candidate_units: List[SemanticCandidate]
    context_hint: str


class SemanticMatch(BaseModel):
    """A single match returned by the semantic service."""

    unit_id: str = Field(..., description="Id of the matched knowledge unit")
    unit_title: str = Field(..., description="Title of the matched knowledge unit")
    confidence: Confidence = Field(
        ..., description="Match confidence: high, medium, or low"
    )
    reason: str = Field(..., description="Why this content belongs in the unit")
    suggested_excerpt: Optional[str] = Field(
        None, description="Part of the content most relevant to the unit"
    )


class SemanticMatchResponse(BaseModel):
    """Structured output of the semantic matching service."""

    matches: List[SemanticMatch] = Field(
        default_factory=list, description="Matched knowledge units, best first"
    )
