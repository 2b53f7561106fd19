"""
Matching Orchestrator

Matches content (staged sources or questions) to knowledge units.

Strategies:
- keyword: scope scoring only, no remote calls
- semantic: one call to the semantic matcher
- hybrid: semantic results first, keyword results fill the gaps; degrades to
  keyword-only when the semantic matcher is unavailable

Modes:
- forecast: cost estimate, never reads content
- execute: final match list
- preview: final match list plus every candidate unit ranked
"""

import logging
from typing import List, Optional, Sequence

from kbsync.ai_core.matching.keyword_extractor import extract_keywords
from kbsync.ai_core.matching.scope_scorer import (
    score_content_against_scope,
    score_to_confidence,
)
from kbsync.ai_core.matching.semantic_matcher import SemanticMatcher
from kbsync.errors import (
    ContractViolationError,
    OperationCancelledError,
    RemoteUnavailableError,
)
from kbsync.models.knowledge import KnowledgeUnit
from kbsync.models.matching import (
    Confidence,
    ContentItem,
    ContentType,
    ExecuteResult,
    ForecastResult,
    MatchMode,
    MatchRequest,
    MatchResponse,
    MatchResult,
    MatchStrategy,
    PreviewCoverage,
    PreviewResult,
    ResultStrategy,
    SemanticCandidate,
    SemanticMatchRequest,
    UnitRanking,
)
from kbsync.utils.cancellation import CancellationToken, is_cancelled
from kbsync.utils.helpers import dedupe_preserving_order

logger = logging.getLogger(__name__)

FORECAST_MAX_UNITS = 8
FORECAST_TOKENS_PER_UNIT = 3000
FORECAST_TOKENS_PER_ITEM = 200
FORECAST_TOKENS_OVERHEAD = 500

CONFIDENCE_SCORES = {
    Confidence.HIGH: 0.9,
    Confidence.MEDIUM: 0.6,
    Confidence.LOW: 0.3,
}

QUESTION_HINT = (
    "These are questions to answer. "
    "Match them to knowledge units that can provide relevant information."
)
SOURCE_HINT = (
    "These are source materials. "
    "Match them to knowledge units that should incorporate this knowledge."
)


def should_suggest_new_unit(matches: Sequence[MatchResult]) -> bool:
    """
    Whether a new knowledge unit should be suggested for the content.

    Any existing match, even a low-confidence one, suppresses the suggestion.
    """
    has_high_confidence = any(
        m.confidence == Confidence.HIGH and m.score >= 0.6 for m in matches
    )
    return not has_high_confidence and len(matches) == 0


def _combined_content(items: Sequence[ContentItem]) -> str:
    return "\n\n".join(item.content for item in items)


def _combined_keywords(items: Sequence[ContentItem]) -> List[str]:
    keywords: List[str] = []
    for item in items:
        keywords.extend(item.keywords if item.keywords else extract_keywords(item.content, 5))
    return dedupe_preserving_order(keywords)


def _keyword_matches(
    items: Sequence[ContentItem],
    units: Sequence[KnowledgeUnit],
    min_score: float,
    max_units: int,
) -> List[MatchResult]:
    combined = _combined_content(items)
    keywords = _combined_keywords(items)

    matches = []
    for unit in units:
        result = score_content_against_scope(combined, keywords, unit.scope)
        if result.score < min_score:
            continue
        matches.append(
            MatchResult(
                unit_id=unit.id,
                unit_title=unit.title,
                score=result.score,
                confidence=score_to_confidence(result.score),
                matched_terms=result.matched_terms,
                strategy=ResultStrategy.KEYWORD,
                reason=(
                    f"Keyword match: {', '.join(result.matched_terms[:3])}"
                    if result.matched_terms
                    else "Partial keyword overlap"
                ),
            )
        )

    matches.sort(key=lambda m: m.score, reverse=True)
    return matches[:max_units]


def quick_keyword_matches(
    item: ContentItem, units: Sequence[KnowledgeUnit], max_units: int = 5
) -> List[MatchResult]:
    """Keyword-only matching for a single item, without validation or modes."""
    candidates = [unit for unit in units if unit.is_matchable]
    return _keyword_matches([item], candidates, min_score=0.1, max_units=max_units)


class MatchingOrchestrator:
    """Runs a matching request through the selected strategy and mode."""

    def __init__(self, semantic_matcher: Optional[SemanticMatcher] = None):
        self.semantic_matcher = semantic_matcher

    async def match(
        self, request: MatchRequest, cancel_token: Optional[CancellationToken] = None
    ) -> MatchResponse:
        """
        Match content to knowledge units.

        Args:
            request: Content, candidate units, strategy, mode and options
            cancel_token: Checked before the semantic call

        Returns:
            ForecastResult, ExecuteResult or PreviewResult depending on mode

        Raises:
            ContractViolationError: No content, or no unit with a usable scope
            RemoteUnavailableError: Semantic matcher failed under strategy=semantic
            OperationCancelledError: Cancelled before the semantic call
        """
        items = request.content
        units = self._validate(request)
        options = request.options

        logger.info(
            f"Matching {len(items)} content items against {len(units)} units "
            f"(strategy={request.strategy.value}, mode={request.mode.value})"
        )

        if request.mode == MatchMode.FORECAST:
            return self._forecast(len(items), len(units))

        keyword_results: List[MatchResult] = []
        if request.strategy in (MatchStrategy.KEYWORD, MatchStrategy.HYBRID):
            keyword_results = _keyword_matches(
                items, units, options.min_score, options.max_units
            )
            logger.debug(f"Keyword pass matched {len(keyword_results)} units")

        semantic_results: List[MatchResult] = []
        if request.strategy in (MatchStrategy.SEMANTIC, MatchStrategy.HYBRID):
            try:
                semantic_results = await self._semantic_matches(
                    request, units, cancel_token
                )
                logger.debug(f"Semantic pass matched {len(semantic_results)} units")
            except OperationCancelledError:
                raise
            except Exception as e:
                if request.strategy == MatchStrategy.SEMANTIC:
                    logger.error(f"Semantic matching failed: {str(e)}", exc_info=True)
                    if isinstance(e, RemoteUnavailableError):
                        raise
                    raise RemoteUnavailableError(f"Semantic matching failed: {str(e)}") from e
                logger.warning(
                    f"Semantic matching unavailable, falling back to keyword matches: {str(e)}"
                )

        if request.strategy == MatchStrategy.KEYWORD:
            final_matches = keyword_results
        elif request.strategy == MatchStrategy.SEMANTIC:
            final_matches = semantic_results
        else:
            final_matches = self._merge(semantic_results, keyword_results, options.max_units)

        if request.mode == MatchMode.EXECUTE:
            if options.approved_unit_ids is not None:
                approved = set(options.approved_unit_ids)
                final_matches = [m for m in final_matches if m.unit_id in approved]
            return ExecuteResult(
                total_content_items=len(items),
                matches=final_matches,
                matched_count=len(final_matches),
            )

        return self._preview(items, units, final_matches)

    def _validate(self, request: MatchRequest) -> List[KnowledgeUnit]:
        if not request.content:
            raise ContractViolationError("No content provided for matching")
        if not request.units:
            raise ContractViolationError("No knowledge units provided for matching")

        units = []
        for unit in request.units:
            if unit.is_matchable:
                units.append(unit)
            else:
                logger.warning(f"Skipping unit {unit.id} ({unit.title}): scope has no covers")

        if not units:
            raise ContractViolationError("None of the knowledge units has a scope to match against")
        return units

    def _forecast(self, item_count: int, unit_count: int) -> ForecastResult:
        estimated_units = min(FORECAST_MAX_UNITS, unit_count)
        return ForecastResult(
            total_content_items=item_count,
            estimated_matched_units=estimated_units,
            estimated_tokens=(
                estimated_units * FORECAST_TOKENS_PER_UNIT
                + item_count * FORECAST_TOKENS_PER_ITEM
                + FORECAST_TOKENS_OVERHEAD
            ),
            coverage_percent=round(estimated_units / unit_count * 100),
        )

    async def _semantic_matches(
        self,
        request: MatchRequest,
        units: Sequence[KnowledgeUnit],
        cancel_token: Optional[CancellationToken],
    ) -> List[MatchResult]:
        if self.semantic_matcher is None:
            raise RemoteUnavailableError("No semantic matcher configured")

        if is_cancelled(cancel_token):
            raise OperationCancelledError("Matching cancelled before semantic call")

        items = request.content
        if request.content_type in (ContentType.QUESTION, ContentType.QUESTION_BATCH):
            hint = QUESTION_HINT
        else:
            hint = SOURCE_HINT
        if request.additional_context:
            hint = f"{hint}\n\n{request.additional_context}"

        semantic_request = SemanticMatchRequest(
            content_label=items[0].label if len(items) == 1 else f"{len(items)} items",
            content_body="\n\n---\n\n".join(f"[{item.label}]: {item.content}" for item in items),
            candidate_units=[
                SemanticCandidate(id=unit.id, title=unit.title, scope=unit.scope)
                for unit in units
            ],
            context_hint=hint,
        )

        response = await self.semantic_matcher.match(semantic_request)

        units_by_id = {unit.id: unit for unit in units}
        results = []
        for match in response.matches:
            unit = units_by_id.get(match.unit_id)
            if unit is None:
                logger.warning(f"Semantic matcher returned unknown unit id: {match.unit_id}")
                continue
            first_line = match.reason.split("\n")[0][:50]
            results.append(
                MatchResult(
                    unit_id=unit.id,
                    unit_title=match.unit_title or unit.title,
                    score=CONFIDENCE_SCORES[match.confidence],
                    confidence=match.confidence,
                    matched_terms=[first_line or "Matched by LLM"],
                    strategy=ResultStrategy.SEMANTIC,
                    reason=match.reason,
                    suggested_excerpt=match.suggested_excerpt,
                )
            )

        return results[: request.options.max_units]

    @staticmethod
    def _merge(
        semantic_results: List[MatchResult],
        keyword_results: List[MatchResult],
        max_units: int,
    ) -> List[MatchResult]:
        if not semantic_results:
            return keyword_results

        merged = list(semantic_results)
        seen = {m.unit_id for m in semantic_results}
        for match in keyword_results:
            if match.unit_id not in seen:
                merged.append(match)
                seen.add(match.unit_id)
        return merged[:max_units]

    def _preview(
        self,
        items: Sequence[ContentItem],
        units: Sequence[KnowledgeUnit],
        final_matches: List[MatchResult],
    ) -> PreviewResult:
        combined = _combined_content(items)
        keywords = _combined_keywords(items)
        recommended_ids = {m.unit_id for m in final_matches}

        rankings = []
        for unit in units:
            result = score_content_against_scope(combined, keywords, unit.scope)
            rankings.append(
                UnitRanking(
                    id=unit.id,
                    title=unit.title,
                    score=result.score,
                    match_percentage=round(result.score * 100),
                    matched_terms=result.matched_terms,
                    recommended=unit.id in recommended_ids,
                )
            )
        rankings.sort(key=lambda r: r.score, reverse=True)

        avg_score = (
            round(sum(m.score for m in final_matches) / len(final_matches), 2)
            if final_matches
            else 0.0
        )

        return PreviewResult(
            total_content_items=len(items),
            total_units_available=len(units),
            recommendations=final_matches,
            all_units=rankings,
            coverage=PreviewCoverage(
                recommended_count=len(final_matches),
                total_units=len(rankings),
                avg_recommended_score=avg_score,
            ),
        )
