"""
Tests for the matching orchestrator.

Semantic matching is replaced by deterministic fakes implementing the
SemanticMatcher protocol.
"""

from typing import List
from unittest.mock import AsyncMock

import pytest

from kbsync.errors import (
    ContractViolationError,
    OperationCancelledError,
    RemoteUnavailableError,
)
from kbsync.models.knowledge import KnowledgeUnit, ScopeDefinition
from kbsync.models.matching import (
    Confidence,
    ContentItem,
    ContentType,
    ExecuteResult,
    ForecastResult,
    MatchMode,
    MatchOptions,
    MatchRequest,
    MatchResult,
    MatchStrategy,
    PreviewResult,
    ResultStrategy,
    SemanticMatch,
    SemanticMatchRequest,
    SemanticMatchResponse,
)
from kbsync.services.matching_orchestrator import (
    QUESTION_HINT,
    SOURCE_HINT,
    MatchingOrchestrator,
    quick_keyword_matches,
    should_suggest_new_unit,
)
from kbsync.utils.cancellation import CancellationToken


class FakeSemanticMatcher:
    """Returns canned matches and records the requests it receives."""

    def __init__(self, matches: List[SemanticMatch]):
        self.matches = matches
        self.requests: List[SemanticMatchRequest] = []

    async def match(self, request: SemanticMatchRequest) -> SemanticMatchResponse:
        self.requests.append(request)
        return SemanticMatchResponse(matches=self.matches)


class FailingSemanticMatcher:
    def __init__(self):
        self.calls = 0

    async def match(self, request: SemanticMatchRequest) -> SemanticMatchResponse:
        self.calls += 1
        raise RemoteUnavailableError("semantic service down")


class TimingOutSemanticMatcher:
    """Raises a plain TimeoutError, as a client without error wrapping would."""

    async def match(self, request: SemanticMatchRequest) -> SemanticMatchResponse:
        raise TimeoutError("semantic service timed out")


@pytest.fixture
def units() -> List[KnowledgeUnit]:
    return [
        KnowledgeUnit(
            id="sso",
            title="SSO Setup",
            scope=ScopeDefinition(
                covers="SSO configuration, SAML setup",
                future_additions=["SCIM provisioning"],
                not_included=["password policies"],
            ),
        ),
        KnowledgeUnit(
            id="vpn",
            title="VPN Access",
            scope=ScopeDefinition(covers="VPN client installation, split tunneling"),
        ),
        KnowledgeUnit(
            id="laptops",
            title="Laptop Ordering",
            scope=ScopeDefinition(covers="hardware requests, laptop refresh"),
        ),
    ]


def _request(units, content=None, **kwargs) -> MatchRequest:
    if content is None:
        content = [ContentItem(id="c1", label="Ticket 1", content="Our SAML setup requires a new certificate")]
    return MatchRequest(content=content, units=units, **kwargs)


class TestValidation:
    @pytest.mark.asyncio
    async def test_no_content_raises(self, units):
        with pytest.raises(ContractViolationError):
            await MatchingOrchestrator().match(MatchRequest(content=[], units=units))

    @pytest.mark.asyncio
    async def test_no_units_raises(self):
        with pytest.raises(ContractViolationError):
            await MatchingOrchestrator().match(_request([]))

    @pytest.mark.asyncio
    async def test_units_without_covers_are_excluded(self, units):
        empty = KnowledgeUnit(id="empty", title="Empty", scope=ScopeDefinition(covers=""))
        result = await MatchingOrchestrator().match(
            _request(units + [empty], mode=MatchMode.PREVIEW)
        )
        assert result.total_units_available == 3
        assert "empty" not in [ranking.id for ranking in result.all_units]

    @pytest.mark.asyncio
    async def test_only_units_without_covers_raises(self):
        empty = KnowledgeUnit(id="empty", title="Empty")
        with pytest.raises(ContractViolationError):
            await MatchingOrchestrator().match(_request([empty]))

    def test_single_item_is_wrapped(self, units):
        request = MatchRequest(
            content={"id": "c1", "content": "SAML"}, units=units
        )
        assert len(request.content) == 1


class TestForecast:
    @pytest.mark.asyncio
    async def test_forecast_estimates(self, units):
        content = [ContentItem(id=str(i), content="x") for i in range(4)]
        result = await MatchingOrchestrator().match(
            _request(units, content=content, mode=MatchMode.FORECAST)
        )

        assert isinstance(result, ForecastResult)
        assert result.estimated_matched_units == 3
        assert result.estimated_tokens == 3 * 3000 + 4 * 200 + 500
        assert result.coverage_percent == 100

    @pytest.mark.asyncio
    async def test_forecast_caps_at_eight_units(self):
        many = [
            KnowledgeUnit(id=f"u{i}", title=f"Unit {i}", scope=ScopeDefinition(covers=f"topic {i}"))
            for i in range(20)
        ]
        result = await MatchingOrchestrator().match(_request(many, mode=MatchMode.FORECAST))
        assert result.estimated_matched_units == 8
        assert result.coverage_percent == 40

    @pytest.mark.asyncio
    async def test_forecast_ignores_content_and_semantic_matcher(self, units):
        """Changing content with a fixed candidate count never changes the forecast."""
        semantic = AsyncMock()
        orchestrator = MatchingOrchestrator(semantic)

        first = await orchestrator.match(
            _request(
                units,
                content=[ContentItem(id="a", content="SAML setup")],
                strategy=MatchStrategy.HYBRID,
                mode=MatchMode.FORECAST,
            )
        )
        second = await orchestrator.match(
            _request(
                units,
                content=[ContentItem(id="b", content="completely different " * 500)],
                strategy=MatchStrategy.HYBRID,
                mode=MatchMode.FORECAST,
            )
        )

        assert first == second
        semantic.match.assert_not_called()


class TestKeywordStrategy:
    @pytest.mark.asyncio
    async def test_execute_returns_ranked_keyword_matches(self, units):
        result = await MatchingOrchestrator().match(_request(units))

        assert isinstance(result, ExecuteResult)
        assert result.total_content_items == 1
        assert result.matched_count == len(result.matches)
        assert result.matches[0].unit_id == "sso"
        assert result.matches[0].strategy == ResultStrategy.KEYWORD
        assert result.matches[0].reason.startswith("Keyword match: saml setup")
        assert "vpn" not in [m.unit_id for m in result.matches]

    @pytest.mark.asyncio
    async def test_min_score_and_max_units(self, units):
        content = [ContentItem(id="c", content="SAML setup, VPN client, laptop refresh")]
        everything = await MatchingOrchestrator().match(_request(units, content=content))
        assert everything.matched_count == 3

        capped = await MatchingOrchestrator().match(
            _request(units, content=content, options=MatchOptions(max_units=2))
        )
        assert capped.matched_count == 2

        strict = await MatchingOrchestrator().match(
            _request(units, content=content, options=MatchOptions(min_score=0.99))
        )
        assert strict.matched_count == 0

    @pytest.mark.asyncio
    async def test_pre_extracted_keywords_are_used(self, units):
        content = [ContentItem(id="c", content="nothing relevant", keywords=["vpn", "client"])]
        result = await MatchingOrchestrator().match(_request(units, content=content))
        assert [m.unit_id for m in result.matches] == ["vpn"]
        assert result.matches[0].reason == "Partial keyword overlap"

    @pytest.mark.asyncio
    async def test_approved_unit_ids_filter_execute_results(self, units):
        content = [ContentItem(id="c", content="SAML setup, VPN client, laptop refresh")]
        result = await MatchingOrchestrator().match(
            _request(units, content=content, options=MatchOptions(approved_unit_ids=["vpn"]))
        )
        assert [m.unit_id for m in result.matches] == ["vpn"]


class TestSemanticStrategy:
    @pytest.mark.asyncio
    async def test_confidence_maps_to_score(self, units):
        semantic = FakeSemanticMatcher(
            [
                SemanticMatch(unit_id="sso", unit_title="SSO Setup", confidence=Confidence.HIGH, reason="SAML"),
                SemanticMatch(unit_id="vpn", unit_title="VPN Access", confidence=Confidence.MEDIUM, reason="Network"),
                SemanticMatch(unit_id="laptops", unit_title="Laptop Ordering", confidence=Confidence.LOW, reason="Hardware\nmore"),
            ]
        )
        result = await MatchingOrchestrator(semantic).match(
            _request(units, strategy=MatchStrategy.SEMANTIC)
        )

        assert [m.score for m in result.matches] == [0.9, 0.6, 0.3]
        assert all(m.strategy == ResultStrategy.SEMANTIC for m in result.matches)
        assert result.matches[2].matched_terms == ["Hardware"]

    @pytest.mark.asyncio
    async def test_unknown_unit_ids_are_dropped(self, units):
        semantic = FakeSemanticMatcher(
            [
                SemanticMatch(unit_id="ghost", unit_title="Ghost", confidence=Confidence.HIGH, reason="?"),
                SemanticMatch(unit_id="sso", unit_title="SSO Setup", confidence=Confidence.HIGH, reason="SAML"),
            ]
        )
        result = await MatchingOrchestrator(semantic).match(
            _request(units, strategy=MatchStrategy.SEMANTIC)
        )
        assert [m.unit_id for m in result.matches] == ["sso"]

    @pytest.mark.asyncio
    async def test_request_carries_candidates_and_hint(self, units):
        semantic = FakeSemanticMatcher([])
        await MatchingOrchestrator(semantic).match(
            _request(
                units,
                strategy=MatchStrategy.SEMANTIC,
                content_type=ContentType.QUESTION,
                additional_context="Customer uses Okta",
            )
        )

        sent = semantic.requests[0]
        assert sent.content_label == "Ticket 1"
        assert sent.content_body == "[Ticket 1]: Our SAML setup requires a new certificate"
        assert [c.id for c in sent.candidate_units] == ["sso", "vpn", "laptops"]
        assert sent.context_hint == f"{QUESTION_HINT}\n\nCustomer uses Okta"

    @pytest.mark.asyncio
    async def test_source_hint_and_batch_label(self, units):
        semantic = FakeSemanticMatcher([])
        content = [ContentItem(id="a", label="A", content="one"), ContentItem(id="b", label="B", content="two")]
        await MatchingOrchestrator(semantic).match(
            _request(units, content=content, strategy=MatchStrategy.SEMANTIC)
        )

        sent = semantic.requests[0]
        assert sent.context_hint == SOURCE_HINT
        assert sent.content_label == "2 items"
        assert sent.content_body == "[A]: one\n\n---\n\n[B]: two"

    @pytest.mark.asyncio
    async def test_failure_is_fatal(self, units):
        with pytest.raises(RemoteUnavailableError):
            await MatchingOrchestrator(FailingSemanticMatcher()).match(
                _request(units, strategy=MatchStrategy.SEMANTIC)
            )

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, units):
        with pytest.raises(RemoteUnavailableError, match="timed out") as exc_info:
            await MatchingOrchestrator(TimingOutSemanticMatcher()).match(
                _request(units, strategy=MatchStrategy.SEMANTIC)
            )
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    @pytest.mark.asyncio
    async def test_missing_matcher_is_fatal(self, units):
        with pytest.raises(RemoteUnavailableError):
            await MatchingOrchestrator().match(_request(units, strategy=MatchStrategy.SEMANTIC))

    @pytest.mark.asyncio
    async def test_cancelled_before_semantic_call(self, units):
        semantic = FakeSemanticMatcher([])
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await MatchingOrchestrator(semantic).match(
                _request(units, strategy=MatchStrategy.HYBRID), cancel_token=token
            )
        assert semantic.requests == []


class TestHybridStrategy:
    @pytest.mark.asyncio
    async def test_failing_semantic_returns_keyword_results(self, units):
        """Hybrid degrades to exactly the keyword result set."""
        content = [ContentItem(id="c", content="SAML setup, VPN client, laptop refresh")]
        keyword_only = await MatchingOrchestrator().match(_request(units, content=content))

        failing = FailingSemanticMatcher()
        hybrid = await MatchingOrchestrator(failing).match(
            _request(units, content=content, strategy=MatchStrategy.HYBRID)
        )

        assert failing.calls == 1
        assert hybrid.matches == keyword_only.matches

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_keyword_results(self, units):
        keyword_only = await MatchingOrchestrator().match(_request(units))

        hybrid = await MatchingOrchestrator(TimingOutSemanticMatcher()).match(
            _request(units, strategy=MatchStrategy.HYBRID)
        )

        assert [m.unit_id for m in hybrid.matches] == ["sso"]
        assert hybrid.matches == keyword_only.matches

    @pytest.mark.asyncio
    async def test_semantic_results_take_precedence(self, units):
        content = [ContentItem(id="c", content="SAML setup, VPN client")]
        semantic = FakeSemanticMatcher(
            [SemanticMatch(unit_id="vpn", unit_title="VPN Access", confidence=Confidence.LOW, reason="VPN")]
        )
        result = await MatchingOrchestrator(semantic).match(
            _request(units, content=content, strategy=MatchStrategy.HYBRID)
        )

        assert result.matches[0].unit_id == "vpn"
        assert result.matches[0].strategy == ResultStrategy.SEMANTIC
        assert [m.unit_id for m in result.matches] == ["vpn", "sso"]
        assert result.matches[1].strategy == ResultStrategy.KEYWORD

    @pytest.mark.asyncio
    async def test_merge_truncates_to_max_units(self, units):
        content = [ContentItem(id="c", content="SAML setup, VPN client, laptop refresh")]
        semantic = FakeSemanticMatcher(
            [SemanticMatch(unit_id="laptops", unit_title="Laptop Ordering", confidence=Confidence.HIGH, reason="HW")]
        )
        result = await MatchingOrchestrator(semantic).match(
            _request(
                units,
                content=content,
                strategy=MatchStrategy.HYBRID,
                options=MatchOptions(max_units=2),
            )
        )
        assert len(result.matches) == 2
        assert result.matches[0].unit_id == "laptops"


class TestPreview:
    @pytest.mark.asyncio
    async def test_preview_ranks_every_unit(self, units):
        result = await MatchingOrchestrator().match(_request(units, mode=MatchMode.PREVIEW))

        assert isinstance(result, PreviewResult)
        assert len(result.all_units) == len(units)
        recommended_ids = {m.unit_id for m in result.recommendations}
        for ranking in result.all_units:
            if ranking.recommended:
                assert ranking.id in recommended_ids
        scores = [ranking.score for ranking in result.all_units]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_preview_coverage(self, units):
        result = await MatchingOrchestrator().match(_request(units, mode=MatchMode.PREVIEW))

        assert result.coverage.total_units == 3
        assert result.coverage.recommended_count == len(result.recommendations)
        assert result.all_units[0].id == "sso"
        assert result.all_units[0].match_percentage == round(result.all_units[0].score * 100)

    @pytest.mark.asyncio
    async def test_preview_with_semantic_recommendations(self, units):
        semantic = FakeSemanticMatcher(
            [SemanticMatch(unit_id="laptops", unit_title="Laptop Ordering", confidence=Confidence.MEDIUM, reason="HW")]
        )
        result = await MatchingOrchestrator(semantic).match(
            _request(units, strategy=MatchStrategy.SEMANTIC, mode=MatchMode.PREVIEW)
        )

        assert len(result.all_units) == 3
        flagged = [ranking.id for ranking in result.all_units if ranking.recommended]
        assert flagged == ["laptops"]
        assert result.coverage.avg_recommended_score == 0.6

    @pytest.mark.asyncio
    async def test_preview_without_recommendations(self, units):
        content = [ContentItem(id="c", content="quarterly revenue forecast")]
        result = await MatchingOrchestrator().match(
            _request(units, content=content, mode=MatchMode.PREVIEW)
        )
        assert result.recommendations == []
        assert result.coverage.avg_recommended_score == 0.0
        assert not any(ranking.recommended for ranking in result.all_units)


def _match(confidence: Confidence, score: float) -> MatchResult:
    return MatchResult(
        unit_id="u",
        unit_title="U",
        score=score,
        confidence=confidence,
        strategy=ResultStrategy.KEYWORD,
        reason="r",
    )


class TestShouldSuggestNewUnit:
    def test_no_matches_suggests(self):
        assert should_suggest_new_unit([]) is True

    def test_any_match_suppresses(self):
        assert should_suggest_new_unit([_match(Confidence.LOW, 0.15)]) is False
        assert should_suggest_new_unit([_match(Confidence.HIGH, 0.9)]) is False


def test_quick_keyword_matches(units):
    item = ContentItem(id="c", content="SAML setup, VPN client, laptop refresh")
    matches = quick_keyword_matches(item, units, max_units=2)
    assert len(matches) == 2
    assert all(m.strategy == ResultStrategy.KEYWORD for m in matches)


def test_match_result_is_immutable():
    match = _match(Confidence.LOW, 0.2)
    with pytest.raises(Exception):
        match.score = 0.9
