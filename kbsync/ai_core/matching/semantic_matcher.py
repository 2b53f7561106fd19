"""
Semantic Matcher

The remote semantic-matching port and its LLM-backed implementation.

The orchestrator only sees the SemanticMatcher protocol: one async method taking
a SemanticMatchRequest and returning a SemanticMatchResponse. No retry happens
here; a failure surfaces as RemoteUnavailableError.
"""

import asyncio
import logging
from typing import Optional, Protocol

from langchain_core.prompts import ChatPromptTemplate

from kbsync.ai_core.prompts.matching import (
    SEMANTIC_MATCHING_HUMAN_PROMPT,
    SEMANTIC_MATCHING_SYSTEM_PROMPT,
    format_candidate_units,
)
from kbsync.config import get_settings
from kbsync.errors import RemoteUnavailableError
from kbsync.models.matching import SemanticMatchRequest, SemanticMatchResponse

logger = logging.getLogger(__name__)


class SemanticMatcher(Protocol):
    """Port to a remote semantic matching service."""

    async def match(self, request: SemanticMatchRequest) -> SemanticMatchResponse:
        ...


class LLMSemanticMatcher:
    """
    Matches content to knowledge units with an LLM.

    Uses the gen_ai_hub proxy ChatOpenAI with structured output (Pydantic), so
    the response is parsed straight into SemanticMatchResponse.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds to wait for the LLM before giving up (default: http_timeout)
        """
        self.config = get_settings()
        self.timeout = timeout if timeout is not None else self.config.http_timeout
        self._llm = None

    @property
    def llm(self):
        """Proxy ChatOpenAI client, created on first use."""
        if self._llm is None:
            from gen_ai_hub.proxy.langchain.openai import ChatOpenAI
            from gen_ai_hub.proxy.core.proxy_clients import get_proxy_client

            proxy_client = get_proxy_client("gen-ai-hub")
            self._llm = ChatOpenAI(
                proxy_model_name=self.config.openai_model,
                proxy_client=proxy_client,
                temperature=self.config.temperature,
            )
            logger.info("LLMSemanticMatcher initialized with structured output (Pydantic)")
        return self._llm

    async def match(self, request: SemanticMatchRequest) -> SemanticMatchResponse:
        logger.info(
            f"Semantic matching '{request.content_label}' against "
            f"{len(request.candidate_units)} candidate units"
        )

        prompt = ChatPromptTemplate.from_messages(
            [
                ("system", SEMANTIC_MATCHING_SYSTEM_PROMPT),
                ("human", SEMANTIC_MATCHING_HUMAN_PROMPT),
            ]
        )
        try:
            chain = prompt | self.llm.with_structured_output(SemanticMatchResponse)
            result = await asyncio.wait_for(
                chain.ainvoke(
                    {
                        "content_label": request.content_label,
                        "content_body": request.content_body,
                        "candidate_units": format_candidate_units(request.candidate_units),
                        "context_hint": request.context_hint,
                    }
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RemoteUnavailableError(
                f"Semantic matching timed out after {self.timeout}s"
            ) from e
        except Exception as e:
            raise RemoteUnavailableError(f"Semantic matching failed: {e}") from e

        logger.info(f"Structured output received: {len(result.matches)} matches")
        return result
