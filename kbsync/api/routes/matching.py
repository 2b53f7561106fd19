"""
Matching API Routes

1. POST /api/matching/match - Match content to knowledge units (preview / execute / forecast)
2. POST /api/matching/suggest-new-unit - Whether a match list calls for a new unit
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List
import logging

from kbsync.api.dependencies import Services, get_services
from kbsync.errors import (
    ContractViolationError,
    ProviderError,
    RemoteUnavailableError,
)
from kbsync.models.matching import MatchRequest, MatchResult
from kbsync.services.matching_orchestrator import should_suggest_new_unit

logger = logging.getLogger(__name__)
router = APIRouter()


class SuggestNewUnitRequest(BaseModel):
    matches: List[MatchResult] = Field(
        default_factory=list, description="Match list returned by /match"
    )


class SuggestNewUnitResponse(BaseModel):
    suggest_new_unit: bool


@router.post("/match")
async def match_content(request: MatchRequest, services: Services = Depends(get_services)):
    """
    Match content to knowledge units.

    Units are taken from the request, or loaded from the unit store when the
    request only names a library_id.

    Example request body:
    ```json
    {
        "content": {"id": "q1", "label": "Question", "content": "How do we configure SAML SSO?"},
        "content_type": "question",
        "library_id": "it",
        "strategy": "hybrid",
        "mode": "preview"
    }
    ```
    """
    try:
        if not request.units and request.library_id:
            units = await services.units.list_active_units(request.library_id)
            logger.info(f"Loaded {len(units)} units for library {request.library_id}")
            request = request.model_copy(update={"units": units})

        return await services.matching.match(request)

    except ContractViolationError as e:
        logger.warning(f"Invalid matching request: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except (RemoteUnavailableError, ProviderError) as e:
        logger.error(f"Matching failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/suggest-new-unit", response_model=SuggestNewUnitResponse)
async def suggest_new_unit(request: SuggestNewUnitRequest):
    return SuggestNewUnitResponse(suggest_new_unit=should_suggest_new_unit(request.matches))
