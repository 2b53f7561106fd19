"""
Discovery API Routes

1. GET /api/discovery/adapters - Registered provider adapters
2. POST /api/discovery/{source_type}/run - Run one discovery invocation
3. GET /api/discovery/{source_type}/state - Stored continuation state
4. DELETE /api/discovery/{source_type}/state - Reset continuation state
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from typing import Optional
import logging

from kbsync.api.dependencies import Services, get_services
from kbsync.errors import ContractViolationError, ProviderError
from kbsync.models.staging import DiscoveryCursor, DiscoveryResult, SourceType

logger = logging.getLogger(__name__)
router = APIRouter()


class DiscoveryRunRequest(BaseModel):
    library_id: str = Field(..., description="Library the discovered items are staged into")
    customer_id: Optional[str] = Field(None, description="Optional customer scope")
    window_days: Optional[int] = Field(
        None, ge=1, description="Time window for a fresh run (default: settings)"
    )


@router.get("/adapters")
async def list_adapters(services: Services = Depends(get_services)):
    return {"adapters": services.adapters.info()}


@router.post("/{source_type}/run", response_model=DiscoveryResult)
async def run_discovery(
    source_type: SourceType,
    request: DiscoveryRunRequest,
    services: Services = Depends(get_services),
):
    """
    Discover new items from a provider and stage them.

    Pages whose items were all staged before are skipped over automatically;
    the call returns once something new was staged or the provider is drained.
    """
    try:
        logger.info(
            f"Discovery run: source={source_type.value}, library={request.library_id}, "
            f"customer={request.customer_id}"
        )
        return await services.discovery.run(
            source_type,
            request.library_id,
            customer_id=request.customer_id,
            window_days=request.window_days,
        )

    except ContractViolationError as e:
        logger.warning(f"Invalid discovery request: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        logger.error(f"Discovery failed for {source_type.value}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/{source_type}/state", response_model=DiscoveryCursor)
async def get_discovery_state(
    source_type: SourceType,
    library_id: str = Query(...),
    customer_id: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    return services.discovery.state_store.get(source_type, library_id, customer_id)


@router.delete("/{source_type}/state")
async def reset_discovery_state(
    source_type: SourceType,
    library_id: str = Query(...),
    customer_id: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """Forget the stored position so the next run opens a fresh window."""
    services.discovery.state_store.reset(source_type, library_id, customer_id)
    logger.info(f"Discovery state reset: source={source_type.value}, library={library_id}")
    return {"success": True}
