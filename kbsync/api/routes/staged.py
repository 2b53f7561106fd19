"""
Staged Items API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from kbsync.api.dependencies import Services, get_services
from kbsync.models.staging import SourceType, StagedItem

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def list_staged_items(
    library_id: Optional[str] = Query(None),
    source_type: Optional[SourceType] = Query(None),
    customer_id: Optional[str] = Query(None),
    pending_only: bool = Query(False, description="Only items not yet incorporated"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    services: Services = Depends(get_services),
):
    items, total = services.staging.query(
        library_id=library_id,
        source_type=source_type,
        customer_id=customer_id,
        pending_only=pending_only,
        limit=limit,
        offset=offset,
    )
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/{item_id}", response_model=StagedItem)
async def get_staged_item(item_id: str, services: Services = Depends(get_services)):
    item = services.staging.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Staged item not found: {item_id}")
    return item


@router.post("/{item_id}/incorporate", response_model=StagedItem)
async def incorporate_staged_item(item_id: str, services: Services = Depends(get_services)):
    item = services.staging.mark_incorporated(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Staged item not found: {item_id}")
    return item
