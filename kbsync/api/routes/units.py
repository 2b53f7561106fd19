"""
Knowledge Unit API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from kbsync.api.dependencies import Services, get_services
from kbsync.errors import ProviderError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def list_units(
    library_id: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """Active knowledge units, with their scope definitions."""
    try:
        units = await services.units.list_active_units(library_id)
    except ProviderError as e:
        logger.error(f"Failed to load knowledge units: {str(e)}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "units": units,
        "total": len(units),
        "matchable": sum(1 for unit in units if unit.is_matchable),
    }
