import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.core.exceptions import ValidationError
from field_readings.database import get_session
from field_readings.schemas.meter import (
    CommunityMeterListResponse,
    SortOrderRequest,
    SortOrderResponse,
)
from field_readings.services.meter_service import MeterService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=CommunityMeterListResponse)
async def list_meters(
        community_id: Optional[str] = Query(None, alias="communityId"),
        session: AsyncSession = Depends(get_session),
):
    """Meters of a community with their latest reading, in display order"""
    if not community_id:
        raise ValidationError("Missing communityId parameter")

    meter_service = MeterService(session)
    meters = await meter_service.list_community_meters(community_id)

    return CommunityMeterListResponse(data=meters, count=len(meters))


@router.post("/sort", response_model=SortOrderResponse)
async def save_sort_order(
        request: SortOrderRequest,
        session: AsyncSession = Depends(get_session),
):
    """Persist the display order chosen for a community's meters"""
    meter_service = MeterService(session)
    return await meter_service.save_sort_order(request.community_id, request.sort_order)
