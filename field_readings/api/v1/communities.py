import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.database import get_session
from field_readings.models.community import Community
from field_readings.schemas.community import CommunityResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=List[CommunityResponse])
async def list_communities(session: AsyncSession = Depends(get_session)):
    """Live communities, alphabetically"""
    result = await session.execute(
        select(Community)
        .where(Community.is_deleted.is_(False))
        .order_by(Community.name)
    )
    return [CommunityResponse.model_validate(c) for c in result.scalars().all()]
