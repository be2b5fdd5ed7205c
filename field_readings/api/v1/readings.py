import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.database import get_session
from field_readings.schemas.reading import ReadingBatchRequest, ReadingBatchResponse
from field_readings.services.reading_service import ReadingService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=ReadingBatchResponse)
async def save_readings(
		batch: ReadingBatchRequest,
		session: AsyncSession = Depends(get_session),
):
	"""Save the readings of one field visit; all of them or none"""
	reading_service = ReadingService(session)
	return await reading_service.save_batch(batch)
