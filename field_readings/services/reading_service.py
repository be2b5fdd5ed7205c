from datetime import datetime, timezone
from typing import List
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.core.exceptions import FieldReadingsError, StorageError, ValidationError
from field_readings.models.reading import CurrentReading
from field_readings.monitoring.metrics import reading_batches, readings_saved
from field_readings.schemas.reading import (
	ReadingBatchRequest,
	ReadingBatchResponse,
	ReadingBatchResult,
	ReadingEntry,
	SavedReading,
)

logger = logging.getLogger(__name__)


def validate_batch(batch: ReadingBatchRequest) -> List[ReadingEntry]:
	"""Reject a batch before any storage access"""
	if not batch.readings:
		raise ValidationError("Readings array is required and cannot be empty")
	if batch.reading_date is None:
		raise ValidationError("Reading date is required")
	if any(not entry.meter_id for entry in batch.readings):
		raise ValidationError("Meter ID is required for each reading")
	if any(not entry.reading for entry in batch.readings):
		raise ValidationError("Reading value is required for each reading")
	return batch.readings


class ReadingService:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def save_batch(self, batch: ReadingBatchRequest) -> ReadingBatchResponse:
		"""
		Upsert every reading of one field submission in a single transaction.

		Each meter keeps exactly one current reading: an existing row is
		updated in place, otherwise a row is inserted. The stored AMR id is
		only replaced when the entry carries a non-empty one. Any failure
		rolls back the whole batch.
		"""
		try:
			entries = validate_batch(batch)
		except ValidationError:
			reading_batches.labels(status="rejected").inc()
			raise

		saved: List[SavedReading] = []

		try:
			for entry in entries:
				await self._upsert(entry, batch)
				saved.append(SavedReading(
					meter_id=entry.meter_id,
					reading=entry.reading,
					reading_date=batch.reading_date,
				))

			await self.session.commit()

		except FieldReadingsError:
			await self.session.rollback()
			reading_batches.labels(status="failed").inc()
			raise
		except SQLAlchemyError as e:
			await self.session.rollback()
			reading_batches.labels(status="failed").inc()
			logger.error(f"Reading batch for community {batch.community_id} rolled back: {e}")
			raise StorageError(f"Failed to save readings: {e}") from e

		reading_batches.labels(status="saved").inc()
		readings_saved.inc(len(saved))
		logger.info(
			f"Saved {len(saved)} reading(s) for community {batch.community_id} "
			f"dated {batch.reading_date} by {batch.field_user_id or 'unknown user'}"
		)

		return ReadingBatchResponse(
			message=f"Successfully saved {len(saved)} reading(s)",
			data=ReadingBatchResult(
				saved=len(saved),
				total=len(entries),
				readings=saved,
				saved_at=datetime.now(timezone.utc),
			),
		)

	async def _upsert(self, entry: ReadingEntry, batch: ReadingBatchRequest) -> None:
		result = await self.session.execute(
			select(CurrentReading.id).where(CurrentReading.meter_id == entry.meter_id).limit(1)
		)
		existing_id = result.scalar_one_or_none()

		if existing_id is not None:
			values = {
				CurrentReading.reading_value: entry.reading,
				CurrentReading.reading_date: batch.reading_date,
				CurrentReading.input_type: batch.input_type.value,
			}
			if entry.amr_id:
				values[CurrentReading.amr_id] = entry.amr_id

			result = await self.session.execute(
				update(CurrentReading)
				.where(CurrentReading.id == existing_id)
				.values(values)
				.execution_options(synchronize_session=False)
			)
			written = result.rowcount
		else:
			reading = CurrentReading(
				meter_id=entry.meter_id,
				amr_id=entry.amr_id or None,
				reading_value=entry.reading,
				reading_date=batch.reading_date,
				input_type=batch.input_type.value,
			)
			self.session.add(reading)
			await self.session.flush()
			written = 1 if reading.id is not None else 0

		if not written:
			raise StorageError(f"Failed to save readings: no row written for meter {entry.meter_id}")
