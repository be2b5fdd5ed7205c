# field_readings/services/meter_service.py

from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.config import settings
from field_readings.core.exceptions import StorageError, ValidationError
from field_readings.models.community import CommunityUnit
from field_readings.models.meter import Meter
from field_readings.models.reading import CurrentReading
from field_readings.monitoring.metrics import sort_updates
from field_readings.schemas.meter import (
    CommunityMeter,
    SortOrderItem,
    SortOrderResponse,
)

logger = logging.getLogger(__name__)


def _to_str(x) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def expand_unit_meters(units: Iterable[CommunityUnit]) -> List[Dict[str, Any]]:
    """
    Flatten the per-unit meter lists into one row per meter.

    Rows keep input order (unit order, then list position). A ``meters``
    value that is not a list counts as empty; entries without a meter id
    are skipped.
    """
    rows = []
    for unit in units:
        meters = unit.meters if isinstance(unit.meters, list) else []
        for meter in meters:
            if not isinstance(meter, dict):
                continue
            meter_id = _to_str(meter.get("meter_id"))
            if not meter_id:
                continue
            rows.append({
                "unit_id": unit.unit_number,
                "meter_id": meter_id,
                "amr_id": _to_str(meter.get("amr_id")),
                "meter_type": _to_str(meter.get("meter_type")),
            })
    return rows


def pick_latest_per_meter(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Keep one row per meter id, the one with the most recent reading date.

    Rows without a reading date lose against any dated row; on equal dates
    the earlier row wins. Output keeps the position of each meter's first row.
    """
    picked: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        current = picked.get(row["meter_id"])
        if current is None:
            picked[row["meter_id"]] = row
            continue
        candidate_date = row.get("last_reading_date")
        current_date = current.get("last_reading_date")
        if candidate_date is not None and (current_date is None or candidate_date > current_date):
            picked[row["meter_id"]] = row
    return list(picked.values())


def order_by_sort(rows: Iterable[Dict[str, Any]], default: Optional[int] = None) -> List[Dict[str, Any]]:
    """Sort ascending by sort order; unset sorts last, ties keep input order."""
    if default is None:
        default = settings.DEFAULT_SORT_ORDER
    return sorted(
        rows,
        key=lambda row: default if row.get("sort_order") is None else row["sort_order"],
    )


class MeterService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_community_meters(self, community_id: str) -> List[CommunityMeter]:
        """Meters of a community's live units, each with its latest reading."""
        units_result = await self.session.execute(
            select(CommunityUnit)
            .where(
                CommunityUnit.community_id == community_id,
                CommunityUnit.is_deleted.is_(False),
            )
            .order_by(CommunityUnit.id)
        )
        rows = expand_unit_meters(units_result.scalars().all())
        if not rows:
            return []

        meter_ids = {row["meter_id"] for row in rows}

        readings_result = await self.session.execute(
            select(CurrentReading).where(CurrentReading.meter_id.in_(meter_ids))
        )
        readings: Dict[str, List[CurrentReading]] = {}
        for reading in readings_result.scalars().all():
            readings.setdefault(reading.meter_id, []).append(reading)

        catalog_result = await self.session.execute(
            select(Meter).where(
                Meter.community_id == community_id,
                Meter.meter_id.in_(meter_ids),
            )
        )
        catalog = {meter.meter_id: meter for meter in catalog_result.scalars().all()}

        # Left join: a meter without readings keeps a single row with empty reading fields
        joined = []
        for row in rows:
            meter = catalog.get(row["meter_id"])
            if meter is not None and not meter.is_active:
                continue
            base = {
                **row,
                "amr_id": row["amr_id"] or (meter.amr_id if meter else None) or "",
                "meter_type": row["meter_type"] or (meter.meter_type if meter else None),
                "sort_order": meter.field_sort_order if meter else None,
                "current_reading": None,
                "last_reading_date": None,
            }
            candidates = readings.get(row["meter_id"])
            if not candidates:
                joined.append(base)
                continue
            for reading in candidates:
                joined.append({
                    **base,
                    "current_reading": reading.reading_value,
                    "last_reading_date": reading.reading_date,
                })

        ordered = order_by_sort(pick_latest_per_meter(joined))
        for row in ordered:
            if row["sort_order"] is None:
                row["sort_order"] = settings.DEFAULT_SORT_ORDER

        return [CommunityMeter(**row) for row in ordered]

    async def save_sort_order(
            self,
            community_id: Optional[str],
            items: Optional[List[SortOrderItem]],
    ) -> SortOrderResponse:
        """
        Apply a new display order to a community's meters.

        Each meter is updated and committed on its own. A failed update is
        rolled back alone and the pass continues; failures are reported once
        every item has been tried, and earlier updates stay applied.
        """
        if not community_id or items is None:
            raise ValidationError("Missing or invalid communityId or sortOrder")

        updated = 0
        failed: List[str] = []

        for item in items:
            try:
                result = await self.session.execute(
                    update(Meter)
                    .where(
                        Meter.meter_id == item.meter_id,
                        Meter.community_id == community_id,
                    )
                    .values(field_sort_order=item.field_sort_order)
                    .execution_options(synchronize_session=False)
                )
                await self.session.commit()
                updated += result.rowcount or 0
                sort_updates.labels(status="ok").inc()
            except SQLAlchemyError as e:
                await self.session.rollback()
                failed.append(item.meter_id)
                sort_updates.labels(status="failed").inc()
                logger.error(f"Sort order update failed for meter {item.meter_id} in community {community_id}: {e}")

        if failed:
            raise StorageError(
                f"Failed to save sort order: {len(failed)} of {len(items)} update(s) failed",
                failed=failed,
            )

        logger.info(f"Sort order saved for community {community_id}: {updated} meter(s) updated")
        return SortOrderResponse(message="Sort order saved", updated=updated)
