from datetime import date
from typing import Optional, List

from pydantic import field_validator

from field_readings.schemas.base import CamelModel


class CommunityMeter(CamelModel):
    unit_id: str
    meter_id: str
    amr_id: str = ""
    meter_type: Optional[str] = None
    sort_order: Optional[int] = None
    current_reading: Optional[str] = None
    last_reading_date: Optional[date] = None


class CommunityMeterListResponse(CamelModel):
    data: List[CommunityMeter]
    count: int


class SortOrderItem(CamelModel):
    meter_id: str
    field_sort_order: int

    @field_validator("meter_id", mode="before")
    @classmethod
    def meter_as_text(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class SortOrderRequest(CamelModel):
    community_id: Optional[str] = None
    sort_order: Optional[List[SortOrderItem]] = None

    @field_validator("community_id", mode="before")
    @classmethod
    def community_as_text(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            return v.strip() or None
        return v


class SortOrderResponse(CamelModel):
    message: str
    updated: int
