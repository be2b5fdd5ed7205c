from datetime import date, datetime
from typing import Optional, List, Union

from pydantic import Field, field_validator

from field_readings.models.reading import InputType
from field_readings.schemas.base import CamelModel


class ReadingEntry(CamelModel):
    meter_id: Optional[str] = None
    amr_id: Optional[str] = None
    reading: Optional[str] = None

    @field_validator("meter_id", "amr_id", mode="before")
    @classmethod
    def strip_ids(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("reading", mode="before")
    @classmethod
    def reading_as_text(cls, v: Optional[Union[str, int, float]]):
        # Values are stored as text so decimals keep the digits typed in the field
        if isinstance(v, bool):
            raise ValueError("Reading must be a number or a string")
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v


class ReadingBatchRequest(CamelModel):
    community_id: Optional[str] = None
    field_user_id: Optional[str] = None
    reading_date: Optional[date] = None
    input_type: InputType = InputType.FIELD
    readings: Optional[List[ReadingEntry]] = None

    @field_validator("community_id", "field_user_id", mode="before")
    @classmethod
    def id_as_text(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("reading_date", mode="before")
    @classmethod
    def blank_date_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SavedReading(CamelModel):
    meter_id: str
    reading: Optional[str] = None
    reading_date: date
    success: bool = True


class ReadingBatchResult(CamelModel):
    saved: int
    total: int
    readings: List[SavedReading] = Field(default_factory=list)
    saved_at: datetime


class ReadingBatchResponse(CamelModel):
    message: str
    data: ReadingBatchResult
