import enum

from sqlalchemy import Column, String, Text, Date, UniqueConstraint

from field_readings.database import Base
from field_readings.models.base import BaseModel


class InputType(str, enum.Enum):
	FIELD = "Field"
	MANUAL = "Manual"


class CurrentReading(Base, BaseModel):
	"""Latest reading per meter, overwritten in place on every submission."""

	__tablename__ = "current_readings"

	meter_id = Column(String(100), nullable=False, index=True)
	amr_id = Column(String(100))
	reading_value = Column("readings", Text)
	reading_date = Column(Date, nullable=False)
	input_type = Column(String(20), default=InputType.FIELD.value)

	__table_args__ = (
		UniqueConstraint("meter_id", name="unique_current_reading_meter"),
	)
