from sqlalchemy import Column, String, Integer, Boolean, DateTime, func

from field_readings.config import settings
from field_readings.database import Base
from field_readings.models.base import BaseModel


class Meter(Base, BaseModel):
	__tablename__ = "meters"

	meter_id = Column(String(100), unique=True, nullable=False, index=True)
	amr_id = Column(String(100))
	meter_type = Column(String(50), nullable=False)
	community_id = Column(String(64), nullable=False, index=True)
	unit_id = Column(Integer)
	field_sort_order = Column(Integer, default=settings.DEFAULT_SORT_ORDER)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
	updated_at = Column(DateTime(timezone=True), onupdate=func.now())
