from sqlalchemy import Column, String, Boolean, JSON
from sqlalchemy.dialects.postgresql import JSONB

from field_readings.database import Base
from field_readings.models.base import BaseModel


class Community(Base):
	__tablename__ = "communities"

	id = Column(String(64), primary_key=True)
	name = Column(String(255), nullable=False)
	is_deleted = Column(Boolean, default=False, nullable=False)


class CommunityUnit(Base, BaseModel):
	__tablename__ = "community_units"

	community_id = Column(String(64), nullable=False, index=True)
	unit_number = Column(String(50), nullable=False)
	# [{"meter_id": ..., "amr_id": ..., "meter_type": ...}]
	meters = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
	is_deleted = Column(Boolean, default=False, nullable=False)
