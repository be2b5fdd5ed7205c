import uuid

from sqlalchemy import Column, String, Text, DateTime, Uuid, func

from field_readings.database import Base


class FieldUser(Base):
	__tablename__ = "field_users"

	id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
	login = Column(String(100), unique=True, nullable=False, index=True)
	# Plaintext on purpose until a hashing scheme is agreed on
	pwd = Column(Text, nullable=False)
	created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
	last_login = Column(DateTime(timezone=True))

	def __repr__(self):
		return f"<FieldUser(id={self.id}, login={self.login})>"
