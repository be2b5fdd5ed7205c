from sqlalchemy import Column, Integer


class BaseModel:
	"""Integer surrogate key shared by the field tables."""

	id = Column(Integer, primary_key=True, autoincrement=True)

	def __repr__(self):
		return f"<{type(self).__name__}(id={self.id})>"
