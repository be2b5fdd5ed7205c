from fastapi import status


class FieldReadingsError(Exception):
	"""Base error rendered as ``{"message": ...}`` with ``status_code``."""

	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

	def __init__(self, message: str, **extra):
		super().__init__(message)
		self.message = message
		self.extra = extra


class ValidationError(FieldReadingsError):
	status_code = status.HTTP_400_BAD_REQUEST


class AuthError(FieldReadingsError):
	status_code = status.HTTP_401_UNAUTHORIZED


class StorageError(FieldReadingsError):
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
