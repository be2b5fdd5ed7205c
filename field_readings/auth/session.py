import logging
from datetime import timedelta, datetime, timezone
from typing import Dict, Any, Optional
from jose import JWTError, jwt

from field_readings.config import settings

logger = logging.getLogger(__name__)


class SessionService:
	"""Signs and reads the field session cookie value."""

	@staticmethod
	def verify_password(plain_password: str, stored_password: str) -> bool:
		# TODO: switch to a salted hash once the credential migration is agreed on
		return plain_password == stored_password

	@staticmethod
	def create_session_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
		"""Create a signed session token for a field user"""
		expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.SESSION_EXPIRATION_HOURS))
		to_encode = {"sub": user_id, "exp": expire, "type": "field_session"}
		return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

	@staticmethod
	def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
		"""Decode and validate a session token"""
		try:
			payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
		except JWTError as e:
			logger.warning(f"Session token rejected: {e}")
			return None
		if payload.get("type") != "field_session":
			return None
		return payload


session_service = SessionService()
