import uuid

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.auth.session import session_service
from field_readings.config import settings
from field_readings.core.exceptions import AuthError
from field_readings.database import get_session
from field_readings.models.field_user import FieldUser


async def get_session_user(
		request: Request,
		session: AsyncSession = Depends(get_session)
) -> FieldUser:
	"""Resolve the field user named by the session cookie"""
	token = request.cookies.get(settings.SESSION_COOKIE_NAME)
	if not token:
		raise AuthError("Not authenticated", authenticated=False)

	payload = session_service.decode_session_token(token)
	if not payload or not payload.get("sub"):
		raise AuthError("Invalid session", authenticated=False)

	try:
		user_id = uuid.UUID(payload["sub"])
	except ValueError:
		raise AuthError("Invalid session", authenticated=False)

	result = await session.execute(select(FieldUser).where(FieldUser.id == user_id))
	user = result.scalar_one_or_none()

	if not user:
		raise AuthError("Invalid session", authenticated=False)

	request.state.user_id = str(user.id)
	return user
