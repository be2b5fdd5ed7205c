import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from field_readings.auth.dependencies import get_session_user
from field_readings.auth.session import session_service
from field_readings.config import settings
from field_readings.core.exceptions import AuthError, ValidationError
from field_readings.database import get_session
from field_readings.models.field_user import FieldUser
from field_readings.schemas.auth import FieldUserResponse, LoginRequest, SessionResponse
from field_readings.schemas.base import MessageResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=FieldUserResponse)
async def login(
		request: LoginRequest,
		response: Response,
		session: AsyncSession = Depends(get_session)
):
	"""Check field user credentials and open a session."""
	if not request.login or not request.pwd:
		raise ValidationError("Missing login or password")

	result = await session.execute(select(FieldUser).where(FieldUser.login == request.login))
	user = result.scalar_one_or_none()

	if not user or not session_service.verify_password(request.pwd, user.pwd):
		logger.warning(f"Failed login attempt for {request.login}")
		raise AuthError("Invalid login or password")

	user.last_login = datetime.now(timezone.utc)
	await session.commit()

	response.set_cookie(
		key=settings.SESSION_COOKIE_NAME,
		value=session_service.create_session_token(str(user.id)),
		max_age=settings.SESSION_EXPIRATION_HOURS * 3600,
		httponly=True,
		secure=not settings.DEBUG,
		samesite="lax",
	)

	logger.info(f"Field user logged in: {user.login}")
	return user


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
	"""Drop the session cookie"""
	response.delete_cookie(settings.SESSION_COOKIE_NAME)
	return {"message": "Logged out"}


@router.get("/session", response_model=SessionResponse)
async def get_session_info(current_user: FieldUser = Depends(get_session_user)):
	"""Who is logged in on this device"""
	return SessionResponse(id=current_user.id, login=current_user.login)
