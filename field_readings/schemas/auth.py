from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    login: Optional[str] = None
    pwd: Optional[str] = None


class FieldUserResponse(BaseModel):
    id: UUID
    login: str

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(FieldUserResponse):
    authenticated: bool = True
