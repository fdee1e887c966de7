from datetime import datetime
from pydantic import BaseModel
from typing import Optional
from safeguard.models.user import UserRole


class UserCreate(BaseModel):
    username: str
    password: str
    role: UserRole = UserRole.SUPERVISOR


class UserResponse(BaseModel):
    id: int
    username: str
    role: UserRole
    created_at: datetime


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
