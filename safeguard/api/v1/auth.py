from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.config import settings
from safeguard.core.database import get_session
from safeguard.schemas.auth import UserCreate, UserResponse, Token
from safeguard.services.auth_service import create_user, authenticate_user, create_access_token, get_user_by_username

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: UserCreate, session: AsyncSession = Depends(get_session)):
    if await get_user_by_username(session, payload.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
    user = await create_user(session, payload.username, payload.password, payload.role)
    return UserResponse(**user.model_dump())


@router.post("/token", response_model=Token)
async def token(form_data: OAuth2PasswordRequestForm = Depends(), session: AsyncSession = Depends(get_session)):
    user = await authenticate_user(session, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(subject=user.username, role=user.role.value, expires_delta=access_token_expires)
    return Token(access_token=token, expires_in=int(access_token_expires.total_seconds()))
