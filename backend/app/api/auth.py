from fastapi import APIRouter, Depends, HTTPException, status, Header
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta
from typing import Optional
import logging
import time
from app.api.dependencies import auth_rate_limit
from app.core.database import get_db
from app.core.errors import Unauthenticated
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    decode_access_token
)
from app.core.config import settings
from app.core.redis_client import (
    store_refresh_token,
    get_refresh_token,
    delete_refresh_token,
    add_to_blacklist
)
from app.models.user import User, ROLE_USER
from app.schemas.user import UserCreate, UserResponse, Token, TokenRefresh

router = APIRouter()

logger = logging.getLogger(__name__)


def _create_tokens(user: User) -> dict:
    """Создание access и refresh токенов"""
    claims = {"sub": user.email, "user_id": str(user.id), "role": user.role}
    access_token = create_access_token(
        data=claims,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    refresh_token = create_refresh_token(data=claims)

    # Сохраняем refresh токен в Redis
    refresh_expire_seconds = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    store_refresh_token(str(user.id), refresh_token, refresh_expire_seconds)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)]
)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Регистрация нового пользователя. Роль всегда user, админов назначают вручную"""
    existing_user = db.query(User).filter(User.email == user_data.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered. Please use login instead."
        )

    db_user = User(
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        phone=user_data.phone,
        role=ROLE_USER,
        applications_count=0
    )

    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info(f"User registered: {db_user.id}")

    return db_user


@router.post("/login", response_model=Token, dependencies=[Depends(auth_rate_limit)])
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Вход пользователя и получение JWT токенов"""
    user = db.query(User).filter(User.email == form_data.username).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive"
        )

    return _create_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    token_data: TokenRefresh,
    db: Session = Depends(get_db)
):
    """Обновление access токена с помощью refresh токена"""
    payload = decode_refresh_token(token_data.refresh_token)
    if not payload or not payload.get("user_id"):
        raise Unauthenticated("Invalid refresh token")

    user_id = payload["user_id"]

    # Принимаем только последний выданный refresh токен
    if get_refresh_token(user_id) != token_data.refresh_token:
        raise Unauthenticated("Refresh token not found or expired")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")

    return _create_tokens(user)


@router.post("/logout")
async def logout(authorization: Optional[str] = Header(None)):
    """Выход пользователя (добавление токена в блэклист)"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid"
        )

    token = authorization.replace("Bearer ", "")

    payload = decode_access_token(token)
    if payload and payload.get("exp"):
        # Токен держим в блэклисте ровно до истечения его срока
        expire_seconds = int(payload["exp"] - time.time())
        if expire_seconds > 0:
            add_to_blacklist(token, expire_seconds)
        if payload.get("user_id"):
            delete_refresh_token(payload["user_id"])

    return {"message": "Logged out successfully"}
