from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import logging
import redis
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import Forbidden, TooManyRequests
from app.core.redis_client import hit_rate_limit
from app.core.security import decode_access_token
from app.models.user import User, ROLE_ADMIN

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

logger = logging.getLogger(__name__)


def is_allowed(actor_role: str, required_role: str) -> bool:
    """Единая политика доступа: админу можно всё, остальным - только своя роль"""
    return actor_role == ROLE_ADMIN or actor_role == required_role


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Получение текущего пользователя из JWT токена"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    # decode_access_token сам отбрасывает токены из блэклиста
    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("user_id")
    if not user_id:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive"
        )

    return user


def require_role(required_role: str):
    """Зависимость для роутов, доступных только указанной роли"""

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not is_allowed(current_user.role, required_role):
            raise Forbidden(f"Insufficient permissions. Required role: {required_role}")
        return current_user

    return checker


require_admin = require_role(ROLE_ADMIN)


async def auth_rate_limit(request: Request) -> None:
    """
    Ограничение попыток регистрации и входа: не больше AUTH_RATE_LIMIT_ATTEMPTS
    за AUTH_RATE_LIMIT_WINDOW_SECONDS с одного адреса. Счётчик общий для обоих роутов.
    """
    client_id = request.client.host if request.client else "unknown"
    try:
        attempts = hit_rate_limit("auth", client_id, settings.AUTH_RATE_LIMIT_WINDOW_SECONDS)
    except redis.RedisError:
        # Без redis лимит не проверить, пропускаем запрос
        logger.exception(f"Rate limit check failed for {client_id}")
        return

    if attempts > settings.AUTH_RATE_LIMIT_ATTEMPTS:
        logger.warning(f"Auth rate limit exceeded for {client_id}: {attempts} attempts")
        raise TooManyRequests("Too many login attempts, please try again in an hour.")
