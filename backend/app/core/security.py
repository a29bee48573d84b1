from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings
from app.core.redis_client import is_token_blacklisted

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt учитывает только первые 72 байта пароля
BCRYPT_MAX_BYTES = 72


def _truncate_password(password: str) -> str:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        return password_bytes[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")
    return password


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_truncate_password(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(_truncate_password(plain_password), hashed_password)
    except ValueError:
        # Битый хэш в БД
        return False


def _encode(data: dict, token_type: str, expire: datetime, secret: str) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def _decode(token: str, token_type: str, secret: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Создание access JWT токена. В payload кладём user_id, email и роль"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return _encode(data, "access", expire, settings.SECRET_KEY)


def create_refresh_token(data: dict) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, "refresh", expire, settings.REFRESH_SECRET_KEY)


def decode_access_token(token: str) -> Optional[dict]:
    """Декодирование access токена; отозванные токены считаются невалидными"""
    if is_token_blacklisted(token):
        return None
    return _decode(token, "access", settings.SECRET_KEY)


def decode_refresh_token(token: str) -> Optional[dict]:
    return _decode(token, "refresh", settings.REFRESH_SECRET_KEY)
