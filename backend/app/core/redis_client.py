import redis
from app.core.config import settings

redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
    decode_responses=True
)


def _blacklist_key(token: str) -> str:
    return f"blacklist:{token}"


def _refresh_key(user_id: str) -> str:
    return f"refresh_token:{user_id}"


def notification_channel(user_id: str) -> str:
    """Канал pub/sub, на который подписан клиент пользователя"""
    return f"{settings.NOTIFICATION_CHANNEL_PREFIX}:{user_id}"


def add_to_blacklist(token: str, expire_seconds: int) -> None:
    """Отзыв access токена до истечения его срока"""
    redis_client.setex(_blacklist_key(token), expire_seconds, "1")


def is_token_blacklisted(token: str) -> bool:
    return redis_client.exists(_blacklist_key(token)) > 0


def store_refresh_token(user_id: str, token: str, expire_seconds: int) -> None:
    # Храним только последний выданный refresh токен пользователя
    redis_client.setex(_refresh_key(user_id), expire_seconds, token)


def get_refresh_token(user_id: str) -> str | None:
    return redis_client.get(_refresh_key(user_id))


def delete_refresh_token(user_id: str) -> None:
    redis_client.delete(_refresh_key(user_id))


def publish_notification(user_id: str, message: str) -> int:
    """Публикация уведомления, возвращает число подписчиков получивших сообщение"""
    return redis_client.publish(notification_channel(user_id), message)


def _rate_limit_key(scope: str, client_id: str) -> str:
    return f"rate_limit:{scope}:{client_id}"


def hit_rate_limit(scope: str, client_id: str, window_seconds: int) -> int:
    """Увеличивает счётчик попыток в окне, возвращает число попыток с начала окна"""
    key = _rate_limit_key(scope, client_id)
    attempts = redis_client.incr(key)
    if attempts == 1:
        # Окно отсчитывается от первой попытки
        redis_client.expire(key, window_seconds)
    return attempts
