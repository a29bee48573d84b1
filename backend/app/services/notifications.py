"""
Рассылка уведомлений пользователям через redis pub/sub.

Доставка по принципу fire-and-forget: ошибки логируются и никогда
не пробрасываются вызывающему коду.
"""
import json
import logging
from typing import Iterable, List, Optional, Dict, Any
import redis
from sqlalchemy.orm import Session
from app.core import redis_client
from app.models.user import User, ROLE_ADMIN

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Job Portal Notification"
DEFAULT_BODY = "You have a new notification"


class NotificationDispatcher:

    def notify(
        self,
        user_ids: Iterable[str],
        title: Optional[str] = None,
        body: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> int:
        """Отправляет уведомление каждому пользователю, возвращает число успешных публикаций"""
        # Убираем дубликаты, сохраняя порядок
        recipients = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not recipients:
            logger.info("No users to send notification to")
            return 0

        message = json.dumps({
            "title": title or DEFAULT_TITLE,
            "body": body or DEFAULT_BODY,
            "data": data or {},
        })

        sent = 0
        for user_id in recipients:
            try:
                redis_client.publish_notification(user_id, message)
                sent += 1
            except redis.RedisError:
                logger.exception(f"Failed to publish notification to user {user_id}")

        logger.info(f"Notifications sent: success={sent}, failed={len(recipients) - sent}, total={len(recipients)}")
        return sent

    def notify_admins(self, db: Session, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> int:
        return self.notify(admin_user_ids(db), title, body, data)


def admin_user_ids(db: Session) -> List[str]:
    rows = db.query(User.id).filter(User.role == ROLE_ADMIN, User.is_active == True).all()
    return [row[0] for row in rows]
