"""
Журнал смены статусов заявок и лог действий администраторов
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from app.models.history import ApplicationHistory, AdminLog
from app.models.user import User

logger = logging.getLogger(__name__)


class AuditTrail:

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        application_id: str,
        previous_status: Optional[str],
        new_status: str,
        actor: User,
        notes: Optional[str] = None,
        interview_date: Optional[datetime] = None
    ) -> ApplicationHistory:
        """
        Добавляет запись истории. Пишется отдельно от обновления самой заявки,
        поэтому запись появляется даже если статус фактически не изменился.
        """
        entry = ApplicationHistory(
            application_id=application_id,
            previous_status=previous_status,
            new_status=new_status,
            changed_by=actor.id,
            changed_by_name=actor.email,
            notes=notes or "",
            interview_date=interview_date
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"History for application {application_id}: {previous_status} -> {new_status} by {actor.id}")
        return entry

    def list_for(self, application_id: str) -> List[ApplicationHistory]:
        """История заявки, новые записи первыми"""
        return self.db.query(ApplicationHistory).filter(
            ApplicationHistory.application_id == application_id
        ).order_by(
            ApplicationHistory.timestamp.desc(),
            ApplicationHistory.id.desc()
        ).all()

    def log_admin_action(self, actor: User, action: str, **details) -> AdminLog:
        log_entry = AdminLog(
            action=action,
            admin_user_id=actor.id,
            admin_user_email=actor.email,
            details=details
        )
        self.db.add(log_entry)
        self.db.commit()
        return log_entry
