"""
Заметки администраторов к заявкам.

Заметки только добавляются, порядок вставки = хронологический порядок.
Одинаковые заметки не схлопываются: два вызова дают две записи.
"""
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.errors import ValidationError, NotFound, Internal
from app.models.application import Application, ApplicationNote
from app.models.user import User
from app.services.notifications import NotificationDispatcher
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def notes_summary(notes) -> dict:
    """Сводка считается при чтении, отдельно не хранится"""
    internal = sum(1 for note in notes if note.is_internal)
    return {
        "total": len(notes),
        "internal_count": internal,
        "external_count": len(notes) - internal,
    }


class NotesStore:

    def __init__(self, db: Session, dispatcher: Optional[NotificationDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher()

    def _get_application(self, application_id: str) -> Application:
        application = self.db.query(Application).filter(Application.id == application_id).first()
        if not application:
            raise NotFound("Application not found")
        return application

    def append(
        self,
        application: Application,
        actor: User,
        content: str,
        is_internal: bool = False,
        notify_user: bool = False,
        related_status: Optional[str] = None
    ) -> ApplicationNote:
        """Добавляет заметку без валидации, коммит на стороне вызывающего"""
        now = utcnow()
        note = ApplicationNote(
            content=content,
            added_by=actor.id,
            added_by_name=actor.email,
            is_internal=is_internal,
            notify_user=notify_user,
            related_status=related_status,
            timestamp=now
        )
        application.admin_notes.append(note)
        application.notes_last_updated = now
        application.last_updated = now
        application.updated_by = actor.id
        return note

    def add_note(
        self,
        application_id: str,
        actor: User,
        content: Optional[str],
        is_internal: bool = False,
        notify_user: bool = False
    ) -> ApplicationNote:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Notes content is required")

        application = self._get_application(application_id)
        note = self.append(application, actor, content, is_internal=is_internal, notify_user=notify_user)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Failed to add note to application {application_id}")
            raise Internal("Failed to add note") from e
        self.db.refresh(note)
        logger.info(f"Note added to application {application_id} by {actor.id} (internal={is_internal})")

        # Внутренние заметки пользователю не показываются, уведомлять о них нечего
        if notify_user and not is_internal:
            self.dispatcher.notify(
                [application.user_id],
                title="New note on your application",
                body=content,
                data={"applicationId": application.id}
            )
        return note

    def list_notes(self, application_id: str) -> dict:
        application = self._get_application(application_id)
        notes = list(application.admin_notes)
        return {
            "user_notes": application.user_notes or "",
            "admin_notes": notes,
            "last_updated": application.notes_last_updated,
            "summary": notes_summary(notes),
        }
