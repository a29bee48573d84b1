"""
Жизненный цикл заявки: подача, смена статуса, отзыв, массовая смена статуса.

Все проверки выполняются до первой записи: ошибки валидации, NotFound и
Conflict ничего не меняют в БД. После основной записи побочные эффекты
(история, счётчики, заметка, уведомления) выполняются по очереди и
независимо: сбой любого из них логируется, но не откатывает основную
запись и не превращает операцию в ошибку. Атомарности между заявкой,
историей и счётчиками нет.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import AppError, ValidationError, NotFound, Conflict, Forbidden, Internal
from app.models.application import Application, APPLICATION_STATUSES, WITHDRAWABLE_STATUSES
from app.models.history import ApplicationHistory
from app.models.job import Job, JOB_OPEN_STATUS
from app.models.user import User
from app.services.audit_trail import AuditTrail
from app.services.counters import CounterUpdater
from app.services.notes import NotesStore
from app.services.notifications import NotificationDispatcher
from app.utils.dates import utcnow, as_utc

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "appliedAt": Application.applied_at,
    "applied_at": Application.applied_at,
    "updatedAt": Application.last_updated,
    "last_updated": Application.last_updated,
    "status": Application.status,
}


def validate_status(status: Optional[str]) -> str:
    if not status:
        raise ValidationError("Status is required")
    if status not in APPLICATION_STATUSES:
        raise ValidationError(f"Invalid status. Valid statuses: {', '.join(APPLICATION_STATUSES)}")
    return status


class ApplicationManager:

    def __init__(self, db: Session, dispatcher: Optional[NotificationDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.audit = AuditTrail(db)
        self.counters = CounterUpdater(db)
        self.notes = NotesStore(db, self.dispatcher)

    # --- helpers ---

    def _commit_primary(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Primary write failed: {action}")
            raise Internal(f"Failed to {action}") from e

    def _side_effect(self, name: str, func, *args, **kwargs):
        """Побочный эффект после основной записи: ошибка логируется и глотается"""
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Side effect '{name}' failed; primary write is kept")
            return None

    def get(self, application_id: str) -> Application:
        application = self.db.query(Application).filter(Application.id == application_id).first()
        if not application:
            raise NotFound("Application not found")
        return application

    def _get_job(self, job_id: str) -> Job:
        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise NotFound("Job not found")
        return job

    def _get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    # --- submit ---

    def submit(
        self,
        job_id: str,
        user_id: str,
        resume_url: Optional[str] = None,
        cover_letter: Optional[str] = None,
        additional_info: Optional[str] = None,
        use_saved_resume: bool = True
    ) -> Application:
        job = self._get_job(job_id)
        user = self._get_user(user_id)

        if job.status != JOB_OPEN_STATUS:
            raise Conflict("Job is not open for applications")

        deadline = as_utc(job.application_deadline)
        if deadline is not None and deadline < utcnow():
            raise Conflict("Application deadline has passed")

        # Любая существующая заявка блокирует повторную, в том числе отозванная
        existing = self.db.query(Application.id).filter(
            Application.job_id == job_id,
            Application.user_id == user_id
        ).first()
        if existing:
            raise Conflict("Already applied")

        if use_saved_resume and user.resume_url:
            final_resume_url = user.resume_url
            used_saved_resume = True
        elif resume_url:
            final_resume_url = resume_url
            used_saved_resume = False
        else:
            raise ValidationError("No resume provided. Please upload a resume first or provide a resume URL.")

        now = utcnow()
        application = Application(
            job_id=job_id,
            user_id=user_id,
            status="pending",
            resume_url=final_resume_url,
            used_saved_resume=used_saved_resume,
            cover_letter=cover_letter,
            additional_info=additional_info,
            user_notes="",
            applied_at=now,
            last_updated=now
        )
        self.db.add(application)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Параллельный запрос успел создать заявку на ту же пару
            self.db.rollback()
            raise Conflict("Already applied") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Failed to create application for job {job_id}, user {user_id}")
            raise Internal("Failed to submit application") from e
        self.db.refresh(application)
        logger.info(f"Application {application.id} submitted: job={job_id}, user={user_id}")

        self._side_effect("job applicants counter", self.counters.applicant_added, job_id)
        self._side_effect("user applications counter", self.counters.user_application_added, user_id)
        self._side_effect(
            "admin notification",
            self.dispatcher.notify_admins,
            self.db,
            "New Job Application",
            f"User {user.full_name or user_id} applied to job {job.title}",
            {"applicationId": application.id, "jobId": job_id}
        )
        return application

    # --- transition ---

    def transition(
        self,
        application_id: str,
        actor: User,
        new_status: str,
        notes: Optional[str] = None,
        next_step: Optional[str] = None,
        interview_date: Optional[datetime] = None,
        notify_user: bool = True
    ) -> Tuple[Application, Optional[ApplicationHistory]]:
        """
        Смена статуса администратором. Граф переходов не ограничен:
        из любого статуса можно перейти в любой из семи допустимых.
        """
        validate_status(new_status)
        application = self.get(application_id)
        previous_status = application.status
        job_id = application.job_id
        user_id = application.user_id

        application.status = new_status
        application.last_updated = utcnow()
        application.updated_by = actor.id
        if new_status == "interview" and interview_date:
            application.interview_date = interview_date
            application.interview_scheduled = True
        if next_step:
            application.next_step = next_step
        self._commit_primary("update application status")
        logger.info(f"Application {application_id} status {previous_status} -> {new_status} by {actor.id}")

        history = self._side_effect(
            "history entry",
            self.audit.record,
            application_id,
            previous_status,
            new_status,
            actor,
            notes,
            interview_date if new_status == "interview" else None
        )

        if notes and notify_user:
            self._side_effect("status note", self._add_status_note, application, actor, new_status, notes)

        self._side_effect("decision counter", self.counters.decision_recorded, job_id, new_status)

        if notify_user:
            self.dispatcher.notify(
                [user_id],
                title="Application status updated",
                body=f"Your application status changed to {new_status}",
                data={"applicationId": application_id, "status": new_status}
            )

        self.db.refresh(application)
        return application, history

    def _add_status_note(self, application: Application, actor: User, status: str, notes: str):
        note = self.notes.append(
            application,
            actor,
            f"Status changed to {status}: {notes}",
            is_internal=False,
            notify_user=True,
            related_status=status
        )
        self.db.commit()
        return note

    # --- withdraw ---

    def withdraw(self, application_id: str, user_id: str) -> Application:
        application = self.get(application_id)
        if application.user_id != user_id:
            raise Forbidden("You can only withdraw your own applications")
        if application.status not in WITHDRAWABLE_STATUSES:
            raise Conflict(f"Cannot withdraw an application with status '{application.status}'")

        user = self._get_user(user_id)
        previous_status = application.status
        application.status = "withdrawn"
        application.last_updated = utcnow()
        application.updated_by = user_id
        self._commit_primary("withdraw application")
        logger.info(f"Application {application_id} withdrawn by user {user_id}")

        self._side_effect("history entry", self.audit.record, application_id, previous_status, "withdrawn", user)
        # Job.applicants_count при отзыве не уменьшается
        self._side_effect("user applications counter", self.counters.user_application_removed, user_id)

        self.db.refresh(application)
        return application

    # --- bulk ---

    def bulk_transition(
        self,
        application_ids: List[str],
        actor: User,
        new_status: str,
        notes: Optional[str] = None
    ) -> dict:
        """
        Массовая смена статуса. Список молча обрезается до BULK_STATUS_LIMIT,
        дубликаты обрабатываются повторно (каждый даёт свою запись истории
        и свой инкремент счётчика). Ошибка одного id не прерывает остальные.
        """
        if not application_ids:
            raise ValidationError("Application IDs array is required")
        validate_status(new_status)

        limited_ids = application_ids[:settings.BULK_STATUS_LIMIT]
        results = {"success": 0, "failed": 0, "details": []}

        for application_id in limited_ids:
            try:
                previous_status = self.get(application_id).status
                self.transition(application_id, actor, new_status, notes=notes, notify_user=False)
            except (AppError, SQLAlchemyError) as e:
                if isinstance(e, SQLAlchemyError):
                    self.db.rollback()
                    logger.exception(f"Bulk status update failed for application {application_id}")
                    error = "Failed to update application"
                else:
                    error = e.message
                results["failed"] += 1
                results["details"].append({
                    "application_id": application_id,
                    "status": "failed",
                    "error": error,
                })
                continue

            results["success"] += 1
            results["details"].append({
                "application_id": application_id,
                "status": "success",
                "previous_status": previous_status,
                "new_status": new_status,
            })

        logger.info(f"Bulk status update to {new_status}: success={results['success']}, failed={results['failed']}")
        self._side_effect(
            "admin log",
            self.audit.log_admin_action,
            actor,
            "bulk_update_applications",
            status=new_status,
            count=len(limited_ids),
            success_count=results["success"],
            fail_count=results["failed"]
        )
        results["summary"] = {
            "total": len(limited_ids),
            "success": results["success"],
            "failed": results["failed"],
        }
        return results

    # --- delete ---

    def delete(self, application_id: str, actor: User) -> None:
        """Удаляет заявку вместе с заметками и историей. Счётчики не трогаем"""
        application = self.get(application_id)
        job_id = application.job_id
        user_id = application.user_id

        self.db.delete(application)
        self._commit_primary("delete application")
        logger.info(f"Application {application_id} deleted by admin {actor.id}")

        self._side_effect(
            "admin log",
            self.audit.log_admin_action,
            actor,
            "delete_application",
            application_id=application_id,
            job_id=job_id,
            user_id=user_id
        )

    # --- reads ---

    def get_for_admin(self, application_id: str) -> Application:
        application = self.get(application_id)
        if not application.viewed_by_admin:
            application.viewed_by_admin = True
            self._side_effect("viewed flag", self.db.commit)
        return application

    def list_for_user(self, user_id: str) -> List[Application]:
        return self.db.query(Application).filter(
            Application.user_id == user_id
        ).order_by(Application.applied_at.desc()).all()

    def list_applications(
        self,
        status: Optional[str] = None,
        job_id: Optional[str] = None,
        user_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "appliedAt",
        order: str = "desc"
    ) -> Tuple[List[Application], int]:
        query = self.db.query(Application)

        if status:
            query = query.filter(Application.status == status)
        if job_id:
            query = query.filter(Application.job_id == job_id)
        if user_id:
            query = query.filter(Application.user_id == user_id)
        if start_date:
            query = query.filter(Application.applied_at >= start_date)
        if end_date:
            query = query.filter(Application.applied_at <= end_date)

        total = query.count()

        sort_column = SORT_FIELDS.get(sort_by, Application.applied_at)
        order_by = sort_column.asc() if order == "asc" else sort_column.desc()

        offset = (page - 1) * limit
        items = query.order_by(order_by, Application.id).offset(offset).limit(limit).all()
        return items, total
