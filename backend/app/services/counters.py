"""
Денормализованные счётчики по вакансиям и пользователям.

Счётчики - это кэш, а не источник истины: инкременты не транзакционны
относительно смены статуса заявки и могут разойтись с реальными данными,
если запись упала посередине. Для сверки есть recount_job.
Весь код, меняющий счётчики, должен идти через CounterUpdater.
"""
import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.application import Application
from app.models.job import Job
from app.models.user import User

logger = logging.getLogger(__name__)

# Статус заявки -> колонка вакансии, которую он увеличивает
DECISION_COUNTERS = {
    "accepted": Job.accepted_applicants,
    "rejected": Job.rejected_applicants,
}


class CounterUpdater:
    """Атомарные инкременты счётчиков через UPDATE col = col + n"""

    def __init__(self, db: Session):
        self.db = db

    def _increment(self, model, row_id: str, column, delta: int) -> int:
        updated = self.db.query(model).filter(model.id == row_id).update(
            {column: column + delta},
            synchronize_session=False
        )
        self.db.commit()
        if not updated:
            logger.warning(f"Counter {column.key} not updated: {model.__tablename__} {row_id} not found")
        return updated

    def applicant_added(self, job_id: str) -> int:
        return self._increment(Job, job_id, Job.applicants_count, 1)

    def decision_recorded(self, job_id: str, status: str) -> int:
        """Учитывает переход заявки в accepted/rejected, остальные статусы игнорируются"""
        column = DECISION_COUNTERS.get(status)
        if column is None:
            return 0
        return self._increment(Job, job_id, column, 1)

    def user_application_added(self, user_id: str) -> int:
        return self._increment(User, user_id, User.applications_count, 1)

    def user_application_removed(self, user_id: str) -> int:
        return self._increment(User, user_id, User.applications_count, -1)

    def recount_job(self, job_id: str) -> dict:
        """
        Пересчёт счётчиков вакансии по строкам заявок.

        applicants_count считает все заявки, включая отозванные:
        инкрементальный путь при отзыве его тоже не уменьшает.
        """
        rows = self.db.query(Application.status, func.count(Application.id)).filter(
            Application.job_id == job_id
        ).group_by(Application.status).all()
        by_status = {status: count for status, count in rows}

        counters = {
            "applicants_count": sum(by_status.values()),
            "accepted_applicants": by_status.get("accepted", 0),
            "rejected_applicants": by_status.get("rejected", 0),
        }
        self.db.query(Job).filter(Job.id == job_id).update(counters, synchronize_session=False)
        self.db.commit()
        logger.info(f"Recounted job {job_id}: {counters}")
        return counters
