from sqlalchemy import Column, String, Boolean, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid
from app.core.database import Base
from app.utils.dates import utcnow

APPLICATION_STATUSES = [
    "pending",
    "reviewed",
    "shortlisted",
    "interview",
    "accepted",
    "rejected",
    "withdrawn",
]
# Пользователь может отозвать заявку только пока по ней нет решения
WITHDRAWABLE_STATUSES = {"pending", "reviewed", "shortlisted"}


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        # Одна заявка на пару (вакансия, пользователь), независимо от статуса
        UniqueConstraint("job_id", "user_id", name="uq_applications_job_user"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Ссылки не ограничены FK: существование вакансии проверяет ApplicationManager
    job_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    resume_url = Column(String(500))
    used_saved_resume = Column(Boolean, default=False)
    cover_letter = Column(Text)
    additional_info = Column(Text)

    user_notes = Column(Text, default="")
    notes_last_updated = Column(DateTime(timezone=True))

    interview_date = Column(DateTime(timezone=True))
    interview_scheduled = Column(Boolean, default=False)
    next_step = Column(Text)
    viewed_by_admin = Column(Boolean, default=False)
    updated_by = Column(String(36))

    applied_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Relationships
    admin_notes = relationship(
        "ApplicationNote",
        back_populates="application",
        order_by="ApplicationNote.id",
        cascade="all, delete-orphan"
    )
    history = relationship(
        "ApplicationHistory",
        back_populates="application",
        cascade="all, delete-orphan"
    )


class ApplicationNote(Base):
    """Заметка администратора. Порядок вставки совпадает с хронологическим"""
    __tablename__ = "application_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    added_by = Column(String(36), nullable=False)
    added_by_name = Column(String(255))
    is_internal = Column(Boolean, nullable=False, default=False)
    notify_user = Column(Boolean, nullable=False, default=False)
    related_status = Column(String(20))  # Заполнено у заметок, созданных сменой статуса
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    application = relationship("Application", back_populates="admin_notes")
