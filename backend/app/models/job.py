from sqlalchemy import Column, String, Boolean, Integer, Text, DateTime
from sqlalchemy.sql import func
import uuid
from app.core.database import Base

JOB_STATUSES = ["draft", "published", "archived", "closed"]
# Принимать заявки можно только на опубликованные вакансии
JOB_OPEN_STATUS = "published"


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    company = Column(String(255), nullable=False, index=True)
    location = Column(String(255), nullable=False)
    type = Column(String(50), default="full-time")
    category = Column(String(100), default="general", index=True)
    remote = Column(Boolean, default=False)
    status = Column(String(20), nullable=False, default=JOB_OPEN_STATUS, index=True)
    application_deadline = Column(DateTime(timezone=True))
    posted_by = Column(String(36))

    # Денормализованные счётчики, поддерживаются app.services.counters
    applicants_count = Column(Integer, nullable=False, default=0)
    accepted_applicants = Column(Integer, nullable=False, default=0)
    rejected_applicants = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
