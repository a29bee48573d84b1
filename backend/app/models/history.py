from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.dates import utcnow


class ApplicationHistory(Base):
    """Неизменяемая запись аудита о смене статуса заявки"""
    __tablename__ = "application_history"

    # Автоинкремент задаёт порядок вставки при совпадении timestamp
    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_status = Column(String(20))
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(36), nullable=False)
    changed_by_name = Column(String(255))
    notes = Column(Text, default="")
    interview_date = Column(DateTime(timezone=True))
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    application = relationship("Application", back_populates="history")


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(100), nullable=False, index=True)
    admin_user_id = Column(String(36), nullable=False)
    admin_user_email = Column(String(255))
    details = Column(JSON)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
