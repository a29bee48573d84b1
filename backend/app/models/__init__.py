from app.models.user import User
from app.models.job import Job
from app.models.application import Application, ApplicationNote
from app.models.history import ApplicationHistory, AdminLog

__all__ = [
    "User",
    "Job",
    "Application",
    "ApplicationNote",
    "ApplicationHistory",
    "AdminLog",
]
