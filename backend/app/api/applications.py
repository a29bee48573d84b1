from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.core.errors import Forbidden
from app.api.dependencies import get_current_user
from app.models.user import User
from app.schemas.application import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicantApplicationDetailResponse
)
from app.services.application_manager import ApplicationManager

router = APIRouter()


def get_manager(db: Session = Depends(get_db)) -> ApplicationManager:
    return ApplicationManager(db)


@router.post("/{job_id}/apply", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    job_id: str,
    application_data: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    manager: ApplicationManager = Depends(get_manager)
):
    """Подача заявки на вакансию"""
    return manager.submit(
        job_id,
        current_user.id,
        resume_url=application_data.resume_url,
        cover_letter=application_data.cover_letter,
        additional_info=application_data.additional_info,
        use_saved_resume=application_data.use_saved_resume
    )


@router.get("", response_model=List[ApplicationResponse])
async def get_my_applications(
    current_user: User = Depends(get_current_user),
    manager: ApplicationManager = Depends(get_manager)
):
    """Заявки текущего пользователя, новые первыми"""
    return manager.list_for_user(current_user.id)


@router.get("/{application_id}", response_model=ApplicantApplicationDetailResponse)
async def get_my_application(
    application_id: str,
    current_user: User = Depends(get_current_user),
    manager: ApplicationManager = Depends(get_manager)
):
    """Заявка пользователя с историей и видимыми ему заметками"""
    application = manager.get(application_id)
    if application.user_id != current_user.id:
        raise Forbidden("Access denied. You can only access your own applications.")

    result = ApplicationResponse.model_validate(application).model_dump()
    # Комментарий администратора из истории схема ответа не отдаёт
    result["history"] = manager.audit.list_for(application_id)
    # Внутренние заметки админов пользователю не отдаём
    result["notes"] = [note for note in application.admin_notes if not note.is_internal]
    return result


@router.post("/{application_id}/withdraw", response_model=ApplicationResponse)
async def withdraw_application(
    application_id: str,
    current_user: User = Depends(get_current_user),
    manager: ApplicationManager = Depends(get_manager)
):
    """Отзыв заявки пользователем"""
    return manager.withdraw(application_id, current_user.id)
