from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, datetime, time, timezone
from typing import Optional
import math
from app.core.database import get_db
from app.api.dependencies import require_admin
from app.models.user import User
from app.schemas.application import (
    StatusUpdate,
    NoteCreate,
    BulkStatusUpdate,
    ApplicationResponse,
    ApplicationDetailResponse,
    ApplicationListResponse,
    StatusUpdateResponse,
    NotesResponse,
    NoteAddedResponse,
    BulkStatusResponse
)
from app.services.application_manager import ApplicationManager

router = APIRouter()


def get_manager(db: Session = Depends(get_db)) -> ApplicationManager:
    return ApplicationManager(db)


@router.get("", response_model=ApplicationListResponse)
async def get_applications(
    status: Optional[str] = Query(None),
    job_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    sort_by: str = Query("appliedAt", pattern="^(appliedAt|updatedAt|status)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Список всех заявок с фильтрами и пагинацией"""
    # end_date включительно, до конца дня
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None

    items, total = manager.list_applications(
        status=status,
        job_id=job_id,
        user_id=user_id,
        start_date=start,
        end_date=end,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order
    )

    total_pages = math.ceil(total / limit)
    return {
        "items": items,
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_items": total,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
            "limit": limit,
        },
    }


@router.post("/bulk-status", response_model=BulkStatusResponse)
async def bulk_update_status(
    bulk_data: BulkStatusUpdate,
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Массовая смена статуса (не более 50 заявок за запрос)"""
    results = manager.bulk_transition(
        bulk_data.application_ids,
        current_user,
        bulk_data.status,
        notes=bulk_data.notes
    )
    return {"message": f"Bulk status update completed: {bulk_data.status}", **results}


@router.get("/{application_id}", response_model=ApplicationDetailResponse)
async def get_application(
    application_id: str,
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Заявка с полной историей и всеми заметками, включая внутренние"""
    application = manager.get_for_admin(application_id)
    result = ApplicationResponse.model_validate(application).model_dump()
    result["history"] = manager.audit.list_for(application_id)
    result["notes"] = list(application.admin_notes)
    return result


@router.patch("/{application_id}/status", response_model=StatusUpdateResponse)
async def update_application_status(
    application_id: str,
    status_data: StatusUpdate,
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Смена статуса заявки"""
    application, history = manager.transition(
        application_id,
        current_user,
        status_data.status,
        notes=status_data.notes,
        next_step=status_data.next_step,
        interview_date=status_data.interview_date,
        notify_user=status_data.notify_user
    )
    return {
        "message": f"Application status updated to {application.status}",
        "application": application,
        "history": history,
    }


@router.patch("/{application_id}/notes", response_model=NoteAddedResponse)
async def add_application_note(
    application_id: str,
    note_data: NoteCreate,
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Добавление заметки к заявке"""
    note = manager.notes.add_note(
        application_id,
        current_user,
        note_data.notes,
        is_internal=note_data.is_internal,
        notify_user=note_data.notify_user
    )
    return {
        "message": "Note added successfully",
        "note": note,
        "user_notified": note_data.notify_user and not note_data.is_internal,
    }


@router.get("/{application_id}/notes", response_model=NotesResponse)
async def get_application_notes(
    application_id: str,
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Все заметки заявки со сводкой"""
    return {"application_id": application_id, **manager.notes.list_notes(application_id)}


@router.delete("/{application_id}")
async def delete_application(
    application_id: str,
    current_user: User = Depends(require_admin),
    manager: ApplicationManager = Depends(get_manager)
):
    """Удаление заявки вместе с историей"""
    manager.delete(application_id, current_user)
    return {"message": "Application deleted successfully", "application_id": application_id}
