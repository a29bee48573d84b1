from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ApplicationCreate(BaseModel):
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None
    additional_info: Optional[str] = None
    use_saved_resume: bool = True


class StatusUpdate(BaseModel):
    # Статус проверяется в сервисе, чтобы вернуть список допустимых значений
    status: Optional[str] = None
    notes: Optional[str] = None
    next_step: Optional[str] = None
    interview_date: Optional[datetime] = None
    notify_user: bool = True


class NoteCreate(BaseModel):
    notes: Optional[str] = None
    is_internal: bool = False
    notify_user: bool = False


class BulkStatusUpdate(BaseModel):
    application_ids: List[str] = []
    status: Optional[str] = None
    notes: Optional[str] = None


class NoteResponse(BaseModel):
    id: int
    content: str
    added_by: str
    added_by_name: Optional[str] = None
    is_internal: bool
    notify_user: bool
    related_status: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class HistoryResponse(BaseModel):
    id: int
    application_id: str
    previous_status: Optional[str] = None
    new_status: str
    changed_by: str
    changed_by_name: Optional[str] = None
    notes: Optional[str] = None
    interview_date: Optional[datetime] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: str
    job_id: str
    user_id: str
    status: str
    resume_url: Optional[str] = None
    used_saved_resume: bool = False
    cover_letter: Optional[str] = None
    additional_info: Optional[str] = None
    interview_date: Optional[datetime] = None
    interview_scheduled: bool = False
    next_step: Optional[str] = None
    viewed_by_admin: bool = False
    applied_at: datetime
    last_updated: datetime

    class Config:
        from_attributes = True


class ApplicationDetailResponse(ApplicationResponse):
    history: List[HistoryResponse] = []
    notes: List[NoteResponse] = []


class ApplicantHistoryResponse(BaseModel):
    """Запись истории для самого кандидата: без комментария администратора"""
    id: int
    previous_status: Optional[str] = None
    new_status: str
    interview_date: Optional[datetime] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class ApplicantApplicationDetailResponse(ApplicationResponse):
    history: List[ApplicantHistoryResponse] = []
    notes: List[NoteResponse] = []


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool
    limit: int


class ApplicationListResponse(BaseModel):
    items: List[ApplicationResponse]
    pagination: Pagination


class StatusUpdateResponse(BaseModel):
    message: str
    application: ApplicationResponse
    history: Optional[HistoryResponse] = None


class NotesSummary(BaseModel):
    total: int
    internal_count: int
    external_count: int


class NotesResponse(BaseModel):
    application_id: str
    user_notes: str = ""
    admin_notes: List[NoteResponse]
    last_updated: Optional[datetime] = None
    summary: NotesSummary


class NoteAddedResponse(BaseModel):
    message: str
    note: NoteResponse
    user_notified: bool


class BulkItemResult(BaseModel):
    application_id: str
    status: str
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    error: Optional[str] = None


class BulkSummary(BaseModel):
    total: int
    success: int
    failed: int


class BulkStatusResponse(BaseModel):
    message: str
    success: int
    failed: int
    details: List[BulkItemResult]
    summary: BulkSummary
