from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging
from app.core.database import get_db
from app.api.dependencies import require_admin
from app.models.job import Job, JOB_STATUSES
from app.models.user import User
from app.schemas.job import JobCreate, JobStatusUpdate, JobResponse, JobCountersResponse
from app.services.counters import CounterUpdater

router = APIRouter()

logger = logging.getLogger(__name__)


def _get_job_or_404(db: Session, job_id: str) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found"
        )
    return job


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    job_data: JobCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Создание вакансии"""
    if job_data.status not in JOB_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Valid statuses: {', '.join(JOB_STATUSES)}"
        )

    job = Job(
        **job_data.dict(),
        posted_by=current_user.id,
        applicants_count=0,
        accepted_applicants=0,
        rejected_applicants=0
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(f"Job {job.id} created by {current_user.id}")

    return job


@router.patch("/{job_id}/status", response_model=JobResponse)
async def update_job_status(
    job_id: str,
    status_data: JobStatusUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Смена статуса вакансии (draft, published, archived, closed)"""
    if not status_data.status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Status is required"
        )
    if status_data.status not in JOB_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Valid statuses: {', '.join(JOB_STATUSES)}"
        )

    job = _get_job_or_404(db, job_id)
    job.status = status_data.status
    db.commit()
    db.refresh(job)
    logger.info(f"Job {job_id} status set to {job.status} by {current_user.id}")

    return job


@router.post("/{job_id}/recount", response_model=JobCountersResponse)
async def recount_job_counters(
    job_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Пересчёт счётчиков вакансии по фактическим заявкам"""
    _get_job_or_404(db, job_id)
    counters = CounterUpdater(db).recount_job(job_id)
    return {"job_id": job_id, **counters}
