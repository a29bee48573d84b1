from fastapi import APIRouter, Depends, Query, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional
from app.core.database import get_db
from app.models.job import Job, JOB_OPEN_STATUS
from app.schemas.job import JobResponse, JobListResponse

router = APIRouter()


@router.get("", response_model=JobListResponse)
async def get_jobs(
    text: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    remote: Optional[bool] = Query(None),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Список опубликованных вакансий с фильтрацией"""
    query = db.query(Job).filter(Job.status == JOB_OPEN_STATUS)

    if text:
        query = query.filter(
            or_(
                Job.title.ilike(f"%{text}%"),
                Job.company.ilike(f"%{text}%")
            )
        )

    if location:
        query = query.filter(Job.location.ilike(f"%{location}%"))

    if category:
        query = query.filter(Job.category == category)

    if remote is not None:
        query = query.filter(Job.remote == remote)

    total = query.count()

    order_by = Job.created_at.asc() if sort_order == "asc" else Job.created_at.desc()
    offset = (page - 1) * per_page
    jobs = query.order_by(order_by, Job.id).offset(offset).limit(per_page).all()

    return {
        "items": jobs,
        "total": total,
        "page": page,
        "per_page": per_page
    }


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, db: Session = Depends(get_db)):
    """Детальная информация о вакансии"""
    job = db.query(Job).filter(
        Job.id == job_id,
        Job.status == JOB_OPEN_STATUS
    ).first()

    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found"
        )

    return job
