from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class JobCreate(BaseModel):
    title: str = Field(min_length=5)
    description: str = Field(min_length=20)
    company: str = Field(min_length=2)
    location: str = Field(min_length=3)
    type: str = "full-time"
    category: str = "general"
    remote: bool = False
    status: str = "published"
    application_deadline: Optional[datetime] = None


class JobStatusUpdate(BaseModel):
    status: Optional[str] = None


class JobResponse(BaseModel):
    id: str
    title: str
    description: str
    company: str
    location: str
    type: Optional[str] = None
    category: Optional[str] = None
    remote: bool = False
    status: str
    application_deadline: Optional[datetime] = None
    applicants_count: int = 0
    accepted_applicants: int = 0
    rejected_applicants: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobListResponse(BaseModel):
    items: List[JobResponse]
    total: int
    page: int
    per_page: int


class JobCountersResponse(BaseModel):
    job_id: str
    applicants_count: int
    accepted_applicants: int
    rejected_applicants: int
