from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from nexusjob.auth import get_current_employer, get_current_user
from nexusjob.database import get_db
from nexusjob.models.job import Job, JobType
from nexusjob.models.user import User
from nexusjob.schemas.job import JobCreate, JobOut, JobUpdate
from nexusjob.services.job_board import JobRepository


router = APIRouter()


@router.get("", response_model=list[JobOut])
def list_jobs(
    q: str | None = Query(default=None),
    location: str | None = Query(default=None),
    type: JobType | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Job]:
    return JobRepository(db).list_jobs(keyword=q, location=location, job_type=type)


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_employer),
) -> Job:
    return JobRepository(db).create_job(current_user, payload)


@router.get("/mine", response_model=list[JobOut])
def list_my_jobs(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_employer),
) -> list[Job]:
    return JobRepository(db).list_for_employer(current_user.id)


@router.get("/{job_id}", response_model=JobOut)
def get_job(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Job:
    job = JobRepository(db).get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.put("/{job_id}", response_model=JobOut)
def update_job(
    job_id: int,
    payload: JobUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_employer),
) -> Job:
    repo = JobRepository(db)
    if not repo.get_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    return repo.update_job(job_id, current_user.id, payload)


@router.delete("/{job_id}")
def delete_job(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_employer),
) -> dict[str, str | int]:
    repo = JobRepository(db)
    if not repo.get_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    repo.delete_job(job_id, current_user.id)
    return {"status": "deleted", "job_id": job_id}
