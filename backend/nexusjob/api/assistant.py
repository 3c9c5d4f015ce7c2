from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from nexusjob.auth import get_current_employer, get_current_seeker, get_current_user
from nexusjob.database import get_db
from nexusjob.models.user import User, UserRole
from nexusjob.schemas.assistant import (
    CandidateRecommendation,
    CoverLetterEnhanceRequest,
    CoverLetterEnhanceResponse,
    JobDescriptionDraft,
    JobDescriptionRequest,
    JobRecommendation,
)
from nexusjob.services.job_board import JobRepository
from nexusjob.services.recommendations import RecommendationGateway, get_gateway


router = APIRouter()


@router.post("/job-description", response_model=JobDescriptionDraft)
def draft_job_description(
    payload: JobDescriptionRequest,
    gateway: RecommendationGateway = Depends(get_gateway),
    current_user: User = Depends(get_current_employer),
) -> JobDescriptionDraft:
    return gateway.generate_job_description(payload.title, payload.company, payload.skills)


@router.post("/cover-letter", response_model=CoverLetterEnhanceResponse)
def enhance_cover_letter(
    payload: CoverLetterEnhanceRequest,
    gateway: RecommendationGateway = Depends(get_gateway),
    current_user: User = Depends(get_current_user),
) -> CoverLetterEnhanceResponse:
    return CoverLetterEnhanceResponse(cover_letter=gateway.enhance_cover_letter(payload.text, payload.job_title))


@router.get("/recommended-jobs", response_model=list[JobRecommendation])
def recommended_jobs(
    db: Session = Depends(get_db),
    gateway: RecommendationGateway = Depends(get_gateway),
    current_user: User = Depends(get_current_seeker),
) -> list[JobRecommendation]:
    return gateway.recommend_jobs(current_user, JobRepository(db).list_jobs())


@router.get("/jobs/{job_id}/candidates", response_model=list[CandidateRecommendation])
def recommended_candidates(
    job_id: int,
    db: Session = Depends(get_db),
    gateway: RecommendationGateway = Depends(get_gateway),
    current_user: User = Depends(get_current_employer),
) -> list[CandidateRecommendation]:
    job = JobRepository(db).get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.employer_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the employer who posted this job can rank candidates")
    candidates = (
        db.query(User)
        .filter(User.role == UserRole.SEEKER.value, User.is_active == True)  # noqa: E712
        .all()
    )
    return gateway.recommend_candidates(job, candidates)
