from __future__ import annotations

from pydantic import BaseModel, Field


class JobDescriptionRequest(BaseModel):
    title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    skills: str = ""


class JobDescriptionDraft(BaseModel):
    description: str
    requirements: list[str] = Field(default_factory=list)


class CoverLetterEnhanceRequest(BaseModel):
    text: str = Field(min_length=1)
    job_title: str = Field(min_length=1)


class CoverLetterEnhanceResponse(BaseModel):
    cover_letter: str


class JobRecommendation(BaseModel):
    job_id: int = Field(alias="jobId")
    reason: str = ""

    class Config:
        populate_by_name = True


class CandidateRecommendation(BaseModel):
    user_id: int = Field(alias="userId")
    match_score: float = Field(alias="matchScore", ge=0, le=100)
    reason: str = ""

    class Config:
        populate_by_name = True
