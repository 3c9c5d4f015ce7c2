from nexusjob.schemas.application import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationStatsOut,
    ApplicationStatusOut,
    ApplicationStatusUpdate,
)
from nexusjob.schemas.assistant import (
    CandidateRecommendation,
    CoverLetterEnhanceRequest,
    CoverLetterEnhanceResponse,
    JobDescriptionDraft,
    JobDescriptionRequest,
    JobRecommendation,
)
from nexusjob.schemas.chat import ChatOut, MessageCreate, MessageOut, ReadReceiptOut
from nexusjob.schemas.job import JobCreate, JobOut, JobUpdate
from nexusjob.schemas.profile import ProfileOut, ProfileUpdate

__all__ = [
    "ProfileOut",
    "ProfileUpdate",
    "JobCreate",
    "JobUpdate",
    "JobOut",
    "ApplicationCreate",
    "ApplicationStatusUpdate",
    "ApplicationOut",
    "ApplicationStatusOut",
    "ApplicationStatsOut",
    "ChatOut",
    "MessageCreate",
    "MessageOut",
    "ReadReceiptOut",
    "JobDescriptionRequest",
    "JobDescriptionDraft",
    "CoverLetterEnhanceRequest",
    "CoverLetterEnhanceResponse",
    "JobRecommendation",
    "CandidateRecommendation",
]
