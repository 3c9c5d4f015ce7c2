from __future__ import annotations

import json
import logging
import re
from typing import Any

import anthropic
from jinja2 import Template
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from nexusjob.config import settings
from nexusjob.errors import ExternalModelError
from nexusjob.models.job import Job
from nexusjob.models.user import User
from nexusjob.schemas.assistant import CandidateRecommendation, JobDescriptionDraft, JobRecommendation


DEFAULT_JOB_DESCRIPTION = JobDescriptionDraft(
    description=(
        "We are looking for a talented individual to join our team. "
        "Please apply if you have relevant experience."
    ),
    requirements=["Relevant experience in the field", "Strong communication skills", "Team player"],
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

_job_recommendations = TypeAdapter(list[JobRecommendation])
_candidate_recommendations = TypeAdapter(list[CandidateRecommendation])
_job_description = TypeAdapter(JobDescriptionDraft)


class RecommendationGateway:
    """Shapes users and jobs into prompts for the language model and normalizes its answers.

    No public method raises on a model failure. Each one degrades to a safe
    default: an empty list, the unmodified text, or a generic job description.
    Callers should treat that default as a normal, retryable outcome.
    """

    def __init__(self, client: Any | None = None, model: str | None = None, max_tokens: int | None = None) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        if client is None and settings.ai_enabled:
            client = anthropic.Anthropic(api_key=settings.anthropic_api_key, timeout=settings.ai_timeout_seconds)
        self.client = client
        self.model = model or settings.ai_model
        self.max_tokens = max_tokens or settings.ai_max_tokens
        self.templates = {
            "job_description": Template(
                """
Write a professional and engaging job description for a "{{ title }}" position at "{{ company }}".
The role involves the following key skills or focus areas: {{ skills or "not specified" }}.

Return only JSON with two fields:
1. "description": a 2-3 paragraph summary of the role, responsibilities, and why it's exciting.
2. "requirements": an array of 5-7 strings listing qualifications.
                """.strip()
            ),
            "cover_letter": Template(
                """
Rewrite the following cover letter draft to be more professional and tailored for a "{{ job_title }}" position.
Keep it concise (under 200 words). Return only the rewritten letter.

Draft: "{{ draft }}"
                """.strip()
            ),
            "recommend_jobs": Template(
                """
Act as a career recruiter.
User Profile: {{ profile }}
Available Jobs: {{ jobs }}

Recommend the top {{ limit }} most relevant jobs for this user based on their skills and experience.
Return only JSON: an array of objects with "jobId" and a short "reason" (1 sentence).
                """.strip()
            ),
            "recommend_candidates": Template(
                """
Act as an HR specialist.
Job Requirement: {{ job }}
Candidates: {{ candidates }}

Identify the top candidates who match this job.
Return only JSON: an array of objects with
- "userId": number
- "matchScore": number (0-100)
- "reason": string (brief explanation of fit)

Only return candidates with a matchScore > {{ min_score }}.
                """.strip()
            ),
        }

    def generate_job_description(self, title: str, company: str, skills: str) -> JobDescriptionDraft:
        prompt = self.templates["job_description"].render(title=title, company=company, skills=skills)
        try:
            draft = self._parse(self._complete(prompt), _job_description)
        except ExternalModelError as exc:
            self.logger.warning("Job description drafting fell back to default: %s", exc.detail)
            return DEFAULT_JOB_DESCRIPTION.model_copy(deep=True)
        if not draft.description.strip():
            return DEFAULT_JOB_DESCRIPTION.model_copy(deep=True)
        return draft

    def enhance_cover_letter(self, text: str, job_title: str) -> str:
        prompt = self.templates["cover_letter"].render(draft=text, job_title=job_title)
        try:
            return self._complete(prompt)
        except ExternalModelError as exc:
            self.logger.warning("Cover letter enhancement returned the original text: %s", exc.detail)
            return text

    def recommend_jobs(self, user: User, jobs: list[Job]) -> list[JobRecommendation]:
        if not jobs:
            return []
        limit = settings.max_job_recommendations
        prompt = self.templates["recommend_jobs"].render(
            profile=json.dumps(self._reduce_user(user)),
            jobs=json.dumps([self._reduce_job(job) for job in jobs]),
            limit=limit,
        )
        try:
            recommendations = self._parse(self._complete(prompt), _job_recommendations)
        except ExternalModelError as exc:
            self.logger.warning("Job recommendations unavailable for user %s: %s", user.id, exc.detail)
            return []

        known = {job.id for job in jobs}
        picked: list[JobRecommendation] = []
        seen: set[int] = set()
        for recommendation in recommendations:
            if recommendation.job_id not in known or recommendation.job_id in seen:
                continue
            seen.add(recommendation.job_id)
            picked.append(recommendation)
        return picked[:limit]

    def recommend_candidates(self, job: Job, candidates: list[User]) -> list[CandidateRecommendation]:
        if not candidates:
            return []
        min_score = settings.candidate_min_score
        job_profile = {"title": job.title, "requirements": job.requirements or [], "tags": job.tags or []}
        prompt = self.templates["recommend_candidates"].render(
            job=json.dumps(job_profile),
            candidates=json.dumps([self._reduce_candidate(candidate) for candidate in candidates]),
            min_score=int(min_score),
        )
        try:
            recommendations = self._parse(self._complete(prompt), _candidate_recommendations)
        except ExternalModelError as exc:
            self.logger.warning("Candidate recommendations unavailable for job %s: %s", job.id, exc.detail)
            return []

        known = {candidate.id for candidate in candidates}
        best: dict[int, CandidateRecommendation] = {}
        for recommendation in recommendations:
            if recommendation.user_id not in known or recommendation.match_score <= min_score:
                continue
            current = best.get(recommendation.user_id)
            if current is None or recommendation.match_score > current.match_score:
                best[recommendation.user_id] = recommendation
        return sorted(best.values(), key=lambda item: item.match_score, reverse=True)

    def _reduce_job(self, job: Job) -> dict[str, Any]:
        return {
            "id": job.id,
            "title": job.title,
            "description": (job.description or "")[: settings.recommendation_description_chars],
            "tags": job.tags or [],
        }

    def _reduce_user(self, user: User) -> dict[str, Any]:
        return {"skills": user.skills or [], "experience": user.experience or "", "bio": user.bio or ""}

    def _reduce_candidate(self, user: User) -> dict[str, Any]:
        return {"id": user.id, "name": user.name, **self._reduce_user(user)}

    def _complete(self, prompt: str) -> str:
        if self.client is None:
            raise ExternalModelError("AI assistant is not configured")
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise ExternalModelError(f"Model call failed: {exc}") from exc

        blocks = getattr(response, "content", None) or []
        text = "".join(getattr(block, "text", "") or "" for block in blocks).strip()
        if not text:
            raise ExternalModelError("Model returned an empty response")
        return text

    def _parse(self, text: str, adapter: TypeAdapter) -> Any:
        fenced = _FENCE_RE.match(text.strip())
        if fenced:
            text = fenced.group(1)
        try:
            return adapter.validate_python(json.loads(text))
        except json.JSONDecodeError as exc:
            raise ExternalModelError(f"Model returned invalid JSON: {exc.msg}") from exc
        except SchemaError as exc:
            raise ExternalModelError(f"Model output did not match the expected schema ({exc.error_count()} errors)") from exc


gateway: RecommendationGateway | None = None


def get_gateway() -> RecommendationGateway:
    global gateway
    if gateway is None:
        gateway = RecommendationGateway()
    return gateway
