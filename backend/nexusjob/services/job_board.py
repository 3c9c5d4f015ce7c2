from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from nexusjob.database import commit, utcnow
from nexusjob.errors import PermissionDeniedError, ValidationError
from nexusjob.models.application import Application, ApplicationStatus
from nexusjob.models.job import Job, JobType
from nexusjob.models.user import User
from nexusjob.schemas.application import ApplicationOut
from nexusjob.schemas.job import JobCreate, JobUpdate
from nexusjob.services.realtime import APPLICATIONS_TOPIC, RealtimeEvent, RealtimeHub, Subscription


class JobRepository:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    def get_job(self, job_id: int) -> Job | None:
        return self.db.query(Job).filter(Job.id == job_id).first()

    def list_jobs(
        self,
        keyword: str | None = None,
        location: str | None = None,
        job_type: JobType | None = None,
    ) -> list[Job]:
        """Newest jobs first, optionally narrowed by the job board search box.

        ``keyword`` matches title, company or any tag; ``location`` is a
        substring match. Both are case-insensitive.
        """
        query = self.db.query(Job)
        keyword = (keyword or "").strip()
        if keyword:
            pattern = f"%{keyword}%"
            query = query.filter(
                or_(
                    Job.title.ilike(pattern),
                    Job.company_name.ilike(pattern),
                    cast(Job.tags, String).ilike(pattern),
                )
            )
        location = (location or "").strip()
        if location:
            query = query.filter(Job.location.ilike(f"%{location}%"))
        if job_type is not None:
            query = query.filter(Job.type == job_type.value)
        return query.order_by(Job.posted_at.desc(), Job.id.desc()).all()

    def list_for_employer(self, employer_id: int) -> list[Job]:
        return (
            self.db.query(Job)
            .filter(Job.employer_id == employer_id)
            .order_by(Job.posted_at.desc(), Job.id.desc())
            .all()
        )

    def create_job(self, employer: User, data: JobCreate) -> Job:
        if not employer.is_employer:
            raise PermissionDeniedError("Only employers can post jobs")
        job = Job(
            employer_id=employer.id,
            company_name=data.company_name or employer.company_name or employer.name,
            title=data.title.strip(),
            location=data.location,
            type=data.type.value,
            salary_range=data.salary_range,
            description=data.description,
            requirements=list(data.requirements),
            tags=list(data.tags),
            posted_at=utcnow(),
        )
        self.db.add(job)
        commit(self.db)
        self.db.refresh(job)
        self.logger.info("Employer %s posted job %s", employer.id, job.id)
        return job

    def update_job(self, job_id: int, actor_id: int, data: JobUpdate) -> Job:
        job = self._owned_job(job_id, actor_id)
        job.title = data.title.strip()
        if data.company_name:
            job.company_name = data.company_name
        job.location = data.location
        job.type = data.type.value
        job.salary_range = data.salary_range
        job.description = data.description
        job.requirements = list(data.requirements)
        job.tags = list(data.tags)
        self.db.add(job)
        commit(self.db)
        self.db.refresh(job)
        return job

    def delete_job(self, job_id: int, actor_id: int) -> None:
        job = self._owned_job(job_id, actor_id)
        self.db.delete(job)
        commit(self.db)
        self.logger.info("Job %s deleted by employer %s", job_id, actor_id)

    def _owned_job(self, job_id: int, actor_id: int) -> Job:
        job = self.get_job(job_id)
        if not job:
            raise ValidationError(f"Job {job_id} does not exist")
        if job.employer_id != actor_id:
            raise PermissionDeniedError("Only the employer who posted this job can change it")
        return job


class ApplicationRepository:
    def __init__(
        self,
        db: Session,
        hub: RealtimeHub | None = None,
        single_application_per_job: bool = False,
    ) -> None:
        self.db = db
        self.hub = hub
        self.single_application_per_job = single_application_per_job
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self, application_id: int) -> Application | None:
        return self.db.query(Application).filter(Application.id == application_id).first()

    def list_all(self) -> list[Application]:
        return self.db.query(Application).order_by(Application.applied_at.desc(), Application.id.desc()).all()

    def list_for_seeker(self, seeker_id: int) -> list[Application]:
        return (
            self.db.query(Application)
            .filter(Application.seeker_id == seeker_id)
            .order_by(Application.applied_at.desc(), Application.id.desc())
            .all()
        )

    def list_for_employer(self, employer_id: int) -> list[Application]:
        return (
            self.db.query(Application)
            .join(Job, Job.id == Application.job_id)
            .filter(Job.employer_id == employer_id)
            .order_by(Application.applied_at.desc(), Application.id.desc())
            .all()
        )

    def create_application(
        self,
        job_id: int,
        seeker_id: int,
        seeker_name: str,
        cover_letter: str | None = None,
    ) -> Application:
        if not (seeker_name or "").strip():
            raise ValidationError("Seeker name is required")
        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise ValidationError(f"Job {job_id} does not exist")

        if self.single_application_per_job:
            existing = (
                self.db.query(Application)
                .filter(Application.job_id == job_id, Application.seeker_id == seeker_id)
                .first()
            )
            if existing:
                return existing

        application = Application(
            job_id=job_id,
            seeker_id=seeker_id,
            seeker_name=seeker_name.strip(),
            status=ApplicationStatus.PENDING.value,
            cover_letter=cover_letter or None,
            applied_at=utcnow(),
        )
        self.db.add(application)
        commit(self.db)
        self.db.refresh(application)
        self.logger.info("Seeker %s applied to job %s (application %s)", seeker_id, job_id, application.id)
        self._publish("insert", application)
        return application

    def update_status(
        self,
        application_id: int,
        new_status: ApplicationStatus | str,
        actor_id: int | None = None,
    ) -> Application:
        """Overwrite the status of an application.

        Any status may replace any other. Chat creation on acceptance is the
        caller's job; this method does not cascade.
        """
        status = self._coerce_status(new_status)
        application = self.get(application_id)
        if not application:
            raise ValidationError(f"Application {application_id} does not exist")
        if actor_id is not None:
            job = self.db.query(Job).filter(Job.id == application.job_id).first()
            if not job or job.employer_id != actor_id:
                raise PermissionDeniedError("Only the employer who posted the job can change this application")

        previous = application.status
        application.status = status.value
        self.db.add(application)
        commit(self.db)
        self.db.refresh(application)
        self.logger.info("Application %s status %s -> %s", application.id, previous, status.value)
        self._publish("update", application)
        return application

    def subscribe_to_applications(self, callback: Callable[[RealtimeEvent], None]) -> Subscription:
        if self.hub is None:
            raise RuntimeError("No realtime hub configured")
        return self.hub.subscribe(APPLICATIONS_TOPIC, callback)

    def _coerce_status(self, value: ApplicationStatus | str) -> ApplicationStatus:
        if isinstance(value, ApplicationStatus):
            return value
        try:
            return ApplicationStatus(value)
        except ValueError:
            allowed = ", ".join(status.value for status in ApplicationStatus)
            raise ValidationError(f"Unknown application status {value!r}; expected one of {allowed}") from None

    def _publish(self, kind: str, application: Application) -> None:
        if self.hub is not None:
            self.hub.publish(APPLICATIONS_TOPIC, kind, ApplicationOut.model_validate(application))
