from __future__ import annotations

from nexusjob.models.job import JobType
from nexusjob.schemas.job import JobCreate
from nexusjob.services.job_board import JobRepository


def _post(db, employer, *, title: str, location: str, type: JobType = JobType.FULL_TIME, tags=None, company=None):
    return JobRepository(db).create_job(
        employer,
        JobCreate(title=title, location=location, type=type, tags=tags or [], company_name=company),
    )


def test_keyword_matches_title_company_and_tags(db, employer):
    by_title = _post(db, employer, title="Senior Data Engineer", location="Berlin, Germany")
    by_company = _post(db, employer, title="Analyst", location="Munich", company="DataWorks GmbH")
    by_tag = _post(db, employer, title="Platform Engineer", location="Hamburg", tags=["BigData", "spark"])
    _post(db, employer, title="Frontend Engineer", location="Berlin", tags=["react"])

    result = JobRepository(db).list_jobs(keyword="data")

    assert {job.id for job in result} == {by_title.id, by_company.id, by_tag.id}


def test_location_and_type_filters_combine(db, employer):
    remote_berlin = _post(db, employer, title="Backend Engineer", location="Berlin (hybrid)", type=JobType.REMOTE)
    _post(db, employer, title="Backend Engineer", location="Berlin", type=JobType.CONTRACT)
    _post(db, employer, title="Backend Engineer", location="Cologne", type=JobType.REMOTE)

    result = JobRepository(db).list_jobs(keyword="backend", location="  BERLIN ", job_type=JobType.REMOTE)

    assert [job.id for job in result] == [remote_berlin.id]


def test_blank_filters_return_every_job_newest_first(db, employer):
    first = _post(db, employer, title="Backend Engineer", location="Berlin")
    second = _post(db, employer, title="Data Engineer", location="Munich")

    result = JobRepository(db).list_jobs(keyword="   ", location="")

    assert [job.id for job in result] == [second.id, first.id]


def test_job_search_over_http(client, db, employer, seeker, auth_headers):
    match = _post(db, employer, title="Python Developer", location="Remote EU", type=JobType.REMOTE, tags=["python"])
    _post(db, employer, title="Java Developer", location="Berlin", tags=["java"])

    response = client.get("/api/jobs", params={"q": "PYTHON", "type": "Remote"}, headers=auth_headers(seeker))

    assert response.status_code == 200
    assert [job["id"] for job in response.json()] == [match.id]
    assert client.get("/api/jobs", params={"type": "Weekend"}, headers=auth_headers(seeker)).status_code == 422
