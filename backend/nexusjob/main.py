from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nexusjob.api import applications, assistant, chats, jobs, live, profiles
from nexusjob.config import settings
from nexusjob.database import Base, engine
from nexusjob.errors import NexusJobError, TransientServiceError
from nexusjob.models import application, chat, job, message, user  # noqa: F401


logger = logging.getLogger("nexusjob")

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings.ensure_directories()
    Base.metadata.create_all(bind=engine)
    if not settings.ai_enabled:
        logger.warning("ANTHROPIC_API_KEY is not set; the AI assistant will return default results")


@app.exception_handler(NexusJobError)
def handle_domain_error(request: Request, exc: NexusJobError) -> JSONResponse:
    body: dict[str, object] = {"detail": exc.detail}
    if isinstance(exc, TransientServiceError):
        body["retryable"] = True
        logger.warning("Transient failure on %s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(profiles.router, prefix="/api/profiles", tags=["profiles"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(applications.router, prefix="/api/applications", tags=["applications"])
app.include_router(chats.router, prefix="/api/chats", tags=["chats"])
app.include_router(live.router, prefix="/api", tags=["live"])
app.include_router(assistant.router, prefix="/api/assistant", tags=["assistant"])
