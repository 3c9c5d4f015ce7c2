from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass
class Settings:
    app_name: str = "NexusJob"
    environment: str = os.getenv("ENV", "development")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./db/nexusjob.db")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: list[str] = field(
        default_factory=lambda: _split_origins(
            os.getenv("CORS_ORIGINS", "http://localhost,http://localhost:3000,http://127.0.0.1:8000")
        )
    )
    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")
    ai_model: str = os.getenv("AI_MODEL", "claude-sonnet-4-20250514")
    ai_timeout_seconds: float = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))
    ai_max_tokens: int = int(os.getenv("AI_MAX_TOKENS", "1500"))
    recommendation_description_chars: int = int(os.getenv("RECOMMENDATION_DESCRIPTION_CHARS", "200"))
    max_job_recommendations: int = int(os.getenv("MAX_JOB_RECOMMENDATIONS", "3"))
    candidate_min_score: float = float(os.getenv("CANDIDATE_MIN_SCORE", "50"))
    max_message_page_size: int = int(os.getenv("MAX_MESSAGE_PAGE_SIZE", "200"))
    single_application_per_job: bool = os.getenv("SINGLE_APPLICATION_PER_JOB", "false").lower() == "true"
    auth_secret: str = os.getenv("AUTH_SECRET", "nexusjob-dev-secret")
    token_ttl_seconds: int = int(os.getenv("AUTH_TOKEN_TTL_SECONDS", str(60 * 60 * 24 * 14)))

    @property
    def ai_enabled(self) -> bool:
        return bool(self.anthropic_api_key)

    def ensure_directories(self) -> None:
        self._ensure_sqlite_directory()

    def _ensure_sqlite_directory(self) -> None:
        if not self.database_url.startswith("sqlite:///"):
            return
        raw_path = self.database_url.replace("sqlite:///", "", 1)
        if not raw_path or raw_path == ":memory:":
            return
        db_path = Path(unquote(raw_path))
        if not db_path.is_absolute():
            db_path = Path(".") / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)


settings = Settings()
