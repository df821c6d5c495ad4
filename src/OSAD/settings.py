# src/OSAD/settings.py
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Client-side configuration for the dashboard data layer.

    All fields are environment-driven with prefix OSAD_ (case-insensitive),
    e.g. OSAD_API_BASE_URL=https://backend.example.org/api/v1
    """

    # The only deployment-owned contract: where the backend lives.
    api_base_url: str = "http://localhost:8081/api/v1"
    request_timeout: float = 10.0

    # Reads get at most one retry on transport errors; mutations get none
    # from the fetcher itself (see submit_with_retry for the explicit case).
    read_retries: int = Field(1, ge=0, le=1)
    mutation_retry_delay: float = 1.0

    # Cap on per-student / per-class calls in flight at once.
    max_inflight: int = Field(5, ge=1)

    # Some pages used to fall back to hard-coded demo rows when the backend
    # was unreachable. Off unless explicitly enabled.
    allow_demo_fallback: bool = False

    photo_bucket: str = "photos"
    signed_url_ttl: int = 3600

    notice_dismiss_seconds: float = 5.0
    student_page_size: int = 10000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="OSAD_",
    )

    # ---- helpers -----------------------------------------------------
    @property
    def base_url(self) -> str:
        return self.api_base_url.rstrip("/")

    def build_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        suffix = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{suffix}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
