"""
autodocs.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide env-driven settings for the API, pipeline, and external boundaries.
- Hide secrets (JWT secret, GitHub token, webhook secret, LLM key) from repr/logging.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AUTODOCS_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and dev tokens.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "autodocs"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth (bearer tokens minted by the identity provider in front of the dashboard)
    jwt_alg: str = "HS256"
    jwt_issuer: str = "autodocs"
    jwt_audience: str = "autodocs-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./autodocs.db"

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: str | None = Field(default=None, repr=False)
    webhook_secret: str | None = Field(default=None, repr=False)
    public_base_url: str = "http://localhost:8080"
    tracked_branches: list[str] = Field(default_factory=lambda: ["main", "master"])
    code_extensions: list[str] = Field(
        default_factory=lambda: [
            ".js",
            ".ts",
            ".jsx",
            ".tsx",
            ".py",
            ".java",
            ".go",
            ".rb",
            ".php",
            ".cs",
        ]
    )
    max_file_bytes: int = 5 * 1024 * 1024

    # Documentation writer
    llm_provider: Literal["gemini", "template"] = "template"
    gemini_api_key: str | None = Field(default=None, repr=False)
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str | None = None
    doc_chunk_chars: int = 12_000

    # Outbound HTTP
    http_timeout_seconds: float = 30.0
    http_retries: int = 3

    # Server-Sent Events
    sse_pending_ttl_seconds: float = 30.0
    sse_keepalive_seconds: float = 15.0
    sse_queue_size: int = 100


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# List-valued settings (tracked_branches, code_extensions) are read from env as JSON,
# e.g. AUTODOCS_TRACKED_BRANCHES='["main","release"]'.
