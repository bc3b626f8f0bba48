"""Configuration module that loads environment variables from ``.env``."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_BASE_ENV_PATH = Path(".env")
if _BASE_ENV_PATH.exists():
    load_dotenv(_BASE_ENV_PATH, override=False)

_LOCAL_ENV_PATH = Path(".env.local")
if "PYTEST_CURRENT_TEST" not in os.environ and _LOCAL_ENV_PATH.exists():
    load_dotenv(_LOCAL_ENV_PATH, override=False)

REQUESTER_SERVICE = "directory_service"


class Settings(BaseSettings):
    """Application configuration validated at import time."""

    model_config = SettingsConfigDict(env_file=(".env",), extra="ignore")

    env: Literal["dev", "staging", "prod", "test"] = Field(default="dev", alias="ENV")
    jwt_secret: str = Field(..., alias="JWT_SECRET")
    jwt_iss: str = Field(default="directory", alias="JWT_ISS")
    jwt_aud: str | None = Field(default=None, alias="JWT_AUD")
    jwt_ttl_seconds: int = Field(default=3600, alias="JWT_TTL_SECONDS", gt=0)

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="directory", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="", alias="POSTGRES_PASSWORD")
    postgres_sslmode: str | None = Field(default="prefer", alias="POSTGRES_SSLMODE")
    postgres_connect_timeout: int | None = Field(default=10, alias="POSTGRES_CONNECT_TIMEOUT")

    # --- Authentication ---------------------------------------------------------
    auth_mode: Literal["local", "auth-service"] = Field(default="local", alias="AUTH_MODE")
    auth_service_url: str | None = Field(default=None, alias="AUTH_SERVICE_URL")
    auth_service_timeout: float = Field(default=10.0, alias="AUTH_SERVICE_TIMEOUT")

    admin_email: str | None = Field(default=None, alias="ADMIN_EMAIL")
    admin_password: str | None = Field(default=None, alias="ADMIN_PASSWORD")
    admin_full_name: str = Field(default="Directory Admin", alias="ADMIN_FULL_NAME")

    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")

    # --- OAuth providers --------------------------------------------------------
    linkedin_client_id: str | None = Field(default=None, alias="LINKEDIN_CLIENT_ID")
    linkedin_client_secret: str | None = Field(default=None, alias="LINKEDIN_CLIENT_SECRET")
    linkedin_redirect_uri: str | None = Field(default=None, alias="LINKEDIN_REDIRECT_URI")
    github_client_id: str | None = Field(default=None, alias="GITHUB_CLIENT_ID")
    github_client_secret: str | None = Field(default=None, alias="GITHUB_CLIENT_SECRET")
    github_redirect_uri: str | None = Field(default=None, alias="GITHUB_REDIRECT_URI")
    oauth_state_ttl_seconds: int = Field(default=600, alias="OAUTH_STATE_TTL_SECONDS")

    # --- LLM provider -----------------------------------------------------------
    gemini_api_key: str | None = Field(
        default=None,
        alias="GEMINI_API_KEY",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_BASE_URL"
    )
    gemini_model: str = Field(default="gemini-1.5-flash", alias="GEMINI_MODEL")
    gemini_max_retries: int = Field(default=3, alias="GEMINI_MAX_RETRIES", ge=1)

    # --- Downstream learning microservices ---------------------------------------
    skills_engine_url: str | None = Field(default=None, alias="SKILLS_ENGINE_URL")
    course_builder_url: str | None = Field(default=None, alias="COURSE_BUILDER_URL")
    content_studio_url: str | None = Field(default=None, alias="CONTENT_STUDIO_URL")
    assessment_url: str | None = Field(default=None, alias="ASSESSMENT_URL")
    learner_ai_url: str | None = Field(default=None, alias="LEARNER_AI_URL")
    management_reporting_url: str | None = Field(default=None, alias="MANAGEMENT_REPORTING_URL")
    learning_analytics_url: str | None = Field(default=None, alias="LEARNING_ANALYTICS_URL")
    microservice_timeout: float = Field(default=30.0, alias="MICROSERVICE_TIMEOUT")
    mock_data_path: str | None = Field(default=None, alias="MOCK_DATA_PATH")

    csv_max_bytes: int = Field(default=10 * 1024 * 1024, alias="CSV_MAX_BYTES")

    trace_mode: bool = Field(default=False, alias="TRACE_MODE")
    trace_sampling: float = Field(default=1.0, alias="TRACE_SAMPLING")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator(
        "database_url",
        "auth_service_url",
        "admin_email",
        "admin_password",
        "gemini_api_key",
        "skills_engine_url",
        "course_builder_url",
        "content_studio_url",
        "assessment_url",
        "learner_ai_url",
        "management_reporting_url",
        "learning_analytics_url",
        "mock_data_path",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    def microservice_url(self, service: str) -> str | None:
        """Return the configured base URL for a downstream microservice key."""

        return getattr(self, f"{service}_url", None)

    def oauth_redirect_uri(self, provider: str) -> str:
        """Return the callback URI registered with *provider*."""

        explicit = getattr(self, f"{provider}_redirect_uri", None)
        if explicit:
            return explicit
        return f"{self.public_base_url.rstrip('/')}/api/v1/oauth/{provider}/callback"


settings = Settings()
