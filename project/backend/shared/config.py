"""
Configuration management.

Centralized environment variable management and validation.
"""

import json
from functools import lru_cache
from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # LOG_DIR: directory for the rotating JSON log file; empty string disables file logging
    log_dir: str = "logs"

    # Supabase configuration (job store, object storage, auth)
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_jwt_secret: str = ""

    # JOB_STORE_BACKEND: "supabase" in deployed environments, "memory" for local runs
    job_store_backend: Literal["supabase", "memory"] = "supabase"

    # Redis holds cancellation flags and assembly progress; in-process when unset
    redis_url: str = ""

    # Frontend configuration (CORS); all origins allowed when unset
    frontend_url: str = ""

    # Storyboard LLM (OpenAI)
    openai_api_key: str = ""
    storyboard_model: str = "gpt-4o-mini"
    storyboard_timeout_seconds: float = 30.0
    storyboard_max_tokens: int = 500

    # Text-to-video (Veo on Vertex AI)
    # GOOGLE_SERVICE_ACCOUNT_JSON: full service account key JSON; Veo is skipped without it
    google_service_account_json: str = ""
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    veo_model: str = "veo-3.1"

    # Lip-sync (Sync)
    sync_api_key: str = ""
    sync_base_url: str = "https://api.sync.so/v2"
    sync_model: str = "lipsync-1.9.0-beta"

    # Polling bounds: 60 x 5s ~ 5 minutes for video, 120 x 5s ~ 10 minutes for lip-sync
    poll_interval_seconds: float = 5.0
    veo_max_poll_attempts: int = 60
    lipsync_max_poll_attempts: int = 120

    # Retry policy for provider submissions
    provider_max_attempts: int = 3
    provider_retry_base_delay: float = 2.0

    # Object storage
    uploads_bucket: str = "uploads"
    outputs_bucket: str = "outputs"
    upload_url_expiry_seconds: int = 3600  # 1 hour
    output_url_expiry_seconds: int = 86400  # 24 hours

    @field_validator("supabase_url", "frontend_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate optional HTTP(S) URLs."""
        if v and not v.startswith(("http://", "https://")):
            raise ConfigError(f"URL must be a valid HTTP/HTTPS URL: {v}")
        return v.rstrip("/")

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if v and not v.startswith(("redis://", "rediss://")):
            raise ConfigError("REDIS_URL must start with redis:// or rediss://")
        return v

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_api_key(cls, v: str) -> str:
        """Validate OpenAI API key format."""
        if v and not v.startswith("sk-"):
            raise ConfigError("OPENAI_API_KEY must start with 'sk-'")
        return v

    @field_validator("google_service_account_json")
    @classmethod
    def validate_service_account_json(cls, v: str) -> str:
        """Validate that the service account key is a JSON object with signing fields."""
        if not v:
            return v
        try:
            data = json.loads(v)
        except json.JSONDecodeError as e:
            raise ConfigError(f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not data.get("client_email") or not data.get("private_key"):
            raise ConfigError("GOOGLE_SERVICE_ACCOUNT_JSON must contain client_email and private_key")
        return v

    @field_validator("poll_interval_seconds", "storyboard_timeout_seconds", "provider_retry_base_delay")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Validate timing values."""
        if v < 0:
            raise ConfigError("Timing settings must not be negative")
        return v

    @field_validator("veo_max_poll_attempts", "lipsync_max_poll_attempts", "provider_max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate attempt counts."""
        if v < 1:
            raise ConfigError("Attempt counts must be at least 1")
        return v

    @property
    def supabase_configured(self) -> bool:
        """Whether Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def service_account_info(self) -> Optional[dict]:
        """Parsed Google service account key, or None when not configured."""
        if not self.google_service_account_json:
            return None
        return json.loads(self.google_service_account_json)


@lru_cache
def get_settings() -> Settings:
    """
    Get the process settings.

    Loaded once; components receive the object explicitly rather than importing it.

    Raises:
        ConfigError: If the environment holds malformed values
    """
    try:
        return Settings()
    except ConfigError:
        raise
    except Exception as e:
        # Re-raise as ConfigError for consistency
        raise ConfigError(f"Failed to load configuration: {str(e)}") from e
