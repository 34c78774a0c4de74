from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for auth admin calls and background jobs

    # Media storage (avatars, community covers)
    media_backend: str = "supabase"  # supabase | s3
    media_bucket: str = "avatars"

    # AWS S3 (only read when media_backend=s3)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None

    # Scheduled individual studies
    study_scheduler_enabled: bool = False
    study_scheduler_interval_seconds: int = 3600
    study_schedule_days_ahead: int = 7

    default_event_duration_minutes: int = 60

    # App
    app_name: str = "proske-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    public_app_url: str = "http://localhost:5173"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def invite_url(self, invite_code: str) -> str:
        return f"{self.public_app_url.rstrip('/')}/invite/{invite_code}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
