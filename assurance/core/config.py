"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Actor recorded for unattended operations (file imports, auto-created cases)
    SYSTEM_ACTOR: str = "system"

    # Case references
    REFERENCE_MAX_ATTEMPTS: int = 5  # Regenerate-and-retry budget on unique violations

    # Notifications
    NOTIFICATION_RETENTION_DAYS: int = 30
    NOTIFICATION_FANOUT_MODE: str = "inline"  # inline | queued
    FANOUT_JOB_MAX_ATTEMPTS: int = 3

    # Audit: emit REPORT_UPDATED / REPORT_DELETED instead of reusing REPORT_CREATED
    AUDIT_DISTINCT_REPORT_EVENTS: bool = False

    # File storage for report files
    STORAGE_BACKEND: str = "local"  # local | s3
    LOCAL_STORAGE_PATH: str = "/tmp/assurance-report-files"
    S3_BUCKET: str = "assurance-report-files"
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str = ""
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    MAX_REPORT_FILE_BYTES: int = 50 * 1024 * 1024  # 50 MB

    # Background worker
    WORKER_POLL_INTERVAL: int = 10
    WORKER_BATCH_SIZE: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def fanout_queued(self) -> bool:
        """True when notification fan-out is handed off to the job worker."""
        return self.NOTIFICATION_FANOUT_MODE.strip().lower() == "queued"


settings = Settings()
