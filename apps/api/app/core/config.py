"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    TESTING: bool = False

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str = "sqlite+pysqlite:///./airform.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4

    # Token Encryption (Fernet key for stored Airtable OAuth tokens)
    TOKEN_ENCRYPTION_KEY: str = ""  # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"

    # Airtable Web API
    AIRTABLE_API_URL: str = "https://api.airtable.com/v0"
    AIRTABLE_TIMEOUT_SECONDS: float = 15.0
    AIRTABLE_CONNECT_TIMEOUT_SECONDS: float = 5.0

    # Sync retry policy
    MAX_SYNC_ATTEMPTS: int = 3

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (for safe redirects)
    FRONTEND_URL: str = "http://localhost:3000"

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # Upload storage
    STORAGE_BACKEND: str = "local"  # local | s3
    LOCAL_STORAGE_PATH: str = "/tmp/airform-uploads"
    S3_BUCKET: str = "airform-uploads"
    S3_REGION: str = "us-east-1"
    PUBLIC_FILE_BASE_URL: str = "http://localhost:8000/uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_FILES_PER_FIELD: int = 5

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute, shared through Redis when reachable)
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_API: int = 60  # General API
    RATE_LIMIT_PUBLIC_READ: int = 120  # Public form fetches
    RATE_LIMIT_PUBLIC_FORMS: int = 20  # Public submissions
    RATE_LIMIT_PUBLIC_VALIDATE: int = 240  # Live validation while typing

    # Worker
    WORKER_POLL_INTERVAL: int = 60
    WORKER_BATCH_SIZE: int = 25

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
