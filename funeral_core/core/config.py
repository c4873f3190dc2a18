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

    # Go ERP backend (contracts + general ledger)
    GO_BACKEND_URL: str = "http://localhost:8080"
    GO_BACKEND_API_KEY: str = ""
    GO_BACKEND_TIMEOUT_SECONDS: float = 15.0
    GO_BACKEND_MAX_ATTEMPTS: int = 3

    # Revenue recognition: receivable account debited on case finalization
    AR_ACCOUNT_NUMBER: str = "1200"

    # Family portal (magic links in invitation emails)
    PORTAL_BASE_URL: str = "http://localhost:3000"

    # Transactional email (Resend)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Funeral Home <no-reply@example.com>"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Listing limits
    INVITATION_PAGE_SIZE_MAX: int = 100

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY)


settings = Settings()
