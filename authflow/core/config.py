from typing import List, Literal, Optional
from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger()


class Settings(BaseSettings):
    """
    Authflow service configuration.

    The signing secret MUST be provided via environment variables. Everything
    else has a development-friendly default; production-only requirements are
    enforced by validate_required_settings().
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        validate_assignment=True,
    )

    # Application settings
    APP_NAME: str = "Authflow"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # Security settings - SECRET_KEY is REQUIRED, NO DEFAULT
    SECRET_KEY: str = Field(..., min_length=32)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = Field(default=24, ge=1, le=720)
    BCRYPT_ROUNDS: int = Field(default=10, ge=4, le=31)

    # Signup policy
    PASSWORD_MIN_LENGTH: int = Field(default=8, ge=8, le=72)
    PASSWORD_MAX_LENGTH: int = Field(default=72, ge=8, le=72)  # bcrypt only reads 72 bytes
    DEFAULT_PERMISSIONS: List[str] = Field(default_factory=lambda: ["user"])

    # Email verification
    VERIFICATION_TTL_HOURS: int = Field(default=6, ge=1, le=168)
    SEND_VERIFICATION_ON_SIGNUP: bool = True
    BASE_URL: str = "http://localhost:4000"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./authflow.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = Field(default=10, ge=1, le=200)
    DATABASE_MAX_OVERFLOW: int = Field(default=20, ge=0, le=200)
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1, le=60)
    DATABASE_POOL_RECYCLE: int = Field(default=1800, ge=300, le=3600)
    CREATE_TABLES_ON_STARTUP: bool = True

    # Email settings
    MAIL_BACKEND: Literal["smtp", "console"] = "smtp"
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_START_TLS: bool = True
    EMAILS_FROM_EMAIL: Optional[str] = None
    EMAILS_FROM_NAME: str = "Authflow"
    MAIL_SEND_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0, le=120)
    MAIL_VERIFY_ON_STARTUP: bool = False

    SIGNOUT_REDIRECT_URL: str = "/"

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Reject obviously weak signing secrets."""
        bad_values = ["your-secret-key", "change-me", "changeme", "password", "12345"]
        if any(bad in v.lower() for bad in bad_values):
            raise ValueError("SECRET_KEY contains weak or default values")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production"]
        if v not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {valid_envs}")
        return v

    @field_validator("BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def mail_from_address(self) -> Optional[str]:
        """Sender address; defaults to the SMTP account like a plain mailbox setup."""
        return self.EMAILS_FROM_EMAIL or self.SMTP_USER


def validate_required_settings(settings: Settings) -> None:
    """
    Validate cross-field requirements that pydantic cannot express per field.
    Fail fast if critical settings are missing or inconsistent.
    """
    errors = []

    if settings.PASSWORD_MIN_LENGTH > settings.PASSWORD_MAX_LENGTH:
        errors.append("PASSWORD_MIN_LENGTH cannot exceed PASSWORD_MAX_LENGTH")

    if settings.ENVIRONMENT == "production":
        if settings.DEBUG:
            errors.append("DEBUG must be False in production")

        if settings.MAIL_BACKEND != "smtp":
            errors.append("MAIL_BACKEND must be 'smtp' in production")

    if settings.MAIL_BACKEND == "smtp" and settings.ENVIRONMENT != "development":
        if not settings.SMTP_USER or not settings.SMTP_PASSWORD:
            errors.append("SMTP_USER and SMTP_PASSWORD are required for the smtp mail backend")
        if not settings.mail_from_address:
            errors.append("EMAILS_FROM_EMAIL (or SMTP_USER) is required")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        logger.error(error_msg)
        raise ValueError(error_msg)

    logger.info(
        "Configuration validated successfully",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        mail_backend=settings.MAIL_BACKEND,
        verification_ttl_hours=settings.VERIFICATION_TTL_HOURS,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Fails fast if required environment variables are missing.
    """
    try:
        settings = Settings()
    except ValidationError as e:
        logger.error("Failed to load settings", errors=e.errors())
        raise
    validate_required_settings(settings)
    return settings
