from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./alumni_connect.db"
    DATABASE_TIMEOUT_SECONDS: int = 10

    # JWT session tokens
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_DAYS: int = 7

    # Account lifecycle
    BCRYPT_ROUNDS: int = 12
    VERIFICATION_TOKEN_EXPIRE_HOURS: int = 24
    RESET_TOKEN_EXPIRE_MINUTES: int = 30

    # Referrals
    STRICT_REFERRAL_TRANSITIONS: bool = False

    # Application
    APP_NAME: str = "Alumni Connect"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: str = (
        "http://localhost:3000,"
        "http://127.0.0.1:3000"
    )


settings = Settings()
