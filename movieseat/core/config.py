from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "MovieSeat API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    ADMIN_SECRET_KEY: str = "change-this-admin-secret"

    # Optional admin account created (or promoted) on startup
    INITIAL_ADMIN_EMAIL: str = ""
    INITIAL_ADMIN_PASSWORD: str = ""
    INITIAL_ADMIN_NAME: str = "Administrator"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "movieseat"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Upper bound for a single reserve/cancel transaction (0 = no bound)
    RESERVATION_TIMEOUT_MS: int = 5000
    # Seconds between seat/reservation consistency audits (0 = disabled)
    CONSISTENCY_AUDIT_INTERVAL_SECONDS: int = 300

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def uses_postgres(self) -> bool:
        return self.assemble_db_url().startswith("postgresql")


def get_settings() -> Settings:
    settings = Settings()
    settings.DATABASE_URL = settings.assemble_db_url()
    return settings
