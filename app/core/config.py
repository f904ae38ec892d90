import secrets
import warnings
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    Field,
    PostgresDsn,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Expense Insight"
    API_STR: str = "/api"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # JSON lines for log aggregation in production

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = ["http://localhost:3000"]

    @computed_field
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    # Database
    DATABASE_URL: str | None = None  # Override entire connection string (supports SQLite)
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "expense_insight"
    USE_SQLITE: bool = False

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.USE_SQLITE or (self.ENVIRONMENT == "local" and not self.POSTGRES_PASSWORD):
            return "sqlite:///./expense_insight.db"
        return str(PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        ))

    # AI Provider (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_MAX_TOKENS: int = 150
    OPENAI_SUMMARY_MAX_TOKENS: int = 300
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_TIMEOUT_SECONDS: float = 10.0  # Per attempt, retries multiply this

    @computed_field
    @property
    def ai_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    # AI rate limiting (requests per minute, per identity)
    AI_RATE_LIMIT_FREE: int = 10
    AI_RATE_LIMIT_STANDARD: int = 60
    AI_RATE_LIMIT_PREMIUM: int = 200

    # Distributed counter store for AI rate limiting (in-process when unset)
    REDIS_URL: str | None = None
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.5
    REDIS_FAILURE_COOLDOWN_SECONDS: float = 5.0

    # AI resilience
    AI_RETRY_COUNT: int = Field(default=3, ge=0)
    AI_RETRY_INITIAL_DELAY_MS: int = Field(default=500, ge=0)
    AI_RETRY_BACKOFF_MULTIPLIER: float = 1.0  # 1.0 keeps the delay fixed
    AI_CB_FAILURE_RATE_THRESHOLD: float = 50.0  # Percent
    AI_CB_WAIT_DURATION_SECONDS: float = 30.0
    AI_CB_SLIDING_WINDOW_SIZE: int = Field(default=10, ge=1)

    # First Superuser
    FIRST_SUPERUSER: str = "admin@example.com"
    FIRST_SUPERUSER_PASSWORD: str = "changethis"

    # Rate Limiting (non-AI endpoints, slowapi)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_AUTH: str = "5/minute"  # Auth endpoints (login, register)

    # Security
    ALLOWED_HOSTS: list[str] = ["*"]

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret(
            "FIRST_SUPERUSER_PASSWORD", self.FIRST_SUPERUSER_PASSWORD
        )
        return self


settings = Settings()  # type: ignore
