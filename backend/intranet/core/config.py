"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]
_INSECURE_JWT_SECRETS = {"", "change-me", "secret"}


class Settings(BaseSettings):
    APP_NAME: str = "Intranet Platform"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/intranet"

    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    COOKIE_NAME: str = "intranet_access"
    INVITE_TOKEN_EXPIRE_HOURS: int = 72
    LOG_LEVEL: str = "INFO"

    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = ""
    SMTP_TLS: bool = True

    FRONTEND_BASE_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"
    ALLOWED_HOSTS: str = "localhost,127.0.0.1,testserver"

    # OpenAI-compatible embeddings endpoint
    EMBEDDING_BASE_URL: str = "https://api.openai.com/v1"
    EMBEDDING_API_KEY: str = ""
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIM: int = 1536
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0

    EMBEDDING_QUEUE_ENABLED: bool = True
    EMBEDDING_QUEUE_DELAY_SECONDS: float = 1.0
    EMBEDDING_QUEUE_MAX_RETRIES: int = 3

    ESCALATION_SWEEP_ENABLED: bool = False
    ESCALATION_SWEEP_INTERVAL_SECONDS: int = 300
    ESCALATION_SWEEP_STARTUP_DELAY_SECONDS: int = 30

    WEBHOOK_USER_AGENT: str = "intranet-webhooks/1.0"
    INBOUND_EMAIL_SECRET: str = ""

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 120
    RATE_LIMIT_AUTH_MAX_REQUESTS: int = 20
    RATE_LIMIT_AI_MAX_REQUESTS: int = 30
    RATE_LIMIT_INBOUND_MAX_REQUESTS: int = 300

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() in {"production", "prod"}

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def allowed_hosts(self) -> list[str]:
        hosts = [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]
        return hosts or ["*"]

    @property
    def embeddings_ready(self) -> bool:
        return bool(self.EMBEDDING_API_KEY.strip() and self.EMBEDDING_BASE_URL.strip())

    def validate_runtime_security(self) -> None:
        if not self.is_production:
            return
        if self.JWT_SECRET.strip() in _INSECURE_JWT_SECRETS or len(self.JWT_SECRET.strip()) < 32:
            raise RuntimeError("insecure_jwt_secret: set JWT_SECRET to a random value of 32+ characters")
        if "*" in self.allowed_hosts:
            raise RuntimeError("insecure_allowed_hosts: wildcard host is not allowed in production")


settings = Settings()
