from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class Settings:
    """Centralized application settings.

    This keeps environment-variable handling in one place so other modules can
    depend on strongly-typed attributes instead of calling os.getenv
    directly.
    """

    # Public API version segment, e.g. /api/v1.
    api_version: str = os.getenv("API_VERSION", "v1")

    # Optional database configuration for SQL-backed repositories.
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    use_sql_repos: bool = os.getenv("USE_SQL_REPOS", "false").lower() == "true"

    # Bearer token verification. The identity provider signs session tokens;
    # AUTH_JWT_KEY is either a shared secret (HS*) or a PEM public key (RS*).
    auth_jwt_key: Optional[str] = os.getenv("AUTH_JWT_KEY")
    auth_jwt_algorithms: str = os.getenv("AUTH_JWT_ALGORITHMS", "RS256")
    auth_jwt_issuer: Optional[str] = os.getenv("AUTH_JWT_ISSUER")
    auth_jwt_audience: Optional[str] = os.getenv("AUTH_JWT_AUDIENCE")

    # Outbound email (SMTP). Email is skipped when SMTP_HOST is unset.
    smtp_host: Optional[str] = os.getenv("SMTP_HOST")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: Optional[str] = os.getenv("SMTP_USER")
    smtp_password: Optional[str] = os.getenv("SMTP_PASSWORD")
    email_from: str = os.getenv("EMAIL_FROM", "VaxTrack <no-reply@vaxtrack.app>")

    # Outbound SMS (Twilio). SMS is skipped when credentials are missing.
    twilio_account_sid: Optional[str] = os.getenv("TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[str] = os.getenv("TWILIO_AUTH_TOKEN")
    twilio_phone_number: Optional[str] = os.getenv("TWILIO_PHONE_NUMBER")

    # Chat assistant backend: "openai" (default when a key is present) or "demo".
    chat_backend: str = os.getenv("CHAT_BACKEND", "openai")
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o")
    llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "500"))
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))

    # Directory where uploaded child photos are stored.
    photo_upload_dir: Path = Path(os.getenv("PHOTO_UPLOAD_DIR", "uploads/children"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

    # Daily reminder scan as a five-field cron expression, evaluated in UTC.
    # The in-process scheduler should be disabled when Celery beat drives it.
    reminder_scheduler_enabled: bool = os.getenv("REMINDER_SCHEDULER_ENABLED", "true").lower() == "true"
    reminder_cron: str = os.getenv("REMINDER_CRON", "0 9 * * *")
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    reminder_lookahead_days: int = int(os.getenv("REMINDER_LOOKAHEAD_DAYS", "3"))

    # Notifications older than this many days are purged; 0 disables expiry.
    notification_ttl_days: int = int(os.getenv("NOTIFICATION_TTL_DAYS", "90"))

    # Rate limits (fixed windows, per client address).
    rate_limit_window_minutes: int = int(os.getenv("RATE_LIMIT_WINDOW", "15"))
    rate_limit_max_requests: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
    auth_rate_limit_max_requests: int = int(os.getenv("AUTH_RATE_LIMIT_MAX_REQUESTS", "5"))
    ai_rate_limit_max_requests: int = int(os.getenv("AI_RATE_LIMIT_MAX_REQUESTS", "50"))
    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    # "memory://" keeps counters per process; "redis://host:6379" shares them.
    rate_limit_storage_uri: str = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")

    # CORS configuration: comma-separated origins. The browser client runs on
    # the Vite dev server by default.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5173")


settings = Settings()
