import json

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = Field(default="local", alias="ENV")
    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24 * 30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # ─────────────────────────────────────────────
    # Friend sync queue (cache -> database write-through)
    # ─────────────────────────────────────────────
    sync_queue_prefix: str = Field(default="friendsync", alias="SYNC_QUEUE_PREFIX")
    sync_queue_shards: int = Field(default=1, alias="SYNC_QUEUE_SHARDS")
    sync_enqueue_timeout_seconds: float = Field(default=2.0, alias="SYNC_ENQUEUE_TIMEOUT_SECONDS")
    sync_max_attempts: int = Field(default=5, alias="SYNC_MAX_ATTEMPTS")
    sync_retry_backoff_seconds: float = Field(default=0.5, alias="SYNC_RETRY_BACKOFF_SECONDS")
    sync_poll_timeout_seconds: float = Field(default=5.0, alias="SYNC_POLL_TIMEOUT_SECONDS")

    # ─────────────────────────────────────────────
    # Resync (database -> cache)
    # ─────────────────────────────────────────────
    resync_batch_size: int = Field(default=500, alias="RESYNC_BATCH_SIZE")

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        cleaned = value.strip()
        if cleaned.startswith("postgres://"):
            cleaned = f"postgresql://{cleaned[len('postgres://'):]}"
        if cleaned.startswith("postgresql://") and not cleaned.startswith("postgresql+"):
            cleaned = cleaned.replace("postgresql://", "postgresql+asyncpg://", 1)
        return cleaned

    @field_validator("sync_queue_shards", "sync_max_attempts", "resync_batch_size")
    @classmethod
    def require_positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("sync_enqueue_timeout_seconds")
    @classmethod
    def require_positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("SYNC_ENQUEUE_TIMEOUT_SECONDS must be greater than 0")
        return value

    def cors_origin_list(self) -> list[str]:
        raw = (self.cors_origins or "").strip()
        if not raw:
            return []

        values: list[str]
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                values = [str(v) for v in parsed if isinstance(v, str)]
            else:
                values = [raw]
        else:
            values = raw.split(",")

        normalized: list[str] = []
        seen: set[str] = set()
        for value in values:
            cleaned = value.strip().strip("\"'")
            if not cleaned:
                continue
            # CORS origins are scheme + host (+ optional port) with no path slash.
            if cleaned != "*" and cleaned.endswith("/"):
                cleaned = cleaned.rstrip("/")
            if cleaned in seen:
                continue
            seen.add(cleaned)
            normalized.append(cleaned)

        return normalized

settings = Settings()
