from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./bidding.db"

    # ---- Logging ----
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["http://localhost:3000"]

    # ---- Identity ----
    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    min_password_length: int = 6

    # ---- Documents / object storage ----
    max_upload_bytes: int = 10 * 1024 * 1024
    signed_url_ttl_seconds: int = 3600
    storage_backend: str = "local"  # local|minio
    local_storage_dir: str = "./storage"
    public_base_url: str = "http://localhost:8000"

    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_secure: bool = False
    minio_bucket: str = "documents"

    # ---- Real-time ----
    realtime_backend: str = "memory"  # memory|redis
    redis_url: str = "redis://localhost:6379/2"
    notify_dispatch: str = "inline"  # inline|celery

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None
    notify_max_retries: int = 3
    notify_retry_base_seconds: int = 2
    notify_retry_max_seconds: int = 60

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
